"""Tests for bearer token issuance and verification."""

import pytest
from authlib.jose import JsonWebSignature

from src.authgate.core.errors import ConfigurationError, TokenError, TokenErrorKind
from src.authgate.core.services import RevocationList, TokenCodec
from src.authgate.runtime.config.config_data import JWTConfig
from tests.fixtures.core import TEST_SIGNING_SECRET
from tests.utils import B64URL_ALPHABET, FakeClock, tamper_segment, unsigned_token


def _kind(excinfo: pytest.ExceptionInfo[TokenError]) -> TokenErrorKind:
    return excinfo.value.kind


class TestTokenCodecConstruction:
    """Key material is validated when the codec is built."""

    def test_missing_secret_rejected(self):
        with pytest.raises(ConfigurationError, match="not configured"):
            TokenCodec(JWTConfig(signing_secret=None))

    def test_empty_secret_rejected(self):
        with pytest.raises(ConfigurationError):
            TokenCodec(JWTConfig(signing_secret=""))

    def test_short_secret_rejected(self):
        """A 63-byte key is one byte short of the HS512 minimum."""
        with pytest.raises(ConfigurationError, match="at least 64 bytes"):
            TokenCodec(JWTConfig(signing_secret="k" * 63))

    def test_minimum_length_secret_accepted(self):
        codec = TokenCodec(JWTConfig(signing_secret="k" * 64))
        assert codec.lifetime_seconds == 86400


class TestTokenRoundTrip:
    """Issued tokens verify back to their subject and roles."""

    @pytest.mark.parametrize(
        "subject,roles",
        [
            ("alice", {"USER"}),
            ("bob", {"USER", "ADMIN"}),
            ("user_0a1b2c3d4e5f", set()),
            ("ünïcode", {"USER"}),
        ],
    )
    def test_verify_returns_issued_claims(self, token_codec: TokenCodec, subject, roles):
        token = token_codec.issue(subject, roles)

        verified = token_codec.verify(token)

        assert verified.subject == subject
        assert verified.roles == frozenset(roles)
        assert verified.token_id

    def test_expiry_is_issue_time_plus_lifetime(self, token_codec: TokenCodec, clock: FakeClock):
        token = token_codec.issue("alice", {"USER"})

        verified = token_codec.verify(token)

        assert verified.issued_at.timestamp() == int(clock.now)
        assert verified.expires_at.timestamp() == int(clock.now) + 3600

    def test_each_token_has_its_own_id(self, token_codec: TokenCodec):
        first = token_codec.verify(token_codec.issue("alice", {"USER"}))
        second = token_codec.verify(token_codec.issue("alice", {"USER"}))
        assert first.token_id != second.token_id

    def test_issuer_claim_included_when_configured(self, clock: FakeClock):
        codec = TokenCodec(
            JWTConfig(signing_secret=TEST_SIGNING_SECRET, issuer="authgate"), clock=clock
        )
        assert codec.verify(codec.issue("alice", {"USER"})).issuer == "authgate"

    def test_token_from_other_key_rejected(self, token_codec: TokenCodec, clock: FakeClock):
        other = TokenCodec(JWTConfig(signing_secret="z" * 64), clock=clock)
        token = other.issue("alice", {"ADMIN"})

        with pytest.raises(TokenError) as excinfo:
            token_codec.verify(token)
        assert _kind(excinfo) == TokenErrorKind.BAD_SIGNATURE


class TestTokenExpiry:
    """Expiry is strict unless a clock skew is configured."""

    def test_valid_just_before_expiry(self, token_codec: TokenCodec, clock: FakeClock):
        token = token_codec.issue("alice", {"USER"})
        clock.advance(3599)
        assert token_codec.verify(token).subject == "alice"

    def test_expired_at_exact_expiry(self, token_codec: TokenCodec, clock: FakeClock):
        token = token_codec.issue("alice", {"USER"})
        clock.advance(3600)

        with pytest.raises(TokenError) as excinfo:
            token_codec.verify(token)
        assert _kind(excinfo) == TokenErrorKind.EXPIRED

    def test_expired_long_after_lifetime(self, token_codec: TokenCodec, clock: FakeClock):
        token = token_codec.issue("alice", {"USER"})
        clock.advance(10 * 3600)

        with pytest.raises(TokenError) as excinfo:
            token_codec.verify(token)
        assert _kind(excinfo) == TokenErrorKind.EXPIRED

    def test_clock_skew_extends_validity(self, clock: FakeClock):
        codec = TokenCodec(
            JWTConfig(signing_secret=TEST_SIGNING_SECRET, lifetime_seconds=60, clock_skew=30),
            clock=clock,
        )
        token = codec.issue("alice", {"USER"})

        clock.advance(89)
        assert codec.verify(token).subject == "alice"

        clock.advance(1)
        with pytest.raises(TokenError) as excinfo:
            codec.verify(token)
        assert _kind(excinfo) == TokenErrorKind.EXPIRED


class TestTokenTampering:
    """Any modified payload or signature byte fails signature verification."""

    @pytest.mark.parametrize("segment", [1, 2])
    def test_single_character_change_rejected(self, token_codec: TokenCodec, segment: int):
        token = token_codec.issue("alice", {"USER"})
        middle = len(token.split(".")[segment]) // 2

        with pytest.raises(TokenError) as excinfo:
            token_codec.verify(tamper_segment(token, segment, middle))
        assert _kind(excinfo) == TokenErrorKind.BAD_SIGNATURE

    @pytest.mark.parametrize("segment", [1, 2])
    def test_every_position_rejected(self, token_codec: TokenCodec, segment: int):
        """No position of the payload or signature can be changed without detection."""
        token = token_codec.issue("alice", {"USER"})
        segment_length = len(token.split(".")[segment])

        for index in range(segment_length):
            with pytest.raises(TokenError) as excinfo:
                token_codec.verify(tamper_segment(token, segment, index))
            assert _kind(excinfo) == TokenErrorKind.BAD_SIGNATURE

    @pytest.mark.parametrize("segment", [1, 2])
    def test_every_replacement_of_last_character_rejected(
        self, token_codec: TokenCodec, segment: int
    ):
        """The trailing character also carries unused bits; none of its variants verify."""
        token = token_codec.issue("alice", {"USER"})
        parts = token.split(".")
        original = parts[segment][-1]

        for replacement in B64URL_ALPHABET:
            if replacement == original:
                continue
            forged_parts = list(parts)
            forged_parts[segment] = parts[segment][:-1] + replacement
            with pytest.raises(TokenError) as excinfo:
                token_codec.verify(".".join(forged_parts))
            assert _kind(excinfo) == TokenErrorKind.BAD_SIGNATURE

    def test_swapped_payload_rejected(self, token_codec: TokenCodec):
        """A payload lifted from another token does not match this signature."""
        alice = token_codec.issue("alice", {"USER"})
        admin = token_codec.issue("admin", {"ADMIN"})
        header, _, signature = alice.split(".")
        forged = ".".join([header, admin.split(".")[1], signature])

        with pytest.raises(TokenError) as excinfo:
            token_codec.verify(forged)
        assert _kind(excinfo) == TokenErrorKind.BAD_SIGNATURE


class TestMalformedTokens:
    """Structures that are not compact signed tokens."""

    @pytest.mark.parametrize(
        "token",
        ["", "not-a-token", "a.b", "a.b.c.d", "...", "%%%.%%%.%%%"],
    )
    def test_unparseable_rejected(self, token_codec: TokenCodec, token: str):
        with pytest.raises(TokenError) as excinfo:
            token_codec.verify(token)
        assert _kind(excinfo) == TokenErrorKind.MALFORMED

    def test_none_algorithm_rejected(self, token_codec: TokenCodec, clock: FakeClock):
        token = unsigned_token(
            {"alg": "none", "typ": "JWT"},
            {"sub": "admin", "iat": int(clock.now), "exp": int(clock.now) + 60, "jti": "x"},
        )

        with pytest.raises(TokenError) as excinfo:
            token_codec.verify(token)
        assert _kind(excinfo) == TokenErrorKind.UNSUPPORTED_ALGORITHM

    @pytest.mark.parametrize("alg", ["HS256", "RS256", "ES512"])
    def test_other_algorithms_rejected(self, token_codec: TokenCodec, clock: FakeClock, alg: str):
        token = unsigned_token(
            {"alg": alg, "typ": "JWT"},
            {"sub": "admin", "iat": int(clock.now), "exp": int(clock.now) + 60, "jti": "x"},
            signature="c2lnbmF0dXJl",
        )

        with pytest.raises(TokenError) as excinfo:
            token_codec.verify(token)
        assert _kind(excinfo) == TokenErrorKind.UNSUPPORTED_ALGORITHM

    def test_missing_algorithm_rejected(self, token_codec: TokenCodec):
        token = unsigned_token({"typ": "JWT"}, {"sub": "admin"}, signature="c2ln")

        with pytest.raises(TokenError) as excinfo:
            token_codec.verify(token)
        assert _kind(excinfo) == TokenErrorKind.UNSUPPORTED_ALGORITHM

    def test_signed_payload_without_required_claims_rejected(
        self, token_codec: TokenCodec
    ):
        """Correctly signed but incomplete payloads are malformed, not trusted."""
        token = JsonWebSignature(["HS512"]).serialize_compact(
            {"alg": "HS512"}, b'{"roles": ["ADMIN"]}', TEST_SIGNING_SECRET.encode()
        ).decode()

        with pytest.raises(TokenError) as excinfo:
            token_codec.verify(token)
        assert _kind(excinfo) == TokenErrorKind.MALFORMED

    def test_signed_non_json_payload_rejected(self, token_codec: TokenCodec):
        token = JsonWebSignature(["HS512"]).serialize_compact(
            {"alg": "HS512"}, b"not json", TEST_SIGNING_SECRET.encode()
        ).decode()

        with pytest.raises(TokenError) as excinfo:
            token_codec.verify(token)
        assert _kind(excinfo) == TokenErrorKind.MALFORMED


class TestRevocation:
    """Revoked token ids are rejected until the token would have expired."""

    def test_revoked_token_rejected(self, token_codec: TokenCodec):
        token = token_codec.issue("alice", {"USER"})
        token_codec.revoke(token_codec.verify(token))

        with pytest.raises(TokenError) as excinfo:
            token_codec.verify(token)
        assert _kind(excinfo) == TokenErrorKind.REVOKED

    def test_other_tokens_unaffected(self, token_codec: TokenCodec):
        revoked = token_codec.issue("alice", {"USER"})
        kept = token_codec.issue("alice", {"USER"})
        token_codec.revoke(token_codec.verify(revoked))

        assert token_codec.verify(kept).subject == "alice"

    def test_revocation_entry_dropped_after_expiry(self, clock: FakeClock):
        revocations = RevocationList(maxsize=10, clock=clock)
        revocations.revoke("jti-1", clock.now + 60)
        assert revocations.is_revoked("jti-1")
        assert len(revocations) == 1

        clock.advance(60)

        assert not revocations.is_revoked("jti-1")
        assert len(revocations) == 0

    def test_already_expired_token_not_stored(self, clock: FakeClock):
        revocations = RevocationList(maxsize=10, clock=clock)
        revocations.revoke("jti-1", clock.now - 1)
        assert len(revocations) == 0
