"""In-memory revocation set for issued token ids."""

import time
from collections.abc import Callable

from cachetools import TLRUCache


def _until_token_expiry(_token_id: str, expires_at: float, _now: float) -> float:
    return expires_at


class RevocationList:
    """Token ids revoked before their natural expiry.

    Each entry lives exactly until the revoked token would have expired on
    its own, after which keeping it serves no purpose.
    """

    def __init__(self, maxsize: int = 10000, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: TLRUCache[str, float] = TLRUCache(
            maxsize=maxsize, ttu=_until_token_expiry, timer=clock
        )

    def revoke(self, token_id: str, expires_at: float) -> None:
        if expires_at <= self._clock():
            return
        self._entries[token_id] = expires_at

    def is_revoked(self, token_id: str) -> bool:
        return token_id in self._entries

    def __len__(self) -> int:
        self._entries.expire()
        return len(self._entries)
