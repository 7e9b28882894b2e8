"""Bearer token package."""

from .revocation import RevocationList
from .token_codec import TokenCodec

__all__ = ["RevocationList", "TokenCodec"]
