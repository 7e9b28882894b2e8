from src.authgate.core.services.oauth2.id_token import IdTokenVerifier
from src.authgate.core.services.oauth2.jwks import JwksCache, JwksService

__all__ = ["IdTokenVerifier", "JwksCache", "JwksService"]
