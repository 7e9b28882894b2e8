"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

# HMAC-SHA-512 needs a key at least as long as its output (512 bits).
MIN_HS512_SECRET_BYTES = 64


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")

    @property
    def base_url(self) -> str:
        """Construct the base URL from host and port."""
        scheme = "https" if self.environment == "production" else "http"
        return f"{scheme}://{self.host}:{self.port}"


class JWTConfig(BaseModel):
    """Bearer token signing configuration."""

    signing_secret: str | None = Field(
        default=None, description="Shared secret used to sign and verify tokens"
    )
    algorithm: Literal["HS512"] = Field(
        default="HS512", description="Signature algorithm for issued tokens"
    )
    lifetime_seconds: int = Field(
        default=86400, gt=0, description="Token lifetime in seconds"
    )
    issuer: str | None = Field(
        default=None, description="Optional iss claim stamped on issued tokens"
    )
    clock_skew: int = Field(
        default=0, ge=0, description="Grace window in seconds applied to expiry"
    )
    revocation_cache_size: int = Field(
        default=10000, gt=0, description="Maximum number of revoked token ids kept"
    )

    @property
    def secret_bytes(self) -> bytes | None:
        """Signing secret as raw bytes, or None when not configured."""
        if not self.signing_secret:
            return None
        return self.signing_secret.encode("utf-8")


class PasswordConfig(BaseModel):
    """Password hashing configuration."""

    bcrypt_rounds: int = Field(
        default=12, ge=4, le=31, description="bcrypt cost factor (log2 rounds)"
    )


class RolesConfig(BaseModel):
    """Closed role vocabulary used for registration and tokens."""

    vocabulary: list[str] = Field(
        default_factory=lambda: ["USER", "ADMIN"],
        description="Role names that may be assigned to identities",
    )
    default_role: str = Field(
        default="USER", description="Role assigned when none is requested"
    )

    @field_validator("vocabulary")
    @classmethod
    def _upper_vocabulary(cls, value: list[str]) -> list[str]:
        return [name.strip().upper() for name in value if name.strip()]

    @field_validator("default_role")
    @classmethod
    def _upper_default(cls, value: str) -> str:
        return value.strip().upper()


class OIDCProviderConfig(BaseModel):
    """An OpenID Connect provider whose ID tokens are accepted."""

    issuer: str = Field(description="Expected iss claim")
    jwks_uri: str = Field(description="Location of the provider's signing keys")
    client_id: str | None = Field(
        default=None, description="Expected aud claim; the provider is disabled without it"
    )
    algorithms: list[str] = Field(
        default_factory=lambda: ["RS256"], description="Accepted ID token algorithms"
    )


class OAuth2Config(BaseModel):
    """Settings for identities resolved from OAuth2 principals."""

    providers: dict[str, OIDCProviderConfig] = Field(
        default_factory=dict, description="Accepted providers keyed by name"
    )
    clock_skew: int = Field(
        default=60, ge=0, description="Leeway in seconds for ID token time claims"
    )
    jwks_cache_ttl: int = Field(
        default=3600, gt=0, description="Seconds a fetched key set is reused"
    )
    placeholder_prefix: str = Field(
        default="user_", description="Prefix for generated placeholder usernames"
    )
    username_attempts: int = Field(
        default=5, ge=1, description="Suffix attempts before falling back to a placeholder"
    )


class BiometricConfig(BaseModel):
    """Biometric enrollment and matching configuration."""

    template_key: str | None = Field(
        default=None, description="Fernet key used to encrypt stored templates"
    )
    confidence_threshold: float = Field(
        default=0.9, ge=0.0, le=1.0, description="Minimum match score accepted"
    )
    liveness_threshold: float = Field(
        default=0.8, ge=0.0, le=1.0, description="Minimum reported liveness score"
    )
    min_sample_length: int = Field(
        default=100, ge=1, description="Minimum sample length accepted for enrollment"
    )


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str | None = Field(default="logs/app.log", description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./authgate.db", description="Database connection URL"
    )
    echo: bool = Field(default=False, description="Echo SQL statements")
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")


class SeedUserConfig(BaseModel):
    """A local identity created at startup when missing."""

    username: str
    email: str
    password: str
    roles: list[str] = Field(default_factory=list)


class SeedConfig(BaseModel):
    """Startup data seeding."""

    roles: bool = Field(default=True, description="Insert the role vocabulary")
    users: list[SeedUserConfig] = Field(
        default_factory=list, description="Local identities to create when missing"
    )


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    jwt: JWTConfig = Field(
        default_factory=JWTConfig, description="Token signing configuration"
    )
    password: PasswordConfig = Field(
        default_factory=PasswordConfig, description="Password hashing configuration"
    )
    roles: RolesConfig = Field(
        default_factory=RolesConfig, description="Role vocabulary"
    )
    oauth2: OAuth2Config = Field(
        default_factory=OAuth2Config, description="OAuth2 identity settings"
    )
    biometric: BiometricConfig = Field(
        default_factory=BiometricConfig, description="Biometric settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    seed: SeedConfig = Field(
        default_factory=SeedConfig, description="Startup data seeding"
    )
