"""authgate: bearer token issuance and identity resolution for local, OAuth2 and biometric logins."""

__version__ = "0.1.0"
