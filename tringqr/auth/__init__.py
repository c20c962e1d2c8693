"""Bearer credential sources."""

from .credentials import (
    BearerCredential,
    CredentialProvider,
    RefreshTokenCredentialProvider,
    StaticCredentialProvider,
    credential_provider_factory,
    fetch_fresh_token,
)

__all__ = [
    "BearerCredential",
    "CredentialProvider",
    "RefreshTokenCredentialProvider",
    "StaticCredentialProvider",
    "credential_provider_factory",
    "fetch_fresh_token",
]
