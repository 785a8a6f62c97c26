"""
Credential providers for the two trust models (application and delegated).
"""

from graphmail.auth.credentials import (
    AccessToken,
    ApplicationCredentialProvider,
    CredentialProvider,
    DelegatedCredentialProvider,
    build_credential_provider,
)

__all__ = [
    "AccessToken",
    "ApplicationCredentialProvider",
    "CredentialProvider",
    "DelegatedCredentialProvider",
    "build_credential_provider",
]
