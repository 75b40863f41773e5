"""Process-wide identity configuration, loaded once on first use."""

from __future__ import annotations

from catalog_core.auth.identity import ServiceCredentialSource
from catalog_core.settings import IdentitySettings

_credential_source: ServiceCredentialSource | None = None
_identity_settings: IdentitySettings | None = None


def get_credential_source() -> ServiceCredentialSource:
    """Get or create the service credential source singleton."""
    global _credential_source
    if _credential_source is None:
        _credential_source = ServiceCredentialSource()
    return _credential_source


def get_identity_settings() -> IdentitySettings:
    """Get or create the identity settings singleton."""
    global _identity_settings
    if _identity_settings is None:
        _identity_settings = IdentitySettings()
    return _identity_settings
