"""FastAPI dependency injection helpers for caller identity.

Usage in route handlers:
    @router.post("/change-requests")
    async def submit(principal: PrincipalDep, ...):
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from catalog_core.auth.identity import ServiceCredentialSource, compose_principal
from catalog_core.auth.middleware import get_credential_source, get_identity_settings
from catalog_core.auth.models import Principal
from catalog_core.exceptions import IdentityCompositionError
from catalog_core.settings import IdentitySettings


def get_principal(
    request: Request,
    source: Annotated[ServiceCredentialSource, Depends(get_credential_source)],
    settings: Annotated[IdentitySettings, Depends(get_identity_settings)],
) -> Principal:
    """Compose the principal for the current request, failing closed."""
    try:
        service_credential = source.read()
    except IdentityCompositionError as e:
        raise HTTPException(status_code=e.status_code, detail="Service credential unavailable") from e
    return compose_principal(request.headers, service_credential, settings)


PrincipalDep = Annotated[Principal, Depends(get_principal)]
