"""Identity composition for caller-rights execution.

A container service holds its own OAuth token on disk. When the ingress
forwards a caller token, the two are joined as ``<service>.<caller>`` so the
warehouse runs the statement as the caller over the service's channel.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from opentelemetry import trace
from pydantic import SecretStr

from catalog_core.auth.models import Principal
from catalog_core.exceptions import IdentityCompositionError
from catalog_core.settings import IdentitySettings, WarehouseSettings

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

CURRENT_USER_HEADER = "sf-context-current-user"
CALLER_TOKEN_HEADER = "sf-context-current-user-token"
CURRENT_ROLE_HEADER = "sf-context-current-role"
ACCOUNT_ROLE_HEADER = "sf-context-current-account-role"

CALLER_IDENTITY_ATTRIBUTE = "catalog.caller_identity"


def compose(service_credential: str, caller_credential: str | None = None) -> str:
    """Return the credential a statement should run under.

    Without a caller credential the service acts with its own rights.
    """
    if not caller_credential:
        return service_credential
    return f"{service_credential}.{caller_credential}"


class ServiceCredentialSource:
    """Reads the service's own OAuth token.

    The platform rotates the token file, so it is read on every call rather
    than cached.
    """

    def __init__(self, settings: WarehouseSettings | None = None) -> None:
        self._settings = settings or WarehouseSettings()

    def read(self) -> str:
        if self._settings.token is not None:
            return self._settings.token.get_secret_value()

        path = Path(self._settings.token_path)
        try:
            token = path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise IdentityCompositionError(f"Service credential unavailable at {path}") from e
        if not token:
            raise IdentityCompositionError(f"Service credential at {path} is empty")
        return token


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _record_delegation(caller_identity: str | None) -> None:
    try:
        logger.info("Delegating statement execution to caller %s", caller_identity or "<undeclared>")
        span = trace.get_current_span()
        if caller_identity:
            span.set_attribute(CALLER_IDENTITY_ATTRIBUTE, caller_identity)
    except Exception:
        logger.debug("Failed to record caller identity", exc_info=True)


def compose_principal(
    headers: Mapping[str, str],
    service_credential: str,
    settings: IdentitySettings | None = None,
) -> Principal:
    """Build the principal for one call from its identity headers.

    ``headers`` must be case-insensitive (Starlette's ``Headers`` is). The
    account-scoped role header wins over the plain role header; without
    either the call runs as the configured public role.
    """
    settings = settings or IdentitySettings()

    caller_identity = _header(headers, CURRENT_USER_HEADER)
    caller_credential = _header(headers, CALLER_TOKEN_HEADER)
    role = _header(headers, ACCOUNT_ROLE_HEADER) or _header(headers, CURRENT_ROLE_HEADER) or settings.default_role

    if caller_credential is not None:
        _record_delegation(caller_identity)

    return Principal(
        service_credential=SecretStr(service_credential),
        caller_credential=SecretStr(caller_credential) if caller_credential else None,
        caller_identity=caller_identity,
        current_role=role.upper(),
        delegated_credential=SecretStr(compose(service_credential, caller_credential)),
        actor=caller_identity or settings.service_actor,
    )
