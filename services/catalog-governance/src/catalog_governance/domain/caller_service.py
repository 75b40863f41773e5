"""What the calling principal is, holds, and may switch to."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from catalog_core.exceptions import PermissionDeniedError
from catalog_core.warehouse.sql import validate_identifier
from pydantic import BaseModel

if TYPE_CHECKING:
    from catalog_core.auth.models import Principal
    from catalog_core.enums import PermissionKind
    from catalog_core.warehouse.executor import QueryExecutor

    from catalog_governance.domain.permission_service import PermissionService

AVAILABLE_ROLES_STATEMENT = "SELECT CURRENT_AVAILABLE_ROLES() AS ROLES, CURRENT_ROLE() AS DEFAULT_ROLE"


class RoleSelection(BaseModel):
    roles: list[str]
    default_role: str | None
    current_role: str


class CallerService:
    """Role switching is advisory.

    The selected role travels back on the role header of later calls and
    decides which permission rows apply. It never changes the warehouse
    session role; statements stay bounded by the delegated credential.
    """

    def __init__(self, permissions: PermissionService, executor: QueryExecutor) -> None:
        self._permissions = permissions
        self._executor = executor

    async def permissions(self, principal: Principal) -> dict[PermissionKind, bool]:
        return await self._permissions.permissions_for(principal.current_role)

    async def available_roles(self, principal: Principal) -> RoleSelection:
        rows = await self._executor.execute(AVAILABLE_ROLES_STATEMENT, principal)
        if not rows:
            return RoleSelection(roles=[], default_role=None, current_role=principal.current_role)

        raw = rows[0].get("ROLES") or "[]"
        roles = json.loads(raw) if isinstance(raw, str) else list(raw)
        return RoleSelection(
            roles=sorted(str(r).upper() for r in roles),
            default_role=rows[0].get("DEFAULT_ROLE"),
            current_role=principal.current_role,
        )

    async def change_role(self, principal: Principal, role: str) -> str:
        """Validate that ``role`` is one the caller may use and return its canonical name."""
        role = validate_identifier(role).upper()
        selection = await self.available_roles(principal)
        if role not in selection.roles:
            raise PermissionDeniedError(f"Role {role} is not granted to {principal.actor}")
        return role
