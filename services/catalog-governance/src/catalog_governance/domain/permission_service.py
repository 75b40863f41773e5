"""Role → permission checks and administration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from catalog_core.enums import PermissionKind
from catalog_core.exceptions import (
    DuplicatePermissionError,
    ObjectNotFoundError,
    PermissionDeniedError,
    RequestNotFoundError,
)
from catalog_core.models import RolePermission
from catalog_core.warehouse.sql import validate_identifier

if TYPE_CHECKING:
    from catalog_core.auth.models import Principal

    from catalog_governance.repository.protocols import RolePermissionRepository

logger = logging.getLogger(__name__)


class PermissionService:
    """Answers whether a role holds a permission kind, and manages assignments.

    Store failures classified as "not found" read as no permission. Any other
    store failure propagates so the caller denies instead of allowing.
    """

    def __init__(self, repo: RolePermissionRepository) -> None:
        self._repo = repo

    async def has_permission(self, role: str, kind: PermissionKind) -> bool:
        try:
            return await self._repo.exists(role.upper(), kind)
        except ObjectNotFoundError:
            logger.warning("Permission lookup for %s/%s found no store, treating as denied", role, kind)
            return False

    async def require(self, principal: Principal, kind: PermissionKind) -> None:
        """Raise :class:`PermissionDeniedError` unless the principal's role holds ``kind``."""
        if not await self.has_permission(principal.current_role, kind):
            logger.info("Denied %s to %s (role %s)", kind, principal.actor, principal.current_role)
            raise PermissionDeniedError(f"Role {principal.current_role} does not hold {kind}")

    async def permissions_for(self, role: str) -> dict[PermissionKind, bool]:
        return {kind: await self.has_permission(role, kind) for kind in PermissionKind}

    async def list_permissions(
        self,
        *,
        principal: Principal,
        role: str | None = None,
        kind: PermissionKind | None = None,
    ) -> list[RolePermission]:
        await self.require(principal, PermissionKind.MANAGE_ROLES)
        return await self._repo.list_permissions(role=role.upper() if role else None, kind=kind)

    async def grant(self, *, principal: Principal, role: str, kind: PermissionKind) -> RolePermission:
        await self.require(principal, PermissionKind.MANAGE_ROLES)
        role = validate_identifier(role).upper()
        if await self._repo.exists(role, kind):
            raise DuplicatePermissionError(f"Role {role} already holds {kind}")

        permission = await self._repo.create(
            RolePermission(role=role, permission_kind=kind, granted_by=principal.actor)
        )
        logger.info("%s granted %s to role %s", principal.actor, kind, role)
        return permission

    async def revoke(self, *, principal: Principal, role: str, kind: PermissionKind) -> None:
        await self.require(principal, PermissionKind.MANAGE_ROLES)
        role = role.upper()
        if not await self._repo.delete(role, kind):
            raise RequestNotFoundError(f"Role {role} does not hold {kind}")
        logger.info("%s revoked %s from role %s", principal.actor, kind, role)

    async def bootstrap(self, role: str, *, granted_by: str) -> list[PermissionKind]:
        """Give ``role`` every permission kind it lacks. Used once at startup."""
        role = validate_identifier(role).upper()
        added: list[PermissionKind] = []
        for kind in PermissionKind:
            if await self._repo.exists(role, kind):
                continue
            await self._repo.create(RolePermission(role=role, permission_kind=kind, granted_by=granted_by))
            added.append(kind)
        if added:
            logger.info("Bootstrapped role %s with %s", role, ", ".join(added))
        return added
