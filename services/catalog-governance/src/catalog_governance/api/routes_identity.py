"""Caller context endpoints: /api/v1/me."""

from __future__ import annotations

from catalog_core.auth.dependencies import PrincipalDep
from catalog_core.exceptions import CatalogError
from fastapi import APIRouter, HTTPException

from catalog_governance.api.deps import CallerServiceDep
from catalog_governance.api.schemas import (
    CallerContextResponse,
    ChangeRoleRequest,
    ChangeRoleResponse,
    MyPermissionsResponse,
    MyRolesResponse,
)

router = APIRouter(prefix="/api/v1/me", tags=["identity"])


@router.get("")
async def current_user_context(principal: PrincipalDep) -> CallerContextResponse:
    return CallerContextResponse(
        username=principal.actor,
        role=principal.current_role,
        delegated=principal.is_delegated,
    )


@router.get("/permissions")
async def my_permissions(principal: PrincipalDep, service: CallerServiceDep) -> MyPermissionsResponse:
    try:
        permissions = await service.permissions(principal)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return MyPermissionsResponse(role=principal.current_role, permissions=permissions)


@router.get("/roles")
async def my_roles(principal: PrincipalDep, service: CallerServiceDep) -> MyRolesResponse:
    try:
        selection = await service.available_roles(principal)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return MyRolesResponse(
        roles=selection.roles,
        default_role=selection.default_role,
        current_role=selection.current_role,
    )


@router.post("/role", responses={403: {"description": "Role not granted to caller"}})
async def change_role(body: ChangeRoleRequest, principal: PrincipalDep, service: CallerServiceDep) -> ChangeRoleResponse:
    try:
        role = await service.change_role(principal, body.role)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return ChangeRoleResponse(role=role, message=f"Send {role} as the current role on subsequent requests")
