"""Role permission and service-access administration: /api/v1/role-permissions, /api/v1/service-access."""

from __future__ import annotations

from catalog_core.auth.dependencies import PrincipalDep
from catalog_core.enums import PermissionKind
from catalog_core.exceptions import CatalogError
from fastapi import APIRouter, HTTPException

from catalog_governance.api.deps import PermissionServiceDep, ProvisionerDep
from catalog_governance.api.schemas import (
    ApiResponse,
    GrantPermissionRequest,
    ProvisioningResponse,
    RolePermissionEnvelope,
    RolePermissionListResponse,
    RolePermissionResponse,
    StepFailureResponse,
)
from catalog_governance.domain.provisioner import ProvisioningResult

router = APIRouter(prefix="/api/v1", tags=["role-permissions"])

_MANAGE_RESPONSES = {403: {"description": "Caller role lacks MANAGE_ROLES"}}


@router.get("/role-permissions", responses=_MANAGE_RESPONSES)
async def list_role_permissions(
    principal: PrincipalDep,
    service: PermissionServiceDep,
    role: str | None = None,
    permission_kind: PermissionKind | None = None,
) -> RolePermissionListResponse:
    try:
        permissions = await service.list_permissions(principal=principal, role=role, kind=permission_kind)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return RolePermissionListResponse(
        permissions=[RolePermissionResponse.model_validate(p, from_attributes=True) for p in permissions]
    )


@router.post("/role-permissions", status_code=201, responses={**_MANAGE_RESPONSES, 409: {"description": "Exists"}})
async def grant_role_permission(
    body: GrantPermissionRequest,
    principal: PrincipalDep,
    service: PermissionServiceDep,
) -> RolePermissionEnvelope:
    try:
        permission = await service.grant(principal=principal, role=body.role, kind=body.permission_kind)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return RolePermissionEnvelope(
        message=f"{permission.permission_kind} granted to {permission.role}",
        permission=RolePermissionResponse.model_validate(permission, from_attributes=True),
    )


@router.delete(
    "/role-permissions/{role}/{permission_kind}",
    responses={**_MANAGE_RESPONSES, 404: {"description": "Assignment not found"}},
)
async def revoke_role_permission(
    role: str,
    permission_kind: PermissionKind,
    principal: PrincipalDep,
    service: PermissionServiceDep,
) -> ApiResponse:
    try:
        await service.revoke(principal=principal, role=role, kind=permission_kind)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return ApiResponse(message=f"{permission_kind} revoked from {role.upper()}")


def _provisioning_response(result: ProvisioningResult) -> ProvisioningResponse:
    if result.status == "full":
        message = f"Service access {result.action} completed for {result.role}"
    else:
        message = f"Service access {result.action} partially completed for {result.role}; remediate failed steps"
    return ProvisioningResponse(
        success=not result.failed,
        message=message,
        role=result.role,
        action=result.action,
        status=result.status,
        succeeded=result.succeeded,
        failed=[StepFailureResponse.model_validate(f, from_attributes=True) for f in result.failed],
    )


@router.post("/service-access/{role}", responses=_MANAGE_RESPONSES)
async def grant_service_access(role: str, principal: PrincipalDep, provisioner: ProvisionerDep) -> ProvisioningResponse:
    try:
        result = await provisioner.grant(role, principal=principal)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _provisioning_response(result)


@router.delete("/service-access/{role}", responses=_MANAGE_RESPONSES)
async def revoke_service_access(role: str, principal: PrincipalDep, provisioner: ProvisionerDep) -> ProvisioningResponse:
    try:
        result = await provisioner.revoke(role, principal=principal)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _provisioning_response(result)
