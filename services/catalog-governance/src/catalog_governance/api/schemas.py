"""API request/response schemas.

Every response body carries an explicit ``success`` flag.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from catalog_core.enums import (
    AccessRequestStatus,
    AccessType,
    ChangeRequestStatus,
    ChangeRequestType,
    PermissionKind,
    ProvisioningAction,
)
from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    success: bool = True
    message: str = ""


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


class DecisionRequest(BaseModel):
    comment: str | None = None


# ─── Change request schemas ──────────────────────────────


class SubmitChangeRequest(BaseModel):
    request_type: ChangeRequestType
    target_object: str = Field(min_length=1, max_length=1000)
    justification: str = Field(min_length=1)
    proposed_change: dict[str, Any]
    current_value: dict[str, Any] | None = None


class ReturnForInfoRequest(BaseModel):
    comment: str = Field(min_length=1)


class ResubmitChangeRequest(BaseModel):
    justification: str = Field(min_length=1)
    proposed_change: dict[str, Any]


class ChangeRequestResponse(BaseModel):
    id: uuid.UUID
    request_type: ChangeRequestType
    target_object: str
    requester: str
    justification: str
    proposed_change: dict[str, Any]
    current_value: dict[str, Any] | None = None
    assigned_to: str | None = None
    status: ChangeRequestStatus
    approver: str | None = None
    decision_comment: str | None = None
    decision_date: datetime | None = None
    requested_at: datetime


class ChangeRequestEnvelope(ApiResponse):
    request: ChangeRequestResponse


class ChangeRequestListResponse(ApiResponse):
    requests: list[ChangeRequestResponse]


# ─── Catalog convenience schemas ─────────────────────────


class DescriptionEditRequest(BaseModel):
    description: str
    justification: str = Field(min_length=1)


class TagAddRequest(BaseModel):
    tag_name: str = Field(min_length=1, max_length=255)
    justification: str = Field(min_length=1)


class TagRemovalRequest(BaseModel):
    justification: str = Field(min_length=1)


# ─── Access request schemas ──────────────────────────────


class SubmitAccessRequest(BaseModel):
    table_full_name: str = Field(min_length=1, max_length=1000)
    justification: str = Field(min_length=1)
    access_start_date: date
    access_end_date: date
    access_type: AccessType
    grant_to_name: str = Field(min_length=1, max_length=255)


class RequestInfoRequest(BaseModel):
    info_needed: str = Field(min_length=1)
    assignee: str | None = Field(default=None, max_length=255)


class ProvideInfoRequest(BaseModel):
    additional_info: str = Field(min_length=1)


class ReassignRequest(BaseModel):
    assignee: str = Field(min_length=1, max_length=255)


class ApproveWithGrantRequest(BaseModel):
    comment: str | None = None
    access_type: AccessType | None = None
    grant_to_name: str | None = Field(default=None, max_length=255)


class AccessRequestResponse(BaseModel):
    id: uuid.UUID
    table_full_name: str
    requester: str
    justification: str
    access_start_date: date
    access_end_date: date
    access_type: AccessType
    grant_to_name: str
    assigned_to: str | None = None
    additional_info: str | None = None
    status: AccessRequestStatus
    approver: str | None = None
    decision_comment: str | None = None
    decision_date: datetime | None = None
    requested_at: datetime


class AccessRequestEnvelope(ApiResponse):
    request: AccessRequestResponse


class AccessRequestListResponse(ApiResponse):
    requests: list[AccessRequestResponse]


class GrantDetailsResponse(BaseModel):
    table: str
    grant_type: AccessType
    grant_to: str
    privilege: str


class ApproveWithGrantResponse(ApiResponse):
    request: AccessRequestResponse
    granted: bool
    grant_details: GrantDetailsResponse
    warning: str | None = None
    grant_error: str | None = None


# ─── Role permission schemas ─────────────────────────────


class GrantPermissionRequest(BaseModel):
    role: str = Field(min_length=1, max_length=255)
    permission_kind: PermissionKind


class RolePermissionResponse(BaseModel):
    id: uuid.UUID
    role: str
    permission_kind: PermissionKind
    granted_by: str
    granted_at: datetime


class RolePermissionEnvelope(ApiResponse):
    permission: RolePermissionResponse


class RolePermissionListResponse(ApiResponse):
    permissions: list[RolePermissionResponse]


class StepFailureResponse(BaseModel):
    step: str
    statement: str
    error: str


class ProvisioningResponse(ApiResponse):
    role: str
    action: ProvisioningAction
    status: str
    succeeded: list[str]
    failed: list[StepFailureResponse]


# ─── Caller schemas ──────────────────────────────────────


class CallerContextResponse(ApiResponse):
    username: str
    role: str
    delegated: bool


class MyPermissionsResponse(ApiResponse):
    role: str
    permissions: dict[PermissionKind, bool]


class MyRolesResponse(ApiResponse):
    roles: list[str]
    default_role: str | None = None
    current_role: str


class ChangeRoleRequest(BaseModel):
    role: str = Field(min_length=1, max_length=255)


class ChangeRoleResponse(ApiResponse):
    role: str
