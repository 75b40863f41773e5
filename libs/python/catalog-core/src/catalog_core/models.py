"""Pydantic V2 domain models for catalog governance."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from catalog_core.enums import (
    AccessRequestStatus,
    AccessType,
    ChangeRequestStatus,
    ChangeRequestType,
    PermissionKind,
)
from catalog_core.exceptions import InvalidPayloadError


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RolePermission(BaseModel):
    """Assignment of one permission kind to one warehouse role."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    role: str = Field(min_length=1, max_length=255)
    permission_kind: PermissionKind
    granted_by: str = Field(min_length=1, max_length=255)
    granted_at: datetime = Field(default_factory=_utcnow)


class ChangeRequest(BaseModel):
    """A proposed catalog metadata edit awaiting review.

    ``proposed_change`` holds the JSON form of the payload matching
    ``request_type``; see :data:`PROPOSED_CHANGE_MODELS`.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    request_type: ChangeRequestType
    target_object: str = Field(min_length=1, max_length=1000)
    requester: str = Field(min_length=1, max_length=255)
    justification: str = Field(min_length=1)
    proposed_change: dict[str, Any]
    current_value: dict[str, Any] | None = None
    assigned_to: str | None = None
    status: ChangeRequestStatus = ChangeRequestStatus.PENDING
    approver: str | None = None
    decision_comment: str | None = None
    decision_date: datetime | None = None
    requested_at: datetime = Field(default_factory=_utcnow)


class AccessRequest(BaseModel):
    """A request for SELECT access on one table."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    table_full_name: str = Field(min_length=1, max_length=1000)
    requester: str = Field(min_length=1, max_length=255)
    justification: str = Field(min_length=1)
    access_start_date: date
    access_end_date: date
    access_type: AccessType
    grant_to_name: str = Field(min_length=1, max_length=255)
    assigned_to: str | None = None
    additional_info: str | None = None
    status: AccessRequestStatus = AccessRequestStatus.PENDING
    approver: str | None = None
    decision_comment: str | None = None
    decision_date: datetime | None = None
    requested_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _check_window(self) -> AccessRequest:
        if self.access_end_date < self.access_start_date:
            raise ValueError("access_end_date must not be before access_start_date")
        return self


# ─── Catalog target store ────────────────────────────────


class TableDescription(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    table_full_name: str
    user_description: str
    last_updated_by: str
    updated_at: datetime = Field(default_factory=_utcnow)


class TableTag(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tag_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    table_full_name: str
    tag_name: str
    created_by: str
    created_at: datetime = Field(default_factory=_utcnow)


class AttributeDefinition(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    attribute_name: str
    display_name: str
    description: str = ""
    created_by: str
    created_at: datetime = Field(default_factory=_utcnow)


class AttributeEnumeration(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    enumeration_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    attribute_name: str
    value_code: str
    value_description: str = ""
    sort_order: int = 999
    is_active: bool = True
    created_by: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_by: str | None = None
    updated_at: datetime | None = None


# ─── Proposed change payloads ────────────────────────────


class DescriptionChange(BaseModel):
    description: str


class TagAddChange(BaseModel):
    tag_name: str = Field(min_length=1, max_length=255)
    action: Literal["add"] = "add"


class TagRemoveChange(BaseModel):
    tag_id: uuid.UUID
    tag_name: str = Field(min_length=1, max_length=255)
    action: Literal["remove"] = "remove"


class EnumerationValue(BaseModel):
    value_code: str = Field(min_length=1, max_length=255)
    value_description: str = ""
    sort_order: int = 999


class AttributeCreateChange(BaseModel):
    attribute_name: str = Field(min_length=1, max_length=255)
    display_name: str = Field(min_length=1, max_length=255)
    description: str = ""
    enumerations: list[EnumerationValue] = Field(default_factory=list)


class EnumerationAddChange(BaseModel):
    action: Literal["add"] = "add"
    value_code: str = Field(min_length=1, max_length=255)
    value_description: str = ""
    sort_order: int = 999


class EnumerationEditChange(BaseModel):
    action: Literal["edit"] = "edit"
    enumeration_id: uuid.UUID
    value_description: str


PROPOSED_CHANGE_MODELS: dict[ChangeRequestType, type[BaseModel]] = {
    ChangeRequestType.DESCRIPTION: DescriptionChange,
    ChangeRequestType.TAG_ADD: TagAddChange,
    ChangeRequestType.TAG_REMOVE: TagRemoveChange,
    ChangeRequestType.ATTRIBUTE_CREATE: AttributeCreateChange,
    ChangeRequestType.ATTRIBUTE_EDIT: DescriptionChange,
    ChangeRequestType.ENUMERATION_ADD: EnumerationAddChange,
    ChangeRequestType.ENUMERATION_EDIT: EnumerationEditChange,
    ChangeRequestType.COLUMN_DESCRIPTION: DescriptionChange,
}


def parse_proposed_change(request_type: ChangeRequestType, payload: dict[str, Any]) -> BaseModel:
    """Validate ``payload`` against the shape required by ``request_type``."""
    if not payload:
        raise InvalidPayloadError("proposed_change must not be empty")
    model = PROPOSED_CHANGE_MODELS[request_type]
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "payload" for err in e.errors())
        raise InvalidPayloadError(f"Invalid {request_type} payload: {fields}") from e
