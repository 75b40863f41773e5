"""SQLAlchemy 2.0 ORM mapped classes for the catalog metadata store."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

_JSON = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class RolePermissionRow(Base):
    __tablename__ = "role_permissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    role: Mapped[str] = mapped_column(String(255), nullable=False)
    permission_kind: Mapped[str] = mapped_column(String(40), nullable=False)
    granted_by: Mapped[str] = mapped_column(String(255), nullable=False)
    granted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (UniqueConstraint("role", "permission_kind", name="uq_role_permissions_role_kind"),)


class ChangeRequestRow(Base):
    __tablename__ = "change_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    request_type: Mapped[str] = mapped_column(String(40), nullable=False)
    target_object: Mapped[str] = mapped_column(String(1000), nullable=False)
    requester: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    justification: Mapped[str] = mapped_column(Text, nullable=False)
    proposed_change: Mapped[dict[str, Any]] = mapped_column(_JSON, nullable=False)
    current_value: Mapped[dict[str, Any] | None] = mapped_column(_JSON)
    assigned_to: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    approver: Mapped[str | None] = mapped_column(String(255))
    decision_comment: Mapped[str | None] = mapped_column(Text)
    decision_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (Index("ix_change_requests_status_requested", "status", "requested_at"),)


class AccessRequestRow(Base):
    __tablename__ = "access_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    table_full_name: Mapped[str] = mapped_column(String(1000), nullable=False)
    requester: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    justification: Mapped[str] = mapped_column(Text, nullable=False)
    access_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    access_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    access_type: Mapped[str] = mapped_column(String(10), nullable=False)
    grant_to_name: Mapped[str] = mapped_column(String(255), nullable=False)
    assigned_to: Mapped[str | None] = mapped_column(String(255))
    additional_info: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    approver: Mapped[str | None] = mapped_column(String(255))
    decision_comment: Mapped[str | None] = mapped_column(Text)
    decision_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (Index("ix_access_requests_status_requested", "status", "requested_at"),)


# ─── Catalog target store ────────────────────────────────


class TableDescriptionRow(Base):
    __tablename__ = "table_descriptions"

    table_full_name: Mapped[str] = mapped_column(String(1000), primary_key=True)
    user_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_updated_by: Mapped[str] = mapped_column(String(255), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class TableTagRow(Base):
    __tablename__ = "table_tags"

    tag_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    table_full_name: Mapped[str] = mapped_column(String(1000), nullable=False, index=True)
    tag_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class AttributeDefinitionRow(Base):
    __tablename__ = "attribute_definitions"

    attribute_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class AttributeEnumerationRow(Base):
    __tablename__ = "attribute_enumerations"

    enumeration_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    attribute_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    value_code: Mapped[str] = mapped_column(String(255), nullable=False)
    value_description: Mapped[str] = mapped_column(Text, default="")
    sort_order: Mapped[int] = mapped_column(Integer, default=999)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_by: Mapped[str | None] = mapped_column(String(255))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (UniqueConstraint("attribute_name", "value_code", name="uq_attribute_enumerations_code"),)
