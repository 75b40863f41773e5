"""PostgreSQL repository implementations using SQLAlchemy 2.0 async."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from catalog_core.db.tables import (
    AccessRequestRow,
    AttributeDefinitionRow,
    AttributeEnumerationRow,
    ChangeRequestRow,
    RolePermissionRow,
    TableDescriptionRow,
    TableTagRow,
)
from catalog_core.enums import CHANGE_REQUEST_STATUS_RANK
from catalog_core.exceptions import DuplicatePermissionError, ObjectNotFoundError, StoreUnavailableError
from catalog_core.models import (
    AccessRequest,
    AttributeDefinition,
    AttributeEnumeration,
    ChangeRequest,
    RolePermission,
    TableDescription,
    TableTag,
)
from sqlalchemy import case, delete, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, ProgrammingError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

if TYPE_CHECKING:
    import uuid
    from collections.abc import AsyncIterator, Collection, Mapping

    from catalog_core.enums import AccessRequestStatus, ChangeRequestStatus, ChangeRequestType, PermissionKind
    from sqlalchemy.ext.asyncio import AsyncSession

_UNAVAILABLE = (OperationalError, InterfaceError, PoolTimeoutError, OSError)


class PgRolePermissionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def exists(self, role: str, kind: PermissionKind) -> bool:
        stmt = (
            select(RolePermissionRow.id)
            .where(RolePermissionRow.role == role, RolePermissionRow.permission_kind == kind)
            .limit(1)
        )
        try:
            result = await self._session.execute(stmt)
        except ProgrammingError as e:
            raise ObjectNotFoundError("Role permission store not found") from e
        except _UNAVAILABLE as e:
            raise StoreUnavailableError("Role permission store unavailable") from e
        return result.scalar_one_or_none() is not None

    async def create(self, permission: RolePermission) -> RolePermission:
        row = RolePermissionRow(
            id=permission.id,
            role=permission.role,
            permission_kind=permission.permission_kind,
            granted_by=permission.granted_by,
            granted_at=permission.granted_at,
        )
        self._session.add(row)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise DuplicatePermissionError(
                f"Role {permission.role} already holds {permission.permission_kind}"
            ) from e
        return RolePermission.model_validate(row)

    async def delete(self, role: str, kind: PermissionKind) -> bool:
        stmt = delete(RolePermissionRow).where(
            RolePermissionRow.role == role,
            RolePermissionRow.permission_kind == kind,
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def list_permissions(
        self,
        *,
        role: str | None = None,
        kind: PermissionKind | None = None,
    ) -> list[RolePermission]:
        stmt = select(RolePermissionRow)
        if role:
            stmt = stmt.where(RolePermissionRow.role == role)
        if kind:
            stmt = stmt.where(RolePermissionRow.permission_kind == kind)
        stmt = stmt.order_by(RolePermissionRow.role, RolePermissionRow.permission_kind)
        result = await self._session.execute(stmt)
        return [RolePermission.model_validate(r) for r in result.scalars()]


class PgChangeRequestRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, request: ChangeRequest) -> ChangeRequest:
        row = ChangeRequestRow(
            id=request.id,
            request_type=request.request_type,
            target_object=request.target_object,
            requester=request.requester,
            justification=request.justification,
            proposed_change=request.proposed_change,
            current_value=request.current_value,
            assigned_to=request.assigned_to,
            status=request.status,
            requested_at=request.requested_at,
        )
        self._session.add(row)
        await self._session.flush()
        return ChangeRequest.model_validate(row)

    async def get_by_id(self, request_id: uuid.UUID) -> ChangeRequest | None:
        row = await self._session.get(ChangeRequestRow, request_id, populate_existing=True)
        if row is None:
            return None
        return ChangeRequest.model_validate(row)

    async def transition(
        self,
        request_id: uuid.UUID,
        *,
        expected: Collection[ChangeRequestStatus],
        values: Mapping[str, Any],
        requester: str | None = None,
    ) -> bool:
        stmt = update(ChangeRequestRow).where(
            ChangeRequestRow.id == request_id,
            ChangeRequestRow.status.in_([s.value for s in expected]),
        )
        if requester is not None:
            stmt = stmt.where(ChangeRequestRow.requester == requester)
        result = await self._session.execute(stmt.values(**values))
        return result.rowcount == 1

    async def list_requests(
        self,
        *,
        statuses: Collection[ChangeRequestStatus] | None = None,
        requester: str | None = None,
        request_types: Collection[ChangeRequestType] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ChangeRequest]:
        stmt = select(ChangeRequestRow)
        if statuses:
            stmt = stmt.where(ChangeRequestRow.status.in_([s.value for s in statuses]))
        if requester:
            stmt = stmt.where(ChangeRequestRow.requester == requester)
        if request_types:
            stmt = stmt.where(ChangeRequestRow.request_type.in_([t.value for t in request_types]))
        rank = case(
            {status.value: rank for status, rank in CHANGE_REQUEST_STATUS_RANK.items()},
            value=ChangeRequestRow.status,
            else_=len(CHANGE_REQUEST_STATUS_RANK),
        )
        stmt = stmt.order_by(rank, ChangeRequestRow.requested_at.desc()).limit(limit).offset(offset)
        result = await self._session.execute(stmt)
        return [ChangeRequest.model_validate(r) for r in result.scalars()]

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        async with self._session.begin_nested():
            yield


class PgAccessRequestRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, request: AccessRequest) -> AccessRequest:
        row = AccessRequestRow(
            id=request.id,
            table_full_name=request.table_full_name,
            requester=request.requester,
            justification=request.justification,
            access_start_date=request.access_start_date,
            access_end_date=request.access_end_date,
            access_type=request.access_type,
            grant_to_name=request.grant_to_name,
            assigned_to=request.assigned_to,
            status=request.status,
            requested_at=request.requested_at,
        )
        self._session.add(row)
        await self._session.flush()
        return AccessRequest.model_validate(row)

    async def get_by_id(self, request_id: uuid.UUID) -> AccessRequest | None:
        row = await self._session.get(AccessRequestRow, request_id, populate_existing=True)
        if row is None:
            return None
        return AccessRequest.model_validate(row)

    async def transition(
        self,
        request_id: uuid.UUID,
        *,
        expected: Collection[AccessRequestStatus],
        values: Mapping[str, Any],
    ) -> bool:
        stmt = (
            update(AccessRequestRow)
            .where(
                AccessRequestRow.id == request_id,
                AccessRequestRow.status.in_([s.value for s in expected]),
            )
            .values(**values)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def list_requests(
        self,
        *,
        statuses: Collection[AccessRequestStatus] | None = None,
        requester: str | None = None,
        oldest_first: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AccessRequest]:
        stmt = select(AccessRequestRow)
        if statuses:
            stmt = stmt.where(AccessRequestRow.status.in_([s.value for s in statuses]))
        if requester:
            stmt = stmt.where(AccessRequestRow.requester == requester)
        order = AccessRequestRow.requested_at.asc() if oldest_first else AccessRequestRow.requested_at.desc()
        stmt = stmt.order_by(order).limit(limit).offset(offset)
        result = await self._session.execute(stmt)
        return [AccessRequest.model_validate(r) for r in result.scalars()]


class PgCatalogRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_description(self, table_full_name: str) -> TableDescription | None:
        row = await self._session.get(TableDescriptionRow, table_full_name)
        if row is None:
            return None
        return TableDescription.model_validate(row)

    async def upsert_description(self, description: TableDescription) -> TableDescription:
        row = await self._session.get(TableDescriptionRow, description.table_full_name)
        if row is None:
            row = TableDescriptionRow(table_full_name=description.table_full_name)
            self._session.add(row)
        row.user_description = description.user_description
        row.last_updated_by = description.last_updated_by
        row.updated_at = description.updated_at
        await self._session.flush()
        return TableDescription.model_validate(row)

    async def get_tag(self, tag_id: uuid.UUID) -> TableTag | None:
        row = await self._session.get(TableTagRow, tag_id)
        if row is None:
            return None
        return TableTag.model_validate(row)

    async def add_tag(self, tag: TableTag) -> TableTag:
        row = TableTagRow(
            tag_id=tag.tag_id,
            table_full_name=tag.table_full_name,
            tag_name=tag.tag_name,
            created_by=tag.created_by,
            created_at=tag.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return TableTag.model_validate(row)

    async def remove_tag(self, tag_id: uuid.UUID) -> bool:
        result = await self._session.execute(delete(TableTagRow).where(TableTagRow.tag_id == tag_id))
        return result.rowcount > 0

    async def create_attribute(
        self,
        definition: AttributeDefinition,
        enumerations: list[AttributeEnumeration],
    ) -> AttributeDefinition:
        row = AttributeDefinitionRow(
            attribute_name=definition.attribute_name,
            display_name=definition.display_name,
            description=definition.description,
            created_by=definition.created_by,
            created_at=definition.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        for enumeration in enumerations:
            await self.add_enumeration(enumeration)
        return AttributeDefinition.model_validate(row)

    async def update_attribute_description(self, attribute_name: str, description: str) -> bool:
        stmt = (
            update(AttributeDefinitionRow)
            .where(AttributeDefinitionRow.attribute_name == attribute_name)
            .values(description=description)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def add_enumeration(self, enumeration: AttributeEnumeration) -> AttributeEnumeration:
        row = AttributeEnumerationRow(
            enumeration_id=enumeration.enumeration_id,
            attribute_name=enumeration.attribute_name,
            value_code=enumeration.value_code,
            value_description=enumeration.value_description,
            sort_order=enumeration.sort_order,
            is_active=enumeration.is_active,
            created_by=enumeration.created_by,
            created_at=enumeration.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return AttributeEnumeration.model_validate(row)

    async def update_enumeration(
        self,
        enumeration_id: uuid.UUID,
        *,
        value_description: str,
        updated_by: str,
    ) -> bool:
        stmt = (
            update(AttributeEnumerationRow)
            .where(AttributeEnumerationRow.enumeration_id == enumeration_id)
            .values(value_description=value_description, updated_by=updated_by, updated_at=datetime.now(UTC))
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0
