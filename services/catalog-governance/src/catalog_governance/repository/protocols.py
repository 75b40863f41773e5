"""Repository interfaces the domain services depend on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    import uuid
    from collections.abc import Collection, Mapping
    from contextlib import AbstractAsyncContextManager

    from catalog_core.enums import AccessRequestStatus, ChangeRequestStatus, ChangeRequestType, PermissionKind
    from catalog_core.models import (
        AccessRequest,
        AttributeDefinition,
        AttributeEnumeration,
        ChangeRequest,
        RolePermission,
        TableDescription,
        TableTag,
    )


class RolePermissionRepository(Protocol):
    async def exists(self, role: str, kind: PermissionKind) -> bool: ...

    async def create(self, permission: RolePermission) -> RolePermission: ...

    async def delete(self, role: str, kind: PermissionKind) -> bool: ...

    async def list_permissions(
        self, *, role: str | None = None, kind: PermissionKind | None = None
    ) -> list[RolePermission]: ...


class ChangeRequestRepository(Protocol):
    async def create(self, request: ChangeRequest) -> ChangeRequest: ...

    async def get_by_id(self, request_id: uuid.UUID) -> ChangeRequest | None: ...

    async def transition(
        self,
        request_id: uuid.UUID,
        *,
        expected: Collection[ChangeRequestStatus],
        values: Mapping[str, Any],
        requester: str | None = None,
    ) -> bool:
        """Apply ``values`` only while the row is in one of ``expected``.

        Returns False when no row matched, i.e. the transition lost a race or
        the request does not exist.
        """
        ...

    async def list_requests(
        self,
        *,
        statuses: Collection[ChangeRequestStatus] | None = None,
        requester: str | None = None,
        request_types: Collection[ChangeRequestType] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ChangeRequest]: ...

    def atomic(self) -> AbstractAsyncContextManager[None]:
        """Scope in which every write is kept or discarded together."""
        ...


class AccessRequestRepository(Protocol):
    async def create(self, request: AccessRequest) -> AccessRequest: ...

    async def get_by_id(self, request_id: uuid.UUID) -> AccessRequest | None: ...

    async def transition(
        self,
        request_id: uuid.UUID,
        *,
        expected: Collection[AccessRequestStatus],
        values: Mapping[str, Any],
    ) -> bool: ...

    async def list_requests(
        self,
        *,
        statuses: Collection[AccessRequestStatus] | None = None,
        requester: str | None = None,
        oldest_first: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AccessRequest]: ...


class CatalogRepository(Protocol):
    """Catalog metadata that approved change requests are applied to."""

    async def get_description(self, table_full_name: str) -> TableDescription | None: ...

    async def upsert_description(self, description: TableDescription) -> TableDescription: ...

    async def get_tag(self, tag_id: uuid.UUID) -> TableTag | None: ...

    async def add_tag(self, tag: TableTag) -> TableTag: ...

    async def remove_tag(self, tag_id: uuid.UUID) -> bool: ...

    async def create_attribute(
        self, definition: AttributeDefinition, enumerations: list[AttributeEnumeration]
    ) -> AttributeDefinition: ...

    async def update_attribute_description(self, attribute_name: str, description: str) -> bool: ...

    async def add_enumeration(self, enumeration: AttributeEnumeration) -> AttributeEnumeration: ...

    async def update_enumeration(
        self, enumeration_id: uuid.UUID, *, value_description: str, updated_by: str
    ) -> bool: ...
