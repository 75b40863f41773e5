"""Shared test fixtures with in-memory mock repositories."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable, Collection, Generator, Mapping
from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import MagicMock

import pytest
from catalog_core.auth.identity import compose_principal
from catalog_core.auth.middleware import get_credential_source
from catalog_core.auth.models import Principal
from catalog_core.enums import (
    CHANGE_REQUEST_STATUS_RANK,
    AccessRequestStatus,
    ChangeRequestStatus,
    ChangeRequestType,
    PermissionKind,
)
from catalog_core.exceptions import DuplicatePermissionError, QueryExecutionError
from catalog_core.models import (
    AccessRequest,
    AttributeDefinition,
    AttributeEnumeration,
    ChangeRequest,
    RolePermission,
    TableDescription,
    TableTag,
)
from catalog_core.settings import IdentitySettings, ServiceAccessSettings
from catalog_governance.domain.access_request_service import AccessRequestService
from catalog_governance.domain.caller_service import CallerService
from catalog_governance.domain.change_request_service import ChangeRequestService
from catalog_governance.domain.contacts import ContactDirectory
from catalog_governance.domain.permission_service import PermissionService
from catalog_governance.domain.provisioner import RoleAccessProvisioner
from fastapi import FastAPI
from httpx import AsyncClient

# ─── In-memory mock repositories ─────────────────────────


class MockRolePermissionRepository:
    def __init__(self) -> None:
        self._store: dict[tuple[str, PermissionKind], RolePermission] = {}
        self.error: Exception | None = None

    async def exists(self, role: str, kind: PermissionKind) -> bool:
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return (role, kind) in self._store

    async def create(self, permission: RolePermission) -> RolePermission:
        await asyncio.sleep(0)
        key = (permission.role, permission.permission_kind)
        if key in self._store:
            raise DuplicatePermissionError(f"Role {permission.role} already holds {permission.permission_kind}")
        self._store[key] = permission
        return permission

    async def delete(self, role: str, kind: PermissionKind) -> bool:
        await asyncio.sleep(0)
        return self._store.pop((role, kind), None) is not None

    async def list_permissions(
        self,
        *,
        role: str | None = None,
        kind: PermissionKind | None = None,
    ) -> list[RolePermission]:
        await asyncio.sleep(0)
        result = sorted(self._store.values(), key=lambda p: (p.role, p.permission_kind))
        if role:
            result = [p for p in result if p.role == role]
        if kind:
            result = [p for p in result if p.permission_kind == kind]
        return result


class MockChangeRequestRepository:
    def __init__(self) -> None:
        self._store: dict[uuid.UUID, ChangeRequest] = {}

    async def create(self, request: ChangeRequest) -> ChangeRequest:
        await asyncio.sleep(0)
        self._store[request.id] = request
        return request

    async def get_by_id(self, request_id: uuid.UUID) -> ChangeRequest | None:
        await asyncio.sleep(0)
        return self._store.get(request_id)

    async def transition(
        self,
        request_id: uuid.UUID,
        *,
        expected: Collection[ChangeRequestStatus],
        values: Mapping[str, Any],
        requester: str | None = None,
    ) -> bool:
        await asyncio.sleep(0)
        current = self._store.get(request_id)
        if current is None or current.status not in expected:
            return False
        if requester is not None and current.requester != requester:
            return False
        self._store[request_id] = current.model_copy(update=dict(values))
        return True

    async def list_requests(
        self,
        *,
        statuses: Collection[ChangeRequestStatus] | None = None,
        requester: str | None = None,
        request_types: Collection[ChangeRequestType] | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ChangeRequest]:
        await asyncio.sleep(0)
        result = list(self._store.values())
        if statuses:
            result = [r for r in result if r.status in statuses]
        if requester:
            result = [r for r in result if r.requester == requester]
        if request_types:
            result = [r for r in result if r.request_type in request_types]
        result.sort(key=lambda r: r.requested_at, reverse=True)
        result.sort(key=lambda r: CHANGE_REQUEST_STATUS_RANK[r.status])
        return result[offset : offset + limit]

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        snapshot = dict(self._store)
        try:
            yield
        except BaseException:
            self._store = snapshot
            raise


class MockAccessRequestRepository:
    def __init__(self) -> None:
        self._store: dict[uuid.UUID, AccessRequest] = {}

    async def create(self, request: AccessRequest) -> AccessRequest:
        await asyncio.sleep(0)
        self._store[request.id] = request
        return request

    async def get_by_id(self, request_id: uuid.UUID) -> AccessRequest | None:
        await asyncio.sleep(0)
        return self._store.get(request_id)

    async def transition(
        self,
        request_id: uuid.UUID,
        *,
        expected: Collection[AccessRequestStatus],
        values: Mapping[str, Any],
    ) -> bool:
        await asyncio.sleep(0)
        current = self._store.get(request_id)
        if current is None or current.status not in expected:
            return False
        self._store[request_id] = current.model_copy(update=dict(values))
        return True

    async def list_requests(
        self,
        *,
        statuses: Collection[AccessRequestStatus] | None = None,
        requester: str | None = None,
        oldest_first: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AccessRequest]:
        await asyncio.sleep(0)
        result = list(self._store.values())
        if statuses:
            result = [r for r in result if r.status in statuses]
        if requester:
            result = [r for r in result if r.requester == requester]
        result.sort(key=lambda r: r.requested_at, reverse=not oldest_first)
        return result[offset : offset + limit]


class MockCatalogRepository:
    def __init__(self) -> None:
        self.descriptions: dict[str, TableDescription] = {}
        self.tags: dict[uuid.UUID, TableTag] = {}
        self.attributes: dict[str, AttributeDefinition] = {}
        self.enumerations: dict[uuid.UUID, AttributeEnumeration] = {}
        self.fail_writes: Exception | None = None

    def _check(self) -> None:
        if self.fail_writes is not None:
            raise self.fail_writes

    async def get_description(self, table_full_name: str) -> TableDescription | None:
        await asyncio.sleep(0)
        return self.descriptions.get(table_full_name)

    async def upsert_description(self, description: TableDescription) -> TableDescription:
        await asyncio.sleep(0)
        self._check()
        self.descriptions[description.table_full_name] = description
        return description

    async def get_tag(self, tag_id: uuid.UUID) -> TableTag | None:
        await asyncio.sleep(0)
        return self.tags.get(tag_id)

    async def add_tag(self, tag: TableTag) -> TableTag:
        await asyncio.sleep(0)
        self._check()
        self.tags[tag.tag_id] = tag
        return tag

    async def remove_tag(self, tag_id: uuid.UUID) -> bool:
        await asyncio.sleep(0)
        self._check()
        return self.tags.pop(tag_id, None) is not None

    async def create_attribute(
        self,
        definition: AttributeDefinition,
        enumerations: list[AttributeEnumeration],
    ) -> AttributeDefinition:
        await asyncio.sleep(0)
        self._check()
        self.attributes[definition.attribute_name] = definition
        for enumeration in enumerations:
            self.enumerations[enumeration.enumeration_id] = enumeration
        return definition

    async def update_attribute_description(self, attribute_name: str, description: str) -> bool:
        await asyncio.sleep(0)
        self._check()
        current = self.attributes.get(attribute_name)
        if current is None:
            return False
        self.attributes[attribute_name] = current.model_copy(update={"description": description})
        return True

    async def add_enumeration(self, enumeration: AttributeEnumeration) -> AttributeEnumeration:
        await asyncio.sleep(0)
        self._check()
        self.enumerations[enumeration.enumeration_id] = enumeration
        return enumeration

    async def update_enumeration(
        self,
        enumeration_id: uuid.UUID,
        *,
        value_description: str,
        updated_by: str,
    ) -> bool:
        await asyncio.sleep(0)
        self._check()
        current = self.enumerations.get(enumeration_id)
        if current is None:
            return False
        self.enumerations[enumeration_id] = current.model_copy(
            update={"value_description": value_description, "updated_by": updated_by}
        )
        return True


class FakeQueryExecutor:
    """Records statements; fails or answers those containing configured fragments."""

    def __init__(self) -> None:
        self.statements: list[tuple[str, Principal]] = []
        self.failures: dict[str, str] = {}
        self.results: dict[str, list[dict[str, Any]]] = {}

    @property
    def sql(self) -> list[str]:
        return [statement for statement, _ in self.statements]

    async def execute(self, statement: str, principal: Principal) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        self.statements.append((statement, principal))
        for fragment, message in self.failures.items():
            if fragment in statement:
                raise QueryExecutionError(message)
        for fragment, rows in self.results.items():
            if fragment in statement:
                return rows
        return []


class StaticCredentialSource:
    def __init__(self, token: str = "svc-token") -> None:
        self.token = token

    def read(self) -> str:
        return self.token


# ─── Fixtures ─────────────────────────────────────────────


@pytest.fixture
def permission_repo() -> MockRolePermissionRepository:
    return MockRolePermissionRepository()


@pytest.fixture
def change_repo() -> MockChangeRequestRepository:
    return MockChangeRequestRepository()


@pytest.fixture
def access_repo() -> MockAccessRequestRepository:
    return MockAccessRequestRepository()


@pytest.fixture
def catalog_repo() -> MockCatalogRepository:
    return MockCatalogRepository()


@pytest.fixture
def executor() -> FakeQueryExecutor:
    return FakeQueryExecutor()


@pytest.fixture
def make_principal() -> Callable[..., Principal]:
    """Build principals the way the identity headers would."""

    def _make(user: str | None = "alice", role: str | None = "ANALYST", token: str | None = None) -> Principal:
        headers: dict[str, str] = {}
        if user:
            headers["sf-context-current-user"] = user
        if role:
            headers["sf-context-current-role"] = role
        if token:
            headers["sf-context-current-user-token"] = token
        return compose_principal(headers, "svc-token", IdentitySettings())

    return _make


@pytest.fixture
def grant(permission_repo: MockRolePermissionRepository) -> Callable[..., Awaitable[None]]:
    """Assign permission kinds to a role directly in the store."""

    async def _grant(role: str, *kinds: PermissionKind) -> None:
        for kind in kinds:
            await permission_repo.create(RolePermission(role=role, permission_kind=kind, granted_by="setup"))

    return _grant


@pytest.fixture
def permission_service(permission_repo: MockRolePermissionRepository) -> PermissionService:
    return PermissionService(repo=permission_repo)


@pytest.fixture
def contacts(executor: FakeQueryExecutor) -> ContactDirectory:
    return ContactDirectory(executor)


@pytest.fixture
def change_service(
    change_repo: MockChangeRequestRepository,
    catalog_repo: MockCatalogRepository,
    permission_service: PermissionService,
    contacts: ContactDirectory,
    executor: FakeQueryExecutor,
) -> ChangeRequestService:
    return ChangeRequestService(
        repo=change_repo,
        catalog=catalog_repo,
        permissions=permission_service,
        contacts=contacts,
        executor=executor,
    )


@pytest.fixture
def access_service(
    access_repo: MockAccessRequestRepository,
    permission_service: PermissionService,
    contacts: ContactDirectory,
    executor: FakeQueryExecutor,
) -> AccessRequestService:
    return AccessRequestService(
        repo=access_repo,
        permissions=permission_service,
        contacts=contacts,
        executor=executor,
    )


@pytest.fixture
def provisioner(executor: FakeQueryExecutor, permission_service: PermissionService) -> RoleAccessProvisioner:
    return RoleAccessProvisioner(executor=executor, permissions=permission_service, settings=ServiceAccessSettings())


@pytest.fixture
def caller_service(permission_service: PermissionService, executor: FakeQueryExecutor) -> CallerService:
    return CallerService(permissions=permission_service, executor=executor)


@pytest.fixture
def app(
    change_service: ChangeRequestService,
    access_service: AccessRequestService,
    permission_service: PermissionService,
    provisioner: RoleAccessProvisioner,
    caller_service: CallerService,
    executor: FakeQueryExecutor,
) -> Generator[FastAPI]:
    """Create a test FastAPI app with mocked dependencies."""
    from catalog_governance.api.deps import (
        get_access_request_service,
        get_caller_service,
        get_change_request_service,
        get_permission_service,
        get_provisioner,
    )
    from catalog_governance.main import app as main_app

    main_app.state.session_factory = MagicMock()
    main_app.state.executor = executor

    main_app.dependency_overrides[get_change_request_service] = lambda: change_service
    main_app.dependency_overrides[get_access_request_service] = lambda: access_service
    main_app.dependency_overrides[get_permission_service] = lambda: permission_service
    main_app.dependency_overrides[get_provisioner] = lambda: provisioner
    main_app.dependency_overrides[get_caller_service] = lambda: caller_service
    main_app.dependency_overrides[get_credential_source] = lambda: StaticCredentialSource()

    yield main_app

    main_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create a test client for the FastAPI app."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def identity_headers(user: str = "alice", role: str = "ANALYST", token: str | None = "alice-token") -> dict[str, str]:
    headers = {"Sf-Context-Current-User": user, "Sf-Context-Current-Role": role}
    if token:
        headers["Sf-Context-Current-User-Token"] = token
    return headers


@pytest.fixture
def headers() -> Callable[..., dict[str, str]]:
    return identity_headers
