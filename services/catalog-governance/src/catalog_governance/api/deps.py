"""FastAPI dependency injection."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from catalog_core.settings import ServiceAccessSettings
from catalog_core.warehouse.executor import QueryExecutor
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_governance.domain.access_request_service import AccessRequestService
from catalog_governance.domain.caller_service import CallerService
from catalog_governance.domain.change_request_service import ChangeRequestService
from catalog_governance.domain.contacts import ContactDirectory
from catalog_governance.domain.permission_service import PermissionService
from catalog_governance.domain.provisioner import RoleAccessProvisioner
from catalog_governance.repository.postgres import (
    PgAccessRequestRepository,
    PgCatalogRepository,
    PgChangeRequestRepository,
    PgRolePermissionRepository,
)


async def get_session(request: Request) -> AsyncGenerator[AsyncSession]:
    session_factory = request.app.state.session_factory
    async with session_factory() as session, session.begin():
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_executor(request: Request) -> QueryExecutor:
    return request.app.state.executor


ExecutorDep = Annotated[QueryExecutor, Depends(get_executor)]


def get_service_access_settings(request: Request) -> ServiceAccessSettings:
    return request.app.state.service_access_settings


def get_permission_service(session: SessionDep) -> PermissionService:
    return PermissionService(repo=PgRolePermissionRepository(session))


def get_contact_directory(executor: ExecutorDep) -> ContactDirectory:
    return ContactDirectory(executor)


def get_change_request_service(
    session: SessionDep,
    executor: ExecutorDep,
    permissions: Annotated[PermissionService, Depends(get_permission_service)],
    contacts: Annotated[ContactDirectory, Depends(get_contact_directory)],
) -> ChangeRequestService:
    return ChangeRequestService(
        repo=PgChangeRequestRepository(session),
        catalog=PgCatalogRepository(session),
        permissions=permissions,
        contacts=contacts,
        executor=executor,
    )


def get_access_request_service(
    session: SessionDep,
    executor: ExecutorDep,
    permissions: Annotated[PermissionService, Depends(get_permission_service)],
    contacts: Annotated[ContactDirectory, Depends(get_contact_directory)],
) -> AccessRequestService:
    return AccessRequestService(
        repo=PgAccessRequestRepository(session),
        permissions=permissions,
        contacts=contacts,
        executor=executor,
    )


def get_provisioner(
    executor: ExecutorDep,
    permissions: Annotated[PermissionService, Depends(get_permission_service)],
    settings: Annotated[ServiceAccessSettings, Depends(get_service_access_settings)],
) -> RoleAccessProvisioner:
    return RoleAccessProvisioner(executor=executor, permissions=permissions, settings=settings)


def get_caller_service(
    executor: ExecutorDep,
    permissions: Annotated[PermissionService, Depends(get_permission_service)],
) -> CallerService:
    return CallerService(permissions=permissions, executor=executor)


PermissionServiceDep = Annotated[PermissionService, Depends(get_permission_service)]
ChangeRequestServiceDep = Annotated[ChangeRequestService, Depends(get_change_request_service)]
AccessRequestServiceDep = Annotated[AccessRequestService, Depends(get_access_request_service)]
ProvisionerDep = Annotated[RoleAccessProvisioner, Depends(get_provisioner)]
CallerServiceDep = Annotated[CallerService, Depends(get_caller_service)]
