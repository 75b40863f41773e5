"""Data access request lifecycle management service."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from catalog_core.enums import AccessRequestStatus, AccessType, PermissionKind
from catalog_core.exceptions import (
    AlreadyProcessedError,
    InvalidPayloadError,
    InvalidTransitionError,
    NotRequesterError,
    QueryExecutionError,
    RequestNotFoundError,
)
from catalog_core.models import AccessRequest
from catalog_core.telemetry.metrics import record_decision
from catalog_core.warehouse.sql import validate_identifier, validate_object_name
from catalog_core.workflow import access_request_sources, is_terminal
from pydantic import BaseModel

if TYPE_CHECKING:
    import uuid
    from datetime import date

    from catalog_core.auth.models import Principal
    from catalog_core.warehouse.executor import QueryExecutor

    from catalog_governance.domain.contacts import ContactDirectory
    from catalog_governance.domain.permission_service import PermissionService
    from catalog_governance.repository.protocols import AccessRequestRepository

logger = logging.getLogger(__name__)

DEFAULT_APPROVE_COMMENT = "Approved"
DEFAULT_GRANT_COMMENT = "Approved with READ access granted"
GRANT_FAILED_WARNING = "Request approved but grant failed. You may need higher privileges."
GRANTED_PRIVILEGE = "SELECT"

_OPEN_STATUSES = frozenset(s for s in AccessRequestStatus if not is_terminal(s))


class GrantDetails(BaseModel):
    table: str
    grant_type: AccessType
    grant_to: str
    privilege: str = GRANTED_PRIVILEGE


class GrantOutcome(BaseModel):
    """Result of approve-with-grant.

    The decision and the grant are independent effects: ``request`` is always
    approved, while ``granted`` reports whether the privilege was issued.
    """

    request: AccessRequest
    granted: bool
    details: GrantDetails
    warning: str | None = None
    error: str | None = None


class AccessRequestService:
    """Manages the access request lifecycle.

    States: pending ⇄ pending_info → approved/denied. approved and denied are terminal.
    """

    def __init__(
        self,
        repo: AccessRequestRepository,
        permissions: PermissionService,
        contacts: ContactDirectory,
        executor: QueryExecutor,
    ) -> None:
        self._repo = repo
        self._permissions = permissions
        self._contacts = contacts
        self._executor = executor

    async def submit(
        self,
        *,
        principal: Principal,
        table_full_name: str,
        justification: str,
        access_start_date: date,
        access_end_date: date,
        access_type: AccessType,
        grant_to_name: str,
    ) -> AccessRequest:
        """Create an access request in PENDING status."""
        await self._permissions.require(principal, PermissionKind.CREATE_REQUESTS)
        if not justification.strip():
            raise InvalidPayloadError("justification must not be empty")
        table_full_name = validate_object_name(table_full_name, parts=3)
        grant_to_name = validate_identifier(grant_to_name)
        if access_end_date < access_start_date:
            raise InvalidPayloadError("access_end_date must not be before access_start_date")

        request = await self._repo.create(
            AccessRequest(
                table_full_name=table_full_name,
                requester=principal.actor,
                justification=justification,
                access_start_date=access_start_date,
                access_end_date=access_end_date,
                access_type=access_type,
                grant_to_name=grant_to_name,
                assigned_to=await self._contacts.responsible_party(table_full_name, principal),
            )
        )
        logger.info("%s requested %s access on %s for %s", principal.actor, access_type, table_full_name, grant_to_name)
        return request

    async def get_request(self, request_id: uuid.UUID) -> AccessRequest | None:
        return await self._repo.get_by_id(request_id)

    async def list_mine(self, *, principal: Principal, limit: int = 100, offset: int = 0) -> list[AccessRequest]:
        return await self._repo.list_requests(requester=principal.actor, limit=limit, offset=offset)

    async def list_pending(self, *, limit: int = 100, offset: int = 0) -> list[AccessRequest]:
        """Open requests, oldest first."""
        return await self._repo.list_requests(statuses=_OPEN_STATUSES, oldest_first=True, limit=limit, offset=offset)

    # ─── Transitions ─────────────────────────────────────

    async def _load(self, request_id: uuid.UUID) -> AccessRequest:
        request = await self._repo.get_by_id(request_id)
        if request is None:
            raise RequestNotFoundError(f"Access request {request_id} not found")
        return request

    async def _transition(
        self,
        request: AccessRequest,
        target: AccessRequestStatus,
        values: dict[str, Any],
    ) -> AccessRequest:
        expected = access_request_sources(target)
        if request.status not in expected:
            raise AlreadyProcessedError()
        if not await self._repo.transition(request.id, expected=expected, values={"status": target, **values}):
            raise AlreadyProcessedError()
        return await self._load(request.id)

    def _decision(self, principal: Principal, comment: str | None) -> dict[str, Any]:
        return {"approver": principal.actor, "decision_comment": comment, "decision_date": datetime.now(UTC)}

    async def request_info(
        self,
        request_id: uuid.UUID,
        *,
        principal: Principal,
        info_needed: str,
        assignee: str | None = None,
    ) -> AccessRequest:
        """Ask for more information (→ PENDING_INFO), assigning who follows up."""
        await self._permissions.require(principal, PermissionKind.APPROVE_DATA_ACCESS)
        if not info_needed.strip():
            raise InvalidPayloadError("info_needed must not be empty")
        request = await self._load(request_id)
        updated = await self._transition(
            request,
            AccessRequestStatus.PENDING_INFO,
            {"assigned_to": assignee or principal.actor, "additional_info": info_needed},
        )
        logger.info("%s requested more information on access request %s", principal.actor, request_id)
        return updated

    async def provide_info(self, request_id: uuid.UUID, *, principal: Principal, additional_info: str) -> AccessRequest:
        """Answer an info request (PENDING_INFO → PENDING), appending to the justification."""
        if not additional_info.strip():
            raise InvalidPayloadError("additional_info must not be empty")
        request = await self._load(request_id)
        if principal.actor not in {request.requester, request.assigned_to}:
            raise NotRequesterError("Only the requester or the assignee can provide information")
        if request.status != AccessRequestStatus.PENDING_INFO:
            raise InvalidTransitionError(f"Access request must be pending_info, got {request.status}")

        justification = f"{request.justification} [Additional Info: {additional_info}]"
        updated = await self._transition(request, AccessRequestStatus.PENDING, {"justification": justification})
        logger.info("%s provided information on access request %s", principal.actor, request_id)
        return updated

    async def reassign(self, request_id: uuid.UUID, *, principal: Principal, assignee: str) -> AccessRequest:
        """Change who is responsible for an open request without changing its status."""
        await self._permissions.require(principal, PermissionKind.APPROVE_DATA_ACCESS)
        if not assignee.strip():
            raise InvalidPayloadError("assignee must not be empty")
        request = await self._load(request_id)
        if request.status not in _OPEN_STATUSES:
            raise AlreadyProcessedError()
        if not await self._repo.transition(request_id, expected=_OPEN_STATUSES, values={"assigned_to": assignee}):
            raise AlreadyProcessedError()
        logger.info("%s reassigned access request %s to %s", principal.actor, request_id, assignee)
        return await self._load(request_id)

    async def approve(
        self,
        request_id: uuid.UUID,
        *,
        principal: Principal,
        comment: str | None = None,
    ) -> AccessRequest:
        """Record approval without issuing a grant."""
        await self._permissions.require(principal, PermissionKind.APPROVE_DATA_ACCESS)
        request = await self._load(request_id)
        updated = await self._transition(
            request, AccessRequestStatus.APPROVED, self._decision(principal, comment or DEFAULT_APPROVE_COMMENT)
        )
        record_decision("access_request", updated.access_type, "approved")
        logger.info("%s approved access request %s", principal.actor, request_id)
        return updated

    async def approve_with_grant(
        self,
        request_id: uuid.UUID,
        *,
        principal: Principal,
        comment: str | None = None,
        access_type: AccessType | None = None,
        grant_to_name: str | None = None,
    ) -> GrantOutcome:
        """Approve, then grant SELECT on the table to the requested user or role.

        The approval is recorded first. A failed grant does not undo it; the
        outcome reports the failure so it can be remediated by hand.
        """
        await self._permissions.require(principal, PermissionKind.APPROVE_DATA_ACCESS)
        request = await self._load(request_id)
        grant_type = access_type or request.access_type
        grantee = validate_identifier(grant_to_name or request.grant_to_name)
        table = validate_object_name(request.table_full_name, parts=3)

        approved = await self._transition(
            request, AccessRequestStatus.APPROVED, self._decision(principal, comment or DEFAULT_GRANT_COMMENT)
        )
        record_decision("access_request", grant_type, "approved")
        details = GrantDetails(table=table, grant_type=grant_type, grant_to=grantee)

        statement = f"GRANT {GRANTED_PRIVILEGE} ON TABLE {table} TO {grant_type} {grantee}"
        try:
            await self._executor.execute(statement, principal)
        except QueryExecutionError as e:
            logger.warning("Access request %s approved but grant on %s to %s failed: %s", request_id, table, grantee, e)
            return GrantOutcome(request=approved, granted=False, details=details, warning=GRANT_FAILED_WARNING, error=str(e))

        logger.info("%s granted %s on %s to %s %s", principal.actor, GRANTED_PRIVILEGE, table, grant_type, grantee)
        return GrantOutcome(request=approved, granted=True, details=details)

    async def deny(
        self,
        request_id: uuid.UUID,
        *,
        principal: Principal,
        comment: str | None = None,
    ) -> AccessRequest:
        await self._permissions.require(principal, PermissionKind.APPROVE_DATA_ACCESS)
        request = await self._load(request_id)
        updated = await self._transition(request, AccessRequestStatus.DENIED, self._decision(principal, comment))
        record_decision("access_request", updated.access_type, "denied")
        logger.info("%s denied access request %s", principal.actor, request_id)
        return updated
