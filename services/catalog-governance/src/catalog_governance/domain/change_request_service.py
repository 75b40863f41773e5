"""Change request lifecycle management service."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from catalog_core.enums import ATTRIBUTE_REQUEST_TYPES, ChangeRequestStatus, ChangeRequestType, PermissionKind
from catalog_core.exceptions import (
    AlreadyProcessedError,
    CatalogError,
    ChangeApplicationError,
    InvalidPayloadError,
    InvalidTransitionError,
    NotRequesterError,
    RequestNotFoundError,
)
from catalog_core.models import ChangeRequest, TagRemoveChange, parse_proposed_change
from catalog_core.telemetry.metrics import record_decision
from catalog_core.warehouse.sql import split_object_name
from catalog_core.workflow import change_request_sources

from catalog_governance.domain.appliers import ApplyContext, apply_change

if TYPE_CHECKING:
    import uuid

    from catalog_core.auth.models import Principal
    from catalog_core.warehouse.executor import QueryExecutor

    from catalog_governance.domain.contacts import ContactDirectory
    from catalog_governance.domain.permission_service import PermissionService
    from catalog_governance.repository.protocols import CatalogRepository, ChangeRequestRepository

logger = logging.getLogger(__name__)

_TABLE_TARGET_TYPES = frozenset(
    {ChangeRequestType.DESCRIPTION, ChangeRequestType.TAG_ADD, ChangeRequestType.TAG_REMOVE}
)


def _table_for_contacts(request_type: ChangeRequestType, target_object: str) -> str | None:
    if request_type in _TABLE_TARGET_TYPES:
        return target_object
    if request_type == ChangeRequestType.COLUMN_DESCRIPTION:
        return target_object.rsplit(".", 1)[0]
    return None


def _validate_target(request_type: ChangeRequestType, target_object: str) -> str:
    if request_type in _TABLE_TARGET_TYPES:
        split_object_name(target_object, parts=3)
    elif request_type == ChangeRequestType.COLUMN_DESCRIPTION:
        split_object_name(target_object, parts=4)
    elif not target_object.strip():
        raise InvalidPayloadError("target_object must not be empty")
    return target_object


class ChangeRequestService:
    """Manages the change request lifecycle.

    States: pending → approved/denied/more_info_needed; more_info_needed → pending
    (requester resubmission only). approved and denied are terminal.
    """

    def __init__(
        self,
        repo: ChangeRequestRepository,
        catalog: CatalogRepository,
        permissions: PermissionService,
        contacts: ContactDirectory,
        executor: QueryExecutor,
    ) -> None:
        self._repo = repo
        self._catalog = catalog
        self._permissions = permissions
        self._contacts = contacts
        self._executor = executor

    # ─── Submission ──────────────────────────────────────

    async def submit(
        self,
        *,
        principal: Principal,
        request_type: ChangeRequestType,
        target_object: str,
        justification: str,
        proposed_change: dict[str, Any],
        current_value: dict[str, Any] | None = None,
    ) -> ChangeRequest:
        """Create a change request in PENDING status."""
        await self._permissions.require(principal, PermissionKind.CREATE_REQUESTS)
        if not justification.strip():
            raise InvalidPayloadError("justification must not be empty")
        _validate_target(request_type, target_object)
        change = parse_proposed_change(request_type, proposed_change)

        assigned_to = None
        table = _table_for_contacts(request_type, target_object)
        if table is not None:
            assigned_to = await self._contacts.responsible_party(table, principal)

        request = await self._repo.create(
            ChangeRequest(
                request_type=request_type,
                target_object=target_object,
                requester=principal.actor,
                justification=justification,
                proposed_change=change.model_dump(mode="json"),
                current_value=current_value,
                assigned_to=assigned_to,
            )
        )
        logger.info("%s submitted %s change request %s for %s", principal.actor, request_type, request.id, target_object)
        return request

    async def submit_description(
        self,
        *,
        principal: Principal,
        table_full_name: str,
        description: str,
        justification: str,
    ) -> ChangeRequest:
        await self._permissions.require(principal, PermissionKind.CREATE_REQUESTS)
        current = await self._catalog.get_description(table_full_name)
        return await self.submit(
            principal=principal,
            request_type=ChangeRequestType.DESCRIPTION,
            target_object=table_full_name,
            justification=justification,
            proposed_change={"description": description},
            current_value={"description": current.user_description} if current else None,
        )

    async def submit_tag_removal(self, *, principal: Principal, tag_id: uuid.UUID, justification: str) -> ChangeRequest:
        await self._permissions.require(principal, PermissionKind.CREATE_REQUESTS)
        tag = await self._catalog.get_tag(tag_id)
        if tag is None:
            raise RequestNotFoundError(f"Tag {tag_id} not found")
        change = TagRemoveChange(tag_id=tag.tag_id, tag_name=tag.tag_name)
        return await self.submit(
            principal=principal,
            request_type=ChangeRequestType.TAG_REMOVE,
            target_object=tag.table_full_name,
            justification=justification,
            proposed_change=change.model_dump(mode="json"),
        )

    # ─── Queries ─────────────────────────────────────────

    async def get_request(self, request_id: uuid.UUID) -> ChangeRequest | None:
        return await self._repo.get_by_id(request_id)

    async def list_pending_review(self, *, limit: int = 100, offset: int = 0) -> list[ChangeRequest]:
        """Requests awaiting a reviewer, resubmissions first, newest first."""
        return await self._repo.list_requests(
            statuses=(ChangeRequestStatus.PENDING, ChangeRequestStatus.MORE_INFO_NEEDED),
            limit=limit,
            offset=offset,
        )

    async def list_mine(self, *, principal: Principal, limit: int = 100, offset: int = 0) -> list[ChangeRequest]:
        return await self._repo.list_requests(requester=principal.actor, limit=limit, offset=offset)

    async def list_attribute_requests(self, *, limit: int = 100, offset: int = 0) -> list[ChangeRequest]:
        return await self._repo.list_requests(request_types=ATTRIBUTE_REQUEST_TYPES, limit=limit, offset=offset)

    # ─── Transitions ─────────────────────────────────────

    async def _load_pending(self, request_id: uuid.UUID) -> ChangeRequest:
        request = await self._repo.get_by_id(request_id)
        if request is None:
            raise RequestNotFoundError(f"Change request {request_id} not found")
        if request.status != ChangeRequestStatus.PENDING:
            raise AlreadyProcessedError()
        return request

    async def _reload(self, request_id: uuid.UUID) -> ChangeRequest:
        request = await self._repo.get_by_id(request_id)
        if request is None:
            raise RequestNotFoundError(f"Change request {request_id} not found")
        return request

    def _decision(self, status: ChangeRequestStatus, principal: Principal, comment: str | None) -> dict[str, Any]:
        return {
            "status": status,
            "approver": principal.actor,
            "decision_comment": comment,
            "decision_date": datetime.now(UTC),
        }

    async def return_for_info(self, request_id: uuid.UUID, *, principal: Principal, comment: str) -> ChangeRequest:
        """Ask the requester for more information (PENDING → MORE_INFO_NEEDED)."""
        await self._permissions.require(principal, PermissionKind.APPROVE_GLOSSARY)
        if not comment or not comment.strip():
            raise InvalidPayloadError("A comment explaining what information is needed is required")
        request = await self._load_pending(request_id)

        target = ChangeRequestStatus.MORE_INFO_NEEDED
        if not await self._repo.transition(
            request_id,
            expected=change_request_sources(target),
            values=self._decision(target, principal, comment),
        ):
            raise AlreadyProcessedError()

        record_decision("change_request", request.request_type, "returned")
        logger.info("%s returned change request %s for more information", principal.actor, request_id)
        return await self._reload(request_id)

    async def resubmit(
        self,
        request_id: uuid.UUID,
        *,
        principal: Principal,
        justification: str,
        proposed_change: dict[str, Any],
    ) -> ChangeRequest:
        """Requester answers a return-for-info (MORE_INFO_NEEDED → PENDING)."""
        request = await self._reload(request_id)
        if request.requester != principal.actor:
            raise NotRequesterError("Only the original requester can update this request")
        if request.status != ChangeRequestStatus.MORE_INFO_NEEDED:
            raise InvalidTransitionError(f"Change request must be more_info_needed to resubmit, got {request.status}")
        if not justification.strip():
            raise InvalidPayloadError("justification must not be empty")
        change = parse_proposed_change(request.request_type, proposed_change)

        target = ChangeRequestStatus.PENDING
        resubmitted = await self._repo.transition(
            request_id,
            expected=change_request_sources(target),
            requester=principal.actor,
            values={
                "status": target,
                "justification": justification,
                "proposed_change": change.model_dump(mode="json"),
                "approver": None,
                "decision_comment": None,
                "decision_date": None,
                "requested_at": datetime.now(UTC),
            },
        )
        if not resubmitted:
            raise AlreadyProcessedError()

        logger.info("%s resubmitted change request %s", principal.actor, request_id)
        return await self._reload(request_id)

    async def approve(
        self,
        request_id: uuid.UUID,
        *,
        principal: Principal,
        comment: str | None = None,
    ) -> ChangeRequest:
        """Approve a pending request and apply its change to the catalog.

        The status change and the apply step commit together. If the apply
        step fails the request stays PENDING and the failure is raised.
        """
        await self._permissions.require(principal, PermissionKind.APPROVE_GLOSSARY)
        request = await self._load_pending(request_id)
        parse_proposed_change(request.request_type, request.proposed_change)

        target = ChangeRequestStatus.APPROVED
        context = ApplyContext(catalog=self._catalog, executor=self._executor, principal=principal, request=request)
        try:
            async with self._repo.atomic():
                claimed = await self._repo.transition(
                    request_id,
                    expected=change_request_sources(target),
                    values=self._decision(target, principal, comment),
                )
                if claimed:
                    await apply_change(request, context)
        except ChangeApplicationError:
            logger.warning("Applying change request %s failed", request_id, exc_info=True)
            raise
        except CatalogError as e:
            logger.warning("Applying change request %s failed: %s", request_id, e)
            raise ChangeApplicationError(f"Failed to apply change request: {e}", status_code=e.status_code) from e
        except Exception as e:
            logger.exception("Applying change request %s failed", request_id)
            raise ChangeApplicationError(f"Failed to apply change request: {e}") from e

        if not claimed:
            raise AlreadyProcessedError()

        record_decision("change_request", request.request_type, "approved")
        logger.info("%s approved %s change request %s", principal.actor, request.request_type, request_id)
        return await self._reload(request_id)

    async def deny(
        self,
        request_id: uuid.UUID,
        *,
        principal: Principal,
        comment: str | None = None,
    ) -> ChangeRequest:
        await self._permissions.require(principal, PermissionKind.APPROVE_GLOSSARY)
        request = await self._load_pending(request_id)

        target = ChangeRequestStatus.DENIED
        if not await self._repo.transition(
            request_id,
            expected=change_request_sources(target),
            values=self._decision(target, principal, comment),
        ):
            raise AlreadyProcessedError()

        record_decision("change_request", request.request_type, "denied")
        logger.info("%s denied change request %s", principal.actor, request_id)
        return await self._reload(request_id)
