"""Access request endpoints: /api/v1/access-requests."""

from __future__ import annotations

import uuid

from catalog_core.auth.dependencies import PrincipalDep
from catalog_core.exceptions import CatalogError
from fastapi import APIRouter, HTTPException

from catalog_governance.api.deps import AccessRequestServiceDep
from catalog_governance.api.schemas import (
    AccessRequestEnvelope,
    AccessRequestListResponse,
    AccessRequestResponse,
    ApproveWithGrantRequest,
    ApproveWithGrantResponse,
    DecisionRequest,
    GrantDetailsResponse,
    ProvideInfoRequest,
    ReassignRequest,
    RequestInfoRequest,
    SubmitAccessRequest,
)

router = APIRouter(prefix="/api/v1/access-requests", tags=["access-requests"])

_DECISION_RESPONSES = {
    403: {"description": "Caller role lacks APPROVE_DATA_ACCESS"},
    404: {"description": "Access request not found"},
    409: {"description": "Access request not found or already processed"},
}


def _envelope(request: object, message: str = "") -> AccessRequestEnvelope:
    return AccessRequestEnvelope(
        message=message,
        request=AccessRequestResponse.model_validate(request, from_attributes=True),
    )


def _listing(requests: list[object]) -> AccessRequestListResponse:
    return AccessRequestListResponse(
        requests=[AccessRequestResponse.model_validate(r, from_attributes=True) for r in requests]
    )


@router.post("", status_code=201, responses={400: {"description": "Invalid request"}})
async def submit_access_request(
    body: SubmitAccessRequest,
    principal: PrincipalDep,
    service: AccessRequestServiceDep,
) -> AccessRequestEnvelope:
    try:
        request = await service.submit(
            principal=principal,
            table_full_name=body.table_full_name,
            justification=body.justification,
            access_start_date=body.access_start_date,
            access_end_date=body.access_end_date,
            access_type=body.access_type,
            grant_to_name=body.grant_to_name,
        )
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _envelope(request, "Access request submitted")


@router.get("/mine")
async def list_my_access_requests(
    principal: PrincipalDep,
    service: AccessRequestServiceDep,
    limit: int = 100,
    offset: int = 0,
) -> AccessRequestListResponse:
    return _listing(await service.list_mine(principal=principal, limit=limit, offset=offset))


@router.get("/pending")
async def list_pending_access_requests(
    principal: PrincipalDep,
    service: AccessRequestServiceDep,
    limit: int = 100,
    offset: int = 0,
) -> AccessRequestListResponse:
    return _listing(await service.list_pending(limit=limit, offset=offset))


@router.get("/{request_id}", responses={404: {"description": "Access request not found"}})
async def get_access_request(
    request_id: uuid.UUID,
    principal: PrincipalDep,
    service: AccessRequestServiceDep,
) -> AccessRequestEnvelope:
    request = await service.get_request(request_id)
    if request is None:
        raise HTTPException(status_code=404, detail="Access request not found")
    return _envelope(request)


@router.post("/{request_id}/request-info", responses=_DECISION_RESPONSES)
async def request_info(
    request_id: uuid.UUID,
    body: RequestInfoRequest,
    principal: PrincipalDep,
    service: AccessRequestServiceDep,
) -> AccessRequestEnvelope:
    try:
        request = await service.request_info(
            request_id,
            principal=principal,
            info_needed=body.info_needed,
            assignee=body.assignee,
        )
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _envelope(request, "Additional information requested from user")


@router.post("/{request_id}/provide-info", responses={403: {"description": "Not the requester or assignee"}})
async def provide_info(
    request_id: uuid.UUID,
    body: ProvideInfoRequest,
    principal: PrincipalDep,
    service: AccessRequestServiceDep,
) -> AccessRequestEnvelope:
    try:
        request = await service.provide_info(request_id, principal=principal, additional_info=body.additional_info)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _envelope(request, "Request updated and resubmitted for approval")


@router.post("/{request_id}/reassign", responses=_DECISION_RESPONSES)
async def reassign(
    request_id: uuid.UUID,
    body: ReassignRequest,
    principal: PrincipalDep,
    service: AccessRequestServiceDep,
) -> AccessRequestEnvelope:
    try:
        request = await service.reassign(request_id, principal=principal, assignee=body.assignee)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _envelope(request, f"Request reassigned to {body.assignee}")


@router.post("/{request_id}/approve", responses=_DECISION_RESPONSES)
async def approve_access_request(
    request_id: uuid.UUID,
    principal: PrincipalDep,
    service: AccessRequestServiceDep,
    body: DecisionRequest | None = None,
) -> AccessRequestEnvelope:
    try:
        request = await service.approve(request_id, principal=principal, comment=body.comment if body else None)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _envelope(request, "Access request approved")


@router.post("/{request_id}/approve-with-grant", responses=_DECISION_RESPONSES)
async def approve_with_grant(
    request_id: uuid.UUID,
    principal: PrincipalDep,
    service: AccessRequestServiceDep,
    body: ApproveWithGrantRequest | None = None,
) -> ApproveWithGrantResponse:
    body = body or ApproveWithGrantRequest()
    try:
        outcome = await service.approve_with_grant(
            request_id,
            principal=principal,
            comment=body.comment,
            access_type=body.access_type,
            grant_to_name=body.grant_to_name,
        )
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

    details = outcome.details
    if outcome.granted:
        message = f"Request approved and READ access granted to {details.grant_type.lower()} {details.grant_to}"
    else:
        message = "Request approved; access grant failed"
    return ApproveWithGrantResponse(
        message=message,
        request=AccessRequestResponse.model_validate(outcome.request, from_attributes=True),
        granted=outcome.granted,
        grant_details=GrantDetailsResponse.model_validate(details, from_attributes=True),
        warning=outcome.warning,
        grant_error=outcome.error,
    )


@router.post("/{request_id}/deny", responses=_DECISION_RESPONSES)
async def deny_access_request(
    request_id: uuid.UUID,
    principal: PrincipalDep,
    service: AccessRequestServiceDep,
    body: DecisionRequest | None = None,
) -> AccessRequestEnvelope:
    try:
        request = await service.deny(request_id, principal=principal, comment=body.comment if body else None)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _envelope(request, "Access request denied")
