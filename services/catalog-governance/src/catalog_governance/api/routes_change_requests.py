"""Change request endpoints: /api/v1/change-requests."""

from __future__ import annotations

import uuid

from catalog_core.auth.dependencies import PrincipalDep
from catalog_core.exceptions import CatalogError
from fastapi import APIRouter, HTTPException

from catalog_governance.api.deps import ChangeRequestServiceDep
from catalog_governance.api.schemas import (
    ChangeRequestEnvelope,
    ChangeRequestListResponse,
    ChangeRequestResponse,
    DecisionRequest,
    ResubmitChangeRequest,
    ReturnForInfoRequest,
    SubmitChangeRequest,
)

router = APIRouter(prefix="/api/v1/change-requests", tags=["change-requests"])

_DECISION_RESPONSES = {
    403: {"description": "Caller role lacks APPROVE_GLOSSARY"},
    404: {"description": "Change request not found"},
    409: {"description": "Change request not found or already processed"},
}


def _envelope(request: object, message: str = "") -> ChangeRequestEnvelope:
    return ChangeRequestEnvelope(
        message=message,
        request=ChangeRequestResponse.model_validate(request, from_attributes=True),
    )


def _listing(requests: list[object]) -> ChangeRequestListResponse:
    return ChangeRequestListResponse(
        requests=[ChangeRequestResponse.model_validate(r, from_attributes=True) for r in requests]
    )


@router.post("", status_code=201, responses={400: {"description": "Invalid payload"}})
async def submit_change_request(
    body: SubmitChangeRequest,
    principal: PrincipalDep,
    service: ChangeRequestServiceDep,
) -> ChangeRequestEnvelope:
    try:
        request = await service.submit(
            principal=principal,
            request_type=body.request_type,
            target_object=body.target_object,
            justification=body.justification,
            proposed_change=body.proposed_change,
            current_value=body.current_value,
        )
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _envelope(request, "Change request submitted for approval")


@router.get("/pending")
async def list_pending_review(
    principal: PrincipalDep,
    service: ChangeRequestServiceDep,
    limit: int = 100,
    offset: int = 0,
) -> ChangeRequestListResponse:
    return _listing(await service.list_pending_review(limit=limit, offset=offset))


@router.get("/mine")
async def list_my_change_requests(
    principal: PrincipalDep,
    service: ChangeRequestServiceDep,
    limit: int = 100,
    offset: int = 0,
) -> ChangeRequestListResponse:
    return _listing(await service.list_mine(principal=principal, limit=limit, offset=offset))


@router.get("/attributes")
async def list_attribute_requests(
    principal: PrincipalDep,
    service: ChangeRequestServiceDep,
    limit: int = 100,
    offset: int = 0,
) -> ChangeRequestListResponse:
    return _listing(await service.list_attribute_requests(limit=limit, offset=offset))


@router.get("/{request_id}", responses={404: {"description": "Change request not found"}})
async def get_change_request(
    request_id: uuid.UUID,
    principal: PrincipalDep,
    service: ChangeRequestServiceDep,
) -> ChangeRequestEnvelope:
    request = await service.get_request(request_id)
    if request is None:
        raise HTTPException(status_code=404, detail="Change request not found")
    return _envelope(request)


@router.post("/{request_id}/return", responses=_DECISION_RESPONSES)
async def return_for_info(
    request_id: uuid.UUID,
    body: ReturnForInfoRequest,
    principal: PrincipalDep,
    service: ChangeRequestServiceDep,
) -> ChangeRequestEnvelope:
    try:
        request = await service.return_for_info(request_id, principal=principal, comment=body.comment)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _envelope(request, "Request returned to requester for more information")


@router.post("/{request_id}/resubmit", responses={403: {"description": "Not the original requester"}})
async def resubmit_change_request(
    request_id: uuid.UUID,
    body: ResubmitChangeRequest,
    principal: PrincipalDep,
    service: ChangeRequestServiceDep,
) -> ChangeRequestEnvelope:
    try:
        request = await service.resubmit(
            request_id,
            principal=principal,
            justification=body.justification,
            proposed_change=body.proposed_change,
        )
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _envelope(request, "Request updated and resubmitted for approval")


@router.post("/{request_id}/approve", responses=_DECISION_RESPONSES)
async def approve_change_request(
    request_id: uuid.UUID,
    principal: PrincipalDep,
    service: ChangeRequestServiceDep,
    body: DecisionRequest | None = None,
) -> ChangeRequestEnvelope:
    try:
        request = await service.approve(request_id, principal=principal, comment=body.comment if body else None)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _envelope(request, "Change request approved and applied")


@router.post("/{request_id}/deny", responses=_DECISION_RESPONSES)
async def deny_change_request(
    request_id: uuid.UUID,
    principal: PrincipalDep,
    service: ChangeRequestServiceDep,
    body: DecisionRequest | None = None,
) -> ChangeRequestEnvelope:
    try:
        request = await service.deny(request_id, principal=principal, comment=body.comment if body else None)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return _envelope(request, "Change request denied")
