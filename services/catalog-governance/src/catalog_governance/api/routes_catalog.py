"""Catalog edit endpoints that open change requests on behalf of the caller."""

from __future__ import annotations

import uuid

from catalog_core.auth.dependencies import PrincipalDep
from catalog_core.enums import ChangeRequestType
from catalog_core.exceptions import CatalogError
from catalog_core.models import TagAddChange
from fastapi import APIRouter, HTTPException

from catalog_governance.api.deps import ChangeRequestServiceDep
from catalog_governance.api.schemas import (
    ChangeRequestEnvelope,
    ChangeRequestResponse,
    DescriptionEditRequest,
    TagAddRequest,
    TagRemovalRequest,
)

router = APIRouter(prefix="/api/v1", tags=["catalog"])


@router.put("/tables/{table_full_name}/description", status_code=201)
async def propose_description(
    table_full_name: str,
    body: DescriptionEditRequest,
    principal: PrincipalDep,
    service: ChangeRequestServiceDep,
) -> ChangeRequestEnvelope:
    try:
        request = await service.submit_description(
            principal=principal,
            table_full_name=table_full_name,
            description=body.description,
            justification=body.justification,
        )
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return ChangeRequestEnvelope(
        message="Description change submitted for approval",
        request=ChangeRequestResponse.model_validate(request, from_attributes=True),
    )


@router.post("/tables/{table_full_name}/tags", status_code=201)
async def propose_tag(
    table_full_name: str,
    body: TagAddRequest,
    principal: PrincipalDep,
    service: ChangeRequestServiceDep,
) -> ChangeRequestEnvelope:
    try:
        request = await service.submit(
            principal=principal,
            request_type=ChangeRequestType.TAG_ADD,
            target_object=table_full_name,
            justification=body.justification,
            proposed_change=TagAddChange(tag_name=body.tag_name).model_dump(),
        )
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return ChangeRequestEnvelope(
        message="Tag addition submitted for approval",
        request=ChangeRequestResponse.model_validate(request, from_attributes=True),
    )


@router.post("/tags/{tag_id}/removal-requests", status_code=201, responses={404: {"description": "Tag not found"}})
async def propose_tag_removal(
    tag_id: uuid.UUID,
    body: TagRemovalRequest,
    principal: PrincipalDep,
    service: ChangeRequestServiceDep,
) -> ChangeRequestEnvelope:
    try:
        request = await service.submit_tag_removal(principal=principal, tag_id=tag_id, justification=body.justification)
    except CatalogError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e
    return ChangeRequestEnvelope(
        message="Tag removal submitted for approval",
        request=ChangeRequestResponse.model_validate(request, from_attributes=True),
    )
