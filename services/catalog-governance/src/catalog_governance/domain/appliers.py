"""Interpreters that apply an approved change request to the catalog.

Each request type registers exactly one applier. The payload is validated
against the type's schema before any applier touches the target store.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from catalog_core.enums import ChangeRequestType
from catalog_core.exceptions import ChangeApplicationError
from catalog_core.models import (
    AttributeCreateChange,
    AttributeDefinition,
    AttributeEnumeration,
    DescriptionChange,
    EnumerationAddChange,
    EnumerationEditChange,
    TableDescription,
    TableTag,
    TagAddChange,
    TagRemoveChange,
    parse_proposed_change,
)
from catalog_core.warehouse.sql import quote_literal, split_object_name

if TYPE_CHECKING:
    from catalog_core.auth.models import Principal
    from catalog_core.models import ChangeRequest
    from catalog_core.warehouse.executor import QueryExecutor

    from catalog_governance.repository.protocols import CatalogRepository


@dataclass(frozen=True)
class ApplyContext:
    catalog: CatalogRepository
    executor: QueryExecutor
    principal: Principal
    request: ChangeRequest


Applier = Callable[[Any, ApplyContext], Awaitable[None]]

APPLIERS: dict[ChangeRequestType, Applier] = {}


def applies(request_type: ChangeRequestType) -> Callable[[Applier], Applier]:
    def register(func: Applier) -> Applier:
        APPLIERS[request_type] = func
        return func

    return register


async def apply_change(request: ChangeRequest, context: ApplyContext) -> None:
    """Validate the request's payload and run its registered applier."""
    applier = APPLIERS.get(request.request_type)
    if applier is None:
        raise ChangeApplicationError(f"No applier registered for {request.request_type}")
    change = parse_proposed_change(request.request_type, request.proposed_change)
    await applier(change, context)


@applies(ChangeRequestType.DESCRIPTION)
async def apply_description(change: DescriptionChange, ctx: ApplyContext) -> None:
    await ctx.catalog.upsert_description(
        TableDescription(
            table_full_name=ctx.request.target_object,
            user_description=change.description,
            last_updated_by=ctx.principal.actor,
        )
    )


@applies(ChangeRequestType.TAG_ADD)
async def apply_tag_add(change: TagAddChange, ctx: ApplyContext) -> None:
    await ctx.catalog.add_tag(
        TableTag(
            table_full_name=ctx.request.target_object,
            tag_name=change.tag_name,
            created_by=ctx.request.requester,
        )
    )


@applies(ChangeRequestType.TAG_REMOVE)
async def apply_tag_remove(change: TagRemoveChange, ctx: ApplyContext) -> None:
    if not await ctx.catalog.remove_tag(change.tag_id):
        raise ChangeApplicationError(f"Tag {change.tag_name} ({change.tag_id}) no longer exists", status_code=409)


@applies(ChangeRequestType.ATTRIBUTE_CREATE)
async def apply_attribute_create(change: AttributeCreateChange, ctx: ApplyContext) -> None:
    creator = ctx.request.requester
    await ctx.catalog.create_attribute(
        AttributeDefinition(
            attribute_name=change.attribute_name,
            display_name=change.display_name,
            description=change.description,
            created_by=creator,
        ),
        [
            AttributeEnumeration(
                attribute_name=change.attribute_name,
                value_code=value.value_code,
                value_description=value.value_description,
                sort_order=value.sort_order,
                created_by=creator,
            )
            for value in change.enumerations
        ],
    )


@applies(ChangeRequestType.ATTRIBUTE_EDIT)
async def apply_attribute_edit(change: DescriptionChange, ctx: ApplyContext) -> None:
    if not await ctx.catalog.update_attribute_description(ctx.request.target_object, change.description):
        raise ChangeApplicationError(f"Attribute {ctx.request.target_object} does not exist", status_code=409)


@applies(ChangeRequestType.ENUMERATION_ADD)
async def apply_enumeration_add(change: EnumerationAddChange, ctx: ApplyContext) -> None:
    await ctx.catalog.add_enumeration(
        AttributeEnumeration(
            attribute_name=ctx.request.target_object,
            value_code=change.value_code,
            value_description=change.value_description,
            sort_order=change.sort_order,
            created_by=ctx.request.requester,
        )
    )


@applies(ChangeRequestType.ENUMERATION_EDIT)
async def apply_enumeration_edit(change: EnumerationEditChange, ctx: ApplyContext) -> None:
    updated = await ctx.catalog.update_enumeration(
        change.enumeration_id,
        value_description=change.value_description,
        updated_by=ctx.principal.actor,
    )
    if not updated:
        raise ChangeApplicationError(f"Enumeration {change.enumeration_id} does not exist", status_code=409)


@applies(ChangeRequestType.COLUMN_DESCRIPTION)
async def apply_column_description(change: DescriptionChange, ctx: ApplyContext) -> None:
    *table_parts, column = split_object_name(ctx.request.target_object, parts=4)
    table = ".".join(table_parts)
    statement = f"ALTER TABLE {table} MODIFY COLUMN {column} COMMENT {quote_literal(change.description)}"
    await ctx.executor.execute(statement, ctx.principal)
