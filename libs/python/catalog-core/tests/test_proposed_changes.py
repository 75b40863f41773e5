"""Tests for domain models and proposed change payload validation."""

from __future__ import annotations

import uuid
from datetime import date

import pytest
from pydantic import ValidationError

from catalog_core.enums import AccessType, ChangeRequestStatus, ChangeRequestType
from catalog_core.exceptions import InvalidPayloadError
from catalog_core.models import (
    PROPOSED_CHANGE_MODELS,
    AccessRequest,
    AttributeCreateChange,
    ChangeRequest,
    DescriptionChange,
    EnumerationEditChange,
    TagRemoveChange,
    parse_proposed_change,
)


class TestParseProposedChange:
    def test_every_type_has_a_payload_model(self) -> None:
        assert set(PROPOSED_CHANGE_MODELS) == set(ChangeRequestType)

    def test_description(self) -> None:
        change = parse_proposed_change(ChangeRequestType.DESCRIPTION, {"description": "Orders fact table"})
        assert isinstance(change, DescriptionChange)
        assert change.description == "Orders fact table"

    def test_column_description_uses_description_shape(self) -> None:
        change = parse_proposed_change(ChangeRequestType.COLUMN_DESCRIPTION, {"description": "Region code"})
        assert isinstance(change, DescriptionChange)

    def test_tag_remove(self) -> None:
        tag_id = uuid.uuid4()
        change = parse_proposed_change(ChangeRequestType.TAG_REMOVE, {"tag_id": str(tag_id), "tag_name": "pii"})
        assert isinstance(change, TagRemoveChange)
        assert change.tag_id == tag_id
        assert change.action == "remove"

    def test_attribute_create_defaults(self) -> None:
        change = parse_proposed_change(
            ChangeRequestType.ATTRIBUTE_CREATE,
            {"attribute_name": "tier", "display_name": "Tier", "enumerations": [{"value_code": "GOLD"}]},
        )
        assert isinstance(change, AttributeCreateChange)
        assert change.description == ""
        assert change.enumerations[0].sort_order == 999

    def test_enumeration_edit_rejects_wrong_action(self) -> None:
        with pytest.raises(InvalidPayloadError, match="action"):
            parse_proposed_change(
                ChangeRequestType.ENUMERATION_EDIT,
                {"action": "add", "enumeration_id": str(uuid.uuid4()), "value_description": "x"},
            )
        change = parse_proposed_change(
            ChangeRequestType.ENUMERATION_EDIT, {"enumeration_id": str(uuid.uuid4()), "value_description": "x"}
        )
        assert isinstance(change, EnumerationEditChange)

    def test_empty_payload(self) -> None:
        with pytest.raises(InvalidPayloadError, match="must not be empty"):
            parse_proposed_change(ChangeRequestType.TAG_ADD, {})

    def test_mismatched_payload_names_missing_fields(self) -> None:
        with pytest.raises(InvalidPayloadError, match="tag_name"):
            parse_proposed_change(ChangeRequestType.TAG_ADD, {"description": "x"})

    def test_invalid_payload_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_proposed_change(ChangeRequestType.TAG_REMOVE, {"tag_id": "not-a-uuid", "tag_name": "pii"})


class TestRequestModels:
    def test_change_request_defaults(self) -> None:
        request = ChangeRequest(
            request_type=ChangeRequestType.DESCRIPTION,
            target_object="DB.SCH.T1",
            requester="alice",
            justification="needed",
            proposed_change={"description": "x"},
        )
        assert request.status == ChangeRequestStatus.PENDING
        assert request.approver is None
        assert request.requested_at.tzinfo is not None

    def test_access_window_must_not_be_inverted(self) -> None:
        with pytest.raises(ValidationError, match="access_end_date"):
            AccessRequest(
                table_full_name="DB.SCH.T1",
                requester="alice",
                justification="analysis",
                access_start_date=date(2024, 2, 1),
                access_end_date=date(2024, 1, 1),
                access_type=AccessType.USER,
                grant_to_name="ALICE",
            )

    def test_single_day_window_is_allowed(self) -> None:
        request = AccessRequest(
            table_full_name="DB.SCH.T1",
            requester="alice",
            justification="analysis",
            access_start_date=date(2024, 1, 1),
            access_end_date=date(2024, 1, 1),
            access_type=AccessType.USER,
            grant_to_name="ALICE",
        )
        assert request.access_start_date == request.access_end_date
