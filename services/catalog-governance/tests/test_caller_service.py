"""Tests for caller context: permissions and advisory role selection."""

from __future__ import annotations

import pytest
from catalog_core.enums import PermissionKind
from catalog_core.exceptions import PermissionDeniedError
from catalog_governance.domain.caller_service import AVAILABLE_ROLES_STATEMENT, CallerService


class TestCallerService:
    async def test_permissions_for_current_role(self, caller_service: CallerService, grant, make_principal) -> None:
        await grant("STEWARD", PermissionKind.APP_ACCESS, PermissionKind.APPROVE_GLOSSARY)
        permissions = await caller_service.permissions(make_principal(role="steward"))
        assert permissions[PermissionKind.APPROVE_GLOSSARY] is True
        assert permissions[PermissionKind.APPROVE_DATA_ACCESS] is False

    async def test_available_roles_parses_json_list(self, caller_service: CallerService, executor, make_principal) -> None:
        executor.results["CURRENT_AVAILABLE_ROLES"] = [
            {"ROLES": '["steward", "ANALYST", "PUBLIC"]', "DEFAULT_ROLE": "ANALYST"}
        ]
        principal = make_principal(role="ANALYST", token="alice-token")

        selection = await caller_service.available_roles(principal)

        assert selection.roles == ["ANALYST", "PUBLIC", "STEWARD"]
        assert selection.default_role == "ANALYST"
        assert selection.current_role == "ANALYST"
        assert executor.sql == [AVAILABLE_ROLES_STATEMENT]

    async def test_available_roles_without_rows(self, caller_service: CallerService, make_principal) -> None:
        selection = await caller_service.available_roles(make_principal(role="ANALYST"))
        assert selection.roles == []
        assert selection.default_role is None

    async def test_change_role_to_granted_role(self, caller_service: CallerService, executor, make_principal) -> None:
        executor.results["CURRENT_AVAILABLE_ROLES"] = [{"ROLES": ["ANALYST", "STEWARD"], "DEFAULT_ROLE": "ANALYST"}]
        assert await caller_service.change_role(make_principal(role="ANALYST"), "steward") == "STEWARD"

    async def test_change_role_to_ungranted_role(self, caller_service: CallerService, executor, make_principal) -> None:
        executor.results["CURRENT_AVAILABLE_ROLES"] = [{"ROLES": '["ANALYST"]', "DEFAULT_ROLE": "ANALYST"}]
        with pytest.raises(PermissionDeniedError, match="ACCOUNTADMIN"):
            await caller_service.change_role(make_principal(role="ANALYST"), "ACCOUNTADMIN")
