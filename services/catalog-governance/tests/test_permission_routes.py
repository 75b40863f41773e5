"""Tests for role permission and service-access API routes."""

from __future__ import annotations

import pytest
from catalog_core.enums import PermissionKind
from fastapi import status
from httpx import AsyncClient


@pytest.fixture
async def admin_role(grant) -> None:
    await grant("ADMIN", PermissionKind.APP_ACCESS, PermissionKind.MANAGE_ROLES)


@pytest.mark.asyncio
@pytest.mark.usefixtures("admin_role")
class TestRolePermissionRoutes:
    """Tests for /api/v1/role-permissions endpoints."""

    async def test_grant_list_revoke(self, client: AsyncClient, headers) -> None:
        admin = headers(user="root", role="ADMIN")

        created = await client.post(
            "/api/v1/role-permissions",
            json={"role": "steward", "permission_kind": "APPROVE_GLOSSARY"},
            headers=admin,
        )
        assert created.status_code == status.HTTP_201_CREATED
        assert created.json()["permission"]["role"] == "STEWARD"
        assert created.json()["permission"]["granted_by"] == "root"

        listed = await client.get("/api/v1/role-permissions", params={"role": "STEWARD"}, headers=admin)
        assert [p["permission_kind"] for p in listed.json()["permissions"]] == ["APPROVE_GLOSSARY"]

        revoked = await client.delete("/api/v1/role-permissions/STEWARD/APPROVE_GLOSSARY", headers=admin)
        assert revoked.status_code == status.HTTP_200_OK
        assert revoked.json()["success"] is True

        missing = await client.delete("/api/v1/role-permissions/STEWARD/APPROVE_GLOSSARY", headers=admin)
        assert missing.status_code == status.HTTP_404_NOT_FOUND

    async def test_duplicate_grant_conflicts(self, client: AsyncClient, headers) -> None:
        admin = headers(user="root", role="ADMIN")
        body = {"role": "STEWARD", "permission_kind": "APP_ACCESS"}
        await client.post("/api/v1/role-permissions", json=body, headers=admin)
        response = await client.post("/api/v1/role-permissions", json=body, headers=admin)
        assert response.status_code == status.HTTP_409_CONFLICT

    async def test_unknown_permission_kind(self, client: AsyncClient, headers) -> None:
        response = await client.post(
            "/api/v1/role-permissions",
            json={"role": "STEWARD", "permission_kind": "SUPERUSER"},
            headers=headers(user="root", role="ADMIN"),
        )
        assert response.status_code == 422

    async def test_requires_manage_roles(self, client: AsyncClient, headers) -> None:
        response = await client.get("/api/v1/role-permissions", headers=headers(role="ANALYST"))
        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.asyncio
@pytest.mark.usefixtures("admin_role")
class TestServiceAccessRoutes:
    """Tests for /api/v1/service-access endpoints."""

    async def test_grant_all_steps(self, client: AsyncClient, headers, executor) -> None:
        response = await client.post("/api/v1/service-access/analyst", headers=headers(user="root", role="ADMIN"))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "full"
        assert data["role"] == "ANALYST"
        assert len(data["succeeded"]) == 7
        assert len(executor.sql) == 7

    async def test_partial_grant(self, client: AsyncClient, headers, executor) -> None:
        executor.failures["BIND SERVICE ENDPOINT"] = "Insufficient privileges"

        response = await client.post("/api/v1/service-access/ANALYST", headers=headers(user="root", role="ADMIN"))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is False
        assert data["status"] == "partial"
        assert len(data["succeeded"]) == 6
        assert [f["step"] for f in data["failed"]] == ["endpoint_binding"]

    async def test_revoke(self, client: AsyncClient, headers, executor) -> None:
        response = await client.delete("/api/v1/service-access/ANALYST", headers=headers(user="root", role="ADMIN"))
        assert response.json()["action"] == "revoke"
        assert all(s.startswith("REVOKE ") for s in executor.sql)

    async def test_requires_manage_roles(self, client: AsyncClient, headers, executor) -> None:
        response = await client.post("/api/v1/service-access/ANALYST", headers=headers(role="ANALYST"))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert executor.sql == []
