"""Tests for the SQL API executor against a mocked HTTP transport."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from catalog_core.auth.identity import compose_principal
from catalog_core.exceptions import QueryExecutionError, WarehouseUnavailableError
from catalog_core.settings import IdentitySettings, WarehouseSettings
from catalog_core.warehouse.executor import SqlApiExecutor

STATEMENTS_URL = "https://acme.snowflakecomputing.com/api/v2/statements"

ROW_TYPE = [{"name": "ROLES"}, {"name": "DEFAULT_ROLE"}]


@pytest.fixture
def principal():
    headers = {"sf-context-current-user": "alice", "sf-context-current-user-token": "abc"}
    return compose_principal(headers, "svc", IdentitySettings())


def _executor(handler: Callable[[httpx.Request], httpx.Response]) -> SqlApiExecutor:
    settings = WarehouseSettings(account="acme", host="", database="", schema_name="", poll_interval=0.0)
    return SqlApiExecutor(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _result(data: list[list[str]], partitions: int = 1) -> dict:
    return {
        "statementHandle": "h-1",
        "resultSetMetaData": {"rowType": ROW_TYPE, "partitionInfo": [{"rowCount": 1}] * partitions},
        "data": data,
    }


class TestSqlApiExecutor:
    async def test_runs_statement_as_delegated_caller(self, principal) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_result([['["ANALYST"]', "ANALYST"]]))

        rows = await _executor(handler).execute("SELECT CURRENT_AVAILABLE_ROLES()", principal)

        assert rows == [{"ROLES": '["ANALYST"]', "DEFAULT_ROLE": "ANALYST"}]
        (request,) = seen
        assert str(request.url) == STATEMENTS_URL
        assert request.headers["Authorization"] == "Bearer svc.abc"
        assert request.headers["X-Snowflake-Authorization-Token-Type"] == "OAUTH"
        body = json.loads(request.content)
        assert body["statement"] == "SELECT CURRENT_AVAILABLE_ROLES()"
        assert body["warehouse"] == "COMPUTE_WH"
        assert "database" not in body

    async def test_polls_until_complete(self, principal) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(202, json={"statementHandle": "h-1"})
            assert request.url.path == "/api/v2/statements/h-1"
            return httpx.Response(200, json=_result([["[]", "PUBLIC"]]))

        rows = await _executor(handler).execute("SELECT 1", principal)
        assert rows[0]["DEFAULT_ROLE"] == "PUBLIC"

    async def test_fetches_remaining_partitions(self, principal) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(200, json=_result([["a", "A"]], partitions=2))
            assert request.url.params["partition"] == "1"
            return httpx.Response(200, json={"data": [["b", "B"]]})

        rows = await _executor(handler).execute("SELECT 1", principal)
        assert [r["ROLES"] for r in rows] == ["a", "b"]

    async def test_statement_error(self, principal) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                422,
                json={"message": "Insufficient privileges to operate on table 'T1'", "sqlState": "42501"},
            )

        with pytest.raises(QueryExecutionError, match="Insufficient privileges") as exc_info:
            await _executor(handler).execute("GRANT SELECT ON TABLE DB.SCH.T1 TO ROLE R", principal)
        assert exc_info.value.sql_state == "42501"
        assert not isinstance(exc_info.value, WarehouseUnavailableError)

    async def test_service_unavailable(self, principal) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="overloaded")

        with pytest.raises(WarehouseUnavailableError, match="overloaded"):
            await _executor(handler).execute("SELECT 1", principal)

    async def test_connection_failure(self, principal) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(WarehouseUnavailableError, match="unreachable"):
            await _executor(handler).execute("SELECT 1", principal)

    async def test_injected_client_is_not_closed(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        executor = SqlApiExecutor(WarehouseSettings(account="acme"), client=client)
        await executor.aclose()
        assert client.is_closed is False
        await client.aclose()


def test_base_url_prefers_host() -> None:
    assert WarehouseSettings(account="acme", host="").base_url == "https://acme.snowflakecomputing.com"
    assert WarehouseSettings(account="acme", host="internal.example").base_url == "https://internal.example"
