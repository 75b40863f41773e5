"""Snowflake SQL API statement executor.

Statements run under the principal's delegated credential, so the warehouse
attributes and authorizes them as the caller whenever a caller token was
forwarded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from catalog_core.exceptions import QueryExecutionError, WarehouseUnavailableError
from catalog_core.settings import WarehouseSettings

if TYPE_CHECKING:
    from catalog_core.auth.models import Principal

logger = logging.getLogger(__name__)

STATEMENTS_PATH = "/api/v2/statements"
_RETRYABLE_STATUS = frozenset({408, 429, 503, 504})


class QueryExecutor(Protocol):
    async def execute(self, statement: str, principal: Principal) -> list[dict[str, Any]]: ...


def _rows(row_type: list[dict[str, Any]], data: list[list[Any]]) -> list[dict[str, Any]]:
    names = [column["name"] for column in row_type]
    return [dict(zip(names, row, strict=False)) for row in data]


class SqlApiExecutor:
    """Runs statements through the Snowflake SQL REST API."""

    def __init__(self, settings: WarehouseSettings | None = None, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings or WarehouseSettings()
        self._client = client or httpx.AsyncClient(timeout=self._settings.http_timeout)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, principal: Principal) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {principal.delegated_credential.get_secret_value()}",
            "X-Snowflake-Authorization-Token-Type": "OAUTH",
            "Accept": "application/json",
        }

    def _body(self, statement: str) -> dict[str, Any]:
        body: dict[str, Any] = {"statement": statement, "timeout": self._settings.statement_timeout}
        if self._settings.warehouse:
            body["warehouse"] = self._settings.warehouse
        if self._settings.database:
            body["database"] = self._settings.database
        if self._settings.schema_name:
            body["schema"] = self._settings.schema_name
        return body

    async def execute(self, statement: str, principal: Principal) -> list[dict[str, Any]]:
        """Execute one statement and return its rows as dicts keyed by column name."""
        url = f"{self._settings.base_url}{STATEMENTS_PATH}"
        headers = self._headers(principal)
        deadline = self._settings.statement_timeout + self._settings.http_timeout

        try:
            async with asyncio.timeout(deadline):
                response = await self._client.post(url, json=self._body(statement), headers=headers)
                payload = await self._await_result(response, url, headers)
                return await self._collect_rows(payload, url, headers)
        except TimeoutError as e:
            raise WarehouseUnavailableError(f"Statement did not finish within {deadline}s") from e
        except httpx.TimeoutException as e:
            raise WarehouseUnavailableError("Warehouse request timed out") from e
        except httpx.TransportError as e:
            raise WarehouseUnavailableError(f"Warehouse unreachable: {e}") from e

    async def _await_result(self, response: httpx.Response, url: str, headers: dict[str, str]) -> dict[str, Any]:
        while response.status_code == 202:
            handle = response.json()["statementHandle"]
            await asyncio.sleep(self._settings.poll_interval)
            response = await self._client.get(f"{url}/{handle}", headers=headers)
        self._raise_for_status(response)
        return response.json()

    async def _collect_rows(self, payload: dict[str, Any], url: str, headers: dict[str, str]) -> list[dict[str, Any]]:
        metadata = payload.get("resultSetMetaData", {})
        row_type = metadata.get("rowType", [])
        rows = _rows(row_type, payload.get("data", []))

        partitions = metadata.get("partitionInfo", [])
        for index in range(1, len(partitions)):
            response = await self._client.get(
                f"{url}/{payload['statementHandle']}",
                params={"partition": index},
                headers=headers,
            )
            self._raise_for_status(response)
            rows.extend(_rows(row_type, response.json().get("data", [])))
        return rows

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        try:
            detail = response.json()
        except ValueError:
            detail = {}
        message = detail.get("message") or response.text or f"HTTP {response.status_code}"
        sql_state = detail.get("sqlState")
        logger.warning("Statement failed (%s, sqlState=%s): %s", response.status_code, sql_state, message)
        if response.status_code in _RETRYABLE_STATUS:
            raise WarehouseUnavailableError(message, sql_state=sql_state)
        raise QueryExecutionError(message, sql_state=sql_state)
