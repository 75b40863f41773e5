"""Responsible-party lookup from the warehouse contact directory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from catalog_core.exceptions import QueryExecutionError
from catalog_core.warehouse.sql import quote_literal

if TYPE_CHECKING:
    from catalog_core.auth.models import Principal
    from catalog_core.warehouse.executor import QueryExecutor

logger = logging.getLogger(__name__)

RESPONSIBLE_PURPOSES = frozenset({"OWNER", "STEWARD"})


class ContactDirectory:
    def __init__(self, executor: QueryExecutor) -> None:
        self._executor = executor

    async def responsible_party(self, table_full_name: str, principal: Principal) -> str | None:
        """Return the first owner or steward contact for a table, if any.

        Lookup failures are expected (no contacts, no privilege) and leave the
        request unassigned.
        """
        statement = (
            "SELECT PURPOSE, METHOD, INHERITED "
            f"FROM TABLE(SNOWFLAKE.CORE.GET_CONTACTS({quote_literal(table_full_name)}))"
        )
        try:
            rows = await self._executor.execute(statement, principal)
        except QueryExecutionError as e:
            logger.info("No contacts found for %s, leaving unassigned: %s", table_full_name, e)
            return None

        for row in rows:
            if str(row.get("PURPOSE", "")).upper() in RESPONSIBLE_PURPOSES and row.get("METHOD"):
                return str(row["METHOD"])
        return None
