"""Statement execution against the Snowflake warehouse."""

from catalog_core.warehouse.executor import QueryExecutor, SqlApiExecutor

__all__ = ["QueryExecutor", "SqlApiExecutor"]
