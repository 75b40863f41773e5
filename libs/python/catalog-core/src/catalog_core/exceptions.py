"""Catalog governance exceptions.

Every error carries the HTTP status code the API layer answers with.
"""

from __future__ import annotations


class CatalogError(Exception):
    """Base exception for all catalog governance errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


# ─── Identity ────────────────────────────────────────────


class IdentityCompositionError(CatalogError):
    """The service credential could not be read; the call must fail closed."""

    status_code = 500


# ─── Store ───────────────────────────────────────────────


class StoreUnavailableError(CatalogError):
    """The metadata store could not be reached."""

    status_code = 503


class ObjectNotFoundError(CatalogError):
    """The store reported the queried object does not exist."""

    status_code = 404


# ─── Warehouse ───────────────────────────────────────────


class QueryExecutionError(CatalogError):
    """A statement sent to the warehouse failed."""

    status_code = 502

    def __init__(self, message: str, status_code: int | None = None, sql_state: str | None = None) -> None:
        super().__init__(message, status_code)
        self.sql_state = sql_state


class WarehouseUnavailableError(QueryExecutionError):
    """The warehouse endpoint timed out or refused the connection."""

    status_code = 503


# ─── Workflow ────────────────────────────────────────────


class PermissionDeniedError(CatalogError):
    status_code = 403


class InvalidPayloadError(CatalogError, ValueError):
    status_code = 400


class RequestNotFoundError(CatalogError):
    status_code = 404


class AlreadyProcessedError(CatalogError):
    """A guarded transition matched no row in the expected state."""

    status_code = 409

    def __init__(self, message: str = "Request not found or already processed") -> None:
        super().__init__(message)


class NotRequesterError(CatalogError):
    status_code = 403


class DuplicatePermissionError(CatalogError):
    status_code = 409


class ChangeApplicationError(CatalogError):
    """Applying an approved change to the catalog failed; the request stays pending."""

    status_code = 500


class InvalidTransitionError(CatalogError):
    """The request is not in a state the operation accepts."""

    status_code = 409
