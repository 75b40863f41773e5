"""Catalog Governance FastAPI application."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from catalog_core.auth.middleware import get_identity_settings
from catalog_core.db.engine import create_async_engine_factory, create_schema, get_async_session_factory
from catalog_core.settings import DatabaseSettings, OTelSettings, ServiceAccessSettings, WarehouseSettings
from catalog_core.telemetry import init_telemetry, instrument_store, shutdown_telemetry
from catalog_core.telemetry.context import get_current_trace_id
from catalog_core.telemetry.middleware import instrument_fastapi
from catalog_core.warehouse.executor import SqlApiExecutor
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog_governance.api.routes_access_requests import router as access_requests_router
from catalog_governance.api.routes_catalog import router as catalog_router
from catalog_governance.api.routes_change_requests import router as change_requests_router
from catalog_governance.api.routes_identity import router as identity_router
from catalog_governance.api.routes_permissions import router as permissions_router
from catalog_governance.domain.permission_service import PermissionService
from catalog_governance.repository.postgres import PgRolePermissionRepository

logger = logging.getLogger(__name__)


async def _bootstrap_admin(app: FastAPI) -> None:
    settings = get_identity_settings()
    if not settings.bootstrap_admin_role:
        return
    async with app.state.session_factory() as session, session.begin():
        service = PermissionService(repo=PgRolePermissionRepository(session))
        await service.bootstrap(settings.bootstrap_admin_role, granted_by=settings.service_actor)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:  # pragma: no cover
    """Manage application lifecycle: OTel + DB engine + warehouse client startup/shutdown."""
    init_telemetry(OTelSettings())

    db_settings = DatabaseSettings()
    engine = create_async_engine_factory(db_settings)
    instrument_store(engine)
    if db_settings.create_schema:
        await create_schema(engine)
    app.state.session_factory = get_async_session_factory(engine)
    await _bootstrap_admin(app)

    executor = SqlApiExecutor(WarehouseSettings())
    app.state.executor = executor
    app.state.service_access_settings = ServiceAccessSettings()

    yield

    await executor.aclose()
    await engine.dispose()
    shutdown_telemetry()


app = FastAPI(
    title="Data Catalog Governance",
    version="0.1.0",
    lifespan=lifespan,
)

instrument_fastapi(app)

app.include_router(identity_router)
app.include_router(change_requests_router)
app.include_router(catalog_router)
app.include_router(access_requests_router)
app.include_router(permissions_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": "Invalid request", "details": errors},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s (trace %s)", request.method, request.url.path, get_current_trace_id())
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


@app.get("/health")
async def health() -> dict[str, str | bool]:
    return {"success": True, "status": "ok"}


@app.get("/ready")
async def ready() -> dict[str, str | bool]:
    return {"success": True, "status": "ready"}
