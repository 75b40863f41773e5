"""OpenTelemetry providers for the governance service.

Traces and metrics go to one OTLP gRPC collector. Outbound warehouse calls
(httpx) and metadata store queries (SQLAlchemy) are instrumented only while
telemetry is enabled.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.propagate import set_global_textmap
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from catalog_core.settings import OTelSettings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

_tracer_provider: TracerProvider | None = None
_meter_provider: MeterProvider | None = None


def _build_tracer_provider(settings: OTelSettings, resource: Resource) -> TracerProvider:
    exporter = OTLPSpanExporter(endpoint=settings.exporter_otlp_endpoint, insecure=settings.insecure)
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def _build_meter_provider(settings: OTelSettings, resource: Resource) -> MeterProvider:
    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=settings.exporter_otlp_endpoint, insecure=settings.insecure),
        export_interval_millis=settings.metric_export_interval_ms,
    )
    return MeterProvider(resource=resource, metric_readers=[reader])


def telemetry_enabled() -> bool:
    return _tracer_provider is not None


def init_telemetry(settings: OTelSettings | None = None, *, service_version: str = "0.1.0") -> bool:
    """Install the tracer and meter providers. Returns False when disabled.

    Call once from the FastAPI lifespan; later calls are no-ops.
    """
    global _tracer_provider, _meter_provider

    if _tracer_provider is not None:
        return True

    settings = settings or OTelSettings()
    if not settings.enabled:
        logger.info("OTel telemetry disabled via OTEL_ENABLED=false")
        return False

    resource = Resource.create({SERVICE_NAME: settings.service_name, SERVICE_VERSION: service_version})
    _tracer_provider = _build_tracer_provider(settings, resource)
    _meter_provider = _build_meter_provider(settings, resource)
    trace.set_tracer_provider(_tracer_provider)
    metrics.set_meter_provider(_meter_provider)
    set_global_textmap(TraceContextTextMapPropagator())

    HTTPXClientInstrumentor().instrument()

    logger.info("OTel telemetry initialized for '%s' → %s", settings.service_name, settings.exporter_otlp_endpoint)
    return True


def instrument_store(engine: AsyncEngine) -> None:
    """Trace metadata store queries on ``engine`` when telemetry is on."""
    if not telemetry_enabled():
        return
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine, tracer_provider=_tracer_provider)


def shutdown_telemetry() -> None:
    """Flush and shut down OTel providers. Call at application shutdown."""
    global _tracer_provider, _meter_provider

    if _tracer_provider is not None:
        HTTPXClientInstrumentor().uninstrument()
        _tracer_provider.shutdown()
        _tracer_provider = None

    if _meter_provider is not None:
        _meter_provider.shutdown()
        _meter_provider = None
