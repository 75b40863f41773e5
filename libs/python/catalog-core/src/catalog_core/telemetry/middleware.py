"""FastAPI OpenTelemetry instrumentation helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

if TYPE_CHECKING:
    from fastapi import FastAPI


def instrument_fastapi(app: FastAPI) -> None:
    """Instrument a FastAPI app with OpenTelemetry tracing.

    Health probes are excluded so they do not flood the trace backend.
    """
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,ready")
