"""Trace context helpers."""

from __future__ import annotations

from opentelemetry import trace


def get_current_trace_id() -> str:
    """Return the current trace ID as a hex string, or empty if none."""
    ctx = trace.get_current_span().get_span_context()
    if ctx.trace_id == 0:
        return ""
    return format(ctx.trace_id, "032x")
