"""OpenTelemetry integration for the catalog governance service."""

from catalog_core.telemetry.setup import init_telemetry, instrument_store, shutdown_telemetry

__all__ = ["init_telemetry", "instrument_store", "shutdown_telemetry"]
