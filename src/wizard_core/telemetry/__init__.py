"""OpenTelemetry integration for the wizard services."""

from wizard_core.telemetry.setup import init_telemetry, instrument_app, shutdown_telemetry

__all__ = ["init_telemetry", "instrument_app", "shutdown_telemetry"]
