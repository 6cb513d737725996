"""Telemetry and observability for the elicitation engine.

Usage:
    from elicitor.telemetry import init_telemetry, elicitation_round_span

    # Initialize once at startup
    init_telemetry()

Environment Variables:
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    OTEL_EXPORTER_OTLP_ENDPOINT: OTLP collector endpoint (enables OTLP export)
    OTEL_SERVICE_NAME: Service name for traces - default: elicitor
    OTEL_TRACES_EXPORTER: Exporter type (otlp, console, none) - default: none
    OTEL_CONSOLE_EXPORT: Export spans to stdout - default: false
    OTEL_SDK_DISABLED: Disable all tracing - default: false
"""

from .config import (
    TelemetryConfig,
    init_telemetry,
    is_telemetry_enabled,
    shutdown_telemetry,
)
from .spans import (
    confirmation_span,
    elicitation_round_span,
    get_tracer,
    record_degraded,
    record_error,
    set_score_attributes,
)

__all__ = [
    # Configuration
    "TelemetryConfig",
    "init_telemetry",
    "shutdown_telemetry",
    "is_telemetry_enabled",
    # Spans
    "get_tracer",
    "elicitation_round_span",
    "confirmation_span",
    "set_score_attributes",
    "record_degraded",
    "record_error",
]
