"""Tests for telemetry configuration and span helpers."""

import pytest

from elicitor.elicitation.completeness import CompletenessScore
from elicitor.telemetry import (
    TelemetryConfig,
    confirmation_span,
    elicitation_round_span,
    set_score_attributes,
)
from elicitor.telemetry.config import ExporterType

_OTEL_VARS = (
    "OTEL_TRACES_EXPORTER",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_CONSOLE_EXPORT",
    "OTEL_SDK_DISABLED",
    "OTEL_SERVICE_NAME",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _OTEL_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestTelemetryConfig:
    def test_defaults(self, clean_env):
        config = TelemetryConfig.from_env()
        assert config.traces_exporter is ExporterType.NONE
        assert config.service_name == "elicitor"
        assert config.log_level == "INFO"
        assert not config.otel_disabled

    def test_endpoint_implies_otlp(self, clean_env):
        clean_env.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317")
        config = TelemetryConfig.from_env()
        assert config.traces_exporter is ExporterType.OTLP
        assert config.otlp_endpoint == "http://collector:4317"

    def test_explicit_exporter_beats_endpoint(self, clean_env):
        clean_env.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://collector:4317")
        clean_env.setenv("OTEL_TRACES_EXPORTER", "none")
        assert TelemetryConfig.from_env().traces_exporter is ExporterType.NONE

    def test_console_flag(self, clean_env):
        clean_env.setenv("OTEL_CONSOLE_EXPORT", "yes")
        assert TelemetryConfig.from_env().traces_exporter is ExporterType.CONSOLE

    def test_unknown_exporter_falls_back(self, clean_env):
        clean_env.setenv("OTEL_TRACES_EXPORTER", "zipkin")
        assert TelemetryConfig.from_env().traces_exporter is ExporterType.NONE

    def test_disabled_and_level(self, clean_env):
        clean_env.setenv("OTEL_SDK_DISABLED", "true")
        clean_env.setenv("LOG_LEVEL", "debug")
        config = TelemetryConfig.from_env()
        assert config.otel_disabled
        assert config.log_level == "DEBUG"


class TestSpans:
    def test_round_span_accepts_score(self):
        with elicitation_round_span("s1", 1) as span:
            set_score_attributes(span, CompletenessScore(critical=1.0, important=0.5, optional=0.0))

    def test_errors_propagate_through_spans(self):
        with pytest.raises(RuntimeError, match="boom"):
            with confirmation_span("s1", "confirm"):
                raise RuntimeError("boom")
