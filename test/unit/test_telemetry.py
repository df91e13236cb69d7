"""Unit tests for tracing and pipeline metrics."""

from __future__ import annotations

import pytest
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from config import ObservabilityConfig
from observability.telemetry import Telemetry


def test_disabled_tracing_has_no_trace_id() -> None:
    """With tracing off, spans carry no trace id."""
    telemetry = Telemetry.from_config(ObservabilityConfig(tracing_enabled=False))

    with telemetry.span("capture.workflow") as span:
        trace_id = telemetry.trace_id_of(span)

    assert trace_id is None
    telemetry.shutdown()


def test_enabled_tracing_exports_spans() -> None:
    """With tracing on, spans are exported and expose a hex trace id."""
    exporter = InMemorySpanExporter()
    telemetry = Telemetry.from_config(
        ObservabilityConfig(tracing_enabled=True),
        span_exporter=exporter,
    )

    with telemetry.span("capture.workflow", {"assistant.trace_id": "trace-1"}) as span:
        trace_id = telemetry.trace_id_of(span)

    spans = exporter.get_finished_spans()
    assert len(spans) == 1
    assert spans[0].name == "capture.workflow"
    assert spans[0].attributes["assistant.trace_id"] == "trace-1"
    assert trace_id == format(spans[0].context.trace_id, "032x")
    assert len(trace_id) == 32
    telemetry.shutdown()


def test_span_marks_errors() -> None:
    """Exceptions inside a span set an error status and propagate."""
    exporter = InMemorySpanExporter()
    telemetry = Telemetry.from_config(
        ObservabilityConfig(tracing_enabled=True),
        span_exporter=exporter,
    )

    with pytest.raises(RuntimeError):
        with telemetry.span("capture.workflow"):
            raise RuntimeError("boom")

    assert exporter.get_finished_spans()[0].status.status_code == StatusCode.ERROR
    telemetry.shutdown()


def test_metrics_are_recorded() -> None:
    """Pipeline counters are emitted through the configured readers."""
    reader = InMemoryMetricReader()
    telemetry = Telemetry.from_config(ObservabilityConfig(), metric_readers=[reader])

    telemetry.metrics.record_action("task.create", "success")
    telemetry.metrics.record_plan("DONE", 12.5)
    telemetry.metrics.record_verification("failing")

    data = reader.get_metrics_data()
    names = {
        metric.name
        for resource_metrics in data.resource_metrics
        for scope_metrics in resource_metrics.scope_metrics
        for metric in scope_metrics.metrics
    }
    assert {
        "assistant.actions",
        "assistant.plans.executed",
        "assistant.execution.duration",
        "assistant.verifications",
    } <= names
    telemetry.shutdown()
