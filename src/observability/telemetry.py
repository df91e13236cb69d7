"""OpenTelemetry tracing and pipeline metrics.

``Telemetry`` owns its tracer and meter providers instead of installing them
process-wide, so each application context (and each test) gets its own.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from opentelemetry import trace
from opentelemetry.metrics import Meter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import Span, Status, StatusCode

from config import ObservabilityConfig

logger = logging.getLogger(__name__)

SERVICE_VERSION_VALUE = "0.1.0"


class PipelineMetrics:
    """Counters and histograms for the capture pipeline."""

    def __init__(self, meter: Meter) -> None:
        """Initialize metric instruments on the provided meter."""
        self.plans_executed = meter.create_counter(
            "assistant.plans.executed",
            description="Plans executed, by final run state",
            unit="1",
        )
        self.actions = meter.create_counter(
            "assistant.actions",
            description="Plan actions, by type and outcome status",
            unit="1",
        )
        self.execution_duration = meter.create_histogram(
            "assistant.execution.duration",
            description="Plan execution latency",
            unit="ms",
        )
        self.verifications = meter.create_counter(
            "assistant.verifications",
            description="Verification passes, by status",
            unit="1",
        )
        self.snapshots = meter.create_counter(
            "assistant.snapshots",
            description="Evaluation snapshots, by outcome",
            unit="1",
        )

    def record_plan(self, state: str, duration_ms: float) -> None:
        """Record one executed plan."""
        self.plans_executed.add(1, {"state": state})
        self.execution_duration.record(duration_ms, {"state": state})

    def record_action(self, action_type: str, status: str) -> None:
        """Record the outcome of one action."""
        self.actions.add(1, {"action_type": action_type, "status": status})

    def record_verification(self, status: str) -> None:
        """Record one verification pass."""
        self.verifications.add(1, {"status": status})

    def record_snapshot(self, outcome: str) -> None:
        """Record one snapshot attempt."""
        self.snapshots.add(1, {"outcome": outcome})


class Telemetry:
    """Tracer and metrics for one application context.

    When tracing is disabled the tracer is a no-op, so spans carry an invalid
    context and no trace id is available as evidence.
    """

    def __init__(
        self,
        *,
        tracer_provider: trace.TracerProvider,
        meter_provider: MeterProvider,
        tracing_enabled: bool,
        service_name: str = "assistant",
    ) -> None:
        """Initialize telemetry from already-built providers."""
        self.tracing_enabled = tracing_enabled
        self._tracer_provider = tracer_provider
        self._meter_provider = meter_provider
        self.tracer = tracer_provider.get_tracer(service_name, SERVICE_VERSION_VALUE)
        meter = meter_provider.get_meter(service_name, SERVICE_VERSION_VALUE)
        self.metrics = PipelineMetrics(meter)

    @classmethod
    def from_config(
        cls,
        config: ObservabilityConfig,
        *,
        span_exporter: SpanExporter | None = None,
        metric_readers: list[MetricReader] | None = None,
    ) -> "Telemetry":
        """Build telemetry from configuration.

        Args:
            config: Observability settings.
            span_exporter: Extra exporter, flushed synchronously (used by tests).
            metric_readers: Extra metric readers (used by tests).
        """
        resource = Resource.create(
            {SERVICE_NAME: config.service_name, SERVICE_VERSION: SERVICE_VERSION_VALUE}
        )
        readers = list(metric_readers or [])

        tracer_provider: trace.TracerProvider
        if config.tracing_enabled:
            sdk_provider = TracerProvider(resource=resource)
            if config.otlp_endpoint:
                from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
                    OTLPMetricExporter,
                )
                from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
                    OTLPSpanExporter,
                )

                span_exporter_otlp = OTLPSpanExporter(endpoint=config.otlp_endpoint, insecure=True)
                sdk_provider.add_span_processor(BatchSpanProcessor(span_exporter_otlp))
                readers.append(
                    PeriodicExportingMetricReader(
                        OTLPMetricExporter(endpoint=config.otlp_endpoint, insecure=True),
                        export_interval_millis=30000,
                    )
                )
            if config.console_exporter:
                sdk_provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
            if span_exporter is not None:
                sdk_provider.add_span_processor(SimpleSpanProcessor(span_exporter))
            tracer_provider = sdk_provider
            logger.info(
                "Tracing enabled: otlp=%s console=%s",
                config.otlp_endpoint or "off",
                config.console_exporter,
            )
        else:
            tracer_provider = trace.NoOpTracerProvider()
            logger.debug("Tracing disabled")

        meter_provider = MeterProvider(resource=resource, metric_readers=readers)
        return cls(
            tracer_provider=tracer_provider,
            meter_provider=meter_provider,
            tracing_enabled=config.tracing_enabled,
            service_name=config.service_name,
        )

    @contextmanager
    def span(self, name: str, attributes: Mapping[str, Any] | None = None) -> Iterator[Span]:
        """Run a block inside a span, marking it as errored if the block raises."""
        with self.tracer.start_as_current_span(
            name,
            attributes=dict(attributes or {}),
            record_exception=True,
            set_status_on_exception=False,
        ) as span:
            try:
                yield span
            except Exception as exc:
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                raise

    @staticmethod
    def trace_id_of(span: Span) -> str | None:
        """Return the hex trace id of a span, or None when it is not recording."""
        context = span.get_span_context()
        if not context.is_valid:
            return None
        return format(context.trace_id, "032x")

    def shutdown(self) -> None:
        """Flush and shut down the owned providers."""
        if isinstance(self._tracer_provider, TracerProvider):
            self._tracer_provider.shutdown()
        self._meter_provider.shutdown()
