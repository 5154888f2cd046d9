"""OpenTelemetry metrics instrumentation helpers."""

from __future__ import annotations

import logging

from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from app.core.config import settings

_logger = logging.getLogger(__name__)

_metrics_enabled = False
_meter = None
_provider: MeterProvider | None = None
_event_counter = None
_verdict_counter = None
_dispatch_counter = None
_poll_attempts_hist = None


def configure_metrics() -> None:
    """Initialise the metrics provider if enabled via settings."""

    global _metrics_enabled, _meter, _provider, _event_counter, _verdict_counter, _dispatch_counter, _poll_attempts_hist

    if not settings.otel_enabled:
        return
    if _metrics_enabled:
        return

    exporter_name = settings.otel_exporter.lower().strip()
    metric_readers = []

    if exporter_name == "console":
        metric_readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))
    elif exporter_name == "prometheus":
        try:
            from opentelemetry.exporter.prometheus import PrometheusMetricReader  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "Prometheus exporter selected but opentelemetry-exporter-prometheus is not installed."
            ) from exc
        metric_readers.append(PrometheusMetricReader())
    elif exporter_name == "otlp":
        try:
            from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "OTLP exporter selected but opentelemetry-exporter-otlp is not installed."
            ) from exc
        endpoint = settings.otel_otlp_endpoint
        exporter = OTLPMetricExporter(endpoint=endpoint) if endpoint else OTLPMetricExporter()
        metric_readers.append(PeriodicExportingMetricReader(exporter))
    else:
        _logger.warning("Unsupported OTEL exporter '%s'; defaulting to console", exporter_name)
        metric_readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))

    _provider = MeterProvider(metric_readers=metric_readers, resource=Resource.create({"service.name": "nagbot"}))
    metrics.set_meter_provider(_provider)
    _meter = metrics.get_meter("nagbot")
    _event_counter = _meter.create_counter(
        name="nagbot.events",
        unit="1",
        description="Host events received, by event name and action",
    )
    _verdict_counter = _meter.create_counter(
        name="nagbot.verdicts",
        unit="1",
        description="Status checks completed, by verdict",
    )
    _dispatch_counter = _meter.create_counter(
        name="nagbot.dispatches",
        unit="1",
        description="Workflow dispatches attempted, by outcome",
    )
    _poll_attempts_hist = _meter.create_histogram(
        name="nagbot.dispatch.poll_attempts",
        unit="1",
        description="Polling attempts needed to discover a dispatched run",
    )
    _metrics_enabled = True


def increment_events(event_name: str, action: str) -> None:
    if _metrics_enabled and _event_counter is not None:
        _event_counter.add(1, {"event": event_name, "action": action})


def record_verdict(verdict: str) -> None:
    if _metrics_enabled and _verdict_counter is not None:
        _verdict_counter.add(1, {"verdict": verdict})


def record_dispatch(outcome: str, poll_attempts: int) -> None:
    if _metrics_enabled and _dispatch_counter is not None:
        _dispatch_counter.add(1, {"outcome": outcome})
    if _metrics_enabled and _poll_attempts_hist is not None and poll_attempts:
        _poll_attempts_hist.record(poll_attempts)


def collect_prometheus_metrics() -> tuple[bytes, str]:
    """Render the default Prometheus registry populated by the OTel reader."""

    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

    return generate_latest(), CONTENT_TYPE_LATEST


def shutdown_metrics() -> None:
    global _metrics_enabled, _provider
    if _metrics_enabled and _provider is not None:
        try:
            _provider.shutdown()
        except Exception:  # pragma: no cover - defensive
            _logger.exception("Failed to shutdown metrics provider")
        finally:
            _metrics_enabled = False
            _provider = None
