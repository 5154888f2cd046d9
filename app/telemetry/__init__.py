"""Telemetry utilities for exporting bot events and metrics."""

from .event_sink import EventSink, FileEventSink, HttpEventSink, NullEventSink, sink_from_settings
from .metrics import (
    configure_metrics,
    increment_events,
    record_verdict,
    record_dispatch,
    shutdown_metrics,
    collect_prometheus_metrics,
)

__all__ = [
    "EventSink",
    "FileEventSink",
    "HttpEventSink",
    "NullEventSink",
    "sink_from_settings",
    "configure_metrics",
    "increment_events",
    "record_verdict",
    "record_dispatch",
    "shutdown_metrics",
    "collect_prometheus_metrics",
]
