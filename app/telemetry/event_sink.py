"""Event sink implementations for exporting bot activity."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Protocol

import requests

from app.core.config import settings


class EventSink(Protocol):
    """Abstract sink contract."""

    def publish(self, event: dict) -> None:  # pragma: no cover - interface
        ...

    def close(self) -> None:  # pragma: no cover - interface
        ...


class NullEventSink:
    """No-op sink used when telemetry is disabled."""

    def publish(self, event: dict) -> None:
        return None

    def close(self) -> None:
        return None


class FileEventSink:
    """Persists events to newline-delimited JSON for downstream ingestion."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def publish(self, event: dict) -> None:
        payload = json.dumps(event, separators=(",", ":"), sort_keys=True)
        with self._lock, self.path.open("a", encoding="utf-8") as handle:
            handle.write(payload)
            handle.write("\n")

    def close(self) -> None:
        return None


class HttpEventSink:
    """Posts batches of events as a JSON array to an HTTP collector."""

    def __init__(self, url: str, *, batch_size: int = 25, session: requests.Session | None = None) -> None:
        self._url = url
        self._batch_size = max(batch_size, 1)
        self._buffer: list[dict] = []
        self._lock = threading.Lock()
        self._session = session or requests.Session()

    def publish(self, event: dict) -> None:
        with self._lock:
            self._buffer.append(event)
            if len(self._buffer) >= self._batch_size:
                self._flush_locked()

    def close(self) -> None:
        with self._lock:
            self._flush_locked()
        self._session.close()

    def _flush_locked(self) -> None:
        if not self._buffer:
            return
        response = self._session.post(
            self._url,
            data=json.dumps(self._buffer, separators=(",", ":"), sort_keys=True),
            headers={"Content-Type": "application/json"},
            timeout=30,
        )
        if response.status_code >= 400:
            raise RuntimeError(f"Event export failed ({response.status_code}): {response.text}")
        self._buffer.clear()


def sink_from_settings() -> EventSink:
    """Factory to construct an event sink based on app settings."""

    backend = settings.events_backend.lower().strip()
    if backend == "file":
        return FileEventSink(settings.events_path)
    if backend == "http":
        if not settings.events_url:
            raise ValueError("HTTP event backend requires NAGBOT_EVENTS_URL")
        return HttpEventSink(settings.events_url, batch_size=settings.events_batch_size)
    if backend in {"off", "none", "disabled"}:
        return NullEventSink()
    raise ValueError(f"Unsupported events backend: {settings.events_backend}")
