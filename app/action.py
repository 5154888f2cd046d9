"""Entry point for running the bot inside a GitHub Actions job."""

from __future__ import annotations

import json
import logging
import os
import signal
import threading
from pathlib import Path
from typing import Mapping

from app.core.config import Settings, settings
from app.dependencies import build_host, build_store
from app.models.domain import EventOutcome
from app.services.nag import NagBotService
from app.telemetry import EventSink, configure_metrics, shutdown_metrics, sink_from_settings

_logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_event(environ: Mapping[str, str]) -> tuple[str, dict]:
    event_name = environ.get("GITHUB_EVENT_NAME")
    event_path = environ.get("GITHUB_EVENT_PATH")
    if not event_name or not event_path:
        raise RuntimeError("GITHUB_EVENT_NAME and GITHUB_EVENT_PATH must be set")
    payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    return event_name, payload


def resolve_settings(environ: Mapping[str, str], base: Settings) -> Settings:
    """Fill gaps in ``base`` from the variables the Actions runner provides."""

    updates: dict = {}
    if not base.github_token and environ.get("GITHUB_TOKEN"):
        updates["github_token"] = environ["GITHUB_TOKEN"]
    if not base.repository and environ.get("GITHUB_REPOSITORY"):
        updates["repository"] = environ["GITHUB_REPOSITORY"]
    if not base.github_base_url and environ.get("GITHUB_API_URL"):
        updates["github_base_url"] = environ["GITHUB_API_URL"]
    if environ.get("GITHUB_SERVER_URL") and "github_server_url" not in base.model_fields_set:
        updates["github_server_url"] = environ["GITHUB_SERVER_URL"]
    return base.model_copy(update=updates)


def build_service(
    config: Settings,
    sink: EventSink,
    cancel_event: threading.Event | None = None,
) -> NagBotService:
    if not config.repository:
        raise RuntimeError("A repository is required; set GITHUB_REPOSITORY or NAGBOT_REPOSITORY")
    host = build_host(config, config.repository)
    store = build_store(host, config.repository, config)
    return NagBotService(host, store, config, sink=sink, cancel_event=cancel_event)


def run(environ: Mapping[str, str] | None = None, cancel_event: threading.Event | None = None) -> EventOutcome:
    environ = os.environ if environ is None else environ
    config = resolve_settings(environ, settings)
    configure_logging(config.log_level)
    event_name, payload = load_event(environ)
    sink = sink_from_settings()
    service = build_service(config, sink, cancel_event)
    configure_metrics()
    try:
        return service.handle_event(event_name, payload)
    finally:
        sink.close()
        shutdown_metrics()


def main() -> None:
    # The runner sends SIGTERM on job cancellation; stop polling and finish the comment.
    cancel_event = threading.Event()
    signal.signal(signal.SIGTERM, lambda signum, frame: cancel_event.set())
    outcome = run(cancel_event=cancel_event)
    _logger.info("Finished %s with action %s", outcome.event_name, outcome.decision.kind.value)


if __name__ == "__main__":
    main()
