"""End-to-end handling of host events."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from app.core.config import Settings, settings as default_settings
from app.models.domain import (
    ActionKind,
    DispatchResult,
    EventOutcome,
    RouteDecision,
    StatusReport,
)
from app.repositories.tracked_state import TrackedWorkflowStore
from app.services.classifier import RunClassifier
from app.services.dispatcher import Dispatcher
from app.services.presenter import CommentPresenter, render_override_body, render_status_body
from app.services.router import EventRouter
from app.telemetry import EventSink, NullEventSink, increment_events, record_dispatch, record_verdict

_logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class NagBotService:
    """Routes an event and runs the resulting override, dispatch or status check.

    Host failures outside the dispatcher are not caught: they end the
    invocation without posting anything to the pull request and are only
    visible in the runner's log.
    """

    def __init__(
        self,
        host,
        store: TrackedWorkflowStore,
        settings: Settings | None = None,
        *,
        router: EventRouter | None = None,
        classifier: RunClassifier | None = None,
        presenter: CommentPresenter | None = None,
        dispatcher: Dispatcher | None = None,
        sink: EventSink | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._host = host
        self._store = store
        self._settings = settings or default_settings
        self._router = router or EventRouter(host, store, self._settings)
        self._classifier = classifier or RunClassifier(host, self._settings)
        self._presenter = presenter or CommentPresenter(host, self._settings)
        self._dispatcher = dispatcher or Dispatcher(
            host, store, self._presenter, self._settings, cancel_event=cancel_event
        )
        self._sink = sink or NullEventSink()

    @property
    def store(self) -> TrackedWorkflowStore:
        return self._store

    def handle_event(self, event_name: str, payload: dict) -> EventOutcome:
        _logger.info("Nag bot triggered by: %s", event_name)
        decision = self._router.route(event_name, payload)
        increment_events(event_name, decision.kind.value)
        outcome = EventOutcome(event_name=event_name, decision=decision, handled_at=_now())

        if decision.kind == ActionKind.IGNORE:
            _logger.info("No action: %s", decision.reason)
            return outcome

        if decision.kind == ActionKind.FORCE_OVERRIDE:
            self.force_override(decision.pr_number)
            outcome.overridden = True
            return outcome

        if decision.kind == ActionKind.DISPATCH:
            result = self.dispatch(decision.pr_number, decision.workflow_file or self._settings.default_workflow_file)
            outcome.dispatch = result
            if not result.success:
                return outcome

        outcome.report = self.check_status(decision.pr_number)
        return outcome

    def force_override(self, pr_number: int) -> None:
        _logger.info("Force green via override command on PR #%s", pr_number)
        self._presenter.upsert(pr_number, render_override_body())
        self._publish({"type": "override", "pr_number": pr_number})

    def dispatch(self, pr_number: int, workflow_file: str) -> DispatchResult:
        result = self._dispatcher.dispatch(pr_number, workflow_file)
        record_dispatch("success" if result.success else "failure", result.poll_attempts)
        self._publish(
            {
                "type": "dispatch",
                "pr_number": pr_number,
                "workflow_file": workflow_file,
                "success": result.success,
                "run_url": result.run_url,
                "poll_attempts": result.poll_attempts,
                "error": result.error,
            }
        )
        return result

    def check_status(self, pr_number: int) -> StatusReport:
        _logger.info("Checking PR #%s status", pr_number)
        pull = self._host.get_pull(pr_number)
        tracked = self._store.load(pr_number)
        report = self._classifier.evaluate(pull, tracked)

        self._presenter.upsert(pr_number, render_status_body(report, tracked, self._settings))
        record_verdict(report.verdict.value)
        self._publish(
            {
                "type": "status",
                "pr_number": pr_number,
                "head_sha": pull.head_sha,
                "verdict": report.verdict.value,
                "statuses": {entry.workflow.file: entry.status.state.value for entry in report.statuses},
            }
        )
        _logger.info(
            "Status check complete. Failed: %s, Warning: %s, Success: %s",
            len(report.failed),
            len(report.warnings),
            len(report.succeeded),
        )
        return report

    def _publish(self, event: dict) -> None:
        event.setdefault("repository", getattr(self._host, "repository", None))
        event.setdefault("timestamp", _now().isoformat())
        self._sink.publish(event)
