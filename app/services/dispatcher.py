"""Manual workflow dispatch with run discovery."""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable

import requests
from github import GithubException

from app.core.config import Settings, settings as default_settings
from app.core.urls import workflow_history_url
from app.integrations.github_api import PullRequestSnapshot, WorkflowRunSnapshot, WorkflowSnapshot
from app.models.domain import DispatchResult, TrackedWorkflow
from app.repositories.tracked_state import TrackedWorkflowStore
from app.services.polling import poll_until
from app.services.presenter import CommentPresenter, render_dispatch_body, render_dispatch_failure

_logger = logging.getLogger(__name__)

DISPATCH_TRIGGER = "workflow_dispatch"


class DispatchError(RuntimeError):
    """Raised when a workflow cannot be dispatched."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _error_detail(exc: Exception) -> str:
    if isinstance(exc, GithubException):
        data = exc.data if isinstance(exc.data, dict) else {}
        return data.get("message") or str(exc)
    return str(exc) or type(exc).__name__


class Dispatcher:
    """Triggers a workflow on a PR branch and reports the resulting run."""

    def __init__(
        self,
        host,
        store: TrackedWorkflowStore,
        presenter: CommentPresenter,
        settings: Settings | None = None,
        *,
        sleep: Callable[[float], object] | None = None,
        clock: Callable[[], datetime] = _now,
        cancel_event: threading.Event | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._host = host
        self._store = store
        self._presenter = presenter
        self._settings = settings or default_settings
        self._sleep = sleep
        self._clock = clock
        self._cancel_event = cancel_event
        self._monotonic = monotonic

    def dispatch(self, pr_number: int, workflow_file: str) -> DispatchResult:
        try:
            return self._dispatch(pr_number, workflow_file)
        except Exception as exc:
            # Nothing escapes the dispatcher; the failure comment is the only report.
            message = _error_detail(exc)
            _logger.error(
                "Error dispatching workflow %s for PR #%s: %s",
                workflow_file,
                pr_number,
                message,
                exc_info=not isinstance(exc, DispatchError),
            )
            self._presenter.post(pr_number, render_dispatch_failure(workflow_file, message))
            return DispatchResult(success=False, workflow_file=workflow_file, error=message)

    def _dispatch(self, pr_number: int, workflow_file: str) -> DispatchResult:
        pull = self._host.get_pull(pr_number)
        _logger.info("Dispatching workflow %s for PR #%s on ref %s", workflow_file, pr_number, pull.head_ref)

        workflow = self._lookup_workflow(workflow_file)
        _logger.info("Workflow ID: %s, Name: %s", workflow.id, workflow.name)

        if self._settings.require_dispatch_trigger_in_path and DISPATCH_TRIGGER not in workflow.path:
            raise DispatchError(f"Workflow {workflow_file} does not have {DISPATCH_TRIGGER} trigger")

        try:
            accepted = self._host.create_workflow_dispatch(workflow.id, pull.head_ref)
        except (GithubException, requests.RequestException) as exc:
            raise DispatchError(f"Dispatch request failed: {_error_detail(exc)}") from exc
        if not accepted:
            raise DispatchError(f"Dispatch request failed: {workflow_file} was not accepted")
        _logger.info("Workflow dispatched, polling for run URL")

        run, attempts = self.find_dispatched_run(pull, workflow)
        run_url = run.html_url if run else None

        self._track(pr_number, TrackedWorkflow(name=workflow.name, file=workflow_file))

        fallback_url = workflow_history_url(
            self._settings.github_server_url,
            self._host.repository,
            workflow_file,
            pull.head_ref,
        )
        self._presenter.post(
            pr_number,
            render_dispatch_body(workflow.name, pull.head_sha, run_url=run_url, fallback_url=fallback_url),
        )
        return DispatchResult(
            success=True,
            workflow_file=workflow_file,
            workflow_name=workflow.name,
            run_url=run_url or fallback_url,
            poll_attempts=attempts,
        )

    def find_dispatched_run(
        self,
        pull: PullRequestSnapshot,
        workflow: WorkflowSnapshot,
    ) -> tuple[WorkflowRunSnapshot | None, int]:
        max_age = self._settings.dispatch_run_max_age_seconds
        attempts = self._settings.dispatch_poll_attempts
        interval = self._settings.dispatch_poll_interval_seconds

        def check(_attempt: int) -> WorkflowRunSnapshot | None:
            runs = self._host.list_branch_runs(pull.head_ref, self._settings.dispatch_runs_page_size)
            now = self._clock()
            for run in runs:
                if run.workflow_id != workflow.id or run.created_at is None:
                    continue
                if (now - run.created_at).total_seconds() < max_age:
                    _logger.info("Found workflow run: %s", run.html_url)
                    return run
            return None

        run, made = poll_until(
            check,
            attempts=attempts,
            interval_seconds=interval,
            sleep=self._sleep,
            cancel_event=self._cancel_event,
            deadline_seconds=attempts * interval,
            clock=self._monotonic,
        )
        if run is None:
            _logger.info("No run found for %s after %s attempts", workflow.name, made)
        return run, made

    def _lookup_workflow(self, workflow_file: str) -> WorkflowSnapshot:
        try:
            return self._host.get_workflow(workflow_file)
        except GithubException as exc:
            raise DispatchError(f"Workflow {workflow_file} not found: {_error_detail(exc)}") from exc

    def _track(self, pr_number: int, workflow: TrackedWorkflow) -> None:
        tracked = self._store.load(pr_number)
        if any(entry.file == workflow.file for entry in tracked):
            return
        tracked.append(workflow)
        self._store.save(pr_number, tracked)
