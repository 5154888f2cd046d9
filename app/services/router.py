"""Classification of incoming events into bot actions."""

from __future__ import annotations

import logging
import re

from app.core.config import Settings, settings as default_settings
from app.models.domain import ActionKind, RouteDecision
from app.repositories.tracked_state import TrackedWorkflowStore

_logger = logging.getLogger(__name__)


def parse_command(text: str, settings: Settings | None = None) -> tuple[ActionKind, str | None]:
    """Extract the command in a comment body.

    The override token wins wherever it appears. The run token may be
    followed by a ``.yml``/``.yaml`` file name; otherwise the default
    workflow file is used.
    """

    settings = settings or default_settings
    if settings.override_command in text:
        return ActionKind.FORCE_OVERRIDE, None
    if settings.run_command in text:
        match = re.search(rf"{re.escape(settings.run_command)}\s+(\S+\.ya?ml)", text)
        return ActionKind.DISPATCH, match.group(1) if match else settings.default_workflow_file
    return ActionKind.IGNORE, None


class EventRouter:
    """Resolves the pull request and action for one host event."""

    def __init__(self, host, store: TrackedWorkflowStore, settings: Settings | None = None) -> None:
        self._host = host
        self._store = store
        self._settings = settings or default_settings

    def route(self, event_name: str, payload: dict) -> RouteDecision:
        if event_name == "pull_request":
            pr_number = payload["pull_request"]["number"]
            _logger.info("Processing PR #%s event: %s", pr_number, payload.get("action"))
            return RouteDecision(kind=ActionKind.CHECK_STATUS, pr_number=pr_number)
        if event_name == "workflow_run":
            return self._route_workflow_run(payload["workflow_run"])
        if event_name == "issue_comment":
            return self._route_comment(payload)
        _logger.info("Ignoring event: %s", event_name)
        return RouteDecision.ignore(f"unsupported event {event_name}")

    def _route_workflow_run(self, run: dict) -> RouteDecision:
        name = run.get("name")
        conclusion = run.get("conclusion")
        branch = run.get("head_branch")
        _logger.info("Processing workflow run: %s (%s)", name, conclusion)

        pulls = self._host.list_open_pulls(f"{self._host.owner}:{branch}")
        if not pulls:
            _logger.info("No open PRs found for branch: %s", branch)
            return RouteDecision.ignore(f"no open pull request for branch {branch}")

        for pull in pulls:
            tracked = self._store.load(pull.number)
            is_tracked = any(workflow.name == name for workflow in tracked)
            if is_tracked and conclusion == "success":
                _logger.info("Found tracked workflow %s for PR #%s", name, pull.number)
                return RouteDecision(kind=ActionKind.CHECK_STATUS, pr_number=pull.number)

        _logger.info("Workflow %s is not tracked for any PR", name)
        return RouteDecision.ignore(f"workflow {name} is not tracked or did not succeed")

    def _route_comment(self, payload: dict) -> RouteDecision:
        issue = payload.get("issue") or {}
        if not issue.get("pull_request"):
            _logger.info("Comment is not on a PR, ignoring")
            return RouteDecision.ignore("comment is not on a pull request")
        if payload.get("action") == "deleted":
            return RouteDecision.ignore("comment was deleted")

        comment = payload.get("comment") or {}
        author = (comment.get("user") or {}).get("login")
        if author == self._settings.bot_login:
            return RouteDecision.ignore("comment authored by the bot")

        _logger.info("Processing comment by %s", author)
        kind, workflow_file = parse_command(comment.get("body") or "", self._settings)
        if kind == ActionKind.IGNORE:
            _logger.info("Ignoring comment - no recognized commands")
            return RouteDecision.ignore("no recognized command")
        _logger.info("Command detected: %s", kind.value)
        return RouteDecision(kind=kind, pr_number=issue["number"], workflow_file=workflow_file)
