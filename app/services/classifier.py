"""Classification of tracked workflow run history relative to a PR head."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Sequence

from github import GithubException

from app.core.config import Settings, settings as default_settings
from app.integrations.github_api import PullRequestSnapshot, WorkflowRunSnapshot
from app.models.domain import (
    OLDER_COMMIT_LABEL,
    RunState,
    RunStatus,
    StatusReport,
    TrackedWorkflow,
    Verdict,
    WorkflowStatus,
)

_logger = logging.getLogger(__name__)


def _is_successful(run: WorkflowRunSnapshot) -> bool:
    return run.status == "completed" and run.conclusion == "success"


def classify_workflow_runs(
    runs: Iterable[WorkflowRunSnapshot],
    workflow_name: str,
    head_sha: str,
    load_commit_shas: Callable[[], Sequence[str]],
) -> RunStatus:
    """Classify ``workflow_name`` given the branch's runs, most recent first.

    ``load_commit_shas`` returns the PR's commits in host order and is only
    called when an older successful run needs a distance label. The distance
    is ``index(run) - index(head)`` in that order, so it is positive only
    when the host lists commits newest first.
    """

    workflow_runs = [run for run in runs if run.name == workflow_name]

    if any(_is_successful(run) and run.head_sha == head_sha for run in workflow_runs):
        return RunStatus.success()

    successful_run = next((run for run in workflow_runs if _is_successful(run)), None)
    if successful_run is None:
        return RunStatus.failed()

    try:
        commit_shas = list(load_commit_shas())
    except GithubException:
        _logger.exception("Failed to determine commit distance for %s", workflow_name)
        commit_shas = []

    if head_sha in commit_shas and successful_run.head_sha in commit_shas:
        distance = commit_shas.index(successful_run.head_sha) - commit_shas.index(head_sha)
        return RunStatus.warning(f"HEAD~{distance}", successful_run.head_sha)
    return RunStatus.warning(OLDER_COMMIT_LABEL, successful_run.head_sha)


def aggregate_verdict(statuses: Sequence[WorkflowStatus]) -> Verdict:
    states = [entry.status.state for entry in statuses]
    if all(state == RunState.SUCCESS for state in states):
        return Verdict.SUCCESS
    if any(state == RunState.FAILED for state in states):
        return Verdict.FAILED
    return Verdict.WARNING


class RunClassifier:
    """Evaluates every tracked workflow of a pull request."""

    def __init__(self, host, settings: Settings | None = None) -> None:
        self._host = host
        self._settings = settings or default_settings

    def evaluate(self, pull: PullRequestSnapshot, workflows: Sequence[TrackedWorkflow]) -> StatusReport:
        runs = self._host.list_branch_runs(pull.head_ref, self._settings.runs_page_size)
        commit_cache: list[list[str]] = []

        def load_commit_shas() -> list[str]:
            if not commit_cache:
                commit_cache.append(self._host.list_pull_commit_shas(pull.number, self._settings.commits_page_size))
            return commit_cache[0]

        statuses = []
        for workflow in workflows:
            status = classify_workflow_runs(runs, workflow.name, pull.head_sha, load_commit_shas)
            _logger.info("Workflow %s on PR #%s: %s", workflow.name, pull.number, status.state.value)
            statuses.append(WorkflowStatus(workflow=workflow, status=status))

        return StatusReport(pr_number=pull.number, verdict=aggregate_verdict(statuses), statuses=statuses)
