"""Domain data models for the post-commit nag bot."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


HEAD_LABEL = "HEAD"
OLDER_COMMIT_LABEL = "older commit"


def short_sha(sha: str) -> str:
    return sha[:7]


class TrackedWorkflow(BaseModel):
    """A workflow the bot monitors for one pull request."""

    name: str = Field(..., description="Display name, matched against reported run names.")
    file: str = Field(..., description="Workflow file identifier used for dispatch and lookups.")


class RunState(str, Enum):
    """Classification of one tracked workflow relative to the PR head."""

    SUCCESS = "success"
    WARNING = "warning"
    FAILED = "failed"


class RunStatus(BaseModel):
    """Outcome of classifying a tracked workflow's run history."""

    state: RunState
    commit: Optional[str] = Field(
        None, description="HEAD, HEAD~N or 'older commit'; absent for failed workflows."
    )
    sha: Optional[str] = Field(None, description="Short SHA of the last successful run for warnings.")

    @classmethod
    def success(cls) -> "RunStatus":
        return cls(state=RunState.SUCCESS, commit=HEAD_LABEL)

    @classmethod
    def warning(cls, commit: str, sha: str) -> "RunStatus":
        return cls(state=RunState.WARNING, commit=commit, sha=short_sha(sha))

    @classmethod
    def failed(cls) -> "RunStatus":
        return cls(state=RunState.FAILED)


class WorkflowStatus(BaseModel):
    """A tracked workflow paired with its classification."""

    workflow: TrackedWorkflow
    status: RunStatus

    @property
    def name(self) -> str:
        return self.workflow.name


class Verdict(str, Enum):
    """Aggregated bucket over all tracked workflows."""

    SUCCESS = "success"
    WARNING = "warning"
    FAILED = "failed"


class StatusReport(BaseModel):
    """Result of one status check cycle for a pull request."""

    pr_number: int
    verdict: Verdict
    statuses: list[WorkflowStatus] = Field(default_factory=list)

    @property
    def failed(self) -> list[WorkflowStatus]:
        return [entry for entry in self.statuses if entry.status.state == RunState.FAILED]

    @property
    def warnings(self) -> list[WorkflowStatus]:
        return [entry for entry in self.statuses if entry.status.state == RunState.WARNING]

    @property
    def succeeded(self) -> list[WorkflowStatus]:
        return [entry for entry in self.statuses if entry.status.state == RunState.SUCCESS]


class ActionKind(str, Enum):
    """What an incoming event asks the bot to do."""

    CHECK_STATUS = "check_status"
    FORCE_OVERRIDE = "force_override"
    DISPATCH = "dispatch"
    IGNORE = "ignore"


class RouteDecision(BaseModel):
    """Classification of one incoming event."""

    kind: ActionKind
    pr_number: Optional[int] = None
    workflow_file: Optional[str] = None
    reason: str = ""

    @classmethod
    def ignore(cls, reason: str) -> "RouteDecision":
        return cls(kind=ActionKind.IGNORE, reason=reason)


class DispatchResult(BaseModel):
    """Outcome of a manual workflow dispatch."""

    success: bool
    workflow_file: str
    workflow_name: Optional[str] = None
    run_url: Optional[str] = None
    poll_attempts: int = 0
    error: Optional[str] = None


class EventOutcome(BaseModel):
    """What the bot did in response to one event."""

    event_name: str
    decision: RouteDecision
    report: Optional[StatusReport] = None
    dispatch: Optional[DispatchResult] = None
    overridden: bool = False
    handled_at: datetime
