from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from github import GithubException

from app.core.config import Settings
from app.integrations.github_api import (
    CommentSnapshot,
    PullRequestSnapshot,
    WorkflowRunSnapshot,
    WorkflowSnapshot,
)
from app.models.domain import TrackedWorkflow

BOT = "github-actions[bot]"
EPOCH = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def not_found() -> GithubException:
    return GithubException(404, {"message": "Not Found"}, None)


class FakeGitHubHost:
    """In-memory stand-in for GitHubHost."""

    def __init__(self, repository: str = "acme/shop") -> None:
        self.repository = repository
        self.pulls: dict[int, PullRequestSnapshot] = {}
        self.comments: dict[int, list[CommentSnapshot]] = {}
        self.runs: dict[str, list[WorkflowRunSnapshot]] = {}
        self.run_batches: list[list[WorkflowRunSnapshot]] | None = None
        self.workflows: dict[str, WorkflowSnapshot] = {}
        self.commit_shas: dict[int, list[str]] = {}
        self.commits_error: GithubException | None = None
        self.runs_error: GithubException | None = None
        self.dispatch_error: Exception | None = None
        self.dispatch_accepted = True
        self.dispatched: list[tuple[int, str]] = []
        self.body_updates: list[tuple[int, str]] = []
        self.list_runs_calls = 0
        self.list_commits_calls = 0
        self._next_comment_id = 1000
        self._tick = 0

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0]

    def add_pull(self, number: int, *, head_ref: str = "feature/x", head_sha: str = "h" * 40, body: str = "") -> None:
        self.pulls[number] = PullRequestSnapshot(number=number, body=body, head_ref=head_ref, head_sha=head_sha)

    def add_comment(self, number: int, body: str, author: str = BOT) -> CommentSnapshot:
        self._tick += 1
        self._next_comment_id += 1
        comment = CommentSnapshot(
            id=self._next_comment_id,
            author=author,
            body=body,
            created_at=EPOCH + timedelta(minutes=self._tick),
        )
        self.comments.setdefault(number, []).append(comment)
        return comment

    def get_pull(self, number: int) -> PullRequestSnapshot:
        if number not in self.pulls:
            raise not_found()
        return self.pulls[number]

    def update_pull_body(self, number: int, body: str) -> None:
        self.body_updates.append((number, body))
        self.pulls[number] = replace(self.pulls[number], body=body)

    def list_open_pulls(self, head: str) -> list[PullRequestSnapshot]:
        owner, _, branch = head.partition(":")
        assert owner == self.owner
        return [pull for pull in self.pulls.values() if pull.head_ref == branch]

    def list_pull_commit_shas(self, number: int, limit: int) -> list[str]:
        self.list_commits_calls += 1
        if self.commits_error is not None:
            raise self.commits_error
        return self.commit_shas.get(number, [])[:limit]

    def list_issue_comments(self, number: int) -> list[CommentSnapshot]:
        return list(self.comments.get(number, []))

    def create_comment(self, number: int, body: str) -> CommentSnapshot:
        return self.add_comment(number, body)

    def delete_comment(self, number: int, comment_id: int) -> None:
        self.comments[number] = [comment for comment in self.comments[number] if comment.id != comment_id]

    def list_branch_runs(self, branch: str, limit: int) -> list[WorkflowRunSnapshot]:
        self.list_runs_calls += 1
        if self.runs_error is not None:
            raise self.runs_error
        if self.run_batches is not None:
            index = min(self.list_runs_calls - 1, len(self.run_batches) - 1)
            return self.run_batches[index][:limit]
        return self.runs.get(branch, [])[:limit]

    def get_workflow(self, workflow_file: str) -> WorkflowSnapshot:
        if workflow_file not in self.workflows:
            raise not_found()
        return self.workflows[workflow_file]

    def create_workflow_dispatch(self, workflow_id: int, ref: str) -> bool:
        if self.dispatch_error is not None:
            raise self.dispatch_error
        self.dispatched.append((workflow_id, ref))
        return self.dispatch_accepted


def make_run(
    name: str,
    head_sha: str,
    *,
    status: str = "completed",
    conclusion: str | None = "success",
    workflow_id: int = 1,
    created_at: datetime | None = None,
    run_id: int = 1,
) -> WorkflowRunSnapshot:
    return WorkflowRunSnapshot(
        id=run_id,
        name=name,
        workflow_id=workflow_id,
        head_sha=head_sha,
        status=status,
        conclusion=conclusion,
        created_at=created_at or EPOCH,
        html_url=f"https://github.com/acme/shop/actions/runs/{run_id}",
    )


@pytest.fixture
def host() -> FakeGitHubHost:
    return FakeGitHubHost()


@pytest.fixture
def bot_settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def default_workflows(bot_settings: Settings) -> list[TrackedWorkflow]:
    return [TrackedWorkflow(name=bot_settings.default_workflow_name, file=bot_settings.default_workflow_file)]
