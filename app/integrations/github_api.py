"""GitHub-backed host API used by the bot."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import islice
from typing import Optional

from github import Github
from github.Auth import Token

_logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100


@dataclass(frozen=True)
class PullRequestSnapshot:
    number: int
    body: str
    head_ref: str
    head_sha: str


@dataclass(frozen=True)
class CommentSnapshot:
    id: int
    author: str | None
    body: str
    created_at: datetime | None


@dataclass(frozen=True)
class WorkflowRunSnapshot:
    id: int
    name: str | None
    workflow_id: int | None
    head_sha: str
    status: str | None
    conclusion: str | None
    created_at: datetime | None
    html_url: str | None


@dataclass(frozen=True)
class WorkflowSnapshot:
    id: int
    name: str
    path: str


class GitHubHost:
    """Thin adapter over PyGithub exposing only the calls the bot makes.

    Every method returns frozen snapshots instead of PyGithub objects so the
    reconciliation code can be exercised against an in-memory fake.
    ``GithubException`` is never caught here; callers decide which failures
    are recoverable.
    """

    def __init__(
        self,
        token: str,
        repository: str,
        *,
        base_url: str | None = None,
        per_page: int = 100,
    ) -> None:
        self._auth = Token(token)
        self._base_url = base_url.rstrip("/") if base_url else None
        self._per_page = per_page
        self.repository = repository
        self._repos: dict[int, object] = {}
        self._workflow_cache: dict[int, object] = {}

    @property
    def owner(self) -> str:
        return self.repository.split("/", 1)[0]

    def _repo(self, per_page: int | None = None):
        # PyGithub fixes the page size per client, so each size gets its own.
        size = min(per_page or self._per_page, MAX_PER_PAGE)
        if size not in self._repos:
            if self._base_url:
                client = Github(auth=self._auth, base_url=self._base_url, per_page=size)
            else:
                client = Github(auth=self._auth, per_page=size)
            self._repos[size] = client.get_repo(self.repository, lazy=True)
        return self._repos[size]

    def get_pull(self, number: int) -> PullRequestSnapshot:
        return self._pull_snapshot(self._repo().get_pull(number))

    def update_pull_body(self, number: int, body: str) -> None:
        _logger.info("Updating description of PR #%s", number)
        self._repo().get_pull(number).edit(body=body)

    def list_open_pulls(self, head: str) -> list[PullRequestSnapshot]:
        pulls = self._repo().get_pulls(state="open", head=head)
        return [self._pull_snapshot(pull) for pull in pulls]

    def list_pull_commit_shas(self, number: int, limit: int) -> list[str]:
        commits = self._repo(per_page=limit).get_pull(number).get_commits()
        return [commit.sha for commit in islice(commits, limit)]

    def list_issue_comments(self, number: int) -> list[CommentSnapshot]:
        comments = self._repo().get_issue(number).get_comments()
        return [self._comment_snapshot(comment) for comment in comments]

    def create_comment(self, number: int, body: str) -> CommentSnapshot:
        comment = self._repo().get_issue(number).create_comment(body)
        return self._comment_snapshot(comment)

    def delete_comment(self, number: int, comment_id: int) -> None:
        self._repo().get_issue(number).get_comment(comment_id).delete()

    def list_branch_runs(self, branch: str, limit: int) -> list[WorkflowRunSnapshot]:
        runs = self._repo(per_page=limit).get_workflow_runs(branch=branch)
        return [self._run_snapshot(run) for run in islice(runs, limit)]

    def get_workflow(self, workflow_file: str) -> WorkflowSnapshot:
        workflow = self._repo().get_workflow(workflow_file)
        self._workflow_cache[workflow.id] = workflow
        return WorkflowSnapshot(id=workflow.id, name=workflow.name, path=workflow.path or "")

    def create_workflow_dispatch(self, workflow_id: int, ref: str) -> bool:
        workflow = self._workflow_cache.get(workflow_id)
        if workflow is None:
            workflow = self._repo().get_workflow(workflow_id)
            self._workflow_cache[workflow_id] = workflow
        # throw=True surfaces GitHub's rejection message as a GithubException.
        return bool(workflow.create_dispatch(ref=ref, throw=True))

    @staticmethod
    def _pull_snapshot(pull) -> PullRequestSnapshot:
        return PullRequestSnapshot(
            number=pull.number,
            body=pull.body or "",
            head_ref=pull.head.ref,
            head_sha=pull.head.sha,
        )

    @classmethod
    def _comment_snapshot(cls, comment) -> CommentSnapshot:
        user = getattr(comment, "user", None)
        return CommentSnapshot(
            id=comment.id,
            author=getattr(user, "login", None),
            body=comment.body or "",
            created_at=cls._as_utc(getattr(comment, "created_at", None)),
        )

    @classmethod
    def _run_snapshot(cls, run) -> WorkflowRunSnapshot:
        return WorkflowRunSnapshot(
            id=run.id,
            name=run.name,
            workflow_id=getattr(run, "workflow_id", None),
            head_sha=run.head_sha,
            status=run.status,
            conclusion=run.conclusion,
            created_at=cls._as_utc(getattr(run, "created_at", None)),
            html_url=getattr(run, "html_url", None),
        )

    @staticmethod
    def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
        # Older PyGithub releases return naive UTC datetimes.
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
