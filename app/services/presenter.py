"""Rendering and placement of the bot's PR comments."""

from __future__ import annotations

import logging
from typing import Sequence

from app.core.config import Settings, settings as default_settings
from app.integrations.github_api import CommentSnapshot
from app.models.domain import StatusReport, TrackedWorkflow, Verdict, WorkflowStatus, short_sha

_logger = logging.getLogger(__name__)

SUCCESS_GLYPH = "✅"
FAILURE_GLYPH = "⛔️"
WARNING_GLYPH = "⚠️"

# A bot comment starting with one of these is the status comment. The set
# identifies the comment across invocations and must stay stable.
STATUS_PREFIXES = (f"**{FAILURE_GLYPH}", f"**{SUCCESS_GLYPH}", f"**{WARNING_GLYPH}")


def is_status_comment(comment: CommentSnapshot, bot_login: str) -> bool:
    return comment.author == bot_login and comment.body.startswith(STATUS_PREFIXES)


def render_commands_footer(settings: Settings) -> str:
    return (
        "**Commands:**\n"
        f"• `{settings.run_command}` - Run the default workflow (`{settings.default_workflow_file}`)\n"
        f"• `{settings.run_command} workflow.yml` - Run a specific workflow\n"
        f"• `{settings.override_command}` - Override all workflow checks"
    )


def _warning_line(entry: WorkflowStatus) -> str:
    return f"{WARNING_GLYPH} `{entry.name}` - Last successful run on {entry.status.commit} ({entry.status.sha})\n"


def render_status_body(
    report: StatusReport,
    tracked: Sequence[TrackedWorkflow],
    settings: Settings | None = None,
) -> str:
    settings = settings or default_settings
    footer = render_commands_footer(settings)

    if report.verdict == Verdict.SUCCESS:
        workflow_list = ", ".join(f"`{workflow.name}`" for workflow in tracked)
        return (
            f"**{SUCCESS_GLYPH}🎉 All tracked workflows ({workflow_list}) have run successfully "
            f"on the latest commit! You're clear to merge. 🎉{SUCCESS_GLYPH}**\n\n{footer}"
        )

    if report.verdict == Verdict.FAILED:
        body = f"**{FAILURE_GLYPH}🚨 The following workflows have NOT run on the latest commit: 🚨{FAILURE_GLYPH}**\n\n"
        for entry in report.failed:
            body += f"❌ `{entry.name}` - Not run on HEAD\n"
    else:
        body = f"**{WARNING_GLYPH} Some workflows need to be re-run on the latest commit: {WARNING_GLYPH}**\n\n"
    for entry in report.warnings:
        body += _warning_line(entry)
    return f"{body}\n{footer}"


def render_override_body() -> str:
    return f"**{SUCCESS_GLYPH}🎉 All workflow checks overridden! You're clear to merge. 🎉{SUCCESS_GLYPH}**"


def render_dispatch_body(
    workflow_name: str,
    head_sha: str,
    *,
    run_url: str | None,
    fallback_url: str,
) -> str:
    prefix = f"🔄 Running `{workflow_name}` on the latest commit ({short_sha(head_sha)})."
    if run_url:
        return f"{prefix} [View run]({run_url})"
    return f"{prefix} [View progress]({fallback_url})"


def render_dispatch_failure(workflow_file: str, message: str) -> str:
    return f"{WARNING_GLYPH} Failed to trigger workflow `{workflow_file}`. Error: {message}"


class CommentPresenter:
    """Keeps a single status comment at the bottom of a PR conversation."""

    def __init__(self, host, settings: Settings | None = None) -> None:
        self._host = host
        self._settings = settings or default_settings

    def find_status_comment(self, pr_number: int) -> CommentSnapshot | None:
        comments = self._host.list_issue_comments(pr_number)
        for comment in reversed(comments):
            if is_status_comment(comment, self._settings.bot_login):
                return comment
        return None

    def upsert(self, pr_number: int, body: str) -> CommentSnapshot:
        _logger.info("Updating status comment for PR #%s", pr_number)
        existing = self.find_status_comment(pr_number)
        if existing is not None:
            # Delete and recreate so the status moves below newer comments.
            _logger.info("Deleting old status comment %s on PR #%s", existing.id, pr_number)
            self._host.delete_comment(pr_number, existing.id)
        return self._host.create_comment(pr_number, body)

    def post(self, pr_number: int, body: str) -> CommentSnapshot:
        return self._host.create_comment(pr_number, body)
