from __future__ import annotations

from conftest import BOT
from app.integrations.github_api import CommentSnapshot
from app.models.domain import RunStatus, StatusReport, TrackedWorkflow, Verdict, WorkflowStatus
from app.services.presenter import (
    STATUS_PREFIXES,
    CommentPresenter,
    is_status_comment,
    render_dispatch_body,
    render_dispatch_failure,
    render_override_body,
    render_status_body,
)

A = TrackedWorkflow(name="Unit Tests", file="unit.yml")
B = TrackedWorkflow(name="E2E", file="e2e.yml")


def _comment(body: str, author: str = BOT) -> CommentSnapshot:
    return CommentSnapshot(id=1, author=author, body=body, created_at=None)


def test_status_prefixes_are_stable():
    assert STATUS_PREFIXES == ("**⛔️", "**✅", "**⚠️")


def test_is_status_comment_requires_bot_author_and_prefix():
    assert is_status_comment(_comment(render_override_body()), BOT)
    assert not is_status_comment(_comment(render_override_body(), author="octocat"), BOT)
    assert not is_status_comment(_comment("🔄 Running `E2E` on the latest commit"), BOT)
    assert not is_status_comment(_comment("✅ done"), BOT)


def test_upsert_relocates_existing_status_comment(host, bot_settings):
    host.add_pull(9)
    old_status = host.add_comment(9, "**⛔️🚨 The following workflows have NOT run on the latest commit: 🚨⛔️**")
    dispatch_note = host.add_comment(9, "🔄 Running `E2E` on the latest commit (abcdef1).")
    human = host.add_comment(9, "Looks good to me", author="octocat")

    created = CommentPresenter(host, bot_settings).upsert(9, render_override_body())

    comments = host.list_issue_comments(9)
    status_comments = [comment for comment in comments if is_status_comment(comment, BOT)]
    assert status_comments == [created]
    assert old_status not in comments
    assert dispatch_note in comments and human in comments
    assert comments[-1] == created
    assert all(created.created_at > comment.created_at for comment in comments[:-1])


def test_upsert_creates_when_absent(host, bot_settings):
    host.add_pull(9)
    host.add_comment(9, "**✅ copied by a human**", author="octocat")
    CommentPresenter(host, bot_settings).upsert(9, render_override_body())
    assert len(host.list_issue_comments(9)) == 2


def test_upsert_replaces_only_most_recent_status_comment(host, bot_settings):
    host.add_pull(9)
    first = host.add_comment(9, "**✅ old**")
    second = host.add_comment(9, "**⚠️ newer**")
    CommentPresenter(host, bot_settings).upsert(9, render_override_body())
    remaining = host.list_issue_comments(9)
    assert first in remaining
    assert second not in remaining


def test_render_success_lists_all_tracked(bot_settings):
    report = StatusReport(
        pr_number=1,
        verdict=Verdict.SUCCESS,
        statuses=[
            WorkflowStatus(workflow=A, status=RunStatus.success()),
            WorkflowStatus(workflow=B, status=RunStatus.success()),
        ],
    )
    body = render_status_body(report, [A, B], bot_settings)
    assert body.startswith(
        "**✅🎉 All tracked workflows (`Unit Tests`, `E2E`) have run successfully on the latest commit!"
    )
    assert "\n\n**Commands:**\n" in body
    assert "• `/run` - Run the default workflow (`dummy-test.yml`)" in body
    assert "• `/run workflow.yml` - Run a specific workflow" in body
    assert body.endswith("• `/override` - Override all workflow checks")


def test_render_failed_lists_failures_and_warnings(bot_settings):
    report = StatusReport(
        pr_number=1,
        verdict=Verdict.FAILED,
        statuses=[
            WorkflowStatus(workflow=A, status=RunStatus.success()),
            WorkflowStatus(workflow=B, status=RunStatus.failed()),
            WorkflowStatus(
                workflow=TrackedWorkflow(name="Lint", file="lint.yml"),
                status=RunStatus.warning("HEAD~1", "abcdef1234"),
            ),
        ],
    )
    body = render_status_body(report, [A, B], bot_settings)
    assert body.startswith("**⛔️🚨 The following workflows have NOT run on the latest commit: 🚨⛔️**\n\n")
    assert "❌ `E2E` - Not run on HEAD\n" in body
    assert "⚠️ `Lint` - Last successful run on HEAD~1 (abcdef1)\n" in body
    assert "`Unit Tests`" not in body
    assert "\n\n**Commands:**\n" in body


def test_render_warning_only(bot_settings):
    report = StatusReport(
        pr_number=1,
        verdict=Verdict.WARNING,
        statuses=[
            WorkflowStatus(workflow=A, status=RunStatus.success()),
            WorkflowStatus(workflow=B, status=RunStatus.warning("older commit", "1234567abc")),
        ],
    )
    body = render_status_body(report, [A, B], bot_settings)
    assert body.startswith("**⚠️ Some workflows need to be re-run on the latest commit: ⚠️**\n\n")
    assert "⚠️ `E2E` - Last successful run on older commit (1234567)\n" in body
    assert "❌" not in body


def test_render_dispatch_bodies():
    assert render_dispatch_body("E2E", "abcdef123456", run_url="https://x/run/1", fallback_url="https://x/f") == (
        "🔄 Running `E2E` on the latest commit (abcdef1). [View run](https://x/run/1)"
    )
    assert render_dispatch_body("E2E", "abcdef123456", run_url=None, fallback_url="https://x/f").endswith(
        "[View progress](https://x/f)"
    )
    assert render_dispatch_failure("e2e.yml", "boom") == "⚠️ Failed to trigger workflow `e2e.yml`. Error: boom"
