"""Tracked-workflow state embedded in pull request descriptions."""

from __future__ import annotations

import json
import logging
import re
from typing import Iterable, Protocol, Sequence
from urllib.parse import unquote

from pydantic import TypeAdapter, ValidationError

from app.core.urls import encode_uri_component
from app.models.domain import TrackedWorkflow

_logger = logging.getLogger(__name__)

MARKER_PREFIX = "<!-- NAG-BOT-TRACKED-WORKFLOWS:"
MARKER_PATTERN = re.compile(r"<!-- NAG-BOT-TRACKED-WORKFLOWS: (.+?) -->")

_TRACKED_LIST = TypeAdapter(list[TrackedWorkflow])


class StateParseError(ValueError):
    """Raised when a persisted marker payload cannot be decoded."""


def serialize_workflows(workflows: Iterable[TrackedWorkflow]) -> str:
    payload = [{"name": workflow.name, "file": workflow.file} for workflow in workflows]
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def deserialize_workflows(raw: str) -> list[TrackedWorkflow]:
    try:
        return _TRACKED_LIST.validate_python(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise StateParseError(f"Invalid tracked workflow payload: {exc}") from exc


def encode_marker(workflows: Iterable[TrackedWorkflow]) -> str:
    """Render the hidden marker carrying ``workflows``."""

    return f"{MARKER_PREFIX} {encode_uri_component(serialize_workflows(workflows))} -->"


def decode_marker(text: str | None) -> list[TrackedWorkflow] | None:
    """Return the list stored in ``text``, or ``None`` when no marker exists.

    Raises ``StateParseError`` when a marker exists but its payload is not a
    percent-encoded JSON list of ``{name, file}`` objects.
    """

    match = MARKER_PATTERN.search(text or "")
    if not match:
        return None
    try:
        raw = unquote(match.group(1), errors="strict")
    except UnicodeDecodeError as exc:
        raise StateParseError(f"Invalid percent-encoding in marker: {exc}") from exc
    return deserialize_workflows(raw)


def load_tracked_workflows(description: str | None, default: Sequence[TrackedWorkflow]) -> list[TrackedWorkflow]:
    try:
        workflows = decode_marker(description)
    except StateParseError:
        _logger.exception("Failed to parse tracked workflows; using defaults")
        workflows = None
    if workflows is None:
        return [workflow.model_copy() for workflow in default]
    return workflows


def save_tracked_workflows(description: str | None, workflows: Iterable[TrackedWorkflow]) -> str:
    """Return ``description`` carrying exactly one marker for ``workflows``."""

    marker = encode_marker(workflows)
    body = description or ""
    if MARKER_PATTERN.search(body):
        return MARKER_PATTERN.sub(lambda _match: marker, body, count=1)
    return f"{body}\n\n{marker}"


class TrackedWorkflowStore(Protocol):
    """Persistence port for per-PR tracked workflow lists."""

    def load(self, pr_number: int) -> list[TrackedWorkflow]:  # pragma: no cover - interface
        ...

    def save(self, pr_number: int, workflows: Sequence[TrackedWorkflow]) -> None:  # pragma: no cover - interface
        ...


class PullRequestDescriptionStore:
    """Stores the tracked list inside the pull request description."""

    def __init__(self, host, default: Sequence[TrackedWorkflow]) -> None:
        self._host = host
        self._default = list(default)

    def load(self, pr_number: int) -> list[TrackedWorkflow]:
        pull = self._host.get_pull(pr_number)
        return load_tracked_workflows(pull.body, self._default)

    def save(self, pr_number: int, workflows: Sequence[TrackedWorkflow]) -> None:
        # Unsynchronised read-modify-write: concurrent saves keep the last one.
        pull = self._host.get_pull(pr_number)
        self._host.update_pull_body(pr_number, save_tracked_workflows(pull.body, workflows))
