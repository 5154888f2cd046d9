"""Redis-backed persistence for tracked workflow lists."""

from __future__ import annotations

import logging
from typing import Sequence

from redis import Redis

from app.models.domain import TrackedWorkflow
from app.repositories.tracked_state import StateParseError, deserialize_workflows, serialize_workflows

_logger = logging.getLogger(__name__)


class RedisTrackedWorkflowStore:
    """Stores tracked workflow lists in Redis, keyed by repository and PR."""

    def __init__(self, client: Redis, repository: str, default: Sequence[TrackedWorkflow]) -> None:
        self._client = client
        self._repository = repository
        self._default = list(default)

    def load(self, pr_number: int) -> list[TrackedWorkflow]:
        data = self._client.get(self._tracked_key(pr_number))
        if not data:
            return [workflow.model_copy() for workflow in self._default]
        try:
            return deserialize_workflows(data)
        except StateParseError:
            _logger.exception("Failed to parse tracked workflows for PR #%s; using defaults", pr_number)
            return [workflow.model_copy() for workflow in self._default]

    def save(self, pr_number: int, workflows: Sequence[TrackedWorkflow]) -> None:
        self._client.set(self._tracked_key(pr_number), serialize_workflows(workflows))

    def _tracked_key(self, pr_number: int) -> str:
        return f"nagbot:{self._repository}:pr:{pr_number}:tracked"
