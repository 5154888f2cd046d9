"""Application dependency wiring."""

from __future__ import annotations

import threading
from functools import lru_cache
from typing import Callable

from redis import Redis

from app.core.config import Settings, settings
from app.integrations.github_api import GitHubHost
from app.models.domain import TrackedWorkflow
from app.repositories.redis_store import RedisTrackedWorkflowStore
from app.repositories.tracked_state import PullRequestDescriptionStore, TrackedWorkflowStore
from app.services.nag import NagBotService
from app.telemetry import EventSink, sink_from_settings

ServiceFactory = Callable[[str], NagBotService]


def default_tracked_workflows(config: Settings | None = None) -> list[TrackedWorkflow]:
    config = config or settings
    return [TrackedWorkflow(name=config.default_workflow_name, file=config.default_workflow_file)]


@lru_cache
def get_redis_client(url: str | None = None) -> Redis:
    return Redis.from_url(url or settings.redis_url, decode_responses=True)


@lru_cache
def get_event_sink() -> EventSink:
    return sink_from_settings()


@lru_cache
def get_shutdown_event() -> threading.Event:
    """Set on application shutdown to cut in-flight dispatch polling short."""

    return threading.Event()


def build_host(config: Settings, repository: str) -> GitHubHost:
    if not config.github_token:
        raise RuntimeError("NAGBOT_GITHUB_TOKEN is required to talk to GitHub")
    return GitHubHost(
        token=config.github_token,
        repository=repository,
        base_url=config.github_base_url,
        per_page=max(config.runs_page_size, config.commits_page_size),
    )


@lru_cache
def get_host(repository: str) -> GitHubHost:
    return build_host(settings, repository)


def build_store(host: GitHubHost, repository: str, config: Settings | None = None) -> TrackedWorkflowStore:
    config = config or settings
    backend = config.state_backend.lower().strip()
    if backend == "description":
        return PullRequestDescriptionStore(host, default_tracked_workflows(config))
    if backend == "redis":
        return RedisTrackedWorkflowStore(get_redis_client(config.redis_url), repository, default_tracked_workflows(config))
    raise ValueError(f"Unsupported state backend: {config.state_backend}")


def build_nag_service(repository: str) -> NagBotService:
    host = get_host(repository)
    return NagBotService(
        host,
        build_store(host, repository),
        settings,
        sink=get_event_sink(),
        cancel_event=get_shutdown_event(),
    )


def get_service_factory() -> ServiceFactory:
    return build_nag_service
