from __future__ import annotations

import json
import threading
from datetime import datetime, timezone

import pytest

import app.action as action
from app.core.config import Settings
from app.models.domain import ActionKind, EventOutcome, RouteDecision
from app.repositories.redis_store import RedisTrackedWorkflowStore
from app.repositories.tracked_state import PullRequestDescriptionStore


class _RecordingSink:
    def __init__(self) -> None:
        self.closed = False

    def publish(self, event: dict) -> None:
        return None

    def close(self) -> None:
        self.closed = True


def _write_event(tmp_path, payload: dict) -> str:
    path = tmp_path / "event.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_load_event_reads_runner_payload(tmp_path):
    environ = {"GITHUB_EVENT_NAME": "pull_request", "GITHUB_EVENT_PATH": _write_event(tmp_path, {"number": 3})}
    assert action.load_event(environ) == ("pull_request", {"number": 3})


def test_load_event_requires_runner_variables():
    with pytest.raises(RuntimeError):
        action.load_event({"GITHUB_EVENT_NAME": "pull_request"})


def test_resolve_settings_fills_from_runner():
    environ = {
        "GITHUB_TOKEN": "ghs_runner",
        "GITHUB_REPOSITORY": "acme/shop",
        "GITHUB_API_URL": "https://ghe.example.com/api/v3",
        "GITHUB_SERVER_URL": "https://ghe.example.com",
    }
    resolved = action.resolve_settings(environ, Settings(_env_file=None))
    assert resolved.github_token == "ghs_runner"
    assert resolved.repository == "acme/shop"
    assert resolved.github_base_url == "https://ghe.example.com/api/v3"
    assert resolved.github_server_url == "https://ghe.example.com"


def test_resolve_settings_keeps_explicit_values():
    base = Settings(
        _env_file=None,
        github_token="ghp_explicit",
        repository="acme/other",
        github_server_url="https://github.internal",
    )
    resolved = action.resolve_settings(
        {"GITHUB_TOKEN": "ghs_runner", "GITHUB_REPOSITORY": "acme/shop", "GITHUB_SERVER_URL": "https://ghe"},
        base,
    )
    assert resolved.github_token == "ghp_explicit"
    assert resolved.repository == "acme/other"
    assert resolved.github_server_url == "https://github.internal"


def test_build_service_requires_token():
    with pytest.raises(RuntimeError):
        action.build_service(Settings(_env_file=None, repository="acme/shop"), _RecordingSink())


def test_build_service_selects_state_backend():
    config = Settings(_env_file=None, github_token="ghp_x", repository="acme/shop")
    service = action.build_service(config, _RecordingSink())
    assert isinstance(service.store, PullRequestDescriptionStore)

    redis_config = config.model_copy(update={"state_backend": "redis"})
    service = action.build_service(redis_config, _RecordingSink())
    assert isinstance(service.store, RedisTrackedWorkflowStore)


def test_build_service_rejects_unknown_state_backend():
    config = Settings(_env_file=None, github_token="ghp_x", repository="acme/shop", state_backend="sqlite")
    with pytest.raises(ValueError, match="sqlite"):
        action.build_service(config, _RecordingSink())


def test_run_handles_event_and_closes_sink(monkeypatch, tmp_path):
    sink = _RecordingSink()
    handled = []

    class _Service:
        def handle_event(self, event_name, payload):
            handled.append((event_name, payload))
            return EventOutcome(
                event_name=event_name,
                decision=RouteDecision(kind=ActionKind.CHECK_STATUS, pr_number=3),
                handled_at=datetime.now(timezone.utc),
            )

    cancel = threading.Event()

    def fake_build_service(config, event_sink, cancel_event):
        assert config.repository == "acme/shop"
        assert event_sink is sink
        assert cancel_event is cancel
        return _Service()

    monkeypatch.setattr(action, "settings", Settings(_env_file=None))
    monkeypatch.setattr(action, "sink_from_settings", lambda: sink)
    monkeypatch.setattr(action, "build_service", fake_build_service)
    environ = {
        "GITHUB_EVENT_NAME": "pull_request",
        "GITHUB_EVENT_PATH": _write_event(tmp_path, {"pull_request": {"number": 3}}),
        "GITHUB_TOKEN": "ghs_runner",
        "GITHUB_REPOSITORY": "acme/shop",
    }

    outcome = action.run(environ, cancel_event=cancel)

    assert outcome.decision.pr_number == 3
    assert handled == [("pull_request", {"pull_request": {"number": 3}})]
    assert sink.closed


def test_run_closes_sink_when_handling_fails(monkeypatch, tmp_path):
    sink = _RecordingSink()

    class _FailingService:
        def handle_event(self, event_name, payload):
            raise RuntimeError("GitHub unavailable")

    monkeypatch.setattr(action, "settings", Settings(_env_file=None))
    monkeypatch.setattr(action, "sink_from_settings", lambda: sink)
    monkeypatch.setattr(action, "build_service", lambda config, event_sink, cancel_event: _FailingService())
    environ = {"GITHUB_EVENT_NAME": "pull_request", "GITHUB_EVENT_PATH": _write_event(tmp_path, {})}

    with pytest.raises(RuntimeError, match="GitHub unavailable"):
        action.run(environ)
    assert sink.closed
