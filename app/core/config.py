"""Application configuration via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Bot-wide configuration options."""

    api_v1_prefix: str = "/v1"
    log_level: str = "INFO"

    github_token: str | None = None
    github_base_url: str | None = None
    github_server_url: str = "https://github.com"
    repository: str | None = None
    bot_login: str = "github-actions[bot]"

    default_workflow_name: str = "Dummy Test Workflow"
    default_workflow_file: str = "dummy-test.yml"
    override_command: str = "/override"
    run_command: str = "/run"

    runs_page_size: int = 100
    commits_page_size: int = 100
    dispatch_runs_page_size: int = 10
    dispatch_poll_attempts: int = 15
    dispatch_poll_interval_seconds: float = 1.0
    dispatch_run_max_age_seconds: float = 30.0
    # Known-defective gate: trigger types are never part of a workflow path.
    require_dispatch_trigger_in_path: bool = True

    state_backend: str = "description"
    redis_url: str = "redis://localhost:6379/0"

    webhook_secret: str | None = None
    webhook_require_signature: bool = False

    events_backend: str = "off"
    events_path: str = "data/nagbot_events.jsonl"
    events_url: str | None = None
    events_batch_size: int = 25

    otel_enabled: bool = False
    otel_exporter: str = "console"
    otel_otlp_endpoint: str | None = None

    model_config = SettingsConfigDict(env_prefix="nagbot_", env_file=".env", extra="ignore")


settings = Settings()
