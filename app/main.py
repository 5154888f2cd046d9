"""Webhook service for the post-commit nag bot."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from app.core.config import settings
from app.dependencies import get_event_sink, get_shutdown_event
from app.routers import events
from app.telemetry import collect_prometheus_metrics, configure_metrics, shutdown_metrics


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_metrics()
    try:
        yield
    finally:
        get_shutdown_event().set()
        get_event_sink().close()
        shutdown_metrics()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Post-Commit Nag Bot",
        description="Tracks required workflow runs on pull requests and keeps a single status comment current.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(events.router)

    @app.get("/healthz", tags=["health"])
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    if settings.otel_exporter.lower().strip() == "prometheus":
        app.add_api_route(
            "/metrics",
            _metrics_endpoint,
            methods=["GET"],
            tags=["metrics"],
            response_class=PlainTextResponse,
        )

    return app


def _metrics_endpoint() -> PlainTextResponse:
    payload, content_type = collect_prometheus_metrics()
    return PlainTextResponse(payload, media_type=content_type)


app = create_app()
