"""API routes for GitHub webhook delivery."""

from __future__ import annotations

import hmac
import json
import logging
from hashlib import sha256

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request, status

from app.core.config import settings
from app.dependencies import ServiceFactory, get_service_factory
from app.schemas.events import EventAcceptedResponse

_logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{settings.api_v1_prefix}/events", tags=["events"])


def verify_signature(
    *,
    body: bytes,
    secret: str | None,
    signature_header: str | None,
    require_signature: bool,
) -> bool:
    if not require_signature and not secret:
        return True
    if not secret:
        return False
    if not signature_header:
        return False
    if not signature_header.startswith("sha256="):
        return False
    expected = "sha256=" + hmac.new(secret.encode("utf-8"), body, sha256).hexdigest()
    return hmac.compare_digest(expected, signature_header)


def _handle_in_background(factory: ServiceFactory, repository: str, event_name: str, payload: dict) -> None:
    service = factory(repository)
    outcome = service.handle_event(event_name, payload)
    _logger.info("Handled %s for %s: %s", event_name, repository, outcome.decision.kind.value)


@router.post("", response_model=EventAcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def receive_event(
    request: Request,
    background_tasks: BackgroundTasks,
    x_github_event: str = Header(...),
    x_hub_signature_256: str | None = Header(None),
    x_github_delivery: str | None = Header(None),
    factory: ServiceFactory = Depends(get_service_factory),
) -> EventAcceptedResponse:
    body = await request.body()
    if not verify_signature(
        body=body,
        secret=settings.webhook_secret,
        signature_header=x_hub_signature_256,
        require_signature=settings.webhook_require_signature,
    ):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature")

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Body is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Body must be a JSON object")

    repository = (payload.get("repository") or {}).get("full_name") or settings.repository
    if not repository:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Repository could not be determined")

    background_tasks.add_task(_handle_in_background, factory, repository, x_github_event, payload)
    return EventAcceptedResponse(
        event=x_github_event,
        action=payload.get("action"),
        repository=repository,
        delivery_id=x_github_delivery,
    )
