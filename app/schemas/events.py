"""API schemas for webhook event intake."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class EventAcceptedResponse(BaseModel):
    """Response body for POST /v1/events."""

    event: str
    action: Optional[str] = None
    repository: str
    delivery_id: Optional[str] = Field(None, description="Value of the X-GitHub-Delivery header when present.")
    status: str = "accepted"
