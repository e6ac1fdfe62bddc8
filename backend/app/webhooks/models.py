"""Webhook payloads after signature verification."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class WebhookEvent(BaseModel):
    """Provider-neutral view of a webhook event."""

    id: Optional[str] = None
    type: str = Field(min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore", frozen=True)
