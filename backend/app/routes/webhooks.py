"""Webhook endpoints; bodies are consumed raw for signature verification."""
from __future__ import annotations

import logging
from typing import Dict, Union

from fastapi import APIRouter, Depends, HTTPException, Request, status

from backend.app_context import get_billing_webhook_receiver, get_routerlimits_webhook_receiver

from ..webhooks import (
    BillingWebhookReceiver,
    RouterLimitsWebhookReceiver,
    WebhookVerificationError,
)
from .dependencies import read_raw_body

logger = logging.getLogger("webhooks")

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

Receiver = Union[BillingWebhookReceiver, RouterLimitsWebhookReceiver]


async def _receive(receiver: Receiver, request: Request, body: bytes) -> Dict[str, bool]:
    try:
        await receiver.receive(body, request.headers.get(receiver.signature_header))
    except WebhookVerificationError as exc:
        logger.warning("Rejected %s webhook: %s", receiver.source, exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"received": True}


@router.post("/routerlimits")
async def receive_routerlimits_webhook(
    request: Request,
    body: bytes = Depends(read_raw_body),
    receiver: RouterLimitsWebhookReceiver = Depends(get_routerlimits_webhook_receiver),
) -> Dict[str, bool]:
    return await _receive(receiver, request, body)


@router.post("/billing")
async def receive_billing_webhook(
    request: Request,
    body: bytes = Depends(read_raw_body),
    receiver: BillingWebhookReceiver = Depends(get_billing_webhook_receiver),
) -> Dict[str, bool]:
    return await _receive(receiver, request, body)
