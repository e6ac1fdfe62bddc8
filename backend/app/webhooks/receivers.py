"""Signature verification for inbound webhooks.

Receivers get the exact request bytes, verify them against the sender's
signature and only then parse the payload and hand it to a dispatcher.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Optional

import stripe
from pydantic import ValidationError

from .dispatcher import WebhookDispatcher
from .models import WebhookEvent

logger = logging.getLogger("webhooks")

STRIPE_SIGNATURE_HEADER = "stripe-signature"
ROUTERLIMITS_SIGNATURE_HEADER = "x-routerlimits-signature"


class WebhookVerificationError(ValueError):
    """The payload could not be authenticated or parsed."""


def _parse_event(payload: bytes) -> WebhookEvent:
    try:
        return WebhookEvent.model_validate_json(payload)
    except ValidationError as exc:
        raise WebhookVerificationError("Malformed webhook payload") from exc


class BillingWebhookReceiver:
    """Receives Stripe events signed with the endpoint's signing secret."""

    source = "billing"
    signature_header = STRIPE_SIGNATURE_HEADER

    def __init__(self, secret: Optional[str], dispatcher: WebhookDispatcher, *, tolerance: int = 300) -> None:
        self._secret = secret
        self.dispatcher = dispatcher
        self._tolerance = tolerance

    def verify(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        if not self._secret:
            raise WebhookVerificationError("Billing webhook secret is not configured")
        if not signature:
            raise WebhookVerificationError("Missing signature")
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature,
                self._secret,
                self._tolerance,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as exc:
            raise WebhookVerificationError("Invalid signature") from exc
        return _parse_event(payload)

    async def receive(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        event = self.verify(payload, signature)
        await self.dispatcher.dispatch(event)
        return event


class RouterLimitsWebhookReceiver:
    """Receives RouterLimits events signed with a shared HMAC-SHA256 secret."""

    source = "routerlimits"
    signature_header = ROUTERLIMITS_SIGNATURE_HEADER

    def __init__(self, secret: Optional[str], dispatcher: WebhookDispatcher) -> None:
        self._secret = secret
        self.dispatcher = dispatcher

    def sign(self, payload: bytes) -> str:
        if not self._secret:
            raise WebhookVerificationError("RouterLimits webhook secret is not configured")
        return hmac.new(self._secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()

    def verify(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        expected = self.sign(payload)
        if not signature or not hmac.compare_digest(expected, signature.strip().lower()):
            raise WebhookVerificationError("Invalid signature")
        return _parse_event(payload)

    async def receive(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        event = self.verify(payload, signature)
        await self.dispatcher.dispatch(event)
        return event
