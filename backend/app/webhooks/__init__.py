"""Inbound webhook verification and dispatch."""

from .dispatcher import ANY_EVENT, WebhookDispatcher, WebhookHandler
from .models import WebhookEvent
from .receivers import (
    BillingWebhookReceiver,
    RouterLimitsWebhookReceiver,
    WebhookVerificationError,
)

__all__ = [
    "ANY_EVENT",
    "BillingWebhookReceiver",
    "RouterLimitsWebhookReceiver",
    "WebhookDispatcher",
    "WebhookEvent",
    "WebhookHandler",
    "WebhookVerificationError",
]
