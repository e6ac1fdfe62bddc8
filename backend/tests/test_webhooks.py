"""Tests for webhook signature verification and dispatch."""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time

import pytest

from backend.app.webhooks import (
    ANY_EVENT,
    BillingWebhookReceiver,
    RouterLimitsWebhookReceiver,
    WebhookDispatcher,
    WebhookEvent,
    WebhookVerificationError,
)


STRIPE_SECRET = "whsec_test_secret"
ROUTERLIMITS_SECRET = "rl_test_secret"


def _stripe_signature(payload: bytes, secret: str = STRIPE_SECRET, timestamp: int = None) -> str:
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def _routerlimits_signature(payload: bytes, secret: str = ROUTERLIMITS_SECRET) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def _event(event_type: str, **data) -> bytes:
    return json.dumps({"id": "evt_1", "type": event_type, "data": data}).encode("utf-8")


class RecordingHandler:
    def __init__(self) -> None:
        self.events = []

    async def __call__(self, event: WebhookEvent) -> None:
        self.events.append(event)


@pytest.mark.asyncio
async def test_dispatcher_runs_specific_then_wildcard_handlers():
    dispatcher = WebhookDispatcher("billing")
    specific, wildcard = RecordingHandler(), RecordingHandler()
    dispatcher.register("invoice.payment_failed", specific)
    dispatcher.register(ANY_EVENT, wildcard)

    handled = await dispatcher.dispatch(WebhookEvent(type="invoice.payment_failed"))
    other = await dispatcher.dispatch(WebhookEvent(type="customer.created"))

    assert (handled, other) == (2, 1)
    assert len(specific.events) == 1
    assert len(wildcard.events) == 2


@pytest.mark.asyncio
async def test_dispatcher_ignores_unhandled_events():
    assert await WebhookDispatcher("billing").dispatch(WebhookEvent(type="customer.created")) == 0


@pytest.mark.asyncio
async def test_billing_receiver_verifies_stripe_signature():
    dispatcher = WebhookDispatcher("billing")
    handler = RecordingHandler()
    dispatcher.register("customer.subscription.deleted", handler)
    receiver = BillingWebhookReceiver(STRIPE_SECRET, dispatcher)
    payload = _event("customer.subscription.deleted", object={"id": "sub_1"})

    event = await receiver.receive(payload, _stripe_signature(payload))

    assert event.id == "evt_1"
    assert handler.events[0].data["object"]["id"] == "sub_1"


@pytest.mark.parametrize(
    "signature",
    [
        None,
        "garbage",
        _stripe_signature(b'{"type": "x"}'),
        _stripe_signature(_event("invoice.paid"), secret="whsec_other"),
        _stripe_signature(_event("invoice.paid"), timestamp=int(time.time()) - 3600),
    ],
)
def test_billing_receiver_rejects_bad_signatures(signature):
    receiver = BillingWebhookReceiver(STRIPE_SECRET, WebhookDispatcher("billing"))

    with pytest.raises(WebhookVerificationError):
        receiver.verify(_event("invoice.paid"), signature)


def test_receivers_fail_closed_without_secret():
    payload = _event("invoice.paid")

    with pytest.raises(WebhookVerificationError):
        BillingWebhookReceiver(None, WebhookDispatcher("billing")).verify(payload, _stripe_signature(payload))
    with pytest.raises(WebhookVerificationError):
        RouterLimitsWebhookReceiver(None, WebhookDispatcher("routerlimits")).verify(
            payload, _routerlimits_signature(payload)
        )


def test_routerlimits_receiver_verifies_hmac():
    receiver = RouterLimitsWebhookReceiver(ROUTERLIMITS_SECRET, WebhookDispatcher("routerlimits"))
    payload = _event("device.updated", deviceId="d1")

    assert receiver.verify(payload, _routerlimits_signature(payload).upper()).data == {"deviceId": "d1"}
    with pytest.raises(WebhookVerificationError):
        receiver.verify(payload + b" ", _routerlimits_signature(payload))


def test_signed_but_malformed_payload_is_rejected():
    receiver = RouterLimitsWebhookReceiver(ROUTERLIMITS_SECRET, WebhookDispatcher("routerlimits"))
    payload = b'{"data": {}}'

    with pytest.raises(WebhookVerificationError):
        receiver.verify(payload, _routerlimits_signature(payload))


def test_billing_webhook_route_accepts_signed_payload(client, caplog):
    payload = _event("customer.subscription.updated", object={"id": "sub_1", "customer": "cus_1", "status": "active"})

    with caplog.at_level(logging.INFO, logger="billing"):
        response = client.post(
            "/webhooks/billing",
            content=payload,
            headers={"stripe-signature": _stripe_signature(payload), "content-type": "application/json"},
        )

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert any("sub_1" in record.getMessage() for record in caplog.records if record.name == "billing")


def test_billing_webhook_route_rejects_tampered_payload(client):
    payload = _event("invoice.payment_failed")
    signature = _stripe_signature(payload)

    response = client.post(
        "/webhooks/billing",
        content=payload.replace(b"evt_1", b"evt_2"),
        headers={"stripe-signature": signature},
    )

    assert response.status_code == 400


def test_routerlimits_webhook_route(client):
    payload = _event("device.updated")

    accepted = client.post(
        "/webhooks/routerlimits",
        content=payload,
        headers={"x-routerlimits-signature": _routerlimits_signature(payload)},
    )
    rejected = client.post("/webhooks/routerlimits", content=payload, headers={"x-routerlimits-signature": "00"})

    assert accepted.status_code == 200
    assert rejected.status_code == 400
