"""Tests mapping provider failures onto subscription error kinds."""
from __future__ import annotations

import pytest
import stripe

from backend.app.billing import (
    ProviderError,
    SubscribeError,
    SubscribeErrorKind,
    classify_provider_error,
)
from backend.app.billing.errors import provider_error_code


@pytest.mark.parametrize(
    "exc, expected",
    [
        (
            stripe.InvalidRequestError(
                "This customer has no attached payment source or default payment method.",
                None,
                code="resource_missing",
            ),
            SubscribeErrorKind.NO_PAYMENT_METHOD,
        ),
        (stripe.CardError("Your card was declined.", None, "card_declined"), SubscribeErrorKind.PAYMENT_FAILED),
        (stripe.CardError("Your card has expired.", "exp_month", "expired_card"), SubscribeErrorKind.PAYMENT_FAILED),
        (ProviderError("Too many requests", code="rate_limit"), SubscribeErrorKind.PAYMENT_FAILED),
        (ProviderError("No such customer", code="resource_missing"), SubscribeErrorKind.NO_PAYMENT_METHOD),
    ],
)
def test_coded_failures_are_classified(exc, expected):
    assert classify_provider_error(exc) is expected


@pytest.mark.parametrize(
    "exc",
    [
        stripe.APIConnectionError("Network error"),
        ProviderError("boom"),
        ProviderError("empty code", code=""),
        RuntimeError("unexpected"),
    ],
)
def test_uncoded_failures_are_not_classified(exc):
    assert provider_error_code(exc) is None
    assert classify_provider_error(exc) is None


def test_subscribe_error_renders_stable_payload():
    error = SubscribeError(SubscribeErrorKind.NO_PAYMENT_METHOD, provider_code="resource_missing")

    http_exc = error.to_http_exception()

    assert http_exc.status_code == 402
    assert http_exc.detail == {"error": "NO_PAYMENT_METHOD"}
    assert str(error) == "NO_PAYMENT_METHOD"
