"""Billing provider adapter.

The adapter is a thin, faithful channel to the provider: it normalizes
provider payloads into :class:`PaymentMethod` and :class:`ProviderSubscription`
records and lets every provider failure propagate untouched.
"""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Protocol

import stripe

from .models import CardInfo, PaymentMethod, ProviderSubscription

logger = logging.getLogger("billing.provider")

SUBSCRIPTION_PAGE_SIZE = 100
SUBSCRIPTION_FETCH_LIMIT = 1000


class BillingProvider(Protocol):
    """Customer, payment source and subscription operations at the provider."""

    async def create_customer(self, first_name: str, last_name: str, email: str) -> str:
        """Create a provider customer and return its id."""

    async def delete_customer(self, customer_id: str) -> None:
        ...

    async def create_payment_method(self, customer_id: str, token: str) -> PaymentMethod:
        """Attach a tokenized payment source to the customer."""

    async def get_payment_methods(self, customer_id: str) -> List[PaymentMethod]:
        ...

    async def delete_payment_method(self, customer_id: str, method_id: str) -> None:
        ...

    async def set_default_payment_method(self, customer_id: str, method_id: str) -> None:
        ...

    async def list_subscriptions(
        self, customer_id: str, *, limit: int = SUBSCRIPTION_FETCH_LIMIT
    ) -> List[ProviderSubscription]:
        """Return the customer's subscriptions in provider order."""

    async def create_subscription(self, customer_id: str, plan_id: str) -> ProviderSubscription:
        ...

    async def update_subscription(self, subscription: ProviderSubscription, plan_id: str) -> ProviderSubscription:
        ...

    async def delete_subscription(self, subscription_id: str) -> None:
        ...


def card_to_payment_method(card: Mapping[str, Any], default_source: Optional[str]) -> PaymentMethod:
    return PaymentMethod(
        id=card["id"],
        is_default=card["id"] == default_source,
        card_info=CardInfo(
            brand=card.get("brand") or "Unknown",
            exp_month=int(card["exp_month"]),
            exp_year=int(card["exp_year"]),
            last4=str(card["last4"]),
        ),
    )


def _default_source_id(customer: Mapping[str, Any]) -> Optional[str]:
    default_source = customer.get("default_source")
    if isinstance(default_source, Mapping):
        return default_source.get("id")
    return default_source


def subscription_from_payload(payload: Mapping[str, Any]) -> ProviderSubscription:
    """Reduce a provider subscription to its id, plan and single item."""

    plan_id: Optional[str] = None
    item_id: Optional[str] = None

    plan = payload.get("plan")
    if plan:
        plan_id = plan.get("id") if isinstance(plan, Mapping) else str(plan)

    items = payload.get("items")
    data = items.get("data") if isinstance(items, Mapping) else None
    if data:
        first = data[0]
        item_id = first.get("id")
        if plan_id is None:
            item_plan = first.get("plan") or first.get("price")
            if isinstance(item_plan, Mapping):
                plan_id = item_plan.get("id")

    return ProviderSubscription(id=payload["id"], plan_id=plan_id, item_id=item_id)


class StripeBillingProvider:
    """:class:`BillingProvider` backed by the Stripe API."""

    def __init__(self, *, secret_key: str, api_version: str) -> None:
        if not secret_key:
            raise ValueError("STRIPE_SECRET_KEY is required for the Stripe billing provider")
        self._request_options = {"api_key": secret_key, "stripe_version": api_version}

    async def create_customer(self, first_name: str, last_name: str, email: str) -> str:
        customer = await stripe.Customer.create_async(
            name=f"{first_name} {last_name}",
            email=email,
            **self._request_options,
        )
        logger.info("Created billing customer %s", customer["id"])
        return customer["id"]

    async def delete_customer(self, customer_id: str) -> None:
        await stripe.Customer.delete_async(customer_id, **self._request_options)

    async def create_payment_method(self, customer_id: str, token: str) -> PaymentMethod:
        source = await stripe.Customer.create_source_async(
            customer_id,
            source=token,
            **self._request_options,
        )
        customer = await stripe.Customer.retrieve_async(customer_id, **self._request_options)
        return card_to_payment_method(source, _default_source_id(customer))

    async def get_payment_methods(self, customer_id: str) -> List[PaymentMethod]:
        customer = await stripe.Customer.retrieve_async(
            customer_id,
            expand=["sources"],
            **self._request_options,
        )
        sources = customer.get("sources")
        data = sources.get("data", []) if sources else []
        default_source = _default_source_id(customer)
        # TODO: bank accounts and other source kinds once the API exposes them
        return [
            card_to_payment_method(source, default_source)
            for source in data
            if source.get("object") == "card"
        ]

    async def delete_payment_method(self, customer_id: str, method_id: str) -> None:
        await stripe.Customer.delete_source_async(customer_id, method_id, **self._request_options)

    async def set_default_payment_method(self, customer_id: str, method_id: str) -> None:
        await stripe.Customer.modify_async(customer_id, default_source=method_id, **self._request_options)

    async def list_subscriptions(
        self, customer_id: str, *, limit: int = SUBSCRIPTION_FETCH_LIMIT
    ) -> List[ProviderSubscription]:
        subscriptions: List[ProviderSubscription] = []
        starting_after: Optional[str] = None
        while len(subscriptions) < limit:
            params = {"customer": customer_id, "limit": min(SUBSCRIPTION_PAGE_SIZE, limit - len(subscriptions))}
            if starting_after:
                params["starting_after"] = starting_after
            page = await stripe.Subscription.list_async(**params, **self._request_options)
            data = page.get("data") or []
            subscriptions.extend(subscription_from_payload(item) for item in data)
            if not page.get("has_more") or not data:
                break
            starting_after = data[-1]["id"]
        return subscriptions[:limit]

    async def create_subscription(self, customer_id: str, plan_id: str) -> ProviderSubscription:
        created = await stripe.Subscription.create_async(
            customer=customer_id,
            items=[{"plan": plan_id}],
            **self._request_options,
        )
        return subscription_from_payload(created)

    async def update_subscription(self, subscription: ProviderSubscription, plan_id: str) -> ProviderSubscription:
        item: dict = {"plan": plan_id}
        if subscription.item_id:
            item["id"] = subscription.item_id
        updated = await stripe.Subscription.modify_async(
            subscription.id,
            items=[item],
            **self._request_options,
        )
        return subscription_from_payload(updated)

    async def delete_subscription(self, subscription_id: str) -> None:
        await stripe.Subscription.cancel_async(subscription_id, **self._request_options)


__all__ = [
    "BillingProvider",
    "SUBSCRIPTION_FETCH_LIMIT",
    "SUBSCRIPTION_PAGE_SIZE",
    "StripeBillingProvider",
    "card_to_payment_method",
    "subscription_from_payload",
]
