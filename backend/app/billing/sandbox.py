"""In-memory billing provider for local development and tests."""
from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .errors import ProviderError
from .models import CardInfo, PaymentMethod, ProviderSubscription
from .provider import SUBSCRIPTION_FETCH_LIMIT

DECLINED_TOKEN = "tok_chargeDeclined"


@dataclass
class _Card:
    id: str
    brand: str
    exp_month: int
    exp_year: int
    last4: str
    declines: bool = False


@dataclass
class _Customer:
    id: str
    name: str
    email: str
    cards: List[_Card] = field(default_factory=list)
    default_source: Optional[str] = None
    subscriptions: List[ProviderSubscription] = field(default_factory=list)


class InMemoryBillingProvider:
    """Emulates the provider rules the reconciler depends on.

    The first card attached becomes the default source, removing the default
    promotes the next card, subscribing without a default source fails with
    ``resource_missing`` and cards made from ``tok_chargeDeclined`` are
    declined with ``card_declined``.
    """

    def __init__(self) -> None:
        self._customers: Dict[str, _Customer] = {}
        self._ids = itertools.count(1)
        self.mutations: List[str] = []

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids):06d}"

    def _customer(self, customer_id: str) -> _Customer:
        customer = self._customers.get(customer_id)
        if customer is None:
            raise ProviderError(f"No such customer: '{customer_id}'", code="resource_missing")
        return customer

    def _to_payment_method(self, customer: _Customer, card: _Card) -> PaymentMethod:
        return PaymentMethod(
            id=card.id,
            is_default=card.id == customer.default_source,
            card_info=CardInfo(
                brand=card.brand,
                exp_month=card.exp_month,
                exp_year=card.exp_year,
                last4=card.last4,
            ),
        )

    def _charge(self, customer: _Customer) -> None:
        if customer.default_source is None:
            raise ProviderError(
                "This customer has no attached payment source or default payment method.",
                code="resource_missing",
            )
        card = next(c for c in customer.cards if c.id == customer.default_source)
        if card.declines:
            raise ProviderError("Your card was declined.", code="card_declined")

    def add_subscription(self, customer_id: str, plan_id: Optional[str]) -> ProviderSubscription:
        """Attach a subscription directly, bypassing payment rules."""

        subscription = ProviderSubscription(
            id=self._next_id("sub"),
            plan_id=plan_id,
            item_id=self._next_id("si"),
        )
        self._customer(customer_id).subscriptions.append(subscription)
        return subscription

    async def create_customer(self, first_name: str, last_name: str, email: str) -> str:
        customer_id = self._next_id("cus")
        self._customers[customer_id] = _Customer(id=customer_id, name=f"{first_name} {last_name}", email=email)
        return customer_id

    async def delete_customer(self, customer_id: str) -> None:
        self._customer(customer_id)
        del self._customers[customer_id]

    async def create_payment_method(self, customer_id: str, token: str) -> PaymentMethod:
        customer = self._customer(customer_id)
        if not token:
            raise ProviderError("Must provide source or customer.", code="parameter_missing")
        card = _Card(
            id=self._next_id("card"),
            brand="Visa",
            exp_month=12,
            exp_year=2034,
            last4="0002" if token == DECLINED_TOKEN else "4242",
            declines=token == DECLINED_TOKEN,
        )
        customer.cards.append(card)
        if customer.default_source is None:
            customer.default_source = card.id
        return self._to_payment_method(customer, card)

    async def get_payment_methods(self, customer_id: str) -> List[PaymentMethod]:
        customer = self._customer(customer_id)
        return [self._to_payment_method(customer, card) for card in customer.cards]

    async def delete_payment_method(self, customer_id: str, method_id: str) -> None:
        customer = self._customer(customer_id)
        remaining = [card for card in customer.cards if card.id != method_id]
        if len(remaining) == len(customer.cards):
            raise ProviderError(f"No such source: '{method_id}'", code="resource_missing")
        customer.cards = remaining
        if customer.default_source == method_id:
            customer.default_source = remaining[0].id if remaining else None

    async def set_default_payment_method(self, customer_id: str, method_id: str) -> None:
        customer = self._customer(customer_id)
        if not any(card.id == method_id for card in customer.cards):
            raise ProviderError(f"No such source: '{method_id}'", code="resource_missing")
        customer.default_source = method_id

    async def list_subscriptions(
        self, customer_id: str, *, limit: int = SUBSCRIPTION_FETCH_LIMIT
    ) -> List[ProviderSubscription]:
        return list(self._customer(customer_id).subscriptions[:limit])

    async def create_subscription(self, customer_id: str, plan_id: str) -> ProviderSubscription:
        customer = self._customer(customer_id)
        self._charge(customer)
        subscription = ProviderSubscription(
            id=self._next_id("sub"),
            plan_id=plan_id,
            item_id=self._next_id("si"),
        )
        customer.subscriptions.append(subscription)
        self.mutations.append(f"create:{subscription.id}")
        return subscription

    async def update_subscription(self, subscription: ProviderSubscription, plan_id: str) -> ProviderSubscription:
        for customer in self._customers.values():
            for index, existing in enumerate(customer.subscriptions):
                if existing.id == subscription.id:
                    self._charge(customer)
                    updated = existing.model_copy(update={"plan_id": plan_id})
                    customer.subscriptions[index] = updated
                    self.mutations.append(f"update:{subscription.id}")
                    return updated
        raise ProviderError(f"No such subscription: '{subscription.id}'", code="resource_missing")

    async def delete_subscription(self, subscription_id: str) -> None:
        for customer in self._customers.values():
            for existing in customer.subscriptions:
                if existing.id == subscription_id:
                    customer.subscriptions.remove(existing)
                    self.mutations.append(f"delete:{subscription_id}")
                    return
        raise ProviderError(f"No such subscription: '{subscription_id}'", code="resource_missing")


__all__ = ["DECLINED_TOKEN", "InMemoryBillingProvider"]
