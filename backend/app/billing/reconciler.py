"""Keeps a customer on exactly one provider subscription that we own."""
from __future__ import annotations

import logging
from typing import Optional

from ..plans import PlanCatalog
from .errors import SubscribeError, classify_provider_error, provider_error_code
from .locks import CustomerLocks
from .models import ProviderSubscription
from .provider import SUBSCRIPTION_FETCH_LIMIT, BillingProvider

logger = logging.getLogger("billing.reconciler")


class SubscriptionReconciler:
    """Derives subscription state from the provider on every call.

    A provider account may hold subscriptions created by other systems; the
    one we own is the first whose plan is known to the plan catalog.
    Subscribe and cancel for the same customer are serialized.
    """

    def __init__(
        self,
        provider: BillingProvider,
        plans: PlanCatalog,
        *,
        locks: Optional[CustomerLocks] = None,
        fetch_limit: int = SUBSCRIPTION_FETCH_LIMIT,
    ) -> None:
        self.provider = provider
        self.plans = plans
        self.locks = locks or CustomerLocks()
        self.fetch_limit = fetch_limit

    async def find_owned_subscription(self, customer_id: str) -> Optional[ProviderSubscription]:
        subscriptions = await self.provider.list_subscriptions(customer_id, limit=self.fetch_limit)
        owned = [
            sub
            for sub in subscriptions
            if sub.plan_id and self.plans.get_by_billing_id(sub.plan_id) is not None
        ]
        if not owned:
            return None
        if len(owned) > 1:
            logger.warning(
                "Customer %s has %d subscriptions on catalog plans, using %s",
                customer_id,
                len(owned),
                owned[0].id,
            )
        return owned[0]

    async def get(self, customer_id: str) -> Optional[str]:
        """Return the billing plan id the customer is subscribed to."""

        subscription = await self.find_owned_subscription(customer_id)
        if subscription is None or not subscription.plan_id:
            return None
        return subscription.plan_id

    async def subscribe(self, customer_id: str, plan_id: str) -> None:
        """Move the customer onto ``plan_id``, creating a subscription if needed."""

        async with self.locks.hold(customer_id):
            subscription = await self.find_owned_subscription(customer_id)

            if subscription is None or not subscription.plan_id:
                try:
                    created = await self.provider.create_subscription(customer_id, plan_id)
                except Exception as exc:
                    error = self._subscribe_error(customer_id, exc)
                    if error is None:
                        raise
                    raise error from exc
                logger.info("Subscribed customer %s to %s (%s)", customer_id, plan_id, created.id)
                return

            if subscription.plan_id == plan_id:
                logger.debug("Customer %s already on %s", customer_id, plan_id)
                return

            try:
                await self.provider.update_subscription(subscription, plan_id)
            except Exception as exc:
                error = self._subscribe_error(customer_id, exc)
                if error is None:
                    raise
                raise error from exc
            logger.info(
                "Moved customer %s from %s to %s (%s)",
                customer_id,
                subscription.plan_id,
                plan_id,
                subscription.id,
            )

    async def cancel(self, customer_id: str) -> None:
        """Cancel the owned subscription immediately; no-op when there is none."""

        async with self.locks.hold(customer_id):
            subscription = await self.find_owned_subscription(customer_id)
            if subscription is None or not subscription.plan_id:
                return
            await self.provider.delete_subscription(subscription.id)
            logger.info("Canceled subscription %s for customer %s", subscription.id, customer_id)

    @staticmethod
    def _subscribe_error(customer_id: str, exc: Exception) -> Optional[SubscribeError]:
        kind = classify_provider_error(exc)
        if kind is None:
            return None
        code = provider_error_code(exc)
        logger.info("Subscription change refused for customer %s: %s (%s)", customer_id, kind.value, code)
        return SubscribeError(kind, provider_code=code)


__all__ = ["SubscriptionReconciler"]
