"""Core service coordinating billing flows with the external provider."""
from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import List, Optional

from ..plans import PlanCatalog
from .errors import UnknownPlanError
from .models import PaymentMethod
from .provider import BillingProvider
from .reconciler import SubscriptionReconciler


# ``slots`` support for ``dataclass`` was added in Python 3.10.
_dataclass_kwargs = {"slots": True} if sys.version_info >= (3, 10) else {}


@dataclass(**_dataclass_kwargs)
class BillingService:
    """Single entry point for customer, payment method and subscription calls."""

    provider: BillingProvider
    reconciler: SubscriptionReconciler

    @classmethod
    def create(cls, provider: BillingProvider, plans: PlanCatalog) -> "BillingService":
        return cls(provider=provider, reconciler=SubscriptionReconciler(provider, plans))

    @property
    def plans(self) -> PlanCatalog:
        return self.reconciler.plans

    async def create_customer(self, first_name: str, last_name: str, email: str) -> str:
        return await self.provider.create_customer(first_name, last_name, email)

    async def delete_customer(self, customer_id: str) -> None:
        await self.provider.delete_customer(customer_id)

    async def create_payment_method(self, customer_id: str, token: str) -> PaymentMethod:
        return await self.provider.create_payment_method(customer_id, token)

    async def get_payment_methods(self, customer_id: str) -> List[PaymentMethod]:
        return await self.provider.get_payment_methods(customer_id)

    async def delete_payment_method(self, customer_id: str, method_id: str) -> None:
        await self.provider.delete_payment_method(customer_id, method_id)

    async def set_default_payment_method(self, customer_id: str, method_id: str) -> None:
        await self.provider.set_default_payment_method(customer_id, method_id)

    async def get(self, customer_id: str) -> Optional[str]:
        return await self.reconciler.get(customer_id)

    async def subscribe(self, customer_id: str, plan_billing_id: str) -> None:
        if self.plans.get_by_billing_id(plan_billing_id) is None:
            raise UnknownPlanError(f"Unknown plan: {plan_billing_id}")
        await self.reconciler.subscribe(customer_id, plan_billing_id)

    async def cancel(self, customer_id: str) -> None:
        await self.reconciler.cancel(customer_id)


__all__ = ["BillingService"]
