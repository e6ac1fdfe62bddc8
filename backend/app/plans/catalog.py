"""Static plan catalog used to recognise first-party subscriptions."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Union

from .models import Plan, PlanInterval


class PlanCatalog(Protocol):
    """Lookup operations required by the billing and plans layers."""

    def get_by_billing_id(self, billing_id: str) -> Optional[Plan]:
        ...

    def list_plans(self, start_key: Optional[str] = None, limit: Optional[int] = None) -> List[Plan]:
        ...


DEFAULT_PLANS = (
    Plan(id="free", billingId="plan_free_monthly", name="Free", amount=0),
    Plan(id="home", billingId="plan_home_monthly", name="Home", amount=499),
    Plan(id="home-annual", billingId="plan_home_annual", name="Home (Annual)", amount=4999, interval=PlanInterval.YEAR),
    Plan(id="family", billingId="plan_family_monthly", name="Family", amount=999),
)


class StaticPlanCatalog:
    """In-memory catalog ordered by plan id."""

    def __init__(self, plans: Iterable[Plan]) -> None:
        self._plans: Dict[str, Plan] = {}
        self._by_billing_id: Dict[str, Plan] = {}
        for plan in sorted(plans, key=lambda p: p.id):
            if plan.id in self._plans:
                raise ValueError(f"Duplicate plan id: {plan.id}")
            if plan.billing_id in self._by_billing_id:
                raise ValueError(f"Duplicate plan billing id: {plan.billing_id}")
            self._plans[plan.id] = plan
            self._by_billing_id[plan.billing_id] = plan

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "StaticPlanCatalog":
        """Load plans from a JSON array of plan objects."""

        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError("Plan catalog file must contain a JSON array")
        return cls(Plan.model_validate(item) for item in raw)

    def get(self, plan_id: str) -> Optional[Plan]:
        return self._plans.get(plan_id)

    def get_by_billing_id(self, billing_id: str) -> Optional[Plan]:
        return self._by_billing_id.get(billing_id)

    def list_plans(self, start_key: Optional[str] = None, limit: Optional[int] = None) -> List[Plan]:
        """Return plans after ``start_key`` (exclusive), at most ``limit`` of them."""

        plans = [plan for plan in self._plans.values() if start_key is None or plan.id > start_key]
        if limit is not None:
            if limit < 1:
                raise ValueError("limit must be >= 1")
            plans = plans[:limit]
        return plans


def load_plan_catalog(path: Optional[str] = None) -> StaticPlanCatalog:
    if path:
        return StaticPlanCatalog.from_file(path)
    return StaticPlanCatalog(DEFAULT_PLANS)
