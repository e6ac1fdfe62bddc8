"""Plan catalog package."""

from .catalog import DEFAULT_PLANS, PlanCatalog, StaticPlanCatalog, load_plan_catalog
from .models import Plan, PlanInterval

__all__ = [
    "DEFAULT_PLANS",
    "Plan",
    "PlanCatalog",
    "PlanInterval",
    "StaticPlanCatalog",
    "load_plan_catalog",
]
