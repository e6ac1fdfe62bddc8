"""Plan records exposed by the catalog."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PlanInterval(str, Enum):
    """Billing cadence of a plan."""

    MONTH = "month"
    YEAR = "year"


class Plan(BaseModel):
    """Internal plan record keyed by its billing-provider plan identifier."""

    id: str
    billing_id: str = Field(alias="billingId", description="Plan identifier at the billing provider")
    name: str
    amount: int = Field(default=0, ge=0, description="Price in the smallest currency unit")
    currency: str = Field(default="usd", min_length=3, max_length=3)
    interval: PlanInterval = PlanInterval.MONTH

    model_config = ConfigDict(populate_by_name=True, frozen=True)
