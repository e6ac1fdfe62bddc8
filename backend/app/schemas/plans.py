"""API schemas for plan endpoints."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..plans import Plan


class PlanListResponse(BaseModel):
    has_more: bool = Field(default=False, alias="hasMore")
    last_evaluated_key: Optional[str] = Field(default=None, alias="lastEvaluatedKey")
    data: List[Plan]

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_plans(cls, plans: List[Plan]) -> "PlanListResponse":
        return cls(
            has_more=False,
            last_evaluated_key=plans[-1].id if plans else None,
            data=plans,
        )
