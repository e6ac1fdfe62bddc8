"""API routes exposing the plan catalog."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from backend.app_context import get_plan_catalog

from ..plans import PlanCatalog
from ..schemas.plans import PlanListResponse

logger = logging.getLogger("plans")

router = APIRouter(prefix="/api/plans", tags=["plans"])


@router.get("", response_model=PlanListResponse)
def list_plans(
    start_key: Optional[str] = Query(None, alias="startKey"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    *,
    plans: PlanCatalog = Depends(get_plan_catalog),
) -> PlanListResponse:
    try:
        results = plans.list_plans(start_key, limit)
    except Exception as exc:
        logger.exception("Plan catalog lookup failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR) from exc
    return PlanListResponse.from_plans(results)
