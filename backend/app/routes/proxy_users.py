"""API route relaying user creation to RouterLimits."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from backend.app_context import get_proxy_users_service

from ..proxy import ProxyUsersService

router = APIRouter(prefix="/api/proxy", tags=["proxy"])


@router.post("/users")
async def create_proxy_user(
    payload: Dict[str, Any] = Body(...),
    *,
    proxy_users: ProxyUsersService = Depends(get_proxy_users_service),
) -> JSONResponse:
    status_code, body = await proxy_users.create_user(payload)
    return JSONResponse(status_code=status_code, content=body)
