"""API routes exchanging external credentials for API keys."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from backend.app_context import get_accounts_service

from ..accounts import AccountsService, AuthenticationError
from ..schemas.auth import AuthenticateRequest, AuthenticateResponse

router = APIRouter(prefix="/api/authenticate", tags=["auth"])


@router.post("", response_model=AuthenticateResponse)
async def authenticate_via_jwt(
    payload: AuthenticateRequest,
    *,
    accounts: AccountsService = Depends(get_accounts_service),
) -> AuthenticateResponse:
    try:
        account, api_key = await accounts.authenticate_via_jwt(payload.jwt)
    except AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED) from exc
    return AuthenticateResponse(account_id=account.id, api_key=api_key)
