"""API routes for accounts and their payment methods."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from backend.app_context import get_accounts_service

from ..accounts import (
    AccountAuth,
    AccountNotFoundError,
    AccountsService,
    AccountView,
    DuplicateAccountError,
)
from ..billing import PaymentMethod, SubscribeError, UnknownPlanError
from ..schemas.accounts import (
    AccountCreateRequest,
    AccountCreateResponse,
    AccountResponse,
    AccountUpdateRequest,
    PaymentMethodCreateRequest,
    PaymentMethodListResponse,
)
from .dependencies import require_account_scope, scoped_json_body


router = APIRouter(prefix="/api/accounts", tags=["accounts"])


@router.post("", response_model=AccountCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    payload: AccountCreateRequest,
    *,
    accounts: AccountsService = Depends(get_accounts_service),
) -> AccountCreateResponse:
    try:
        account, api_key = await accounts.create_account(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
        )
    except DuplicateAccountError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return AccountCreateResponse(
        account=AccountResponse.from_view(AccountView(account=account, plan_id=None)),
        api_key=api_key,
    )


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: str,
    *,
    auth: AccountAuth = Depends(require_account_scope),
    accounts: AccountsService = Depends(get_accounts_service),
) -> AccountResponse:
    try:
        view = await accounts.get_account(account_id)
    except AccountNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return AccountResponse.from_view(view)


@router.post("/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: str,
    payload: AccountUpdateRequest = Depends(scoped_json_body(AccountUpdateRequest)),
    *,
    auth: AccountAuth = Depends(require_account_scope),
    accounts: AccountsService = Depends(get_accounts_service),
) -> AccountResponse:
    changes = {}
    if payload.plan_change_requested:
        changes["plan_id"] = payload.plan_id
    try:
        view = await accounts.update_account(
            account_id,
            first_name=payload.first_name,
            last_name=payload.last_name,
            **changes,
        )
    except AccountNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except UnknownPlanError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SubscribeError as exc:
        raise exc.to_http_exception() from exc
    return AccountResponse.from_view(view)


@router.get("/{account_id}/paymentMethods", response_model=PaymentMethodListResponse)
async def list_payment_methods(
    account_id: str,
    *,
    auth: AccountAuth = Depends(require_account_scope),
    accounts: AccountsService = Depends(get_accounts_service),
) -> PaymentMethodListResponse:
    try:
        methods = await accounts.list_payment_methods(account_id)
    except AccountNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return PaymentMethodListResponse(data=methods)


@router.post(
    "/{account_id}/paymentMethods",
    response_model=PaymentMethod,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_method(
    account_id: str,
    payload: PaymentMethodCreateRequest = Depends(scoped_json_body(PaymentMethodCreateRequest)),
    *,
    auth: AccountAuth = Depends(require_account_scope),
    accounts: AccountsService = Depends(get_accounts_service),
) -> PaymentMethod:
    try:
        return await accounts.create_payment_method(account_id, payload.token)
    except AccountNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.delete("/{account_id}/paymentMethods/{method_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment_method(
    account_id: str,
    method_id: str,
    *,
    auth: AccountAuth = Depends(require_account_scope),
    accounts: AccountsService = Depends(get_accounts_service),
) -> Response:
    try:
        await accounts.delete_payment_method(account_id, method_id)
    except AccountNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{account_id}/paymentMethods/{method_id}/setDefault", status_code=status.HTTP_204_NO_CONTENT)
async def set_default_payment_method(
    account_id: str,
    method_id: str,
    *,
    auth: AccountAuth = Depends(require_account_scope),
    accounts: AccountsService = Depends(get_accounts_service),
) -> Response:
    try:
        await accounts.set_default_payment_method(account_id, method_id)
    except AccountNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
