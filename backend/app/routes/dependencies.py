"""Per-route admission dependencies: API-key authentication and request bodies."""
from __future__ import annotations

from typing import Awaitable, Callable, Optional, Type, TypeVar

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from backend.app_context import get_accounts_service

from ..accounts import AccountAuth, AccountsService

ModelT = TypeVar("ModelT", bound=BaseModel)


async def require_account(
    request: Request,
    api_key: Optional[str] = Header(None, alias="x-api-key"),
    accounts: AccountsService = Depends(get_accounts_service),
) -> AccountAuth:
    """Resolve the caller from ``x-api-key``; fail closed with 401.

    Errors raised while validating the key are not caught here and end up in
    the application's error handler as a 500.
    """

    if not api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    account = await accounts.validate_api_key(api_key)
    if account is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)

    auth = AccountAuth(account_id=account.id)
    request.state.auth = auth
    return auth


def require_account_scope(account_id: str, auth: AccountAuth = Depends(require_account)) -> AccountAuth:
    """Authenticated caller who may act on the ``{account_id}`` path parameter."""

    if auth.account_id != account_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot access another account")
    return auth


def scoped_json_body(model: Type[ModelT]) -> Callable[..., Awaitable[ModelT]]:
    """Dependency parsing the JSON body as ``model``.

    Runs after ``require_account_scope``; the body is never decoded for a
    caller that fails authentication or scoping.
    """

    async def parse_body(
        request: Request,
        auth: AccountAuth = Depends(require_account_scope),
    ) -> ModelT:
        try:
            return model.model_validate_json(await request.body())
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False)
            raise RequestValidationError(
                [{**error, "loc": ("body", *error["loc"])} for error in errors]
            ) from exc

    return parse_body


async def read_raw_body(request: Request) -> bytes:
    """The request body exactly as received, for signature verification."""

    return await request.body()
