"""Account lifecycle, API keys and billing pass-throughs."""
from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from typing import List, Optional, Tuple
from uuid import uuid4

from jose import JWTError, jwt
from starlette.concurrency import run_in_threadpool

from ..billing import BillingService, PaymentMethod
from .models import Account
from .repository import AccountRepository

logger = logging.getLogger("accounts")

API_KEY_BYTES = 32


class AccountNotFoundError(LookupError):
    """No account matches the requested identifier."""


class AuthenticationError(Exception):
    """Credentials could not be verified."""


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def generate_api_key() -> str:
    return secrets.token_urlsafe(API_KEY_BYTES)


@dataclass(frozen=True)
class AccountView:
    """Account together with its current subscription."""

    account: Account
    plan_id: Optional[str]


_UNSET = object()


class AccountsService:
    """Coordinates the account store with the billing provider."""

    def __init__(
        self,
        repository: AccountRepository,
        billing: BillingService,
        *,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
    ) -> None:
        self.repository = repository
        self.billing = billing
        self._jwt_secret = jwt_secret
        self._jwt_algorithm = jwt_algorithm

    async def create_account(self, *, first_name: str, last_name: str, email: str) -> Tuple[Account, str]:
        """Create the billing customer and the account; return the account and its API key."""

        email = email.strip().lower()
        billing_id = await self.billing.create_customer(first_name, last_name, email)
        api_key = generate_api_key()
        account = Account(
            id=uuid4().hex,
            email=email,
            first_name=first_name,
            last_name=last_name,
            billing_id=billing_id,
            api_key_hash=hash_api_key(api_key),
        )
        try:
            stored = await run_in_threadpool(self.repository.insert, account)
        except Exception:
            logger.warning("Account insert failed, removing billing customer %s", billing_id)
            try:
                await self.billing.delete_customer(billing_id)
            except Exception:
                logger.exception("Could not remove billing customer %s", billing_id)
            raise
        logger.info("Created account %s (billing customer %s)", stored.id, billing_id)
        return stored, api_key

    async def require_account(self, account_id: str) -> Account:
        account = await run_in_threadpool(self.repository.get, account_id)
        if account is None:
            raise AccountNotFoundError(f"Account not found: {account_id}")
        return account

    async def get_account(self, account_id: str) -> AccountView:
        account = await self.require_account(account_id)
        plan_id = await self.billing.get(account.billing_id)
        return AccountView(account=account, plan_id=plan_id)

    async def update_account(
        self,
        account_id: str,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        plan_id: object = _UNSET,
    ) -> AccountView:
        """Move the subscription when ``plan_id`` is given, then apply name changes.

        ``plan_id=None`` cancels the subscription; leaving it out keeps it. A
        refused subscription change leaves the names untouched.
        """

        account = await self.require_account(account_id)
        if plan_id is None:
            await self.billing.cancel(account.billing_id)
        elif plan_id is not _UNSET:
            await self.billing.subscribe(account.billing_id, str(plan_id))

        if first_name is not None or last_name is not None:
            updated = await run_in_threadpool(
                self.repository.update,
                account_id,
                first_name=first_name,
                last_name=last_name,
            )
            account = updated or account

        return AccountView(account=account, plan_id=await self.billing.get(account.billing_id))

    async def validate_api_key(self, api_key: str) -> Optional[Account]:
        if not api_key:
            return None
        return await run_in_threadpool(self.repository.get_by_api_key_hash, hash_api_key(api_key))

    async def issue_api_key(self, account_id: str) -> str:
        """Replace the account's API key; the previous key stops working."""

        api_key = generate_api_key()
        updated = await run_in_threadpool(self.repository.update, account_id, api_key_hash=hash_api_key(api_key))
        if updated is None:
            raise AccountNotFoundError(f"Account not found: {account_id}")
        return api_key

    async def authenticate_via_jwt(self, token: str) -> Tuple[Account, str]:
        """Exchange a signed JWT for the matching account and a fresh API key."""

        try:
            claims = jwt.decode(token, self._jwt_secret, algorithms=[self._jwt_algorithm])
        except JWTError as exc:
            raise AuthenticationError("Invalid token") from exc

        email = claims.get("email")
        subject = claims.get("sub")
        account: Optional[Account] = None
        if email:
            account = await run_in_threadpool(self.repository.get_by_email, str(email).strip().lower())
        elif subject:
            account = await run_in_threadpool(self.repository.get, str(subject))
        if account is None:
            raise AuthenticationError("No account for token")

        api_key = await self.issue_api_key(account.id)
        logger.info("Issued API key for account %s via JWT", account.id)
        return account, api_key

    async def list_payment_methods(self, account_id: str) -> List[PaymentMethod]:
        account = await self.require_account(account_id)
        return await self.billing.get_payment_methods(account.billing_id)

    async def create_payment_method(self, account_id: str, token: str) -> PaymentMethod:
        account = await self.require_account(account_id)
        return await self.billing.create_payment_method(account.billing_id, token)

    async def delete_payment_method(self, account_id: str, method_id: str) -> None:
        account = await self.require_account(account_id)
        await self.billing.delete_payment_method(account.billing_id, method_id)

    async def set_default_payment_method(self, account_id: str, method_id: str) -> None:
        account = await self.require_account(account_id)
        await self.billing.set_default_payment_method(account.billing_id, method_id)


__all__ = [
    "AccountNotFoundError",
    "AccountView",
    "AccountsService",
    "AuthenticationError",
    "generate_api_key",
    "hash_api_key",
]
