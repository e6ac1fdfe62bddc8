"""Accounts subsystem: API callers and their billing customers."""

from .models import Account, AccountAuth
from .repository import (
    AccountRepository,
    DuplicateAccountError,
    InMemoryAccountRepository,
    PostgresAccountRepository,
)
from .service import (
    AccountNotFoundError,
    AccountsService,
    AccountView,
    AuthenticationError,
    hash_api_key,
)

__all__ = [
    "Account",
    "AccountAuth",
    "AccountNotFoundError",
    "AccountRepository",
    "AccountView",
    "AccountsService",
    "AuthenticationError",
    "DuplicateAccountError",
    "InMemoryAccountRepository",
    "PostgresAccountRepository",
    "hash_api_key",
]
