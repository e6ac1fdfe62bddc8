"""Persistence layer for accounts."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Optional, Protocol

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from .models import Account


class AccountRepository(Protocol):
    """Persistence operations required by the accounts service."""

    def insert(self, account: Account) -> Account:
        ...

    def get(self, account_id: str) -> Optional[Account]:
        ...

    def get_by_email(self, email: str) -> Optional[Account]:
        ...

    def get_by_api_key_hash(self, api_key_hash: str) -> Optional[Account]:
        ...

    def update(
        self,
        account_id: str,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        api_key_hash: Optional[str] = None,
    ) -> Optional[Account]:
        ...


class DuplicateAccountError(ValueError):
    """An account with the same email already exists."""


class InMemoryAccountRepository:
    """Dictionary backed repository for tests and local development."""

    def __init__(self) -> None:
        self._accounts: Dict[str, Account] = {}

    def insert(self, account: Account) -> Account:
        if self.get_by_email(account.email) is not None:
            raise DuplicateAccountError(f"Account already exists for {account.email}")
        self._accounts[account.id] = account
        return account

    def get(self, account_id: str) -> Optional[Account]:
        return self._accounts.get(account_id)

    def get_by_email(self, email: str) -> Optional[Account]:
        return next((a for a in self._accounts.values() if a.email == email), None)

    def get_by_api_key_hash(self, api_key_hash: str) -> Optional[Account]:
        return next((a for a in self._accounts.values() if a.api_key_hash == api_key_hash), None)

    def update(
        self,
        account_id: str,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        api_key_hash: Optional[str] = None,
    ) -> Optional[Account]:
        account = self._accounts.get(account_id)
        if account is None:
            return None
        changes: Dict[str, Any] = {"updated_at": datetime.now(timezone.utc)}
        if first_name is not None:
            changes["first_name"] = first_name
        if last_name is not None:
            changes["last_name"] = last_name
        if api_key_hash is not None:
            changes["api_key_hash"] = api_key_hash
        updated = account.model_copy(update=changes)
        self._accounts[account_id] = updated
        return updated


ACCOUNTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    billing_id TEXT NOT NULL,
    api_key_hash TEXT NOT NULL UNIQUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


def _row_to_account(row: dict) -> Account:
    return Account(
        id=row["account_id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        billing_id=row["billing_id"],
        api_key_hash=row["api_key_hash"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresAccountRepository:
    """Concrete repository persisting accounts in PostgreSQL."""

    def __init__(
        self,
        *,
        connect: Optional[Callable[[], PgConnection]] = None,
        db_config: Optional[Dict[str, Any]] = None,
    ) -> None:
        if connect is None and db_config is None:
            raise ValueError("Either connect or db_config is required")
        self._connect = connect or (lambda: psycopg2.connect(**db_config))

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        connection = self._connect()
        try:
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
                connection.commit()
            except Exception:
                connection.rollback()
                raise
            finally:
                cursor.close()
        finally:
            connection.close()

    def create_schema(self) -> None:
        with self._cursor() as cursor:
            cursor.execute(ACCOUNTS_SCHEMA)

    def insert(self, account: Account) -> Account:
        with self._cursor() as cursor:
            try:
                cursor.execute(
                    """
                    INSERT INTO accounts (
                        account_id,
                        email,
                        first_name,
                        last_name,
                        billing_id,
                        api_key_hash
                    )
                    VALUES (%(account_id)s, %(email)s, %(first_name)s, %(last_name)s,
                            %(billing_id)s, %(api_key_hash)s)
                    RETURNING *
                    """,
                    {
                        "account_id": account.id,
                        "email": account.email,
                        "first_name": account.first_name,
                        "last_name": account.last_name,
                        "billing_id": account.billing_id,
                        "api_key_hash": account.api_key_hash,
                    },
                )
            except psycopg2.IntegrityError as exc:
                raise DuplicateAccountError(f"Account already exists for {account.email}") from exc
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist account")
            return _row_to_account(row)

    def _fetch_one(self, column: str, value: str) -> Optional[Account]:
        with self._cursor() as cursor:
            cursor.execute(
                f"SELECT * FROM accounts WHERE {column} = %s LIMIT 1",
                (value,),
            )
            row = cursor.fetchone()
            return _row_to_account(row) if row else None

    def get(self, account_id: str) -> Optional[Account]:
        return self._fetch_one("account_id", account_id)

    def get_by_email(self, email: str) -> Optional[Account]:
        return self._fetch_one("email", email)

    def get_by_api_key_hash(self, api_key_hash: str) -> Optional[Account]:
        return self._fetch_one("api_key_hash", api_key_hash)

    def update(
        self,
        account_id: str,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        api_key_hash: Optional[str] = None,
    ) -> Optional[Account]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE accounts
                SET first_name = COALESCE(%(first_name)s, first_name),
                    last_name = COALESCE(%(last_name)s, last_name),
                    api_key_hash = COALESCE(%(api_key_hash)s, api_key_hash),
                    updated_at = NOW()
                WHERE account_id = %(account_id)s
                RETURNING *
                """,
                {
                    "account_id": account_id,
                    "first_name": first_name,
                    "last_name": last_name,
                    "api_key_hash": api_key_hash,
                },
            )
            row = cursor.fetchone()
            return _row_to_account(row) if row else None


__all__ = [
    "AccountRepository",
    "DuplicateAccountError",
    "InMemoryAccountRepository",
    "PostgresAccountRepository",
]
