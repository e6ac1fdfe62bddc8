"""Tests for account lifecycle, API keys and JWT exchange."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import psycopg2
import pytest
from jose import jwt

from backend.app.accounts import (
    Account,
    AccountNotFoundError,
    AccountsService,
    AuthenticationError,
    DuplicateAccountError,
    InMemoryAccountRepository,
    PostgresAccountRepository,
    hash_api_key,
)
from backend.app.billing import BillingService, ProviderError, SubscribeError


JWT_SECRET = "unit-test-secret"


@pytest.fixture
def accounts(provider, plan_catalog, account_repository) -> AccountsService:
    return AccountsService(
        account_repository,
        BillingService.create(provider, plan_catalog),
        jwt_secret=JWT_SECRET,
    )


@pytest.mark.asyncio
async def test_create_account_links_billing_customer(accounts, provider):
    account, api_key = await accounts.create_account(first_name="Ada", last_name="Lovelace", email=" ADA@example.com ")

    assert account.email == "ada@example.com"
    assert account.api_key_hash == hash_api_key(api_key)
    assert await provider.get_payment_methods(account.billing_id) == []


@pytest.mark.asyncio
async def test_failed_insert_removes_billing_customer(accounts, provider):
    await accounts.create_account(first_name="Ada", last_name="Lovelace", email="ada@example.com")
    customers_before = set(provider._customers)

    with pytest.raises(DuplicateAccountError):
        await accounts.create_account(first_name="Ada", last_name="Again", email="ada@example.com")

    assert set(provider._customers) == customers_before


@pytest.mark.asyncio
async def test_failed_customer_removal_keeps_insert_error(accounts, provider, caplog):
    await accounts.create_account(first_name="Ada", last_name="Lovelace", email="ada@example.com")
    provider.delete_customer = AsyncMock(side_effect=ProviderError("provider down"))

    with caplog.at_level(logging.ERROR, logger="accounts"):
        with pytest.raises(DuplicateAccountError):
            await accounts.create_account(first_name="Ada", last_name="Again", email="ada@example.com")

    provider.delete_customer.assert_awaited_once()
    assert any(record.exc_info for record in caplog.records if record.name == "accounts")


@pytest.mark.asyncio
async def test_refused_plan_change_leaves_names_untouched(accounts, account_repository):
    account, _ = await accounts.create_account(first_name="Ada", last_name="Lovelace", email="ada@example.com")

    with pytest.raises(SubscribeError):
        await accounts.update_account(account.id, first_name="Augusta", plan_id="plan_home_monthly")

    assert account_repository.get(account.id).first_name == "Ada"


@pytest.mark.asyncio
async def test_validate_api_key(accounts):
    account, api_key = await accounts.create_account(first_name="Ada", last_name="Lovelace", email="ada@example.com")

    assert (await accounts.validate_api_key(api_key)).id == account.id
    assert await accounts.validate_api_key("wrong") is None
    assert await accounts.validate_api_key("") is None


@pytest.mark.asyncio
async def test_issue_api_key_revokes_previous_key(accounts):
    account, old_key = await accounts.create_account(first_name="Ada", last_name="Lovelace", email="ada@example.com")

    new_key = await accounts.issue_api_key(account.id)

    assert new_key != old_key
    assert await accounts.validate_api_key(old_key) is None
    assert (await accounts.validate_api_key(new_key)).id == account.id


@pytest.mark.asyncio
async def test_missing_account_raises(accounts):
    with pytest.raises(AccountNotFoundError):
        await accounts.get_account("missing")
    with pytest.raises(AccountNotFoundError):
        await accounts.issue_api_key("missing")


@pytest.mark.asyncio
async def test_authenticate_via_jwt_by_email(accounts):
    account, _ = await accounts.create_account(first_name="Ada", last_name="Lovelace", email="ada@example.com")
    token = jwt.encode(
        {"email": "Ada@Example.com", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        JWT_SECRET,
        algorithm="HS256",
    )

    matched, api_key = await accounts.authenticate_via_jwt(token)

    assert matched.id == account.id
    assert (await accounts.validate_api_key(api_key)).id == account.id


@pytest.mark.asyncio
async def test_authenticate_via_jwt_by_subject(accounts):
    account, _ = await accounts.create_account(first_name="Ada", last_name="Lovelace", email="ada@example.com")
    token = jwt.encode({"sub": account.id}, JWT_SECRET, algorithm="HS256")

    matched, _ = await accounts.authenticate_via_jwt(token)

    assert matched.id == account.id


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "claims, secret",
    [
        ({"email": "ada@example.com"}, "some-other-secret"),
        ({"email": "nobody@example.com"}, JWT_SECRET),
        ({"email": "ada@example.com", "exp": datetime.now(timezone.utc) - timedelta(minutes=5)}, JWT_SECRET),
        ({"name": "no identifying claim"}, JWT_SECRET),
    ],
)
async def test_authenticate_via_jwt_rejects(accounts, claims, secret):
    await accounts.create_account(first_name="Ada", last_name="Lovelace", email="ada@example.com")

    with pytest.raises(AuthenticationError):
        await accounts.authenticate_via_jwt(jwt.encode(claims, secret, algorithm="HS256"))


def test_authenticate_route_returns_fresh_key(client, account):
    token = jwt.encode({"email": "ada@example.com"}, "jwt-test-secret", algorithm="HS256")

    response = client.post("/api/authenticate", json={"jwt": token})

    assert response.status_code == 200
    body = response.json()
    assert body["accountId"] == account["id"]
    assert body["apiKey"] != account["api_key"]


def test_authenticate_route_rejects_bad_token(client):
    response = client.post("/api/authenticate", json={"jwt": "not-a-jwt"})

    assert response.status_code == 401


def test_in_memory_repository_update_is_partial():
    repository = InMemoryAccountRepository()
    repository.insert(
        Account(id="a1", email="ada@example.com", first_name="Ada", last_name="L", billing_id="cus_1", api_key_hash="h")
    )

    updated = repository.update("a1", last_name="Lovelace")

    assert (updated.first_name, updated.last_name, updated.api_key_hash) == ("Ada", "Lovelace", "h")
    assert repository.update("missing", first_name="X") is None


def _pg_row(**overrides) -> dict:
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    row = {
        "account_id": "a1",
        "email": "ada@example.com",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "billing_id": "cus_1",
        "api_key_hash": "h",
        "created_at": now,
        "updated_at": now,
    }
    row.update(overrides)
    return row


def _fake_connection(cursor: MagicMock) -> MagicMock:
    connection = MagicMock()
    connection.cursor.return_value = cursor
    return connection


def test_postgres_repository_commits_and_maps_rows():
    cursor = MagicMock()
    cursor.fetchone.return_value = _pg_row()
    connection = _fake_connection(cursor)
    repository = PostgresAccountRepository(connect=lambda: connection)

    account = repository.get_by_api_key_hash("h")

    assert account.id == "a1"
    assert cursor.execute.call_args.args[1] == ("h",)
    connection.commit.assert_called_once()
    connection.close.assert_called_once()


def test_postgres_repository_maps_unique_violation_and_rolls_back():
    cursor = MagicMock()
    cursor.execute.side_effect = psycopg2.IntegrityError("duplicate key value")
    connection = _fake_connection(cursor)
    repository = PostgresAccountRepository(connect=lambda: connection)

    with pytest.raises(DuplicateAccountError):
        repository.insert(
            Account(id="a1", email="ada@example.com", first_name="Ada", last_name="L", billing_id="cus_1", api_key_hash="h")
        )

    connection.rollback.assert_called_once()
    connection.commit.assert_not_called()


def test_postgres_repository_requires_connection_settings():
    with pytest.raises(ValueError):
        PostgresAccountRepository()
