"""Shared fixtures wiring the API against the in-memory sandbox."""
from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from backend.app.accounts import InMemoryAccountRepository
from backend.app.billing import InMemoryBillingProvider
from backend.app.plans import DEFAULT_PLANS, StaticPlanCatalog
from backend.app.services.billing import build_services
from backend.app_context import AppServices
from backend.config import AppConfig, load_config
from backend.main import create_app


ALLOWED_ORIGIN = "https://app.example.com"
STRIPE_WEBHOOK_SECRET = "whsec_test_secret"
ROUTERLIMITS_WEBHOOK_SECRET = "rl_test_secret"
JWT_SECRET = "jwt-test-secret"


@pytest.fixture
def config() -> AppConfig:
    return load_config(
        {
            "API_ALLOWED_ORIGINS": ALLOWED_ORIGIN,
            "STRIPE_WEBHOOK_SECRET": STRIPE_WEBHOOK_SECRET,
            "ROUTERLIMITS_WEBHOOK_SECRET": ROUTERLIMITS_WEBHOOK_SECRET,
            "ROUTERLIMITS_API_URL": "https://routerlimits.test/v1",
            "ROUTERLIMITS_API_KEY": "rl-key",
            "AUTH_JWT_SECRET": JWT_SECRET,
        }
    )


@pytest.fixture
def plan_catalog() -> StaticPlanCatalog:
    return StaticPlanCatalog(DEFAULT_PLANS)


@pytest.fixture
def provider() -> InMemoryBillingProvider:
    return InMemoryBillingProvider()


@pytest.fixture
def account_repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def services(
    config: AppConfig,
    provider: InMemoryBillingProvider,
    account_repository: InMemoryAccountRepository,
    plan_catalog: StaticPlanCatalog,
) -> AppServices:
    return build_services(config, provider=provider, repository=account_repository, plans=plan_catalog)


@pytest.fixture
def app(services: AppServices):
    return create_app(services=services)


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def account(client: TestClient) -> dict:
    """A freshly created account plus the API key headers to act as it."""

    response = client.post(
        "/api/accounts",
        json={"firstName": "Ada", "lastName": "Lovelace", "email": "Ada@Example.com"},
        headers={"origin": ALLOWED_ORIGIN},
    )
    assert response.status_code == 201, response.text
    body = response.json()
    return {
        "id": body["account"]["id"],
        "api_key": body["apiKey"],
        "headers": {"x-api-key": body["apiKey"], "origin": ALLOWED_ORIGIN},
    }
