"""Shared application context for reusable dependencies."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from fastapi import FastAPI, Request

from backend.app.accounts import AccountsService
from backend.app.billing import BillingService
from backend.app.plans import PlanCatalog
from backend.app.proxy import ProxyUsersService
from backend.app.webhooks import BillingWebhookReceiver, RouterLimitsWebhookReceiver
from backend.config import AppConfig


@dataclass
class AppServices:
    """Collaborators the routers resolve per request."""

    config: AppConfig
    plans: PlanCatalog
    billing: BillingService
    accounts: AccountsService
    proxy_users: ProxyUsersService
    billing_webhooks: BillingWebhookReceiver
    routerlimits_webhooks: RouterLimitsWebhookReceiver


def configure(app: FastAPI, services: AppServices) -> None:
    """Register application-wide dependencies required by modular routers."""

    app.state.services = services


def _require(value: Optional[Any], name: str) -> Any:
    if value is None:
        raise RuntimeError(f"Application context has not been configured yet: {name}")
    return value


def get_services(request: Request) -> AppServices:
    return _require(getattr(request.app.state, "services", None), "services")


def get_config(request: Request) -> AppConfig:
    return get_services(request).config


def get_accounts_service(request: Request) -> AccountsService:
    return get_services(request).accounts


def get_billing_service(request: Request) -> BillingService:
    return get_services(request).billing


def get_plan_catalog(request: Request) -> PlanCatalog:
    return get_services(request).plans


def get_proxy_users_service(request: Request) -> ProxyUsersService:
    return get_services(request).proxy_users


def get_billing_webhook_receiver(request: Request) -> BillingWebhookReceiver:
    return get_services(request).billing_webhooks


def get_routerlimits_webhook_receiver(request: Request) -> RouterLimitsWebhookReceiver:
    return get_services(request).routerlimits_webhooks
