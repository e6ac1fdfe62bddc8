"""Application wiring for the billing and accounts services."""
from __future__ import annotations

import logging
from typing import Optional

from backend.app_context import AppServices
from backend.config import AppConfig

from ..accounts import AccountRepository, AccountsService, InMemoryAccountRepository, PostgresAccountRepository
from ..billing import BillingProvider, BillingService, InMemoryBillingProvider, StripeBillingProvider
from ..plans import PlanCatalog, load_plan_catalog
from ..proxy import ProxyUsersService
from ..webhooks import (
    ANY_EVENT,
    BillingWebhookReceiver,
    RouterLimitsWebhookReceiver,
    WebhookDispatcher,
    WebhookEvent,
)


logger = logging.getLogger("billing")


class LoggingBillingEventHandlers:
    """Records billing provider events to the application logger."""

    async def subscription_updated(self, event: WebhookEvent) -> None:
        subscription = event.data.get("object") or {}
        logger.info(
            "Subscription %s updated customer=%s status=%s",
            subscription.get("id"),
            subscription.get("customer"),
            subscription.get("status"),
        )

    async def subscription_deleted(self, event: WebhookEvent) -> None:
        subscription = event.data.get("object") or {}
        logger.info(
            "Subscription %s deleted customer=%s",
            subscription.get("id"),
            subscription.get("customer"),
        )

    async def payment_failed(self, event: WebhookEvent) -> None:
        invoice = event.data.get("object") or {}
        logger.warning(
            "Payment failure for subscription %s invoice=%s amount=%s %s",
            invoice.get("subscription"),
            invoice.get("id"),
            invoice.get("amount_due"),
            invoice.get("currency"),
        )

    def register(self, dispatcher: WebhookDispatcher) -> None:
        dispatcher.register("customer.subscription.updated", self.subscription_updated)
        dispatcher.register("customer.subscription.deleted", self.subscription_deleted)
        dispatcher.register("invoice.payment_failed", self.payment_failed)


async def log_routerlimits_event(event: WebhookEvent) -> None:
    logger.info("RouterLimits event %s (%s)", event.type, event.id)


def build_billing_provider(config: AppConfig) -> BillingProvider:
    if config.billing_provider == "stripe":
        return StripeBillingProvider(
            secret_key=config.stripe.secret_key or "",
            api_version=config.stripe.api_version,
        )
    logger.warning("Using the in-memory sandbox billing provider")
    return InMemoryBillingProvider()


def build_account_repository(config: AppConfig) -> AccountRepository:
    if config.accounts_store == "postgres":
        return PostgresAccountRepository(db_config=config.db)
    logger.warning("Using the in-memory account store; accounts are lost on restart")
    return InMemoryAccountRepository()


def build_services(
    config: AppConfig,
    *,
    provider: Optional[BillingProvider] = None,
    repository: Optional[AccountRepository] = None,
    plans: Optional[PlanCatalog] = None,
    proxy_users: Optional[ProxyUsersService] = None,
) -> AppServices:
    """Assemble the service graph; explicit collaborators override configuration."""

    plans = plans or load_plan_catalog(config.plans_catalog_path)
    billing = BillingService.create(provider or build_billing_provider(config), plans)
    accounts = AccountsService(
        repository or build_account_repository(config),
        billing,
        jwt_secret=config.auth.jwt_secret,
        jwt_algorithm=config.auth.jwt_algorithm,
    )

    billing_dispatcher = WebhookDispatcher("billing")
    LoggingBillingEventHandlers().register(billing_dispatcher)
    routerlimits_dispatcher = WebhookDispatcher("routerlimits")
    routerlimits_dispatcher.register(ANY_EVENT, log_routerlimits_event)

    return AppServices(
        config=config,
        plans=plans,
        billing=billing,
        accounts=accounts,
        proxy_users=proxy_users
        or ProxyUsersService(api_url=config.routerlimits.api_url, api_key=config.routerlimits.api_key),
        billing_webhooks=BillingWebhookReceiver(config.stripe.webhook_secret, billing_dispatcher),
        routerlimits_webhooks=RouterLimitsWebhookReceiver(config.routerlimits.webhook_secret, routerlimits_dispatcher),
    )


__all__ = ["LoggingBillingEventHandlers", "build_services"]
