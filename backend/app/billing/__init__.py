"""Billing domain package: provider adapter, subscription reconciler and service."""

from .errors import (
    PROVIDER_ERROR_KINDS,
    ProviderError,
    SubscribeError,
    UnknownPlanError,
    classify_provider_error,
)
from .locks import CustomerLocks
from .models import CardInfo, PaymentMethod, ProviderSubscription, SubscribeErrorKind
from .provider import BillingProvider, StripeBillingProvider
from .reconciler import SubscriptionReconciler
from .sandbox import InMemoryBillingProvider
from .service import BillingService

__all__ = [
    "BillingProvider",
    "BillingService",
    "CardInfo",
    "CustomerLocks",
    "InMemoryBillingProvider",
    "PROVIDER_ERROR_KINDS",
    "PaymentMethod",
    "ProviderError",
    "ProviderSubscription",
    "StripeBillingProvider",
    "SubscribeError",
    "SubscribeErrorKind",
    "SubscriptionReconciler",
    "UnknownPlanError",
    "classify_provider_error",
]
