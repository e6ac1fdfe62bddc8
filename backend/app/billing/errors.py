"""Billing failures and the mapping from provider error codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status

from .models import SubscribeErrorKind


class ProviderError(Exception):
    """Failure reported by a billing provider, optionally carrying its error code."""

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass
class SubscribeError(Exception):
    """A subscription change was refused for a reason the caller can act on."""

    kind: SubscribeErrorKind
    provider_code: Optional[str] = None
    status_code: int = status.HTTP_402_PAYMENT_REQUIRED

    def __post_init__(self) -> None:
        super().__init__(self.kind.value)

    @property
    def payload(self) -> Mapping[str, Any]:
        return {"error": self.kind.value}

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=dict(self.payload))


class UnknownPlanError(LookupError):
    """The requested plan is not part of the catalog."""


# Provider codes with a dedicated business meaning. Any other non-empty code
# is a refused payment.
PROVIDER_ERROR_KINDS: Dict[str, SubscribeErrorKind] = {
    "resource_missing": SubscribeErrorKind.NO_PAYMENT_METHOD,
}


def provider_error_code(exc: BaseException) -> Optional[str]:
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code:
        return code
    return None


def classify_provider_error(exc: BaseException) -> Optional[SubscribeErrorKind]:
    """Return the business kind for a provider failure, or ``None`` when uncoded."""

    code = provider_error_code(exc)
    if code is None:
        return None
    return PROVIDER_ERROR_KINDS.get(code, SubscribeErrorKind.PAYMENT_FAILED)


__all__ = [
    "PROVIDER_ERROR_KINDS",
    "ProviderError",
    "SubscribeError",
    "UnknownPlanError",
    "classify_provider_error",
    "provider_error_code",
]
