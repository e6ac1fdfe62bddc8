"""Domain models for the billing system."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SubscribeErrorKind(str, Enum):
    """Stable business failures reported for subscription changes."""

    PAYMENT_FAILED = "PAYMENT_FAILED"
    NO_PAYMENT_METHOD = "NO_PAYMENT_METHOD"


class CardInfo(BaseModel):
    """Card details safe to show to the account holder."""

    brand: str
    exp_month: int = Field(alias="expMonth", ge=1, le=12)
    exp_year: int = Field(alias="expYear")
    last4: str = Field(min_length=4, max_length=4)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PaymentMethod(BaseModel):
    """A provider payment source normalized to a stable shape."""

    id: str
    is_default: bool = Field(alias="isDefault")
    card_info: CardInfo = Field(alias="cardInfo")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ProviderSubscription(BaseModel):
    """Provider subscription as seen while looking for the one we own."""

    id: str
    plan_id: Optional[str] = None
    item_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)
