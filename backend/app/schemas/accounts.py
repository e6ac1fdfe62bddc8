"""API schemas for account endpoints."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..accounts import AccountView
from ..billing import PaymentMethod


class AccountCreateRequest(BaseModel):
    first_name: str = Field(alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(alias="lastName", min_length=1, max_length=100)
    email: EmailStr

    model_config = ConfigDict(populate_by_name=True)


class AccountUpdateRequest(BaseModel):
    """Partial update; ``planId: null`` cancels the subscription."""

    first_name: Optional[str] = Field(default=None, alias="firstName", min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, alias="lastName", min_length=1, max_length=100)
    plan_id: Optional[str] = Field(default=None, alias="planId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)

    @property
    def plan_change_requested(self) -> bool:
        return "plan_id" in self.model_fields_set


class AccountResponse(BaseModel):
    id: str
    email: str
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    plan_id: Optional[str] = Field(default=None, alias="planId")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_view(cls, view: AccountView) -> "AccountResponse":
        return cls(
            id=view.account.id,
            email=view.account.email,
            first_name=view.account.first_name,
            last_name=view.account.last_name,
            plan_id=view.plan_id,
        )


class AccountCreateResponse(BaseModel):
    account: AccountResponse
    api_key: str = Field(alias="apiKey")

    model_config = ConfigDict(populate_by_name=True)


class PaymentMethodCreateRequest(BaseModel):
    token: str = Field(min_length=1, description="Tokenized payment source from the billing provider")


class PaymentMethodListResponse(BaseModel):
    data: List[PaymentMethod]
