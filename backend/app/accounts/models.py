"""Account records owned by the accounts subsystem."""
from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class Account(BaseModel):
    """API caller identity linked to a billing-provider customer."""

    id: str
    email: str
    first_name: str
    last_name: str
    billing_id: str = Field(description="Customer identifier at the billing provider")
    api_key_hash: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)


class AccountAuth(BaseModel):
    """Identity attached to a request once its API key has been validated."""

    account_id: str = Field(alias="accountId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)
