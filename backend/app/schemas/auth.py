"""API schemas for authentication endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AuthenticateRequest(BaseModel):
    jwt: str = Field(min_length=1)


class AuthenticateResponse(BaseModel):
    account_id: str = Field(alias="accountId")
    api_key: str = Field(alias="apiKey")

    model_config = ConfigDict(populate_by_name=True)
