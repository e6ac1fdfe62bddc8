"""Runtime configuration for the accounts and billing API."""
from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Union


ALLOW_ANY_ORIGIN = "*"


@dataclass(frozen=True)
class ApiConfig:
    """HTTP surface settings."""

    listen_port: int
    allowed_origins: Union[str, FrozenSet[str]]

    def origin_allowed(self, origin: str) -> bool:
        if self.allowed_origins == ALLOW_ANY_ORIGIN:
            return True
        return origin in self.allowed_origins


@dataclass(frozen=True)
class StripeConfig:
    secret_key: Optional[str]
    api_version: str
    webhook_secret: Optional[str]


@dataclass(frozen=True)
class RouterLimitsConfig:
    api_url: str
    api_key: Optional[str]
    webhook_secret: Optional[str]


@dataclass(frozen=True)
class AuthConfig:
    jwt_secret: str
    jwt_algorithm: str


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""

    api: ApiConfig
    stripe: StripeConfig
    routerlimits: RouterLimitsConfig
    auth: AuthConfig
    billing_provider: str = "sandbox"
    accounts_store: str = "memory"
    plans_catalog_path: Optional[str] = None
    log_level: str = "INFO"
    db: Dict[str, Any] = field(default_factory=dict)


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_timeout(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        timeout = float(value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def _parse_origins(value: Optional[str]) -> Union[str, FrozenSet[str]]:
    raw = (value or ALLOW_ANY_ORIGIN).strip()
    if raw == ALLOW_ANY_ORIGIN:
        return ALLOW_ANY_ORIGIN
    return frozenset(part.strip().lower() for part in raw.split(",") if part.strip())


def _choice(value: Optional[str], *, default: str, allowed: FrozenSet[str], name: str) -> str:
    chosen = (value or default).strip().lower() or default
    if chosen not in allowed:
        raise ValueError(f"{name} must be one of {sorted(allowed)}, got {value!r}")
    return chosen


def load_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load :class:`AppConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    api = ApiConfig(
        listen_port=_to_int(env_mapping.get("API_LISTEN_PORT"), default=8080),
        allowed_origins=_parse_origins(env_mapping.get("API_ALLOWED_ORIGINS")),
    )
    stripe = StripeConfig(
        secret_key=env_mapping.get("STRIPE_SECRET_KEY") or None,
        api_version=env_mapping.get("STRIPE_API_VERSION") or "2023-10-16",
        webhook_secret=env_mapping.get("STRIPE_WEBHOOK_SECRET") or None,
    )
    routerlimits = RouterLimitsConfig(
        api_url=(env_mapping.get("ROUTERLIMITS_API_URL") or "https://api.routerlimits.com").rstrip("/"),
        api_key=env_mapping.get("ROUTERLIMITS_API_KEY") or None,
        webhook_secret=env_mapping.get("ROUTERLIMITS_WEBHOOK_SECRET") or None,
    )
    auth = AuthConfig(
        jwt_secret=env_mapping.get("AUTH_JWT_SECRET", "dev-secret-change-me"),
        jwt_algorithm=env_mapping.get("AUTH_JWT_ALGORITHM", "HS256"),
    )

    db = dict(
        host=env_mapping.get("DB_HOST", "127.0.0.1"),
        port=_to_int(env_mapping.get("DB_PORT"), default=5432),
        dbname=env_mapping.get("DB_NAME", "accounts_db"),
        user=env_mapping.get("DB_USER", "accounts_user"),
        password=env_mapping.get("DB_PASSWORD", "accounts_pass"),
        connect_timeout=_to_timeout(env_mapping.get("DB_CONNECT_TIMEOUT"), default=5),
    )

    return AppConfig(
        api=api,
        stripe=stripe,
        routerlimits=routerlimits,
        auth=auth,
        billing_provider=_choice(
            env_mapping.get("BILLING_PROVIDER"),
            default="sandbox",
            allowed=frozenset({"sandbox", "stripe"}),
            name="BILLING_PROVIDER",
        ),
        accounts_store=_choice(
            env_mapping.get("ACCOUNTS_STORE"),
            default="memory",
            allowed=frozenset({"memory", "postgres"}),
            name="ACCOUNTS_STORE",
        ),
        plans_catalog_path=env_mapping.get("PLANS_CATALOG_PATH") or None,
        log_level=(env_mapping.get("LOG_LEVEL") or "INFO").upper(),
        db=db,
    )


__all__ = [
    "ALLOW_ANY_ORIGIN",
    "ApiConfig",
    "AppConfig",
    "AuthConfig",
    "RouterLimitsConfig",
    "StripeConfig",
    "load_config",
]
