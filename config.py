# config.py

"""Settings for the ordering service.

``config.json`` next to this module provides the defaults for a deployment;
environment variables named after a field (any case) take precedence.
"""

from __future__ import annotations

import json
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewayProvider(str, Enum):
    """Select the remote payment gateway used for online orders.

    ``RAZORPAY`` talks to the live Razorpay Orders API while ``SANDBOX``
    fabricates gateway order ids locally for development and demos.
    """

    RAZORPAY = "razorpay"
    SANDBOX = "sandbox"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./tableorder.db"
    redis_url: str = "redis://localhost:6379/0"
    currency: str = "INR"
    payment_gateway: GatewayProvider = GatewayProvider.SANDBOX
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_webhook_secret: str = ""
    razorpay_api_url: str = "https://api.razorpay.com/v1"
    gateway_timeout_secs: float = 10.0
    idempotency_ttl_secs: int = 86400
    subscription_grace_days: int = 7
    # plan name -> orders accepted per UTC day, ``None`` for unlimited
    plan_daily_order_limits: dict[str, int | None] = {}
    log_level: str = "INFO"

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.upper()

    @field_validator("plan_daily_order_limits", mode="before")
    @classmethod
    def _parse_limits(cls, value):
        # env overrides arrive as a JSON string
        if isinstance(value, str):
            return json.loads(value)
        return value


@lru_cache
def get_settings() -> Settings:
    """Load ``config.json`` and apply environment overrides; cached per process."""

    config_path = Path(__file__).with_name("config.json")
    data = json.loads(config_path.read_text()) if config_path.exists() else {}
    overrides = {
        name.lower(): value
        for name, value in os.environ.items()
        if name.lower() in Settings.model_fields
    }
    return Settings(**{**data, **overrides})
