"""Application configuration settings."""
from __future__ import annotations

import os
from decimal import Decimal
from functools import lru_cache

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Runtime toggles -----------------------------------------------------
# Runtime environment: "dev" | "staging" | "prod"
ENV = os.getenv("MKT_ENV", "dev").lower()

# Legacy key, only tolerated in dev
DEV_API_KEY = os.getenv("DEV_API_KEY") or os.getenv("API_KEY") or "dev-secret-key"
DEV_API_KEY_ALLOWED = ENV in {"dev", "local", "dev_local", "test"}

# Recognised scopes
API_SCOPES = {"customer", "provider", "support", "admin"}


class Settings(BaseSettings):
    """Environment configuration for the marketplace backend."""

    app_env: str = ENV
    database_url: str = "sqlite:///marketplace.db"
    SECRET_KEY: str = "change-me"
    DEV_API_KEY: str | None = Field(
        default=DEV_API_KEY,
        validation_alias=AliasChoices("DEV_API_KEY", "API_KEY"),
    )
    CORS_ALLOW_ORIGINS: list[str] = [
        "http://localhost:3000",
    ]
    SENTRY_DSN: str | None = None
    PROMETHEUS_ENABLED: bool = False
    ALLOW_DB_CREATE_ALL: bool = False
    SCHEDULER_ENABLED: bool = False

    # --- Razorpay --------------------------------------------------------
    RAZORPAY_ENABLED: bool = True
    RAZORPAY_KEY_ID: str | None = None
    RAZORPAY_KEY_SECRET: str | None = None
    RAZORPAY_ACCOUNT_NUMBER: str | None = None
    RAZORPAY_TIMEOUT_SECONDS: float = 10.0
    RAZORPAY_MAX_RETRIES: int = 2
    RAZORPAY_RETRY_BACKOFF_SECONDS: float = 0.5

    # --- Settlement ------------------------------------------------------
    PAYMENT_CURRENCY: str = "INR"
    PLATFORM_FEE_PERCENT: Decimal = Decimal("10")
    PAYOUT_MODE: str = "IMPS"

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="", env_file_encoding="utf-8"
    )

    @field_validator("RAZORPAY_KEY_ID", "RAZORPAY_KEY_SECRET", "RAZORPAY_ACCOUNT_NUMBER")
    @classmethod
    def _strip_empty_secret(cls, value: str | None) -> str | None:
        """Normalise empty gateway credentials to ``None`` for easier validation."""

        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("PLATFORM_FEE_PERCENT")
    @classmethod
    def _fee_in_range(cls, value: Decimal) -> Decimal:
        if value < 0 or value >= 100:
            raise ValueError("PLATFORM_FEE_PERCENT must be within [0, 100)")
        return value


class AppInfo(BaseModel):
    name: str = "marketplace-backend"
    version: str = "0.1.0"


settings = Settings()


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return settings


__all__ = [
    "ENV",
    "DEV_API_KEY",
    "DEV_API_KEY_ALLOWED",
    "API_SCOPES",
    "Settings",
    "AppInfo",
    "settings",
    "get_settings",
]
