# backend/slotkeeper/core/config.py
"""
Runtime configuration for the slotkeeper service.

Values come from the environment (and ``backend/.env`` outside CI). The
application factory resolves a ``Settings`` instance once and passes it down
to whatever needs it; nothing else reads configuration at import time.
"""

from functools import lru_cache
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_BACKEND_ROOT = Path(__file__).resolve().parents[2]

# Load .env file only if not in CI
if not os.getenv("CI"):
    load_dotenv(_BACKEND_ROOT / ".env")


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment environment name")

    # Database
    database_url: str = Field(
        default=f"sqlite+pysqlite:///{_BACKEND_ROOT / 'slotkeeper.db'}",
        description="SQLAlchemy URL for the booking store",
    )
    database_echo: bool = False
    database_pool_size: int = 5
    database_max_overflow: int = 5

    # Stripe
    stripe_secret_key: Optional[SecretStr] = Field(
        default=None, description="Platform Stripe secret key"
    )
    stripe_webhook_secret: Optional[SecretStr] = Field(
        default=None, description="Signing secret for the payments webhook endpoint"
    )
    stripe_timeout_seconds: int = 20
    payment_currency: str = "aud"
    platform_fee_percentage: float = Field(
        default=0.10, description="Share of the offering price retained as application fee"
    )

    # Scheduling
    max_slot_range_days: int = 62
    calendar_busy_lookup_enabled: bool = True

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("payment_currency")
    @classmethod
    def _normalize_currency(cls, value: str) -> str:
        cleaned = value.strip().lower()
        if len(cleaned) != 3:
            raise ValueError("payment_currency must be a three-letter ISO code")
        return cleaned

    @field_validator("platform_fee_percentage")
    @classmethod
    def _validate_fee(cls, value: float) -> float:
        if not 0 <= value < 1:
            raise ValueError("platform_fee_percentage must be within [0, 1)")
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key and self.stripe_secret_key.get_secret_value())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, resolved on first use."""
    return Settings()
