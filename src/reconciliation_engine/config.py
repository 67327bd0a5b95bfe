"""Configuration management for the reconciliation engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    engine_version: str
    host: str
    port: int
    debug: bool
    log_level: str

    # Document generation
    payment_cycle_days: int
    tax_rate: Decimal
    default_currency: str
    default_payment_method: str

    # Outbound email notifications (disabled when api key is empty)
    email_api_url: str
    email_api_key: str
    email_from: str
    email_from_name: str

    @property
    def notifications_enabled(self) -> bool:
        """Whether an email API key has been configured."""
        return bool(self.email_api_key)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            database_url=os.getenv(
                "DATABASE_URL",
                "sqlite+aiosqlite:///./reconciliation.db",
            ),
            engine_version=os.getenv("ENGINE_VERSION", "1.0.0"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            payment_cycle_days=int(os.getenv("PAYMENT_CYCLE_DAYS", "45")),
            tax_rate=Decimal(os.getenv("TAX_RATE", "0.10")),
            default_currency=os.getenv("DEFAULT_CURRENCY", "AUD"),
            default_payment_method=os.getenv("DEFAULT_PAYMENT_METHOD", "bank_transfer"),
            email_api_url=os.getenv("EMAIL_API_URL", "https://api.resend.com/emails"),
            email_api_key=os.getenv("EMAIL_API_KEY", ""),
            email_from=os.getenv("EMAIL_FROM", "noreply@example.com"),
            email_from_name=os.getenv("EMAIL_FROM_NAME", "Financial Management"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
