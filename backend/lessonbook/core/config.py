# backend/lessonbook/core/config.py
import logging
import os
from pathlib import Path
from typing import Any, Set

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_AVAILABILITY_HORIZON_DAYS, DEFAULT_TIMEZONE


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


PROD_ENVIRONMENTS: Set[str] = {"prod", "production", "live"}

_TRUTHY_FLAGS: Set[str] = {"1", "true", "yes", "on"}


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment environment")
    log_level: str = Field(default="INFO", description="Root log level")

    database_url: str = Field(
        default="sqlite:///./lessonbook.db",
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
        description="SQLAlchemy database URL (PostgreSQL in production)",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Stripe Configuration
    stripe_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe secret key for backend API calls",
    )
    stripe_webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe webhook signing secret",
    )
    # Escape hatch for environments without a live payment integration:
    # reservations are marked paid inside the reservation transaction.
    payment_disabled: bool = Field(
        default=False,
        validation_alias=AliasChoices("STRIPE_DISABLED", "PAYMENT_DISABLED", "payment_disabled"),
        description="Skip Stripe checkout and mark bookings paid immediately",
    )
    public_base_url: str = Field(
        default="http://localhost:3000",
        description="Frontend base URL used for checkout success/cancel redirects",
    )

    # Scheduling
    availability_horizon_days: int = Field(
        default=DEFAULT_AVAILABILITY_HORIZON_DAYS,
        ge=1,
        le=366,
        description="How far ahead a new availability rule is expanded",
    )
    default_timezone: str = Field(
        default=DEFAULT_TIMEZONE, description="Fallback IANA timezone for teachers"
    )

    # Identity supplied by the upstream session gateway
    auth_user_id_header: str = Field(default="X-User-Id")
    auth_user_email_header: str = Field(default="X-User-Email")

    cors_allowed_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("payment_disabled", mode="before")
    @classmethod
    def _coerce_payment_flag(cls, value: Any) -> Any:
        # STRIPE_DISABLED=1 is the documented way to switch payments off
        if isinstance(value, str):
            return value.strip().lower() in _TRUTHY_FLAGS
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = (value or "INFO").strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {value}")
        return normalized

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in PROD_ENVIRONMENTS

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key.get_secret_value())

    def checkout_success_url(self, booking_id: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/booking/success?bookingId={booking_id}"

    def checkout_cancel_url(self) -> str:
        return f"{self.public_base_url.rstrip('/')}/booking/cancel"


def assert_env(settings_obj: "Settings") -> None:
    """Refuse to start a production process with an unsafe payment setup."""
    if not settings_obj.is_production:
        return
    if settings_obj.payment_disabled:
        raise RuntimeError("Refusing to start: STRIPE_DISABLED is not allowed in production")
    if not settings_obj.stripe_configured:
        raise RuntimeError("Refusing to start: production requires STRIPE_SECRET_KEY")


settings = Settings()
