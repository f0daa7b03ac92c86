# comebookus/config.py

"""
Application settings with environment variable overrides.

Values are read once at import time (after loading a local .env file) and
exposed through the ``settings`` singleton.
"""

import logging
import os
from dataclasses import dataclass
from datetime import time
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid integer for {env_var}: {raw!r}") from None


def _safe_float(env_var: str, default: str) -> float:
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid float for {env_var}: {raw!r}") from None


def _safe_time(env_var: str, default: str) -> time:
    raw = os.getenv(env_var, default)
    try:
        return time.fromisoformat(raw)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid HH:MM time for {env_var}: {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./comebookus.db")

    secret_key: str = os.getenv("SECRET_KEY", "change-me-later")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    access_token_expire_minutes: int = _safe_int("ACCESS_TOKEN_EXPIRE_MINUTES", "30")

    # seconds a reservation waits for the provider's lock before giving up
    reservation_lock_timeout: float = _safe_float("RESERVATION_LOCK_TIMEOUT", "5.0")
    busy_retry_after: int = _safe_int("BUSY_RETRY_AFTER", "1")

    stripe_secret_key: Optional[str] = os.getenv("STRIPE_SECRET_KEY")
    payment_currency: str = os.getenv("PAYMENT_CURRENCY", "usd")

    cron_secret: Optional[str] = os.getenv("CRON_SECRET")
    email_from_address: str = os.getenv(
        "EMAIL_FROM_ADDRESS", "ComeBookUs <noreply@comebookus.com>"
    )

    # public availability grid
    business_day_start: time = _safe_time("BUSINESS_DAY_START", "09:00")
    business_day_end: time = _safe_time("BUSINESS_DAY_END", "17:00")
    slot_minutes: int = _safe_int("SLOT_MINUTES", "15")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _validate_settings(config: Settings) -> None:
    if config.access_token_expire_minutes < 1:
        raise ValueError(
            f"ACCESS_TOKEN_EXPIRE_MINUTES must be >= 1, got {config.access_token_expire_minutes}"
        )
    if config.reservation_lock_timeout <= 0:
        raise ValueError(
            f"RESERVATION_LOCK_TIMEOUT must be > 0, got {config.reservation_lock_timeout}"
        )
    if config.busy_retry_after < 0:
        raise ValueError(f"BUSY_RETRY_AFTER must be >= 0, got {config.busy_retry_after}")
    if not 1 <= config.slot_minutes <= 240:
        raise ValueError(f"SLOT_MINUTES must be between 1 and 240, got {config.slot_minutes}")
    if config.business_day_start >= config.business_day_end:
        raise ValueError("BUSINESS_DAY_START must be earlier than BUSINESS_DAY_END")
    if config.secret_key == "change-me-later":
        logger.warning("SECRET_KEY not set, using the development default")


def load_config() -> Settings:
    """Load and validate settings, then configure logging."""
    config = Settings()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    _validate_settings(config)
    return config


settings = load_config()
