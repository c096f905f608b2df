# This project was developed with assistance from AI tools.
"""
Application configuration.

Wallet, session and lending knobs, read from environment variables or the
project .env file. Defaults suit a single local process.
"""

from decimal import Decimal
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve project root .env regardless of CWD
_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """WalletBot settings; every field can be overridden by an env var of the same name."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -- App --
    APP_NAME: str = "walletbot"
    DEBUG: bool = False
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Log level applied to the walletbot package logger at startup.",
    )

    # -- CORS --
    ALLOWED_HOSTS: list[str] = ["http://localhost:5173"]

    # -- Localization --
    DEFAULT_LANGUAGE: str = Field(
        default="en",
        description="Language for new sessions and fallback for missing translations.",
    )

    # -- Wallet --
    SEED_BALANCE: Decimal = Field(
        default=Decimal("500.00"),
        description="Opening wallet balance of a new session.",
    )
    CURRENCY_SYMBOL: str = "$"
    MAX_TRANSACTIONS: int = Field(
        default=20,
        ge=1,
        description="Transaction records kept per session (most recent first).",
    )

    # -- Sessions --
    DEFAULT_REGION: str = "region_a"
    SESSION_TTL_SECONDS: int = Field(
        default=1800,
        ge=0,
        description="Idle time after which a session is discarded. 0 disables expiry.",
    )
    SESSION_LOCK_STRIPES: int = Field(
        default=64,
        ge=1,
        description="Number of striped locks serializing per-identity session access.",
    )
    SESSION_PURGE_INTERVAL_SECONDS: int = Field(
        default=60,
        ge=0,
        description="Minimum time between sweeps of idle sessions, run when a session is created.",
    )

    # -- Lending --
    MAX_PENDING_LOANS_PER_APPLICANT: int = Field(
        default=3,
        ge=1,
        description="Pending applications one applicant may hold at a time.",
    )


settings = Settings()
