# src/blinkpay/config/settings.py
"""
Settings - Pydantic-based Configuration Management

Provides centralized configuration management using Pydantic Settings.
Values come from environment variables or a .env file and are validated on load.

Files that USE this module:
- blinkpay.app (composition root wires every component from settings)
- blinkpay.adapters.network.solana_rpc (RPC URL and HTTP timeout)
- blinkpay.adapters.settlement.circle (API key, base URL, timeouts, retries)
- blinkpay.adapters.persistence.listing_store (listings file path)
- blinkpay.application.* (confirmation and settlement tuning)

Files that this module USES:
- blinkpay.shared.validators (validation functions for settings)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

from pathlib import Path  # Object-oriented filesystem paths
from typing import Optional  # Type hints for optional values

from pydantic import Field, field_validator  # Data validation and field configuration
from pydantic_settings import BaseSettings, SettingsConfigDict  # Settings management with Pydantic

from blinkpay.shared.validators import validate_http_url

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")

CIRCLE_API_BASE = "https://api.circle.com/v1"
CIRCLE_SANDBOX_API_BASE = "https://api.sandbox.circle.com/v1"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Network (JSON-RPC) ---
    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com", alias="SOLANA_RPC_URL"
    )
    solana_commitment: str = Field(default="confirmed", alias="SOLANA_COMMITMENT")
    http_timeout_seconds: int = Field(default=10, alias="HTTP_TIMEOUT_SECONDS", ge=1, le=60)

    # --- Submission & confirmation ---
    confirmation_timeout_seconds: float = Field(
        default=45.0, alias="CONFIRMATION_TIMEOUT_SECONDS", ge=30, le=60
    )
    confirmation_poll_interval_seconds: float = Field(
        default=1.0, alias="CONFIRMATION_POLL_INTERVAL_SECONDS", gt=0, le=10
    )
    submission_max_retries: int = Field(default=3, alias="SUBMISSION_MAX_RETRIES", ge=0, le=5)
    submission_backoff_seconds: float = Field(
        default=0.5, alias="SUBMISSION_BACKOFF_SECONDS", ge=0
    )

    # --- Settlement network (Circle) ---
    circle_api_key: str = Field(default="", alias="CIRCLE_API_KEY")
    circle_use_sandbox: bool = Field(default=True, alias="CIRCLE_USE_SANDBOX")
    circle_merchant_wallet_id: str = Field(default="", alias="CIRCLE_MERCHANT_WALLET_ID")
    settlement_bank_account_id: Optional[str] = Field(
        default=None, alias="SETTLEMENT_BANK_ACCOUNT_ID"
    )
    settlement_currency: str = Field(default="USD", alias="SETTLEMENT_CURRENCY")
    settlement_timeout_seconds: float = Field(
        default=10.0, alias="SETTLEMENT_TIMEOUT_SECONDS", ge=5, le=15
    )
    # Total attempts per call: first try plus up to 3 retries
    settlement_max_attempts: int = Field(default=3, alias="SETTLEMENT_MAX_ATTEMPTS", ge=1, le=4)
    settlement_backoff_seconds: float = Field(
        default=0.5, alias="SETTLEMENT_BACKOFF_SECONDS", ge=0
    )
    settlement_fee_pct: float = Field(default=1.0, alias="SETTLEMENT_FEE_PCT", ge=0, le=100)

    # --- Listings ---
    listings_file: Path = Field(default=Path("./data/listings.json"), alias="LISTINGS_FILE")
    blink_base_url: str = Field(default="https://blinkshop.app/buy", alias="BLINK_BASE_URL")

    # --- Logging (for server deployment) ---
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")
    log_dir: Optional[str] = Field(default=None, alias="LOG_DIR")
    log_max_bytes: int = Field(default=10 * 1024 * 1024, alias="LOG_MAX_BYTES")  # 10MB
    log_backup_count: int = Field(default=5, alias="LOG_BACKUP_COUNT")

    @property
    def circle_api_base(self) -> str:
        """Settlement API base URL for the configured environment."""
        return CIRCLE_SANDBOX_API_BASE if self.circle_use_sandbox else CIRCLE_API_BASE

    @field_validator("solana_rpc_url", "blink_base_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not validate_http_url(v):
            raise ValueError(f"Invalid URL: {v!r}")
        return v.rstrip("/")

    @field_validator("solana_commitment")
    @classmethod
    def validate_commitment(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in COMMITMENT_LEVELS:
            raise ValueError(f"SOLANA_COMMITMENT must be one of {', '.join(COMMITMENT_LEVELS)}")
        return v

    @field_validator("settlement_currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("SETTLEMENT_CURRENCY must be a 3-letter currency code")
        return v

    @field_validator("settlement_bank_account_id")
    @classmethod
    def empty_bank_account_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    def model_post_init(self, __context) -> None:
        """Post-initialization setup."""
        # Ensure data directory exists
        self.listings_file.parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
