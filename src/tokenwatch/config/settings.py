"""Application settings using pydantic-settings."""

import json
from decimal import Decimal
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from tokenwatch.constants.filters import (
    DEFAULT_MAX_DEV_PCT,
    DEFAULT_MAX_TOP10_PCT,
    DEFAULT_MIN_HOLDERS,
    DEFAULT_MIN_MARKETCAP,
)
from tokenwatch.constants.ledger import (
    LEDGER_TIMEOUT_SECONDS,
    MEMORY_LEDGER_SWEEP_SECONDS,
    TTL_ARITHMETIC_INVALID_SECONDS,
    TTL_CLAIM_SECONDS,
    TTL_DATA_UNAVAILABLE_SECONDS,
    TTL_DELIVERED_SECONDS,
    TTL_METRICS_MISSING_SECONDS,
    TTL_REJECTED_SECONDS,
)
from tokenwatch.constants.providers import (
    HOLDER_FETCH_LIMIT,
    HOLDER_PROVIDERS,
    METRIC_PROVIDERS,
    MORALIS_BASE_URL,
    PROVIDER_TIMEOUT_SECONDS,
    SOLANA_RPC_URL,
    SUPPLY_PROVIDERS,
)
from tokenwatch.models.evaluation import FilterThresholds, TTLPolicy

# Provider names; env values are parsed by the validator, not as JSON
ProviderOrder = Annotated[list[str], NoDecode]


class Settings(BaseSettings):
    """TokenWatch configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Application
    app_name: str = Field(default="TokenWatch", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Log level"
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, ge=1, le=65535, description="Server port")

    # Filter thresholds
    min_marketcap: Decimal = Field(default=DEFAULT_MIN_MARKETCAP, ge=0)
    min_holders: int = Field(default=DEFAULT_MIN_HOLDERS, ge=0)
    max_top10_pct: Decimal = Field(default=DEFAULT_MAX_TOP10_PCT, gt=0, le=100)
    max_dev_pct: Decimal = Field(default=DEFAULT_MAX_DEV_PCT, gt=0, le=100)

    # Ledger TTL policy (seconds, per outcome)
    ttl_claim_seconds: int = Field(default=TTL_CLAIM_SECONDS, ge=1)
    ttl_data_unavailable_seconds: int = Field(default=TTL_DATA_UNAVAILABLE_SECONDS, ge=1)
    ttl_arithmetic_invalid_seconds: int = Field(default=TTL_ARITHMETIC_INVALID_SECONDS, ge=1)
    ttl_metrics_missing_seconds: int = Field(default=TTL_METRICS_MISSING_SECONDS, ge=1)
    ttl_rejected_seconds: int = Field(default=TTL_REJECTED_SECONDS, ge=1)
    ttl_delivered_seconds: int = Field(default=TTL_DELIVERED_SECONDS, ge=1)

    # Concurrency and timeouts
    max_concurrency: int = Field(default=8, ge=1, le=256, description="Tokens evaluated at once")
    evaluation_deadline_seconds: float = Field(
        default=45.0, gt=0, description="Overall metric resolution deadline per token"
    )
    provider_timeout_seconds: float = Field(default=PROVIDER_TIMEOUT_SECONDS, gt=0)
    ledger_timeout_seconds: float = Field(default=LEDGER_TIMEOUT_SECONDS, gt=0)
    notifier_timeout_seconds: float = Field(default=10.0, gt=0)
    holder_fetch_limit: int = Field(default=HOLDER_FETCH_LIMIT, ge=10, le=1000)

    # Dedup ledger
    redis_url: SecretStr = Field(
        default=SecretStr(""), description="Redis URL (empty = in-memory ledger)"
    )
    memory_ledger_sweep_seconds: float = Field(default=MEMORY_LEDGER_SWEEP_SECONDS, gt=0)

    # Providers
    moralis_api_key: SecretStr = Field(default=SecretStr(""), description="Moralis API key")
    moralis_api_base: str = Field(default=MORALIS_BASE_URL, description="Moralis API base URL")
    birdeye_api_key: SecretStr = Field(default=SecretStr(""), description="Birdeye API key")
    coingecko_fallback: bool = Field(default=True, description="Use CoinGecko for EVM chains")
    dexscreener_enabled: bool = Field(default=True, description="Use DexScreener market data")
    solana_rpc_url: str = Field(default=SOLANA_RPC_URL, description="Solana RPC endpoint URL")
    metric_provider_order: ProviderOrder = Field(default_factory=lambda: list(METRIC_PROVIDERS))
    supply_provider_order: ProviderOrder = Field(default_factory=lambda: list(SUPPLY_PROVIDERS))
    holder_provider_order: ProviderOrder = Field(default_factory=lambda: list(HOLDER_PROVIDERS))

    # Notifier
    telegram_bot_token: SecretStr = Field(default=SecretStr(""), description="Telegram bot token")
    telegram_chat_id: str = Field(default="", description="Telegram chat ID")

    # Ingestion
    helius_webhook_secret: SecretStr = Field(
        default=SecretStr(""), description="HMAC secret (empty = verification skipped)"
    )
    feed_url: str = Field(default="", description="Feed endpoint to poll (empty = disabled)")
    feed_poll_interval_seconds: int = Field(default=60, ge=5, le=3600)

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        """Accept lowercase log levels."""
        return str(v).upper()

    @field_validator("moralis_api_base", "solana_rpc_url")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        """Validate API URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("API URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("feed_url")
    @classmethod
    def validate_feed_url(cls, v: str) -> str:
        """Validate feed URL format when set."""
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("Feed URL must start with http:// or https://")
        return v

    @field_validator(
        "metric_provider_order", "supply_provider_order", "holder_provider_order", mode="before"
    )
    @classmethod
    def split_provider_order(cls, v: Any) -> Any:
        """Accept a JSON list or a comma-separated string."""
        if not isinstance(v, str):
            return v
        text = v.strip()
        if text.startswith("["):
            return json.loads(text)
        return [name for name in text.split(",") if name.strip()]

    @field_validator("metric_provider_order")
    @classmethod
    def validate_metric_providers(cls, v: list[str]) -> list[str]:
        """Only known metric providers may be ordered."""
        return _validate_names(v, METRIC_PROVIDERS)

    @field_validator("supply_provider_order")
    @classmethod
    def validate_supply_providers(cls, v: list[str]) -> list[str]:
        """Only known supply providers may be ordered."""
        return _validate_names(v, SUPPLY_PROVIDERS)

    @field_validator("holder_provider_order")
    @classmethod
    def validate_holder_providers(cls, v: list[str]) -> list[str]:
        """Only known holder providers may be ordered."""
        return _validate_names(v, HOLDER_PROVIDERS)

    @property
    def telegram_configured(self) -> bool:
        """True when both bot token and chat id are set."""
        return bool(self.telegram_bot_token.get_secret_value() and self.telegram_chat_id)

    def filter_thresholds(self) -> FilterThresholds:
        """Build the injected filter thresholds."""
        return FilterThresholds(
            min_marketcap=self.min_marketcap,
            min_holders=self.min_holders,
            max_top10_pct=self.max_top10_pct,
            max_dev_pct=self.max_dev_pct,
        )

    def ttl_policy(self) -> TTLPolicy:
        """Build the ledger TTL policy."""
        return TTLPolicy(
            claim=self.ttl_claim_seconds,
            data_unavailable=self.ttl_data_unavailable_seconds,
            arithmetic_invalid=self.ttl_arithmetic_invalid_seconds,
            metrics_missing=self.ttl_metrics_missing_seconds,
            rejected=self.ttl_rejected_seconds,
            delivered=self.ttl_delivered_seconds,
        )


def _validate_names(names: list[str], known: tuple[str, ...]) -> list[str]:
    cleaned = [n.strip().lower() for n in names if n.strip()]
    unknown = [n for n in cleaned if n not in known]
    if unknown:
        raise ValueError(f"Unknown provider(s): {', '.join(unknown)}")
    return cleaned


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
