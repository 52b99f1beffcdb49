"""Token domain models."""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tokenwatch.constants.ledger import KEY_PREFIX
from tokenwatch.constants.webhook import UNKNOWN_CHAIN


class MetricName(str, Enum):
    """The five metrics every candidate must resolve to pass the filter."""

    MARKETCAP = "marketcap"
    HOLDERS = "holders"
    TOP10_PERCENT = "top10_percent"
    DEV_PERCENT = "dev_percent"
    VOLUME_24H = "volume24h"


# Holder-derived metrics, computed from a holder page and total supply
HOLDER_DERIVED_METRICS: frozenset[MetricName] = frozenset(
    {MetricName.TOP10_PERCENT, MetricName.DEV_PERCENT}
)

# Canonical raw field carrying the total supply in base units
TOTAL_SUPPLY_FIELD = "total_supply"


class CandidateToken(BaseModel):
    """A token handed to the pipeline by the ingestion boundary.

    The address is canonical lowercase and is what the dedup key is built
    from. Base58 chains are case-sensitive, so the address as received is
    kept in ``source_address`` for provider queries.
    """

    model_config = ConfigDict(frozen=True)

    chain: str = UNKNOWN_CHAIN
    address: str
    creator_address: str | None = None
    raw_fields: dict[str, Any] = Field(default_factory=dict)
    source_address: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _keep_source_address(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("address") and not data.get("source_address"):
            data = {**data, "source_address": str(data["address"]).strip()}
        return data

    @field_validator("chain", mode="before")
    @classmethod
    def normalize_chain(cls, v: Any) -> str:
        """Lowercase chain id, defaulting to unknown."""
        text = str(v or "").strip().lower()
        return text or UNKNOWN_CHAIN

    @field_validator("address")
    @classmethod
    def normalize_address(cls, v: str) -> str:
        """Canonical lowercase, non-empty address."""
        text = v.strip().lower()
        if not text:
            raise ValueError("Token address must not be empty")
        return text

    @field_validator("creator_address")
    @classmethod
    def normalize_creator(cls, v: str | None) -> str | None:
        """Empty creator strings count as unknown."""
        if v is None:
            return None
        text = v.strip()
        return text or None

    @property
    def dedup_key(self) -> str:
        """Ledger key built from chain and address."""
        return f"{KEY_PREFIX}:{self.chain}:{self.address}"

    @property
    def query_address(self) -> str:
        """Address to send to providers (original casing when known)."""
        return self.source_address or self.address

    @property
    def short_address(self) -> str:
        """Truncated address for log lines."""
        return self.address[:8] + "..."


class HolderRecord(BaseModel):
    """A single holder balance in raw base units."""

    address: str
    balance: int = Field(..., ge=0)


class HolderPage(BaseModel):
    """Holders returned by a holder provider, largest balance first."""

    holders: list[HolderRecord] = Field(default_factory=list)
    total: int | None = Field(default=None, ge=0)
    # True when the list is a capped sample that says nothing about the count
    partial: bool = False

    @field_validator("holders")
    @classmethod
    def sort_descending(cls, v: list[HolderRecord]) -> list[HolderRecord]:
        """Guarantee descending balance order."""
        return sorted(v, key=lambda h: h.balance, reverse=True)

    @property
    def holder_count(self) -> int | None:
        """Explicit total when reported, else list length unless partial."""
        if self.total:
            return self.total
        if self.partial:
            return None
        return len(self.holders)


class TokenMetadata(BaseModel):
    """Token metadata from a supply provider."""

    total_supply: int | None = Field(default=None, ge=0)
    symbol: str | None = None
    name: str | None = None


class PartialMetrics(BaseModel):
    """Whatever subset of metrics a single provider could answer."""

    marketcap: Decimal | None = None
    holders: Decimal | None = None
    volume24h: Decimal | None = None
    top10_percent: Decimal | None = None
    dev_percent: Decimal | None = None
    total_supply: int | None = Field(default=None, ge=0)
    # Display only, never filtered on
    name: str | None = None
    symbol: str | None = None

    def get(self, field: str) -> Decimal | int | None:
        """Value of a metric or supply field by canonical name."""
        return getattr(self, field, None)


class ResolvedMetrics(BaseModel):
    """The five filter metrics after resolution, plus display fields. Immutable."""

    model_config = ConfigDict(frozen=True)

    marketcap: Decimal | None = None
    holders: Decimal | None = None
    top10_percent: Decimal | None = None
    dev_percent: Decimal | None = None
    volume24h: Decimal | None = None
    name: str | None = None
    symbol: str | None = None

    def get(self, metric: MetricName) -> Decimal | None:
        """Value of a metric by name."""
        return getattr(self, metric.value)

    def missing(self) -> set[MetricName]:
        """Metrics that are still absent."""
        return {m for m in MetricName if self.get(m) is None}
