"""Evaluation pipeline domain models."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from tokenwatch.constants.filters import (
    DEFAULT_MAX_DEV_PCT,
    DEFAULT_MAX_TOP10_PCT,
    DEFAULT_MIN_HOLDERS,
    DEFAULT_MIN_MARKETCAP,
)
from tokenwatch.constants.ledger import (
    TTL_ARITHMETIC_INVALID_SECONDS,
    TTL_CLAIM_SECONDS,
    TTL_DATA_UNAVAILABLE_SECONDS,
    TTL_DELIVERED_SECONDS,
    TTL_METRICS_MISSING_SECONDS,
    TTL_REJECTED_SECONDS,
)
from tokenwatch.models.token import MetricName, ResolvedMetrics


class EvaluationState(str, Enum):
    """Terminal outcome of one evaluation.

    A token moves unseen -> claimed -> metrics resolved -> passed or
    rejected -> delivered or failed. Only the end of that walk is recorded.
    """

    REJECTED = "rejected"
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"  # claim lost, already handled in this TTL window
    ERROR = "error"


class FailureReason(str, Enum):
    """Why an evaluation ended where it did. Drives the TTL policy."""

    DATA_UNAVAILABLE = "data_unavailable"
    ARITHMETIC_INVALID = "arithmetic_invalid"
    METRICS_MISSING = "metrics_missing"
    REJECTED = "rejected"
    DELIVERED = "delivered"
    DISPATCH_FAILED = "dispatch_failed"
    INTERNAL_ERROR = "internal_error"


class FilterThresholds(BaseModel):
    """Injected filter thresholds."""

    min_marketcap: Decimal = Field(default=DEFAULT_MIN_MARKETCAP, ge=0)
    min_holders: int = Field(default=DEFAULT_MIN_HOLDERS, ge=0)
    max_top10_pct: Decimal = Field(default=DEFAULT_MAX_TOP10_PCT, gt=0, le=100)
    max_dev_pct: Decimal = Field(default=DEFAULT_MAX_DEV_PCT, gt=0, le=100)


class FilterResult(BaseModel):
    """Outcome of the conjunctive filter, kept for diagnostics."""

    passed: bool
    missing_metrics: set[MetricName] = Field(default_factory=set)
    failed_checks: set[MetricName] = Field(default_factory=set)


class TTLPolicy(BaseModel):
    """Ledger TTL per outcome, in seconds."""

    claim: int = Field(default=TTL_CLAIM_SECONDS, ge=1)
    data_unavailable: int = Field(default=TTL_DATA_UNAVAILABLE_SECONDS, ge=1)
    arithmetic_invalid: int = Field(default=TTL_ARITHMETIC_INVALID_SECONDS, ge=1)
    metrics_missing: int = Field(default=TTL_METRICS_MISSING_SECONDS, ge=1)
    rejected: int = Field(default=TTL_REJECTED_SECONDS, ge=1)
    delivered: int = Field(default=TTL_DELIVERED_SECONDS, ge=1)

    def ttl_for(self, reason: FailureReason) -> int | None:
        """TTL to mark for a reason, or None when the claim is released."""
        if reason == FailureReason.DISPATCH_FAILED:
            return None
        if reason == FailureReason.INTERNAL_ERROR:
            return self.data_unavailable
        return getattr(self, reason.value)


class DedupEntry(BaseModel):
    """A ledger entry. Conceptually expires at written_at + ttl_seconds."""

    key: str
    written_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    ttl_seconds: int = Field(..., ge=1)

    @property
    def expires_at(self) -> datetime:
        """Instant at which the entry stops existing."""
        return self.written_at + timedelta(seconds=self.ttl_seconds)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the entry has expired."""
        return (now or datetime.now(UTC)) >= self.expires_at


class DispatchResult(BaseModel):
    """Outcome of a single delivery attempt."""

    delivered: bool
    error: str | None = None


class EvaluationResult(BaseModel):
    """Result of evaluating one candidate."""

    key: str
    state: EvaluationState
    reason: FailureReason | None = None
    metrics: ResolvedMetrics | None = None
    filter_result: FilterResult | None = None
    dispatch: DispatchResult | None = None
    ttl_applied: int | None = None
    deadline_exceeded: bool = False
    ledger_fail_open: bool = False
    error_message: str | None = None
    processing_time_ms: float = 0.0
    evaluated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class BatchSummary(BaseModel):
    """Aggregated outcome of one ingestion batch."""

    received: int = 0
    evaluated: int = 0
    skipped: int = 0
    delivered: int = 0
    rejected: int = 0
    retry_scheduled: int = 0
    failed: int = 0
    errors: int = 0
    results: list[EvaluationResult] = Field(default_factory=list)

    def record(self, result: EvaluationResult) -> None:
        """Fold one evaluation result into the counters."""
        self.results.append(result)
        if result.state == EvaluationState.SKIPPED:
            self.skipped += 1
            return
        self.evaluated += 1
        if result.state == EvaluationState.DELIVERED:
            self.delivered += 1
        elif result.state == EvaluationState.FAILED:
            self.failed += 1
        elif result.state == EvaluationState.ERROR:
            self.errors += 1
        elif result.reason == FailureReason.REJECTED:
            self.rejected += 1
        else:
            self.retry_scheduled += 1
