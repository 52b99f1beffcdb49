"""TokenWatch domain models."""

from tokenwatch.models.evaluation import (
    BatchSummary,
    DedupEntry,
    DispatchResult,
    EvaluationResult,
    EvaluationState,
    FailureReason,
    FilterResult,
    FilterThresholds,
    TTLPolicy,
)
from tokenwatch.models.token import (
    CandidateToken,
    HolderPage,
    HolderRecord,
    MetricName,
    PartialMetrics,
    ResolvedMetrics,
    TokenMetadata,
)

__all__ = [
    "BatchSummary",
    "CandidateToken",
    "DedupEntry",
    "DispatchResult",
    "EvaluationResult",
    "EvaluationState",
    "FailureReason",
    "FilterResult",
    "FilterThresholds",
    "HolderPage",
    "HolderRecord",
    "MetricName",
    "PartialMetrics",
    "ResolvedMetrics",
    "TTLPolicy",
    "TokenMetadata",
]
