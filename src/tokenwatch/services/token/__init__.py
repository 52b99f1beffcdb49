"""Token metric resolution, percentage math and filtering."""

from tokenwatch.services.token.filter import FilterEvaluator
from tokenwatch.services.token.percentage import dev_percent, share_percent, top_n_percent
from tokenwatch.services.token.resolver import MetricResolver, Resolution

__all__ = [
    "FilterEvaluator",
    "MetricResolver",
    "Resolution",
    "dev_percent",
    "share_percent",
    "top_n_percent",
]
