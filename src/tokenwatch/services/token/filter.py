"""Conjunctive health filter over resolved token metrics."""

from decimal import Decimal

import structlog

from tokenwatch.models.evaluation import FilterResult, FilterThresholds
from tokenwatch.models.token import MetricName, ResolvedMetrics

logger = structlog.get_logger(__name__)


class FilterEvaluator:
    """
    Applies the health thresholds to a token's resolved metrics.

    A token passes only when every metric is present and meets its
    threshold. Absent metrics never pass.
    """

    def __init__(self, thresholds: FilterThresholds | None = None) -> None:
        """Initialize filter evaluator.

        Args:
            thresholds: Injected thresholds (defaults when omitted)
        """
        self.thresholds = thresholds or FilterThresholds()

    def evaluate(
        self,
        metrics: ResolvedMetrics,
        thresholds: FilterThresholds | None = None,
    ) -> FilterResult:
        """
        Evaluate metrics against thresholds.

        Args:
            metrics: Resolved metrics, possibly partial
            thresholds: Override of the injected thresholds

        Returns:
            FilterResult with missing and failed metrics recorded
        """
        limits = thresholds or self.thresholds
        checks = {
            MetricName.MARKETCAP: lambda v: v >= limits.min_marketcap,
            MetricName.HOLDERS: lambda v: v >= Decimal(limits.min_holders),
            MetricName.TOP10_PERCENT: lambda v: v < limits.max_top10_pct,
            MetricName.DEV_PERCENT: lambda v: v < limits.max_dev_pct,
            MetricName.VOLUME_24H: lambda v: v > 0,
        }

        missing: set[MetricName] = set()
        failed: set[MetricName] = set()
        for metric, check in checks.items():
            value = metrics.get(metric)
            if value is None:
                missing.add(metric)
            elif not check(value):
                failed.add(metric)

        passed = not missing and not failed
        logger.debug(
            "filter_evaluated",
            passed=passed,
            missing=sorted(m.value for m in missing),
            failed=sorted(m.value for m in failed),
        )
        return FilterResult(passed=passed, missing_metrics=missing, failed_checks=failed)
