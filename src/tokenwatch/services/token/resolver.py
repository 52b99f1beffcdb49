"""Metric resolver with ranked provider fallback."""

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog

from tokenwatch.core.exceptions import (
    ArithmeticInvalidError,
    ProviderDataMalformedError,
    ProviderError,
    ProviderNotFoundError,
)
from tokenwatch.models.token import (
    HOLDER_DERIVED_METRICS,
    TOTAL_SUPPLY_FIELD,
    CandidateToken,
    HolderPage,
    MetricName,
    PartialMetrics,
    ResolvedMetrics,
)
from tokenwatch.services.providers.base import HolderProvider, MetricProvider
from tokenwatch.services.token.percentage import (
    dev_percent,
    parse_decimal,
    parse_raw_amount,
    top_n_percent,
)

logger = structlog.get_logger(__name__)


@dataclass
class ProviderFailure:
    """A provider call that did not produce data."""

    provider: str
    kind: str  # "unavailable" | "malformed" | "not_found"
    message: str


@dataclass
class Resolution:
    """Mutable work record filled while metrics are being resolved.

    Owned by the caller so that partial results survive cancellation when
    the per-token deadline expires.
    """

    values: dict[MetricName, Decimal] = field(default_factory=dict)
    total_supply: int | None = None
    supply_invalid: bool = False
    # Holder shares were needed but no positive supply was found
    supply_unusable: bool = False
    name: str | None = None
    symbol: str | None = None
    holder_page: HolderPage | None = None
    failures: list[ProviderFailure] = field(default_factory=list)
    queried: list[str] = field(default_factory=list)

    def missing(self) -> set[MetricName]:
        """Metrics not resolved yet."""
        return {m for m in MetricName if m not in self.values}

    def set_if_absent(self, metric: MetricName, value: Decimal | None) -> bool:
        """First non-null value wins."""
        if value is None or metric in self.values:
            return False
        self.values[metric] = value
        return True

    def set_display(self, name: Any, symbol: Any) -> None:
        """Keep the first non-empty name and symbol seen."""
        if self.name is None and name:
            self.name = str(name).strip() or None
        if self.symbol is None and symbol:
            self.symbol = str(symbol).strip() or None

    @property
    def provider_unavailable(self) -> bool:
        """True when any provider failed for a transient reason."""
        return any(f.kind == "unavailable" for f in self.failures)

    @property
    def arithmetic_invalid(self) -> bool:
        """Holder shares needed a zero, invalid or missing total supply."""
        return self.supply_invalid or self.supply_unusable

    def freeze(self) -> ResolvedMetrics:
        """Immutable snapshot of the resolved metrics."""
        return ResolvedMetrics(
            **{m.value: v for m, v in self.values.items()},
            name=self.name,
            symbol=self.symbol,
        )


class MetricResolver:
    """Fills the five filter metrics for a candidate token.

    Priority: primary record -> metric providers (in order) -> holder-derived
    metrics from holder providers and total supply.

    Providers are lazy: one is only queried while it can still supply a
    missing metric, and at most once per resolution. Provider failures are
    logged and leave metrics absent; resolution never raises for missing
    data.
    """

    def __init__(
        self,
        metric_providers: Sequence[MetricProvider],
        supply_providers: Sequence[MetricProvider] = (),
        holder_providers: Sequence[HolderProvider] = (),
        provider_timeout: float = 20.0,
        holder_limit: int = 200,
    ) -> None:
        """Initialize metric resolver.

        Args:
            metric_providers: Market metric providers in priority order
            supply_providers: Total supply providers in priority order
            holder_providers: Holder list providers in priority order
            provider_timeout: Timeout applied to each provider call
            holder_limit: Maximum holders requested per token
        """
        self.metric_providers = list(metric_providers)
        self.supply_providers = list(supply_providers)
        self.holder_providers = list(holder_providers)
        self.provider_timeout = provider_timeout
        self.holder_limit = holder_limit

    async def resolve(self, candidate: CandidateToken) -> ResolvedMetrics:
        """Resolve metrics for a candidate."""
        resolution = Resolution()
        await self.resolve_into(candidate, resolution)
        return resolution.freeze()

    async def resolve_into(self, candidate: CandidateToken, resolution: Resolution) -> None:
        """Resolve metrics into a caller-owned work record."""
        log = logger.bind(chain=candidate.chain, token=candidate.short_address)

        self._apply_primary(candidate, resolution)

        wanted = {m.value for m in resolution.missing() - HOLDER_DERIVED_METRICS}
        if wanted:
            await self._query_providers(candidate, resolution, self.metric_providers, wanted)

        derived_missing = bool(resolution.missing() & HOLDER_DERIVED_METRICS)
        holders_missing = MetricName.HOLDERS in resolution.missing()

        if derived_missing and resolution.total_supply is None and not resolution.supply_invalid:
            await self._query_providers(
                candidate, resolution, self.supply_providers, {TOTAL_SUPPLY_FIELD}
            )

        supply_ok = bool(resolution.total_supply) and not resolution.supply_invalid
        if derived_missing and not supply_ok:
            resolution.supply_unusable = True
        if (derived_missing and supply_ok) or holders_missing:
            resolution.holder_page = await self._fetch_holder_page(candidate, resolution)

        page = resolution.holder_page
        if page is not None:
            if holders_missing and page.holder_count is not None:
                resolution.set_if_absent(MetricName.HOLDERS, Decimal(page.holder_count))
            if derived_missing and supply_ok and page.holders:
                self._apply_holder_metrics(candidate, resolution, page)

        log.debug(
            "metrics_resolved",
            resolved=sorted(m.value for m in resolution.values),
            missing=sorted(m.value for m in resolution.missing()),
            queried=resolution.queried,
            failures=len(resolution.failures),
        )

    def _apply_primary(self, candidate: CandidateToken, resolution: Resolution) -> None:
        raw = candidate.raw_fields
        for metric in MetricName:
            value = _coerce_metric(raw.get(metric.value))
            if raw.get(metric.value) is not None and value is None:
                logger.debug(
                    "primary_field_unparseable",
                    field=metric.value,
                    token=candidate.short_address,
                )
            resolution.set_if_absent(metric, value)

        if raw.get(TOTAL_SUPPLY_FIELD) is not None:
            self._set_supply(resolution, raw[TOTAL_SUPPLY_FIELD], "primary")
        resolution.set_display(raw.get("name"), raw.get("symbol"))

    def _set_supply(self, resolution: Resolution, value: Any, source: str) -> None:
        supply = parse_raw_amount(value)
        if supply is None or supply <= 0:
            logger.info("total_supply_invalid", source=source, value=str(value)[:40])
            resolution.supply_invalid = True
            return
        resolution.total_supply = supply
        resolution.supply_invalid = False

    async def _query_providers(
        self,
        candidate: CandidateToken,
        resolution: Resolution,
        providers: Iterable[MetricProvider],
        wanted: set[str],
    ) -> None:
        for provider in providers:
            outstanding = self._outstanding(resolution, wanted)
            if not outstanding:
                return
            if not (provider.supplies & outstanding):
                continue

            partial = await self._call_provider(candidate, resolution, provider)
            if partial is None:
                continue
            resolution.set_display(partial.name, partial.symbol)

            for name in provider.supplies & outstanding:
                if name == TOTAL_SUPPLY_FIELD:
                    if partial.total_supply is not None:
                        self._set_supply(resolution, partial.total_supply, provider.name)
                else:
                    resolution.set_if_absent(MetricName(name), _coerce_metric(partial.get(name)))

    @staticmethod
    def _outstanding(resolution: Resolution, wanted: set[str]) -> set[str]:
        outstanding = {n for n in wanted if n != TOTAL_SUPPLY_FIELD and MetricName(n) not in resolution.values}
        if TOTAL_SUPPLY_FIELD in wanted and resolution.total_supply is None:
            outstanding.add(TOTAL_SUPPLY_FIELD)
        return outstanding

    async def _call_provider(
        self,
        candidate: CandidateToken,
        resolution: Resolution,
        provider: MetricProvider,
    ) -> PartialMetrics | None:
        resolution.queried.append(provider.name)
        try:
            return await asyncio.wait_for(
                provider.query_metric(candidate.chain, candidate.query_address),
                timeout=self.provider_timeout,
            )
        except Exception as e:
            self._record_failure(candidate, resolution, provider.name, e)
            return None

    async def _fetch_holder_page(
        self,
        candidate: CandidateToken,
        resolution: Resolution,
    ) -> HolderPage | None:
        for provider in self.holder_providers:
            resolution.queried.append(provider.name)
            try:
                page = await asyncio.wait_for(
                    provider.fetch_holders(
                        candidate.chain, candidate.query_address, self.holder_limit
                    ),
                    timeout=self.provider_timeout,
                )
            except Exception as e:
                self._record_failure(candidate, resolution, provider.name, e)
                continue
            if page is not None and (page.holders or page.total):
                return page
        return None

    def _apply_holder_metrics(
        self,
        candidate: CandidateToken,
        resolution: Resolution,
        page: HolderPage,
    ) -> None:
        total = resolution.total_supply or 0
        try:
            resolution.set_if_absent(MetricName.TOP10_PERCENT, top_n_percent(page.holders, total))
            resolution.set_if_absent(
                MetricName.DEV_PERCENT,
                dev_percent(page.holders, total, candidate.creator_address),
            )
        except ArithmeticInvalidError as e:
            logger.warning(
                "holder_share_invalid",
                token=candidate.short_address,
                error=str(e),
            )
            resolution.supply_invalid = True

    @staticmethod
    def _record_failure(
        candidate: CandidateToken,
        resolution: Resolution,
        provider: str,
        error: Exception,
    ) -> None:
        if isinstance(error, ProviderNotFoundError):
            kind = "not_found"
        elif isinstance(error, ProviderDataMalformedError):
            kind = "malformed"
        else:
            kind = "unavailable"

        message = str(error) or type(error).__name__
        resolution.failures.append(ProviderFailure(provider=provider, kind=kind, message=message))

        log_method = logger.warning if isinstance(error, (ProviderError, TimeoutError)) else logger.error
        log_method(
            "provider_failed",
            provider=provider,
            kind=kind,
            token=candidate.short_address,
            error=message,
        )


def _coerce_metric(value: Any) -> Decimal | None:
    number = parse_decimal(value)
    if number is None or number < 0:
        return None
    return number
