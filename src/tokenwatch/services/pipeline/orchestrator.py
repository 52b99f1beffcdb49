"""Token evaluation pipeline.

Flow per candidate:
    exists (early exit) -> try_claim -> resolve metrics (under deadline)
    -> filter -> dispatch (if passed) -> mark with outcome TTL / release

The ledger claim is the only ownership decision; a lost claim ends the
evaluation as SKIPPED. If the ledger backend is down the pipeline fails
open and evaluates the token anyway.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Iterable, Sequence
from typing import Any, TypeVar

import structlog

from tokenwatch.core.exceptions import LedgerUnavailableError
from tokenwatch.models.evaluation import (
    BatchSummary,
    EvaluationResult,
    EvaluationState,
    FailureReason,
    FilterResult,
    TTLPolicy,
)
from tokenwatch.models.token import CandidateToken
from tokenwatch.services.ledger.base import DedupLedger
from tokenwatch.services.notifier.dispatcher import NotificationDispatcher
from tokenwatch.services.token.filter import FilterEvaluator
from tokenwatch.services.token.resolver import MetricResolver, Resolution

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class PipelineOrchestrator:
    """Drives candidates through claim, resolution, filtering and dispatch.

    Each candidate runs in its own task; at most ``max_concurrency`` run at
    once. No per-token error escapes ``evaluate`` or ``evaluate_batch``.
    """

    def __init__(
        self,
        resolver: MetricResolver,
        filter_evaluator: FilterEvaluator,
        dispatcher: NotificationDispatcher,
        ledger: DedupLedger,
        ttl_policy: TTLPolicy | None = None,
        max_concurrency: int = 8,
        evaluation_deadline_seconds: float = 45.0,
        ledger_timeout_seconds: float = 5.0,
        closables: Sequence[Any] = (),
    ) -> None:
        """Initialize orchestrator with all components.

        Args:
            resolver: Metric resolver
            filter_evaluator: Threshold filter
            dispatcher: Notification dispatcher
            ledger: Dedup ledger
            ttl_policy: Ledger TTL per outcome
            max_concurrency: Tokens evaluated at once in a batch
            evaluation_deadline_seconds: Deadline for metric resolution
            ledger_timeout_seconds: Timeout for each ledger call
            closables: Extra resources (API clients) closed with the pipeline
        """
        self.resolver = resolver
        self.filter_evaluator = filter_evaluator
        self.dispatcher = dispatcher
        self.ledger = ledger
        self.ttl_policy = ttl_policy or TTLPolicy()
        self.max_concurrency = max_concurrency
        self.evaluation_deadline_seconds = evaluation_deadline_seconds
        self.ledger_timeout_seconds = ledger_timeout_seconds
        self._closables = list(closables)
        self._semaphore = asyncio.Semaphore(max_concurrency)

    @property
    def ledger_backend(self) -> str:
        """Name of the ledger backend in use."""
        return self.ledger.backend

    async def evaluate(self, candidate: CandidateToken) -> EvaluationResult:
        """Evaluate a single candidate.

        Returns:
            EvaluationResult; unexpected errors are reported as state ERROR.
        """
        start_time = time.perf_counter()
        key = candidate.dedup_key

        with structlog.contextvars.bound_contextvars(
            chain=candidate.chain, token=candidate.short_address
        ):
            fail_open = False

            try:
                if await self._ledger_call(self.ledger.exists(key)):
                    logger.debug("token_already_processed")
                    return self._result(key, EvaluationState.SKIPPED, start_time)

                if not await self._ledger_call(
                    self.ledger.try_claim(key, self.ttl_policy.claim)
                ):
                    logger.debug("token_claim_lost")
                    return self._result(key, EvaluationState.SKIPPED, start_time)
            except LedgerUnavailableError as e:
                fail_open = True
                logger.error("ledger_unavailable_fail_open", error=str(e))

            try:
                return await self._evaluate_claimed(candidate, key, start_time, fail_open)
            except Exception as e:
                logger.error(
                    "evaluation_failed",
                    error=str(e) or type(e).__name__,
                    error_type=type(e).__name__,
                )
                ttl = await self._settle(key, FailureReason.INTERNAL_ERROR)
                return self._result(
                    key,
                    EvaluationState.ERROR,
                    start_time,
                    reason=FailureReason.INTERNAL_ERROR,
                    ttl_applied=ttl,
                    ledger_fail_open=fail_open,
                    error_message=str(e) or type(e).__name__,
                )

    async def _evaluate_claimed(
        self,
        candidate: CandidateToken,
        key: str,
        start_time: float,
        fail_open: bool,
    ) -> EvaluationResult:
        resolution = Resolution()
        deadline_exceeded = False
        try:
            await asyncio.wait_for(
                self.resolver.resolve_into(candidate, resolution),
                timeout=self.evaluation_deadline_seconds,
            )
        except TimeoutError:
            deadline_exceeded = True
            logger.warning(
                "evaluation_deadline_exceeded",
                deadline_seconds=self.evaluation_deadline_seconds,
                resolved=sorted(m.value for m in resolution.values),
            )

        metrics = resolution.freeze()
        filter_result = self.filter_evaluator.evaluate(metrics)

        if not filter_result.passed:
            reason = self._reason_for(filter_result, resolution, deadline_exceeded)
            ttl = await self._settle(key, reason)
            logger.info(
                "token_rejected",
                reason=reason.value,
                missing=sorted(m.value for m in filter_result.missing_metrics),
                failed=sorted(m.value for m in filter_result.failed_checks),
                ttl=ttl,
            )
            return self._result(
                key,
                EvaluationState.REJECTED,
                start_time,
                reason=reason,
                metrics=metrics,
                filter_result=filter_result,
                ttl_applied=ttl,
                deadline_exceeded=deadline_exceeded,
                ledger_fail_open=fail_open,
            )

        dispatch = await self.dispatcher.dispatch(candidate, metrics)
        if dispatch.delivered:
            ttl = await self._settle(key, FailureReason.DELIVERED)
            state, reason = EvaluationState.DELIVERED, FailureReason.DELIVERED
            logger.info("token_delivered", ttl=ttl)
        else:
            ttl = await self._settle(key, FailureReason.DISPATCH_FAILED)
            state, reason = EvaluationState.FAILED, FailureReason.DISPATCH_FAILED
            logger.warning("token_dispatch_failed", error=dispatch.error)

        return self._result(
            key,
            state,
            start_time,
            reason=reason,
            metrics=metrics,
            filter_result=filter_result,
            dispatch=dispatch,
            ttl_applied=ttl,
            deadline_exceeded=deadline_exceeded,
            ledger_fail_open=fail_open,
        )

    @staticmethod
    def _reason_for(
        filter_result: FilterResult,
        resolution: Resolution,
        deadline_exceeded: bool,
    ) -> FailureReason:
        if not filter_result.missing_metrics:
            return FailureReason.REJECTED
        if deadline_exceeded or resolution.provider_unavailable:
            return FailureReason.DATA_UNAVAILABLE
        if resolution.arithmetic_invalid:
            return FailureReason.ARITHMETIC_INVALID
        return FailureReason.METRICS_MISSING

    async def _settle(self, key: str, reason: FailureReason) -> int | None:
        """Mark the key with the outcome TTL, or release it.

        Returns:
            TTL applied, None when the key was released or the write failed.
        """
        ttl = self.ttl_policy.ttl_for(reason)
        try:
            if ttl is None:
                await self._ledger_call(self.ledger.release(key))
            else:
                await self._ledger_call(self.ledger.mark(key, ttl))
        except LedgerUnavailableError as e:
            logger.error("ledger_write_failed", reason=reason.value, error=str(e))
            return None
        return ttl

    async def _ledger_call(self, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.ledger_timeout_seconds)
        except TimeoutError as e:
            raise LedgerUnavailableError(
                f"Ledger call timed out after {self.ledger_timeout_seconds}s"
            ) from e

    @staticmethod
    def _result(
        key: str,
        state: EvaluationState,
        start_time: float,
        **kwargs: Any,
    ) -> EvaluationResult:
        return EvaluationResult(
            key=key,
            state=state,
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
            **kwargs,
        )

    async def evaluate_batch(self, candidates: Iterable[CandidateToken]) -> BatchSummary:
        """Evaluate candidates concurrently, bounded by max_concurrency.

        Returns:
            BatchSummary with per-token results
        """
        batch = list(candidates)
        summary = BatchSummary(received=len(batch))
        if not batch:
            return summary

        async def _bounded(candidate: CandidateToken) -> EvaluationResult:
            async with self._semaphore:
                return await self.evaluate(candidate)

        outcomes = await asyncio.gather(
            *(_bounded(c) for c in batch), return_exceptions=True
        )
        for candidate, outcome in zip(batch, outcomes, strict=True):
            if isinstance(outcome, EvaluationResult):
                summary.record(outcome)
                continue
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            logger.error(
                "evaluation_task_failed",
                token=candidate.short_address,
                error=str(outcome),
            )
            summary.record(
                EvaluationResult(
                    key=candidate.dedup_key,
                    state=EvaluationState.ERROR,
                    reason=FailureReason.INTERNAL_ERROR,
                    error_message=str(outcome),
                )
            )

        logger.info(
            "batch_evaluated",
            received=summary.received,
            delivered=summary.delivered,
            rejected=summary.rejected,
            retry_scheduled=summary.retry_scheduled,
            skipped=summary.skipped,
            failed=summary.failed,
            errors=summary.errors,
        )
        return summary

    async def close(self) -> None:
        """Close ledger, sink and provider clients."""
        await self.ledger.close()
        await self.dispatcher.close()
        for resource in self._closables:
            await resource.close()


def build_providers(settings: Any) -> tuple[list, list, list, list]:
    """Create providers enabled by settings, in configured order.

    Returns:
        (metric providers, supply providers, holder providers, clients to close)
    """
    from tokenwatch.constants.providers import (  # noqa: PLC0415
        BIRDEYE_MARKET,
        COINGECKO_MARKET,
        DEXSCREENER_MARKET,
        MORALIS_HOLDERS,
        MORALIS_MARKET,
        MORALIS_SUPPLY,
        PROVIDER_MAX_RETRIES,
        SOLANA_HOLDERS,
        SOLANA_SUPPLY,
    )
    from tokenwatch.services.birdeye import BirdeyeClient  # noqa: PLC0415
    from tokenwatch.services.coingecko import CoinGeckoClient  # noqa: PLC0415
    from tokenwatch.services.dexscreener import DexScreenerClient  # noqa: PLC0415
    from tokenwatch.services.moralis import (  # noqa: PLC0415
        MoralisClient,
        MoralisHolderProvider,
        MoralisMarketProvider,
        MoralisSupplyProvider,
    )
    from tokenwatch.services.solana import (  # noqa: PLC0415
        SolanaHolderProvider,
        SolanaRPCClient,
        SolanaSupplyProvider,
    )

    timeout = settings.provider_timeout_seconds
    available: dict[str, Any] = {}
    clients: list[Any] = []

    moralis_key = settings.moralis_api_key.get_secret_value()
    if moralis_key:
        moralis = MoralisClient(
            api_key=moralis_key,
            base_url=settings.moralis_api_base,
            timeout=timeout,
            max_retries=PROVIDER_MAX_RETRIES,
        )
        clients.append(moralis)
        available[MORALIS_MARKET] = MoralisMarketProvider(moralis)
        available[MORALIS_SUPPLY] = MoralisSupplyProvider(moralis)
        available[MORALIS_HOLDERS] = MoralisHolderProvider(moralis)
    else:
        logger.warning("moralis_not_configured", message="Moralis providers disabled")

    if settings.dexscreener_enabled:
        dexscreener = DexScreenerClient(timeout=timeout, max_retries=PROVIDER_MAX_RETRIES)
        clients.append(dexscreener)
        available[DEXSCREENER_MARKET] = dexscreener

    birdeye_key = settings.birdeye_api_key.get_secret_value()
    if birdeye_key:
        birdeye = BirdeyeClient(api_key=birdeye_key, timeout=timeout)
        clients.append(birdeye)
        available[BIRDEYE_MARKET] = birdeye

    if settings.coingecko_fallback:
        coingecko = CoinGeckoClient(timeout=timeout, max_retries=PROVIDER_MAX_RETRIES)
        clients.append(coingecko)
        available[COINGECKO_MARKET] = coingecko

    solana = SolanaRPCClient(settings.solana_rpc_url, timeout=timeout)
    clients.append(solana)
    available[SOLANA_SUPPLY] = SolanaSupplyProvider(solana)
    available[SOLANA_HOLDERS] = SolanaHolderProvider(solana)

    def ordered(names: list[str]) -> list[Any]:
        return [available[n] for n in names if n in available]

    metric = ordered(settings.metric_provider_order)
    supply = ordered(settings.supply_provider_order)
    holders = ordered(settings.holder_provider_order)
    logger.info(
        "providers_configured",
        metric=[p.name for p in metric],
        supply=[p.name for p in supply],
        holders=[p.name for p in holders],
    )
    return metric, supply, holders, clients


# Singleton orchestrator instance
_orchestrator: PipelineOrchestrator | None = None


async def get_orchestrator() -> PipelineOrchestrator:
    """Get or create the orchestrator singleton, wired from settings."""
    global _orchestrator

    if _orchestrator is None:
        from tokenwatch.config.settings import get_settings  # noqa: PLC0415
        from tokenwatch.services.ledger import create_ledger  # noqa: PLC0415
        from tokenwatch.services.notifier import LogSink, TelegramSink  # noqa: PLC0415

        settings = get_settings()
        metric, supply, holders, clients = build_providers(settings)

        resolver = MetricResolver(
            metric_providers=metric,
            supply_providers=supply,
            holder_providers=holders,
            provider_timeout=settings.provider_timeout_seconds,
            holder_limit=settings.holder_fetch_limit,
        )

        if settings.telegram_configured:
            sink: Any = TelegramSink(
                bot_token=settings.telegram_bot_token.get_secret_value(),
                chat_id=settings.telegram_chat_id,
                timeout=settings.notifier_timeout_seconds,
            )
        else:
            logger.warning(
                "telegram_not_configured",
                message="Notifications are logged only (dry run)",
            )
            sink = LogSink()

        ledger = create_ledger(settings)
        await ledger.start()

        _orchestrator = PipelineOrchestrator(
            resolver=resolver,
            filter_evaluator=FilterEvaluator(settings.filter_thresholds()),
            dispatcher=NotificationDispatcher(sink, timeout=settings.notifier_timeout_seconds),
            ledger=ledger,
            ttl_policy=settings.ttl_policy(),
            max_concurrency=settings.max_concurrency,
            evaluation_deadline_seconds=settings.evaluation_deadline_seconds,
            ledger_timeout_seconds=settings.ledger_timeout_seconds,
            closables=clients,
        )

        logger.info(
            "pipeline_orchestrator_initialized",
            ledger=ledger.backend,
            sink=sink.name,
            max_concurrency=settings.max_concurrency,
        )

    return _orchestrator


async def reset_orchestrator() -> None:
    """Close and reset the orchestrator singleton."""
    global _orchestrator
    if _orchestrator is not None:
        await _orchestrator.close()
    _orchestrator = None
