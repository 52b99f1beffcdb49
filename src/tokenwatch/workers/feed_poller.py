"""Feed polling background worker.

Polls a JSON feed of newly listed tokens at a fixed interval and sends each
batch through the evaluation pipeline:

    GET feed_url -> CandidateNormalizer.from_feed -> evaluate_batch

A failed poll is logged and retried on the next tick; there is no
backoff. The ledger keeps repeated feed items from being notified twice.

Example:
    worker = FeedPollingWorker(feed_url, poll_interval=60)
    task = asyncio.create_task(worker.run())
    ...
    await worker.stop()
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

import structlog

from tokenwatch.core.exceptions import CircuitBreakerOpenError, ExternalServiceError
from tokenwatch.ingestion.normalizer import CandidateNormalizer
from tokenwatch.models.evaluation import BatchSummary
from tokenwatch.services.base import BaseAPIClient
from tokenwatch.services.pipeline.orchestrator import PipelineOrchestrator, get_orchestrator

log = structlog.get_logger(__name__)


class FeedPollingWorker:
    """Background worker polling a token feed.

    Attributes:
        running: Worker running state.
        poll_interval: Seconds between polls.
    """

    def __init__(
        self,
        feed_url: str,
        poll_interval: int = 60,
        timeout: float = 20.0,
        orchestrator_factory: Callable[[], Awaitable[PipelineOrchestrator]] = get_orchestrator,
        client: BaseAPIClient | None = None,
    ) -> None:
        """Initialize worker.

        Args:
            feed_url: Absolute URL of the JSON feed
            poll_interval: Seconds between polls
            timeout: Request timeout for one poll
            orchestrator_factory: Returns the pipeline to evaluate with
            client: HTTP client override (tests)
        """
        self.feed_url = feed_url
        self.poll_interval = poll_interval
        self.running = False
        self._orchestrator_factory = orchestrator_factory
        # Single attempt per tick
        self._client = client or BaseAPIClient(base_url=feed_url, timeout=timeout, max_retries=1)
        self._normalizer = CandidateNormalizer()
        self._stop_event = asyncio.Event()

        self._last_run: datetime | None = None
        self._last_summary: BatchSummary | None = None
        self._polls = 0
        self._poll_errors = 0
        self._current_state = "idle"  # idle | polling | stopped | error

        log.info("feed_poller_initialized", poll_interval_seconds=poll_interval)

    def get_status(self) -> dict[str, Any]:
        """Worker status for the health endpoint."""
        summary = self._last_summary
        return {
            "enabled": True,
            "running": self.running,
            "last_run": self._last_run.isoformat() if self._last_run else None,
            "polls": self._polls,
            "poll_errors": self._poll_errors,
            "last_received": summary.received if summary else 0,
            "last_delivered": summary.delivered if summary else 0,
            "current_state": self._current_state,
        }

    async def poll_once(self) -> BatchSummary | None:
        """Fetch the feed once and evaluate its tokens.

        Returns:
            BatchSummary, or None when the feed could not be read
        """
        self._current_state = "polling"
        self._polls += 1
        try:
            response = await self._client.get(self.feed_url)
            payload = response.json()
        except (ExternalServiceError, CircuitBreakerOpenError, ValueError) as e:
            self._poll_errors += 1
            self._current_state = "error"
            log.warning("feed_poll_failed", error=str(e))
            return None

        candidates = self._normalizer.from_feed(payload)
        orchestrator = await self._orchestrator_factory()
        summary = await orchestrator.evaluate_batch(candidates)

        self._last_run = datetime.now(UTC)
        self._last_summary = summary
        self._current_state = "idle"
        log.info(
            "feed_polled",
            received=summary.received,
            delivered=summary.delivered,
            skipped=summary.skipped,
        )
        return summary

    async def run(self) -> None:
        """Poll until stopped."""
        log.info("feed_poller_starting", feed_url=self.feed_url)
        self.running = True
        self._stop_event.clear()

        while self.running:
            try:
                await self.poll_once()
            except Exception as e:
                self._poll_errors += 1
                self._current_state = "error"
                log.error("feed_poll_error", error=str(e), error_type=type(e).__name__)

            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)

        self._current_state = "stopped"
        log.info("feed_poller_stopped")

    async def stop(self) -> None:
        """Stop the loop and close the HTTP client."""
        self.running = False
        self._stop_event.set()
        await self._client.close()


# Module-level worker started from the app lifespan
_feed_poller: FeedPollingWorker | None = None
_feed_poller_task: asyncio.Task | None = None


async def start_feed_poller(feed_url: str, poll_interval: int) -> FeedPollingWorker:
    """Create and start the feed poller task."""
    global _feed_poller, _feed_poller_task

    _feed_poller = FeedPollingWorker(feed_url, poll_interval=poll_interval)
    _feed_poller_task = asyncio.create_task(_feed_poller.run())
    return _feed_poller


async def stop_feed_poller() -> None:
    """Stop the feed poller task, if running."""
    global _feed_poller, _feed_poller_task

    if _feed_poller is not None:
        await _feed_poller.stop()
    if _feed_poller_task is not None:
        _feed_poller_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await _feed_poller_task
    _feed_poller = None
    _feed_poller_task = None


def get_feed_poller_status() -> dict[str, Any]:
    """Status of the feed poller, or a disabled marker."""
    if _feed_poller is None:
        return {"enabled": False, "running": False}
    return _feed_poller.get_status()
