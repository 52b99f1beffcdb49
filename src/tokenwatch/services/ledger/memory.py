"""Process-local dedup ledger."""

import asyncio
import contextlib
from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from tokenwatch.constants.ledger import MEMORY_LEDGER_SWEEP_SECONDS
from tokenwatch.models.evaluation import DedupEntry
from tokenwatch.services.ledger.base import DedupLedger

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InMemoryDedupLedger(DedupLedger):
    """In-memory ledger with lazy expiry and a periodic sweep.

    Only suitable for a single process. Entries expire on access; the
    sweep task just keeps memory bounded.
    """

    backend = "memory"

    def __init__(
        self,
        sweep_interval_seconds: float = MEMORY_LEDGER_SWEEP_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize in-memory ledger.

        Args:
            sweep_interval_seconds: Interval between expired-entry sweeps
            clock: Source of the current time (injectable for tests)
        """
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._entries: dict[str, DedupEntry] = {}
        self._lock = asyncio.Lock()
        self._sweep_task: asyncio.Task | None = None

    def _live_entry(self, key: str) -> DedupEntry | None:
        """Entry for key, dropping it if expired. Caller holds the lock."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    async def try_claim(self, key: str, ttl_seconds: int) -> bool:
        async with self._lock:
            if self._live_entry(key) is not None:
                return False
            self._entries[key] = DedupEntry(
                key=key, written_at=self._clock(), ttl_seconds=ttl_seconds
            )
            return True

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return self._live_entry(key) is not None

    async def mark(self, key: str, ttl_seconds: int) -> None:
        async with self._lock:
            self._entries[key] = DedupEntry(
                key=key, written_at=self._clock(), ttl_seconds=ttl_seconds
            )

    async def release(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def get_entry(self, key: str) -> DedupEntry | None:
        """Current entry for a key, if unexpired."""
        async with self._lock:
            return self._live_entry(key)

    async def sweep(self) -> int:
        """Drop expired entries.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("ledger_swept", removed=len(expired), remaining=len(self._entries))
        return len(expired)

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop())
            logger.info("memory_ledger_started", sweep_interval=self.sweep_interval_seconds)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            await self.sweep()

    async def close(self) -> None:
        """Stop the sweep task."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
            logger.info("memory_ledger_stopped")

    def __len__(self) -> int:
        return len(self._entries)
