"""Redis-backed dedup ledger, shared across processes."""

import asyncio
from collections.abc import Awaitable
from typing import Any, TypeVar

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from tokenwatch.constants.ledger import CLAIM_VALUE, LEDGER_TIMEOUT_SECONDS
from tokenwatch.core.exceptions import LedgerUnavailableError
from tokenwatch.services.ledger.base import DedupLedger

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RedisDedupLedger(DedupLedger):
    """Ledger on Redis ``SET NX EX``.

    Every command is bounded by ``timeout_seconds``; connection errors,
    Redis errors and timeouts surface as LedgerUnavailableError.

    Example:
        ledger = RedisDedupLedger.from_url("redis://localhost:6379/0")
        if await ledger.try_claim("processed:solana:abc", 120):
            ...
        await ledger.close()
    """

    backend = "redis"

    def __init__(self, redis: Redis, timeout_seconds: float = LEDGER_TIMEOUT_SECONDS) -> None:
        """Initialize Redis ledger.

        Args:
            redis: redis.asyncio client
            timeout_seconds: Timeout applied to every command
        """
        self._redis = redis
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_url(cls, url: str, timeout_seconds: float = LEDGER_TIMEOUT_SECONDS) -> "RedisDedupLedger":
        """Build a ledger from a redis:// URL."""
        return cls(Redis.from_url(url), timeout_seconds=timeout_seconds)

    async def _run(self, operation: str, key: str, command: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(command, timeout=self.timeout_seconds)
        except (RedisError, OSError, TimeoutError) as e:
            logger.warning(
                "ledger_command_failed",
                operation=operation,
                key=key,
                error=str(e) or type(e).__name__,
            )
            raise LedgerUnavailableError(f"Redis {operation} failed: {e!r}") from e

    async def try_claim(self, key: str, ttl_seconds: int) -> bool:
        result: Any = await self._run(
            "claim", key, self._redis.set(key, CLAIM_VALUE, nx=True, ex=ttl_seconds)
        )
        return bool(result)

    async def exists(self, key: str) -> bool:
        count = await self._run("exists", key, self._redis.exists(key))
        return bool(count)

    async def mark(self, key: str, ttl_seconds: int) -> None:
        await self._run("mark", key, self._redis.set(key, CLAIM_VALUE, ex=ttl_seconds))

    async def release(self, key: str) -> None:
        await self._run("release", key, self._redis.delete(key))

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._redis.aclose()
        logger.info("redis_ledger_closed")
