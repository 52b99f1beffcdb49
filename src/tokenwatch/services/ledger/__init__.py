"""Dedup ledger backends.

Usage:
    from tokenwatch.services.ledger import create_ledger

    ledger = create_ledger(get_settings())
    await ledger.start()
"""

import structlog

from tokenwatch.config.settings import Settings
from tokenwatch.services.ledger.base import DedupLedger
from tokenwatch.services.ledger.memory import InMemoryDedupLedger
from tokenwatch.services.ledger.redis_ledger import RedisDedupLedger

logger = structlog.get_logger(__name__)


def create_ledger(settings: Settings) -> DedupLedger:
    """Redis ledger when REDIS_URL is set, in-memory otherwise."""
    redis_url = settings.redis_url.get_secret_value()
    if redis_url:
        logger.info("ledger_backend_selected", backend=RedisDedupLedger.backend)
        return RedisDedupLedger.from_url(redis_url, timeout_seconds=settings.ledger_timeout_seconds)

    logger.info("ledger_backend_selected", backend=InMemoryDedupLedger.backend)
    return InMemoryDedupLedger(sweep_interval_seconds=settings.memory_ledger_sweep_seconds)


__all__ = [
    "DedupLedger",
    "InMemoryDedupLedger",
    "RedisDedupLedger",
    "create_ledger",
]
