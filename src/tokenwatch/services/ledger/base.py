"""Dedup ledger contract."""

from abc import ABC, abstractmethod


class DedupLedger(ABC):
    """TTL-keyed record of tokens already handled.

    ``try_claim`` is the only claim primitive: callers never combine
    ``exists`` with a later write to decide ownership.
    """

    backend: str = "abstract"

    @abstractmethod
    async def try_claim(self, key: str, ttl_seconds: int) -> bool:
        """Atomically create the key with a TTL if absent.

        Returns:
            True if this caller now owns the key, False if it already existed.

        Raises:
            LedgerUnavailableError: If the backend cannot be reached.
        """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether an unexpired entry exists. Not a claim."""

    @abstractmethod
    async def mark(self, key: str, ttl_seconds: int) -> None:
        """Set the key with a fresh TTL, overwriting any current entry."""

    @abstractmethod
    async def release(self, key: str) -> None:
        """Delete the key."""

    async def start(self) -> None:  # noqa: B027
        """Start background work, if any."""

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""
