"""Shared pytest fixtures for TokenWatch tests.

This module provides fixtures for:
- Test environment defaults (no real API keys, in-memory ledger)
- Candidate token factory
- Fake metric/holder providers and a recording notifier sink
- A fully wired orchestrator on the in-memory ledger

Usage:
    @pytest.mark.asyncio
    async def test_something(candidate_factory, memory_ledger):
        candidate = candidate_factory(chain="solana")
        assert await memory_ledger.try_claim(candidate.dedup_key, 60)
"""

import os
from collections.abc import Generator
from datetime import UTC, datetime, timedelta

import pytest

from tests.factories.token import (
    CandidateTokenFactory,
    FakeHolderProvider,
    FakeMetricProvider,
    RecordingSink,
)

# =============================================================================
# Environment Configuration
# =============================================================================

_TEST_ENV = {
    "MORALIS_API_KEY": "",
    "BIRDEYE_API_KEY": "",
    "TELEGRAM_BOT_TOKEN": "",
    "TELEGRAM_CHAT_ID": "",
    "REDIS_URL": "",
    "HELIUS_WEBHOOK_SECRET": "",
    "FEED_URL": "",
    "LOG_LEVEL": "INFO",
}


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """Set up test environment variables.

    Loads .env file first, then forces test values so no real service is
    ever contacted.
    """
    from dotenv import load_dotenv

    original_env = os.environ.copy()

    load_dotenv()
    os.environ.update(_TEST_ENV)

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Reload settings for every test."""
    from tokenwatch.config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Factories and fakes
# =============================================================================


@pytest.fixture
def candidate_factory() -> type[CandidateTokenFactory]:
    """Provide candidate token factory."""
    return CandidateTokenFactory


@pytest.fixture
def recording_sink() -> RecordingSink:
    """Sink that records delivered messages."""
    return RecordingSink()


@pytest.fixture
def fake_metric_provider() -> type[FakeMetricProvider]:
    """Provide the fake metric provider class."""
    return FakeMetricProvider


@pytest.fixture
def fake_holder_provider() -> type[FakeHolderProvider]:
    """Provide the fake holder provider class."""
    return FakeHolderProvider


class ManualClock:
    """Controllable clock for ledger expiry tests."""

    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def manual_clock() -> ManualClock:
    """Clock advanced explicitly by the test."""
    return ManualClock()


@pytest.fixture
def memory_ledger(manual_clock: ManualClock):
    """In-memory ledger on the manual clock."""
    from tokenwatch.services.ledger import InMemoryDedupLedger

    return InMemoryDedupLedger(clock=manual_clock)
