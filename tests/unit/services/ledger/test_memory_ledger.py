"""Tests for the in-memory dedup ledger."""

import asyncio

import pytest

from tokenwatch.services.ledger import InMemoryDedupLedger

KEY = "processed:solana:abc"


class TestTryClaim:
    """Tests for atomic claiming."""

    @pytest.mark.asyncio
    async def test_first_claim_wins(self, memory_ledger: InMemoryDedupLedger) -> None:
        assert await memory_ledger.try_claim(KEY, 60) is True
        assert await memory_ledger.try_claim(KEY, 60) is False
        assert await memory_ledger.exists(KEY) is True

    @pytest.mark.asyncio
    async def test_concurrent_claims_have_single_winner(
        self, memory_ledger: InMemoryDedupLedger
    ) -> None:
        """
        Given: 50 concurrent claims on one key
        When: All complete
        Then: Exactly one returns True
        """
        results = await asyncio.gather(*(memory_ledger.try_claim(KEY, 60) for _ in range(50)))

        assert results.count(True) == 1

    @pytest.mark.asyncio
    async def test_claim_possible_after_expiry(self, memory_ledger, manual_clock) -> None:
        """
        Given: A claim with a 60s TTL
        When: 60s pass
        Then: The key no longer exists and can be claimed again
        """
        await memory_ledger.try_claim(KEY, 60)

        manual_clock.advance(59)
        assert await memory_ledger.exists(KEY) is True

        manual_clock.advance(1)
        assert await memory_ledger.exists(KEY) is False
        assert await memory_ledger.try_claim(KEY, 60) is True

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, memory_ledger: InMemoryDedupLedger) -> None:
        assert await memory_ledger.try_claim("processed:ethereum:0x1", 60) is True
        assert await memory_ledger.try_claim("processed:solana:0x1", 60) is True


class TestMarkAndRelease:
    """Tests for outcome writes."""

    @pytest.mark.asyncio
    async def test_mark_overwrites_claim_ttl(self, memory_ledger, manual_clock) -> None:
        """
        Given: A short claim
        When: Marked with a longer outcome TTL
        Then: The entry outlives the claim TTL
        """
        await memory_ledger.try_claim(KEY, 120)
        await memory_ledger.mark(KEY, 3600)

        manual_clock.advance(600)

        entry = await memory_ledger.get_entry(KEY)
        assert entry is not None
        assert entry.ttl_seconds == 3600

    @pytest.mark.asyncio
    async def test_mark_without_claim_creates_entry(self, memory_ledger) -> None:
        await memory_ledger.mark(KEY, 30)

        assert await memory_ledger.exists(KEY) is True

    @pytest.mark.asyncio
    async def test_release_frees_key(self, memory_ledger) -> None:
        await memory_ledger.try_claim(KEY, 120)
        await memory_ledger.release(KEY)

        assert await memory_ledger.exists(KEY) is False
        assert await memory_ledger.try_claim(KEY, 120) is True

    @pytest.mark.asyncio
    async def test_release_unknown_key_is_noop(self, memory_ledger) -> None:
        await memory_ledger.release("processed:nope:nope")

        assert len(memory_ledger) == 0


class TestSweep:
    """Tests for expired entry cleanup."""

    @pytest.mark.asyncio
    async def test_sweep_removes_only_expired(self, memory_ledger, manual_clock) -> None:
        await memory_ledger.mark("a", 10)
        await memory_ledger.mark("b", 100)

        manual_clock.advance(50)
        removed = await memory_ledger.sweep()

        assert removed == 1
        assert len(memory_ledger) == 1
        assert await memory_ledger.exists("b") is True

    @pytest.mark.asyncio
    async def test_start_and_close_manage_sweep_task(self) -> None:
        ledger = InMemoryDedupLedger(sweep_interval_seconds=0.01)

        await ledger.start()
        assert ledger._sweep_task is not None
        assert not ledger._sweep_task.done()

        await ledger.close()
        assert ledger._sweep_task is None

    @pytest.mark.asyncio
    async def test_background_sweep_drops_expired_entries(self, manual_clock) -> None:
        ledger = InMemoryDedupLedger(sweep_interval_seconds=0.01, clock=manual_clock)
        await ledger.mark(KEY, 5)
        manual_clock.advance(10)

        await ledger.start()
        try:
            for _ in range(50):
                if len(ledger) == 0:
                    break
                await asyncio.sleep(0.01)
        finally:
            await ledger.close()

        assert len(ledger) == 0
