"""Unit tests for the DexScreener metric provider."""

from decimal import Decimal

import pytest
import respx
from httpx import Response

from tokenwatch.core.exceptions import ProviderDataMalformedError, ProviderUnavailableError
from tokenwatch.services.dexscreener import DexScreenerClient

MINT = "7vfCXTUXx5WJV5JADk17DUJ4ksgau7utNKj4b963voxs"
PAIRS_URL = f"https://api.dexscreener.com/latest/dex/tokens/{MINT}"


def _pair(chain: str, liquidity: str, market_cap: str | None, volume: str, fdv: str = "1") -> dict:
    pair = {
        "chainId": chain,
        "dexId": "raydium",
        "pairAddress": f"pair-{chain}-{liquidity}",
        "baseToken": {"address": MINT, "name": "Wen", "symbol": "WEN"},
        "volume": {"h24": volume},
        "liquidity": {"usd": liquidity},
        "fdv": fdv,
    }
    if market_cap is not None:
        pair["marketCap"] = market_cap
    return pair


@pytest.fixture
def client():
    return DexScreenerClient(max_retries=1)


@pytest.mark.asyncio
@respx.mock
async def test_uses_most_liquid_pair_on_chain(client):
    """Test metrics come from the deepest pool on the requested chain."""
    # ARRANGE
    respx.get(PAIRS_URL).mock(
        return_value=Response(
            200,
            json={
                "pairs": [
                    _pair("solana", "1000", "10000", "50"),
                    _pair("solana", "90000", "64000", "8000"),
                    _pair("ethereum", "999999", "1", "1"),
                ]
            },
        )
    )

    # ACT
    metrics = await client.query_metric("solana", MINT)

    # ASSERT
    assert metrics.marketcap == Decimal("64000")
    assert metrics.volume24h == Decimal("8000")
    assert metrics.name == "Wen"
    assert metrics.symbol == "WEN"
    await client.close()


@pytest.mark.asyncio
@respx.mock
async def test_fdv_used_when_market_cap_missing(client):
    respx.get(PAIRS_URL).mock(
        return_value=Response(200, json={"pairs": [_pair("solana", "10", None, "5", fdv="42000")]})
    )

    metrics = await client.query_metric("solana", MINT)

    assert metrics.marketcap == Decimal("42000")
    await client.close()


@pytest.mark.asyncio
@respx.mock
async def test_no_pairs_is_absence(client):
    respx.get(PAIRS_URL).mock(return_value=Response(200, json={"pairs": None}))

    assert await client.query_metric("solana", MINT) is None
    await client.close()


@pytest.mark.asyncio
@respx.mock
async def test_server_error_is_unavailable(client):
    respx.get(PAIRS_URL).mock(return_value=Response(503))

    with pytest.raises(ProviderUnavailableError):
        await client.query_metric("solana", MINT)
    await client.close()


@pytest.mark.asyncio
@respx.mock
async def test_malformed_pair_is_malformed(client):
    respx.get(PAIRS_URL).mock(return_value=Response(200, json={"pairs": [{"chainId": "solana"}]}))

    with pytest.raises(ProviderDataMalformedError):
        await client.query_metric("solana", MINT)
    await client.close()
