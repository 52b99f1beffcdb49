"""Unit tests for the CoinGecko metric provider."""

from decimal import Decimal

import pytest
import respx
from httpx import Response

from tokenwatch.core.exceptions import ProviderNotFoundError
from tokenwatch.services.coingecko import CoinGeckoClient

TOKEN = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


@pytest.fixture
def coingecko():
    return CoinGeckoClient(max_retries=1)


@pytest.mark.asyncio
@respx.mock
async def test_market_data_mapped(coingecko):
    respx.get(
        f"https://api.coingecko.com/api/v3/coins/binance-smart-chain/contract/{TOKEN.lower()}"
    ).mock(
        return_value=Response(
            200,
            json={"market_data": {"market_cap": {"usd": 91000}, "total_volume": {"usd": 450.25}}},
        )
    )

    metrics = await coingecko.query_metric("bsc", TOKEN)

    assert metrics.marketcap == Decimal("91000")
    assert metrics.volume24h == Decimal("450.25")
    await coingecko.close()


@pytest.mark.asyncio
@respx.mock(assert_all_called=False)
async def test_unsupported_chain_makes_no_request(coingecko):
    route = respx.get(url__regex=r"https://api\.coingecko\.com/.*")

    assert await coingecko.query_metric("solana", TOKEN) is None
    assert route.call_count == 0
    await coingecko.close()


@pytest.mark.asyncio
@respx.mock
async def test_payload_without_market_data(coingecko):
    respx.get(url__regex=r"https://api\.coingecko\.com/.*").mock(
        return_value=Response(200, json={"id": "usd-coin"})
    )

    assert await coingecko.query_metric("ethereum", TOKEN) is None
    await coingecko.close()


@pytest.mark.asyncio
@respx.mock
async def test_unknown_contract(coingecko):
    respx.get(url__regex=r"https://api\.coingecko\.com/.*").mock(return_value=Response(404))

    with pytest.raises(ProviderNotFoundError):
        await coingecko.query_metric("ethereum", TOKEN)
    await coingecko.close()
