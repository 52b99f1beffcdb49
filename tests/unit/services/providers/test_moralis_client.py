"""Unit tests for the Moralis client and providers."""

from decimal import Decimal

import pytest
import respx
from httpx import Response

from tokenwatch.core.exceptions import ProviderNotFoundError, ProviderUnavailableError
from tokenwatch.services.moralis import (
    MoralisClient,
    MoralisHolderProvider,
    MoralisMarketProvider,
    MoralisSupplyProvider,
)

BASE = "https://deep-index.moralis.io/api/v2"
TOKEN = "0xAbCdEf0000000000000000000000000000000001"
LOWER = TOKEN.lower()


@pytest.fixture
def moralis():
    return MoralisClient(api_key="test-key", base_url=BASE, max_retries=1)


@pytest.mark.asyncio
@respx.mock
async def test_market_cap_computed_from_price_and_supply(moralis):
    """Test market cap falls back to price * supply / 10**decimals."""
    # ARRANGE
    route = respx.get(f"{BASE}/erc20/{LOWER}/price").mock(
        return_value=Response(
            200,
            json={
                "usdPrice": "0.5",
                "totalSupply": str(2000 * 10**18),
                "decimals": "18",
                "24hVolume": "300",
            },
        )
    )

    # ACT
    metrics = await MoralisMarketProvider(moralis).query_metric("eth", TOKEN)

    # ASSERT
    assert metrics.marketcap == Decimal("1000")
    assert metrics.volume24h == Decimal("300")
    request = route.calls.last.request
    assert request.headers["X-API-Key"] == "test-key"
    assert request.url.params["chain"] == "eth"
    await moralis.close()


@pytest.mark.asyncio
@respx.mock
async def test_reported_market_cap_preferred(moralis):
    respx.get(f"{BASE}/erc20/{LOWER}/price").mock(
        return_value=Response(200, json={"usdPrice": 1, "marketCap": "77000", "totalSupply": "5"})
    )

    metrics = await MoralisMarketProvider(moralis).query_metric("eth", TOKEN)

    assert metrics.marketcap == Decimal("77000")
    assert metrics.volume24h is None
    await moralis.close()


@pytest.mark.asyncio
@respx.mock
async def test_supply_from_first_endpoint_with_body(moralis):
    """Test metadata endpoints are tried in order until one answers."""
    # ARRANGE
    first = respx.get(f"{BASE}/erc20/{LOWER}/metadata").mock(return_value=Response(404))
    second = respx.get(f"{BASE}/erc20/{LOWER}").mock(
        return_value=Response(200, json=[{"totalSupply": "1000000", "name": "Pepe_Two", "symbol": "PEPE2"}])
    )

    # ACT
    metrics = await MoralisSupplyProvider(moralis).query_metric("eth", TOKEN)

    # ASSERT
    assert metrics.total_supply == 1_000_000
    assert metrics.name == "Pepe_Two"
    assert metrics.symbol == "PEPE2"
    assert first.call_count == 1
    assert second.call_count == 1
    await moralis.close()


@pytest.mark.asyncio
@respx.mock
async def test_all_endpoints_not_found(moralis):
    respx.get(url__regex=rf"{BASE}/.*").mock(return_value=Response(404))

    with pytest.raises(ProviderNotFoundError):
        await MoralisSupplyProvider(moralis).query_metric("eth", TOKEN)
    await moralis.close()


@pytest.mark.asyncio
@respx.mock
async def test_mixed_failures_are_unavailable(moralis):
    respx.get(f"{BASE}/erc20/{LOWER}/metadata").mock(return_value=Response(404))
    respx.get(f"{BASE}/erc20/{LOWER}").mock(return_value=Response(500))
    respx.get(f"{BASE}/token/{LOWER}/metadata").mock(return_value=Response(502))

    with pytest.raises(ProviderUnavailableError):
        await MoralisSupplyProvider(moralis).query_metric("eth", TOKEN)
    await moralis.close()


@pytest.mark.asyncio
@respx.mock
async def test_holders_with_total(moralis):
    """Test holder rows are mapped and the reported total kept."""
    # ARRANGE
    respx.get(f"{BASE}/erc20/{LOWER}/holders").mock(
        return_value=Response(
            200,
            json={
                "total": 57,
                "result": [
                    {"owner_address": "0xsmall", "balance": "100"},
                    {"owner_address": "0xbig", "balance": "900"},
                    {"owner_address": "0xbroken", "balance": "not-a-number"},
                ],
            },
        )
    )

    # ACT
    page = await MoralisHolderProvider(moralis).fetch_holders("eth", TOKEN, 50)

    # ASSERT
    assert page.total == 57
    assert [h.address for h in page.holders] == ["0xbig", "0xsmall"]
    await moralis.close()


@pytest.mark.asyncio
@respx.mock
async def test_holders_bare_list(moralis):
    respx.get(f"{BASE}/erc20/{LOWER}/holders").mock(
        return_value=Response(200, json=[{"address": "0xa", "amount": "5"}])
    )

    page = await MoralisHolderProvider(moralis).fetch_holders("eth", TOKEN, 50)

    assert page.holder_count == 1
    assert page.holders[0].balance == 5
    await moralis.close()
