"""Moralis-backed metric, supply and holder providers."""

import structlog

from tokenwatch.constants.providers import MORALIS_HOLDERS, MORALIS_MARKET, MORALIS_SUPPLY
from tokenwatch.models.token import TOTAL_SUPPLY_FIELD, HolderPage, MetricName, PartialMetrics
from tokenwatch.services.moralis.client import MoralisClient
from tokenwatch.services.providers.base import provider_errors

logger = structlog.get_logger(__name__)


class MoralisMarketProvider:
    """Market cap and 24h volume from the Moralis price endpoint."""

    name = MORALIS_MARKET
    supplies = frozenset({MetricName.MARKETCAP.value, MetricName.VOLUME_24H.value})

    def __init__(self, client: MoralisClient) -> None:
        self.client = client

    async def query_metric(self, chain: str, address: str) -> PartialMetrics | None:
        async with provider_errors(self.name):
            price = await self.client.fetch_price(chain, address.lower())
        if price is None:
            return None
        return PartialMetrics(marketcap=price["marketcap"], volume24h=price["volume24h"])


class MoralisSupplyProvider:
    """Total supply from the Moralis metadata endpoints."""

    name = MORALIS_SUPPLY
    supplies = frozenset({TOTAL_SUPPLY_FIELD})

    def __init__(self, client: MoralisClient) -> None:
        self.client = client

    async def query_metric(self, chain: str, address: str) -> PartialMetrics | None:
        async with provider_errors(self.name):
            metadata = await self.client.fetch_metadata(chain, address.lower())
        if metadata is None:
            return None
        return PartialMetrics(
            total_supply=metadata.total_supply,
            name=metadata.name,
            symbol=metadata.symbol,
        )


class MoralisHolderProvider:
    """Largest holders from the Moralis holders endpoints."""

    name = MORALIS_HOLDERS

    def __init__(self, client: MoralisClient) -> None:
        self.client = client

    async def fetch_holders(self, chain: str, address: str, limit: int) -> HolderPage | None:
        async with provider_errors(self.name):
            return await self.client.fetch_holders(chain, address.lower(), limit)
