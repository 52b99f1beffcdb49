"""CoinGecko API client for EVM market data fallback.

API Documentation: https://docs.coingecko.com/reference/coins-contract-address
Rate Limits: ~30 requests/minute on the public API (no auth required)
"""

import structlog

from tokenwatch.constants.providers import COINGECKO_BASE_URL, COINGECKO_MARKET, COINGECKO_PLATFORMS
from tokenwatch.ingestion.field_map import COINGECKO_MARKET_FIELDS, map_fields
from tokenwatch.models.token import MetricName, PartialMetrics
from tokenwatch.services.base import BaseAPIClient
from tokenwatch.services.providers.base import provider_errors
from tokenwatch.services.token.percentage import parse_decimal

log = structlog.get_logger(__name__)


class CoinGeckoClient(BaseAPIClient):
    """CoinGecko contract lookup, usable as a metric provider.

    Only chains with a CoinGecko platform id are supported; for any other
    chain the provider answers "no data" without making a request.
    """

    name = COINGECKO_MARKET
    supplies = frozenset({MetricName.MARKETCAP.value, MetricName.VOLUME_24H.value})

    def __init__(self, timeout: float = 20.0, max_retries: int = 2) -> None:
        super().__init__(
            base_url=COINGECKO_BASE_URL,
            timeout=timeout,
            headers={"accept": "application/json"},
            max_retries=max_retries,
        )
        log.info("coingecko_client_initialized", base_url=COINGECKO_BASE_URL)

    @staticmethod
    def platform_for(chain: str) -> str | None:
        """CoinGecko platform id for a chain, or None if unsupported."""
        return COINGECKO_PLATFORMS.get(chain.lower())

    async def query_metric(self, chain: str, address: str) -> PartialMetrics | None:
        platform = self.platform_for(chain)
        if platform is None:
            log.debug("coingecko_chain_unsupported", chain=chain)
            return None

        async with provider_errors(self.name):
            response = await self.get(f"/coins/{platform}/contract/{address.lower()}")
            data = response.json()
            if not isinstance(data, dict) or "market_data" not in data:
                return None
            fields = map_fields(data, COINGECKO_MARKET_FIELDS)

        return PartialMetrics(
            marketcap=parse_decimal(fields.get("marketcap")),
            volume24h=parse_decimal(fields.get("volume24h")),
        )
