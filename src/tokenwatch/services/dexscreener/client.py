"""DexScreener API client for token market data.

This module provides a metric provider backed by the DexScreener token
pairs endpoint. Market cap and 24h volume are taken from the most liquid
pair of the token on the requested chain.

API Documentation: https://docs.dexscreener.com/api/reference
Rate Limits: ~300 requests/minute (no auth required)
"""

import structlog

from tokenwatch.constants.providers import DEXSCREENER_BASE_URL, DEXSCREENER_MARKET
from tokenwatch.models.token import MetricName, PartialMetrics
from tokenwatch.services.base import BaseAPIClient
from tokenwatch.services.dexscreener.models import TokenPair, TokenPairsResponse
from tokenwatch.services.providers.base import provider_errors

log = structlog.get_logger(__name__)


class DexScreenerClient(BaseAPIClient):
    """DexScreener API client, usable as a metric provider.

    Inherits from BaseAPIClient to provide retry logic and circuit breaker
    protection for API calls.

    Endpoints used:
        - GET /latest/dex/tokens/{address} - Token pair data

    Example:
        client = DexScreenerClient()
        try:
            metrics = await client.query_metric("solana", mint)
        finally:
            await client.close()
    """

    name = DEXSCREENER_MARKET
    supplies = frozenset({MetricName.MARKETCAP.value, MetricName.VOLUME_24H.value})

    CIRCUIT_BREAKER_THRESHOLD = 5
    CIRCUIT_BREAKER_COOLDOWN = 30

    def __init__(self, timeout: float = 20.0, max_retries: int = 2) -> None:
        """Initialize DexScreener client."""
        super().__init__(
            base_url=DEXSCREENER_BASE_URL,
            timeout=timeout,
            max_retries=max_retries,
            circuit_breaker_threshold=self.CIRCUIT_BREAKER_THRESHOLD,
            circuit_breaker_cooldown=self.CIRCUIT_BREAKER_COOLDOWN,
        )
        log.info("dexscreener_client_initialized", base_url=DEXSCREENER_BASE_URL)

    async def fetch_pairs(self, chain: str, address: str) -> list[TokenPair]:
        """Fetch pairs for a token address, restricted to one chain.

        Args:
            chain: Chain id as used by DexScreener ("solana", "ethereum", ...).
            address: Token address, original casing.

        Returns:
            Pairs on the requested chain (possibly empty).
        """
        response = await self.get(f"/latest/dex/tokens/{address}")
        pairs_response = TokenPairsResponse.model_validate(response.json())

        pairs = [
            pair for pair in pairs_response.pairs or []
            if pair.chain_id.lower() == chain.lower()
        ]
        log.debug(
            "token_pairs_fetched",
            token=address[:8] + "...",
            total=len(pairs_response.pairs or []),
            chain_count=len(pairs),
        )
        return pairs

    async def query_metric(self, chain: str, address: str) -> PartialMetrics | None:
        async with provider_errors(self.name):
            pairs = await self.fetch_pairs(chain, address)

        if not pairs:
            return None

        best = max(pairs, key=lambda p: p.liquidity_usd)
        return PartialMetrics(
            marketcap=best.market_cap if best.market_cap is not None else best.fdv,
            volume24h=best.volume.h24 if best.volume else None,
            name=best.base_token.name,
            symbol=best.base_token.symbol,
        )
