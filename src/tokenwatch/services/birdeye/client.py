"""Birdeye API client for market data fallback."""

from typing import Any

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tokenwatch.constants.providers import BIRDEYE_BASE_URL, BIRDEYE_MARKET, BIRDEYE_MAX_RETRIES
from tokenwatch.core.exceptions import (
    ProviderDataMalformedError,
    ProviderNotFoundError,
    ProviderUnavailableError,
)
from tokenwatch.ingestion.field_map import BIRDEYE_OVERVIEW_FIELDS, map_fields
from tokenwatch.models.token import MetricName, PartialMetrics
from tokenwatch.services.token.percentage import parse_decimal

logger = structlog.get_logger(__name__)


class BirdeyeClient:
    """Metric provider backed by the Birdeye token overview endpoint.

    Supplies market cap, 24h volume and holder count. Requires an API key.
    """

    name = BIRDEYE_MARKET
    supplies = frozenset(
        {MetricName.MARKETCAP.value, MetricName.VOLUME_24H.value, MetricName.HOLDERS.value}
    )

    def __init__(self, api_key: str, timeout: float = 20.0) -> None:
        """Initialize Birdeye client.

        Args:
            api_key: Birdeye API key
            timeout: Request timeout in seconds
        """
        self.base_url = BIRDEYE_BASE_URL
        self.api_key = api_key
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers: dict[str, str] = {"Accept": "application/json"}
            if self.api_key:
                headers["X-API-KEY"] = self.api_key

            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @retry(
        stop=stop_after_attempt(BIRDEYE_MAX_RETRIES),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        retry=retry_if_exception_type(httpx.TimeoutException),
        reraise=True,
    )
    async def fetch_overview(self, chain: str, address: str) -> dict[str, Any]:
        """Fetch the raw token overview.

        Raises:
            httpx.TimeoutException: After retries are exhausted.
            httpx.HTTPStatusError: On a non-2xx response.
        """
        client = await self._get_client()
        response = await client.get(
            "/defi/token_overview",
            params={"address": address},
            headers={"x-chain": chain},
        )
        response.raise_for_status()
        return response.json()

    async def query_metric(self, chain: str, address: str) -> PartialMetrics | None:
        try:
            payload = await self.fetch_overview(chain, address)
        except httpx.TimeoutException as e:
            logger.warning("birdeye_timeout", token=address[:8] + "...")
            raise ProviderUnavailableError(self.name, f"Timeout: {e}") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("birdeye_http_error", token=address[:8] + "...", status=status)
            if status == 404:
                raise ProviderNotFoundError(self.name, "Token not found") from e
            raise ProviderUnavailableError(self.name, f"HTTP {status}") from e
        except httpx.RequestError as e:
            raise ProviderUnavailableError(self.name, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise ProviderDataMalformedError(self.name, f"Invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ProviderDataMalformedError(self.name, "Overview is not an object")
        if payload.get("success") is False:
            return None

        data = payload.get("data") or {}
        fields = map_fields(data, BIRDEYE_OVERVIEW_FIELDS)
        if not fields:
            return None

        return PartialMetrics(
            marketcap=parse_decimal(fields.get("marketcap")),
            volume24h=parse_decimal(fields.get("volume24h")),
            holders=parse_decimal(fields.get("holders")),
        )
