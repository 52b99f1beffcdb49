"""Moralis API client for token metadata, holders and price.

Moralis endpoints differ across plans and API versions, so each lookup
tries a short list of known paths in order and keeps the first one that
answers.

API Documentation: https://docs.moralis.io/web3-data-api/evm/reference
"""

from decimal import Decimal
from typing import Any

import structlog

from tokenwatch.core.exceptions import ExternalServiceError
from tokenwatch.ingestion.field_map import (
    MORALIS_HOLDER_FIELDS,
    MORALIS_METADATA_FIELDS,
    MORALIS_PRICE_FIELDS,
    map_fields,
)
from tokenwatch.models.token import HolderPage, HolderRecord, TokenMetadata
from tokenwatch.services.base import BaseAPIClient
from tokenwatch.services.token.percentage import parse_decimal, parse_raw_amount

log = structlog.get_logger(__name__)


class MoralisClient(BaseAPIClient):
    """Moralis deep-index API client.

    Endpoints used:
        - GET /erc20/{address}/metadata, /erc20/{address}, /token/{address}/metadata
        - GET /erc20/{address}/holders, /token/{address}/holders
        - GET /erc20/{address}/price
    """

    METADATA_PATHS = (
        "/erc20/{address}/metadata",
        "/erc20/{address}",
        "/token/{address}/metadata",
    )
    HOLDER_PATHS = (
        "/erc20/{address}/holders",
        "/token/{address}/holders",
    )
    PRICE_PATH = "/erc20/{address}/price"

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 20.0,
        max_retries: int = 2,
    ) -> None:
        """Initialize Moralis client.

        Args:
            api_key: Moralis API key (sent as X-API-Key).
            base_url: API base URL.
            timeout: Request timeout in seconds.
            max_retries: Attempts per request.
        """
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            headers={"X-API-Key": api_key, "accept": "application/json"},
            max_retries=max_retries,
        )
        log.info("moralis_client_initialized", base_url=base_url)

    async def fetch_metadata(self, chain: str, address: str) -> TokenMetadata | None:
        """Fetch total supply, symbol and name.

        Returns:
            TokenMetadata from the first endpoint that answers, or None when
            every endpoint answered without a body.

        Raises:
            ExternalServiceError: If every endpoint failed. The status code
                is 404 only when every endpoint returned 404.
        """
        data = await self._first_available(self.METADATA_PATHS, address, {"chain": chain})
        if data is None:
            return None

        # Batch metadata endpoints answer with a list
        if isinstance(data, list):
            data = data[0] if data else {}
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected metadata type: {type(data).__name__}")

        fields = map_fields(data, MORALIS_METADATA_FIELDS)
        return TokenMetadata(
            total_supply=parse_raw_amount(fields.get("total_supply")),
            symbol=fields.get("symbol"),
            name=fields.get("name"),
        )

    async def fetch_holders(self, chain: str, address: str, limit: int = 200) -> HolderPage | None:
        """Fetch the largest holders with raw balances.

        Response shapes handled: a bare list, ``{"total", "result": [...]}``
        and ``{"holders": [...]}``.
        """
        data = await self._first_available(
            self.HOLDER_PATHS, address, {"chain": chain, "limit": limit}
        )
        if data is None:
            return None

        total: int | None = None
        if isinstance(data, list):
            rows = data
        elif isinstance(data, dict) and isinstance(data.get("result"), list):
            rows = data["result"]
            total = parse_raw_amount(data.get("total"))
        elif isinstance(data, dict) and isinstance(data.get("holders"), list):
            rows = data["holders"]
        else:
            raise ValueError("Holder payload has no holder list")

        holders = []
        for row in rows[:limit]:
            fields = map_fields(row, MORALIS_HOLDER_FIELDS)
            balance = parse_raw_amount(fields.get("balance"))
            if not fields.get("address") or balance is None:
                log.debug("moralis_holder_row_skipped", row_keys=list(row)[:6])
                continue
            holders.append(HolderRecord(address=str(fields["address"]), balance=balance))

        return HolderPage(holders=holders, total=total or len(rows))

    async def fetch_price(self, chain: str, address: str) -> dict[str, Decimal | None] | None:
        """Fetch USD price, market cap and 24h volume.

        Market cap falls back to price * supply / 10**decimals when the
        endpoint does not report it.
        """
        response = await self.get(self.PRICE_PATH.format(address=address), params={"chain": chain})
        data = response.json()
        if not data:
            return None
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected price type: {type(data).__name__}")

        fields = map_fields(data, MORALIS_PRICE_FIELDS)
        price = parse_decimal(fields.get("price"))
        marketcap = parse_decimal(fields.get("marketcap"))

        supply = parse_raw_amount(fields.get("total_supply"))
        if marketcap is None and price is not None and supply:
            decimals = parse_raw_amount(fields.get("decimals")) or 0
            marketcap = price * Decimal(supply).scaleb(-decimals)

        return {
            "price": price,
            "marketcap": marketcap,
            "volume24h": parse_decimal(fields.get("volume24h")),
        }

    async def _first_available(
        self,
        paths: tuple[str, ...],
        address: str,
        params: dict[str, Any],
    ) -> Any:
        errors: list[ExternalServiceError] = []
        for template in paths:
            path = template.format(address=address)
            try:
                response = await self.get(path, params=params)
            except ExternalServiceError as e:
                log.debug("moralis_endpoint_failed", path=path, status_code=e.status_code)
                errors.append(e)
                continue

            data = response.json()
            if data:
                return data

        if errors and len(errors) == len(paths):
            all_not_found = all(e.status_code == 404 for e in errors)
            raise ExternalServiceError(
                service="moralis",
                message=f"All {len(paths)} endpoints failed: {errors[-1]}",
                status_code=404 if all_not_found else errors[-1].status_code,
            )
        return None
