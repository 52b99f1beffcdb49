"""Solana RPC client for token supply and largest holders.

The client extends BaseAPIClient to inherit:
- Bounded retry
- Circuit breaker pattern for failure protection
- Proper resource cleanup

Solana mints are base58 and case-sensitive, so these providers must be
called with the address as received, never the lowercased form.
"""

from typing import Any

import structlog

from tokenwatch.constants.providers import SOLANA_CHAIN, SOLANA_HOLDERS, SOLANA_SUPPLY
from tokenwatch.core.exceptions import ProviderNotFoundError, ProviderUnavailableError
from tokenwatch.models.token import TOTAL_SUPPLY_FIELD, HolderPage, HolderRecord, PartialMetrics
from tokenwatch.services.base import BaseAPIClient
from tokenwatch.services.providers.base import provider_errors
from tokenwatch.services.token.percentage import parse_raw_amount

log = structlog.get_logger(__name__)

# JSON-RPC "invalid params", returned for addresses that are not mints
INVALID_PARAMS_CODE = -32602


class SolanaRPCClient(BaseAPIClient):
    """Client for Solana JSON-RPC token queries.

    Example:
        client = SolanaRPCClient("https://api.mainnet-beta.solana.com")
        supply = await client.get_token_supply(mint)
        await client.close()
    """

    def __init__(self, rpc_url: str, timeout: float = 10.0, max_retries: int = 2) -> None:
        """Initialize Solana RPC client."""
        super().__init__(
            base_url=rpc_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            max_retries=max_retries,
            circuit_breaker_threshold=5,
            circuit_breaker_cooldown=30,
        )
        log.debug("solana_rpc_client_initialized", base_url=rpc_url)

    async def _call(self, method: str, params: list[Any], provider: str) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        response = await self.post("", json=payload)
        data = response.json()

        error = data.get("error")
        if error:
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            if code == INVALID_PARAMS_CODE:
                raise ProviderNotFoundError(provider, message)
            raise ProviderUnavailableError(provider, f"RPC error {code}: {message}")

        return data["result"]

    async def get_token_supply(self, mint: str) -> int | None:
        """Total supply of a mint in raw base units (getTokenSupply)."""
        result = await self._call("getTokenSupply", [mint], SOLANA_SUPPLY)
        value = (result or {}).get("value")
        if value is None:
            return None
        return parse_raw_amount(value["amount"])

    async def get_largest_accounts(self, mint: str) -> list[HolderRecord]:
        """Largest token accounts of a mint (getTokenLargestAccounts, max 20)."""
        result = await self._call("getTokenLargestAccounts", [mint], SOLANA_HOLDERS)
        holders = []
        for account in (result or {}).get("value") or []:
            balance = parse_raw_amount(account.get("amount"))
            if balance is None or not account.get("address"):
                continue
            holders.append(HolderRecord(address=account["address"], balance=balance))
        return holders


class SolanaSupplyProvider:
    """Total supply for Solana mints."""

    name = SOLANA_SUPPLY
    supplies = frozenset({TOTAL_SUPPLY_FIELD})

    def __init__(self, client: SolanaRPCClient) -> None:
        self.client = client

    async def query_metric(self, chain: str, address: str) -> PartialMetrics | None:
        if chain != SOLANA_CHAIN:
            return None
        async with provider_errors(self.name):
            supply = await self.client.get_token_supply(address)
        if supply is None:
            return None
        return PartialMetrics(total_supply=supply)


class SolanaHolderProvider:
    """Largest token accounts for Solana mints.

    Token accounts, not owner wallets, are returned, so a creator address
    rarely matches and dev share falls back to the largest account.
    """

    name = SOLANA_HOLDERS

    def __init__(self, client: SolanaRPCClient) -> None:
        self.client = client

    async def fetch_holders(self, chain: str, address: str, limit: int) -> HolderPage | None:
        if chain != SOLANA_CHAIN:
            return None
        async with provider_errors(self.name):
            holders = await self.client.get_largest_accounts(address)
        if not holders:
            return None
        # The RPC caps this list at 20 and reports no holder total
        return HolderPage(holders=holders[:limit], partial=True)
