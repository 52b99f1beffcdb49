"""Declarative field-mapping tables for heterogeneous payloads.

Each source names the same concept differently (``mint`` vs ``tokenAddress``,
``marketCap`` vs ``market_cap`` vs ``mc``). Rather than chains of ``or``
lookups scattered through the pipeline, every source gets a table mapping
canonical field names to candidate source keys, tried in order.

Keys may be dotted paths into nested objects (``market_data.market_cap.usd``).
"""

from collections.abc import Mapping
from typing import Any

FieldMapping = Mapping[str, tuple[str, ...]]

# ---------------------------------------------------------------------------
# Ingestion sources
# ---------------------------------------------------------------------------

# Flat Helius / PumpFun payloads and items of a payload's `tokens` array
HELIUS_TOKEN_FIELDS: FieldMapping = {
    "address": ("mint", "address", "tokenAddress"),
    "chain": ("chain",),
    "creator": ("creator", "mintAuthority", "updateAuthority"),
}

# Entries of `transactions[].tokenTransfers`
HELIUS_TRANSFER_FIELDS: FieldMapping = {
    "address": ("tokenAddress", "mint"),
    "creator": ("from", "fromUserAccount"),
}

# Entries of `transactions[].tokenData`
HELIUS_TOKEN_DATA_FIELDS: FieldMapping = {
    "address": ("mint",),
    "creator": ("mintAuthority",),
}

# Items of a polled feed, plus the metrics they may already carry
FEED_ITEM_FIELDS: FieldMapping = {
    "address": ("address", "tokenAddress", "mint", "token_address", "baseToken.address"),
    "chain": ("chain", "chainId", "chain_id", "network"),
    "creator": ("creator", "creatorAddress", "dev", "deployer", "mintAuthority"),
    "name": ("name", "token_name", "baseToken.name"),
    "symbol": ("symbol", "ticker", "token_symbol", "baseToken.symbol"),
    "marketcap": ("marketcap", "marketCap", "market_cap", "usd_market_cap", "mc", "fdv"),
    "holders": ("holders", "holderCount", "holder_count", "holdersCount"),
    "volume24h": ("volume24h", "volume_24h", "24hVolume", "v24hUSD", "volume.h24"),
    "top10_percent": ("top10_percent", "top10Percent", "top10HolderPercent"),
    "dev_percent": ("dev_percent", "devPercent", "creatorPercent"),
    "total_supply": ("total_supply", "totalSupply", "supply"),
}

# ---------------------------------------------------------------------------
# Provider payloads
# ---------------------------------------------------------------------------

MORALIS_METADATA_FIELDS: FieldMapping = {
    "total_supply": ("totalSupply", "supply", "total_supply", "total_token_supply", "total"),
    "symbol": ("symbol", "ticker", "token_symbol"),
    "name": ("name", "token_name"),
}

MORALIS_PRICE_FIELDS: FieldMapping = {
    "price": ("usdPrice", "price", "usd_price", "market_data.current_price.usd"),
    "volume24h": ("volume24h", "24hVolume", "market_data.total_volume.usd"),
    "marketcap": ("marketCap", "market_cap", "market_data.market_cap.usd"),
    "total_supply": ("totalSupply",),
    "decimals": ("decimals",),
}

MORALIS_HOLDER_FIELDS: FieldMapping = {
    "address": ("address", "owner_address", "holder_of", "owner"),
    "balance": ("balance", "token_balance", "amount"),
}

COINGECKO_MARKET_FIELDS: FieldMapping = {
    "marketcap": ("market_data.market_cap.usd",),
    "volume24h": ("market_data.total_volume.usd",),
}

BIRDEYE_OVERVIEW_FIELDS: FieldMapping = {
    "marketcap": ("marketCap", "mc", "realMc"),
    "volume24h": ("v24hUSD", "volume24hUSD"),
    "holders": ("holder", "holders"),
}


def resolve_path(data: Any, path: str) -> Any:
    """Follow a dotted path through nested mappings; None when absent."""
    current = data
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def pick(data: Any, keys: tuple[str, ...]) -> Any:
    """First non-empty value among ``keys``."""
    for key in keys:
        value = resolve_path(data, key)
        if value is not None and value != "":
            return value
    return None


def map_fields(data: Any, mapping: FieldMapping) -> dict[str, Any]:
    """Apply a mapping table, keeping only fields that were found."""
    out: dict[str, Any] = {}
    for canonical, keys in mapping.items():
        value = pick(data, keys)
        if value is not None:
            out[canonical] = value
    return out
