"""DexScreener market data client."""

from tokenwatch.services.dexscreener.client import DexScreenerClient

__all__ = ["DexScreenerClient"]
