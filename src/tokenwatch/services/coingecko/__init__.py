"""CoinGecko market data client."""

from tokenwatch.services.coingecko.client import CoinGeckoClient

__all__ = ["CoinGeckoClient"]
