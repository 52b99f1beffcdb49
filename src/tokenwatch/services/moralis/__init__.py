"""Moralis client and providers."""

from tokenwatch.services.moralis.client import MoralisClient
from tokenwatch.services.moralis.providers import (
    MoralisHolderProvider,
    MoralisMarketProvider,
    MoralisSupplyProvider,
)

__all__ = [
    "MoralisClient",
    "MoralisHolderProvider",
    "MoralisMarketProvider",
    "MoralisSupplyProvider",
]
