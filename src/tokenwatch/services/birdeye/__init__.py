"""Birdeye market data client."""

from tokenwatch.services.birdeye.client import BirdeyeClient

__all__ = ["BirdeyeClient"]
