"""Metric and holder provider contracts."""

from tokenwatch.services.providers.base import HolderProvider, MetricProvider, provider_errors

__all__ = ["HolderProvider", "MetricProvider", "provider_errors"]
