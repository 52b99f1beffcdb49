"""Provider contracts shared by the metric resolver and the API clients."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol, runtime_checkable

import structlog
from pydantic import ValidationError

from tokenwatch.core.exceptions import (
    CircuitBreakerOpenError,
    ExternalServiceError,
    ProviderDataMalformedError,
    ProviderError,
    ProviderNotFoundError,
    ProviderUnavailableError,
)
from tokenwatch.models.token import HolderPage, PartialMetrics

logger = structlog.get_logger(__name__)


@runtime_checkable
class MetricProvider(Protocol):
    """Source of market/supply metrics for a token.

    ``supplies`` lists the canonical fields (metric names and
    ``total_supply``) the provider can answer; the resolver only calls a
    provider when one of them is still missing.
    """

    name: str
    supplies: frozenset[str]

    async def query_metric(self, chain: str, address: str) -> PartialMetrics | None:
        """Return whatever metrics are known, or None for ordinary absence.

        Raises:
            ProviderUnavailableError, ProviderDataMalformedError,
            ProviderNotFoundError
        """
        ...


@runtime_checkable
class HolderProvider(Protocol):
    """Source of the largest holders of a token, descending by balance."""

    name: str

    async def fetch_holders(self, chain: str, address: str, limit: int) -> HolderPage | None:
        """Return a holder page, or None when the provider has no data.

        Raises:
            ProviderUnavailableError, ProviderDataMalformedError,
            ProviderNotFoundError
        """
        ...


@asynccontextmanager
async def provider_errors(provider: str) -> AsyncIterator[None]:
    """Translate client-level failures into the provider error taxonomy.

    - 404 → ProviderNotFoundError
    - other HTTP errors, open circuit → ProviderUnavailableError
    - payload decoding / validation failures → ProviderDataMalformedError
    """
    try:
        yield
    except ProviderError:
        raise
    except ExternalServiceError as e:
        if e.status_code == 404:
            raise ProviderNotFoundError(provider, str(e)) from e
        raise ProviderUnavailableError(provider, str(e)) from e
    except CircuitBreakerOpenError as e:
        raise ProviderUnavailableError(provider, str(e)) from e
    except (ValueError, TypeError, KeyError, ValidationError) as e:
        # json.JSONDecodeError is a ValueError
        raise ProviderDataMalformedError(provider, f"Malformed payload: {e}") from e
