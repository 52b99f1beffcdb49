"""TokenWatch exception hierarchy.

This module defines the base exception class and specialized exceptions
for the failure categories of the token evaluation pipeline.
"""


class TokenWatchError(Exception):
    """Base exception for all TokenWatch errors.

    All custom exceptions in TokenWatch should inherit from this class
    to enable consistent error handling and logging.
    """

    pass


class ConfigurationError(TokenWatchError):
    """Raised when configuration is invalid or missing.

    Example:
        raise ConfigurationError("Unknown metric provider: foo")
    """

    pass


class ExternalServiceError(TokenWatchError):
    """Raised when an external HTTP service call fails.

    Attributes:
        service: Name or base URL of the external service that failed.
        status_code: HTTP status code if available, None otherwise.

    Example:
        raise ExternalServiceError(service="Moralis", message="Rate limited", status_code=429)
    """

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class CircuitBreakerOpenError(TokenWatchError):
    """Raised when an API client's circuit breaker is open."""

    pass


class ProviderError(TokenWatchError):
    """Base class for metric and holder provider failures.

    Provider failures are never fatal for an evaluation: the resolver logs
    them and treats the affected metrics as absent.

    Attributes:
        provider: Provider name (e.g. "moralis_market").
    """

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class ProviderUnavailableError(ProviderError):
    """Provider could not be reached (timeout, network, 5xx, open circuit)."""


class ProviderDataMalformedError(ProviderError):
    """Provider answered with a payload that could not be interpreted."""


class ProviderNotFoundError(ProviderError):
    """Provider has no record of the requested token."""


class LedgerUnavailableError(TokenWatchError):
    """Raised when the dedup ledger backend cannot be reached.

    The orchestrator fails open on this error: the token is treated as
    unclaimed and evaluated anyway.
    """

    pass


class ArithmeticInvalidError(TokenWatchError):
    """Raised when a share computation receives invalid integer input.

    Example:
        raise ArithmeticInvalidError("Negative balance: -5")
    """

    pass


class DispatchFailureError(TokenWatchError):
    """Raised by a notifier sink when a message could not be delivered.

    Attributes:
        sink: Sink name (e.g. "telegram").
    """

    def __init__(self, sink: str, message: str) -> None:
        self.sink = sink
        super().__init__(f"{sink}: {message}")
