"""Dedup ledger constants."""

from typing import Final

KEY_PREFIX: Final[str] = "processed"
CLAIM_VALUE: Final[str] = "1"

# TTL policy defaults (seconds)
TTL_CLAIM_SECONDS: Final[int] = 120  # in-flight claim, refreshed on outcome
TTL_DATA_UNAVAILABLE_SECONDS: Final[int] = 60 * 20
TTL_ARITHMETIC_INVALID_SECONDS: Final[int] = 60 * 20
TTL_METRICS_MISSING_SECONDS: Final[int] = 60 * 60
TTL_REJECTED_SECONDS: Final[int] = 60 * 60 * 6
TTL_DELIVERED_SECONDS: Final[int] = 60 * 60 * 24

MEMORY_LEDGER_SWEEP_SECONDS: Final[int] = 60
LEDGER_TIMEOUT_SECONDS: Final[float] = 5.0
