"""Filter threshold defaults."""

from decimal import Decimal
from typing import Final

# Default alert thresholds
DEFAULT_MIN_MARKETCAP: Final[Decimal] = Decimal("15000")  # USD
DEFAULT_MIN_HOLDERS: Final[int] = 30
DEFAULT_MAX_TOP10_PCT: Final[Decimal] = Decimal("20")
DEFAULT_MAX_DEV_PCT: Final[Decimal] = Decimal("3")

TOP_HOLDERS_COUNT: Final[int] = 10
