"""Exact-integer share computation for holder concentration.

Balances and supplies are raw base-unit integers that routinely exceed
2**53, so everything here stays in Python ints until the final two-decimal
Decimal is built. Truncation, not rounding:

    percent = floor(amount * 10000 / total) / 100
"""

from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from tokenwatch.constants.filters import TOP_HOLDERS_COUNT
from tokenwatch.core.exceptions import ArithmeticInvalidError
from tokenwatch.models.token import HolderRecord


def share_percent(amount: int, total: int) -> Decimal | None:
    """Share of ``total`` held by ``amount`` as a percentage with two decimals.

    Args:
        amount: Non-negative balance in base units.
        total: Total supply in base units.

    Returns:
        Decimal percentage truncated to two decimals, or None when total <= 0.

    Raises:
        ArithmeticInvalidError: If amount is negative or not an integer.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ArithmeticInvalidError(f"Amount must be an integer, got {type(amount).__name__}")
    if isinstance(total, bool) or not isinstance(total, int):
        raise ArithmeticInvalidError(f"Total must be an integer, got {type(total).__name__}")
    if amount < 0:
        raise ArithmeticInvalidError(f"Negative balance: {amount}")
    if total <= 0:
        return None

    scaled = (amount * 10000) // total  # percent * 100
    return Decimal(scaled).scaleb(-2)


def top_n_percent(
    holders: Sequence[HolderRecord],
    total: int,
    n: int = TOP_HOLDERS_COUNT,
) -> Decimal | None:
    """Combined share of the ``n`` largest balances."""
    largest = sorted((h.balance for h in holders), reverse=True)[:n]
    return share_percent(sum(largest), total)


def dev_percent(
    holders: Sequence[HolderRecord],
    total: int,
    creator_address: str | None = None,
) -> Decimal | None:
    """Share held by the creator, or by the largest holder as a proxy.

    The creator is matched case-insensitively. When no creator is known,
    or the creator is not among the returned holders, the single largest
    holder stands in for the developer.
    """
    if not holders:
        return None

    if creator_address:
        creator = creator_address.lower()
        for holder in holders:
            if holder.address.lower() == creator:
                return share_percent(holder.balance, total)

    largest = max(holders, key=lambda h: h.balance)
    return share_percent(largest.balance, total)


def parse_raw_amount(value: Any) -> int | None:
    """Coerce a provider value into a non-negative base-unit integer.

    Accepts ints, digit strings and integral decimal strings such as
    "1000.0" or "1e21". Never goes through float for strings.

    Returns:
        The integer, or None for negative, fractional or unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value if value >= 0 else None

    if isinstance(value, float):
        if not value.is_integer() or value < 0:
            return None
        value = repr(value)

    text = str(value).strip().replace("_", "")
    if not text:
        return None
    if text.isdigit():
        return int(text)

    try:
        number = Decimal(text)
    except InvalidOperation:
        return None

    if not number.is_finite() or number < 0 or number != number.to_integral_value():
        return None
    return int(number)


def parse_decimal(value: Any) -> Decimal | None:
    """Coerce a provider value into a finite Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    return number
