"""Tests for exact-integer share computation."""

from decimal import Decimal

import pytest

from tokenwatch.core.exceptions import ArithmeticInvalidError
from tokenwatch.models.token import HolderRecord
from tokenwatch.services.token.percentage import (
    dev_percent,
    parse_decimal,
    parse_raw_amount,
    share_percent,
    top_n_percent,
)


class TestSharePercent:
    """Tests for share_percent."""

    def test_truncates_instead_of_rounding(self) -> None:
        """
        Given: 2 of 3 units
        When: Share is computed
        Then: 66.66 (not 66.67)
        """
        assert share_percent(2, 3) == Decimal("66.66")

    def test_exact_for_values_beyond_float_precision(self) -> None:
        """
        Given: Balances far above 2**53
        When: Share is computed
        Then: Result is exact
        """
        total = 10**27 + 7
        amount = 123_456_789 * 10**18
        expected = Decimal((amount * 10000) // total).scaleb(-2)

        assert share_percent(amount, total) == expected
        assert share_percent(10**30, 10**30) == Decimal("100.00")

    def test_scale_invariance(self) -> None:
        """
        Given: amount and total scaled by the same factor
        When: Share is computed
        Then: Result is unchanged
        """
        for k in (1, 7, 10**18, 3**40):
            assert share_percent(15 * k, 70 * k) == share_percent(15, 70)

    def test_two_decimal_places(self) -> None:
        result = share_percent(1, 8)

        assert result == Decimal("12.50")
        assert result.as_tuple().exponent == -2

    @pytest.mark.parametrize("total", [0, -1, -10**20])
    def test_absent_for_non_positive_total(self, total: int) -> None:
        """
        Given: Total supply <= 0
        When: Share is computed
        Then: None, never a division error
        """
        assert share_percent(5, total) is None

    def test_negative_amount_rejected(self) -> None:
        with pytest.raises(ArithmeticInvalidError):
            share_percent(-1, 100)

    def test_non_integer_input_rejected(self) -> None:
        with pytest.raises(ArithmeticInvalidError):
            share_percent(1.5, 100)  # type: ignore[arg-type]
        with pytest.raises(ArithmeticInvalidError):
            share_percent(1, True)  # type: ignore[arg-type]

    def test_zero_amount(self) -> None:
        assert share_percent(0, 1000) == Decimal("0.00")


class TestHolderShares:
    """Tests for top-N and dev share helpers."""

    @pytest.fixture
    def holders(self) -> list[HolderRecord]:
        # 12 holders, balances 12..1 (sum 78)
        return [HolderRecord(address=f"0xH{i:02d}", balance=i) for i in range(1, 13)]

    def test_top_n_sums_largest_balances(self, holders: list[HolderRecord]) -> None:
        """
        Given: 12 holders with balances 1..12 and supply 1000
        When: Top-10 share is computed
        Then: Share of 12+11+...+3 = 75
        """
        assert top_n_percent(holders, 1000) == Decimal("7.50")

    def test_top_n_ignores_input_order(self, holders: list[HolderRecord]) -> None:
        assert top_n_percent(list(reversed(holders)), 1000) == Decimal("7.50")

    def test_top_n_with_fewer_holders_than_n(self) -> None:
        holders = [HolderRecord(address="a", balance=30), HolderRecord(address="b", balance=20)]

        assert top_n_percent(holders, 100) == Decimal("50.00")

    def test_top_n_absent_for_zero_supply(self, holders: list[HolderRecord]) -> None:
        assert top_n_percent(holders, 0) is None

    def test_dev_share_uses_creator_case_insensitively(self, holders: list[HolderRecord]) -> None:
        """
        Given: Creator is among holders with different casing
        When: Dev share is computed
        Then: Creator's balance is used
        """
        assert dev_percent(holders, 1000, "0xh03") == Decimal("0.30")

    def test_dev_share_falls_back_to_largest_holder(self, holders: list[HolderRecord]) -> None:
        """
        Given: Creator unknown or absent from the holder list
        When: Dev share is computed
        Then: Largest holder stands in
        """
        assert dev_percent(holders, 1000, None) == Decimal("1.20")
        assert dev_percent(holders, 1000, "0xnotaholder") == Decimal("1.20")

    def test_dev_share_absent_without_holders(self) -> None:
        assert dev_percent([], 1000, "0xabc") is None


class TestParsing:
    """Tests for raw amount and decimal parsing."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (42, 42),
            ("1000000000000000000000000", 10**24),
            ("1000.0", 1000),
            ("1e21", 10**21),
            ("1_000", 1000),
            (1e3, 1000),
        ],
    )
    def test_parse_raw_amount_accepts_integral_values(self, value: object, expected: int) -> None:
        assert parse_raw_amount(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "-5", -5, "1.5", 2.5, True, "NaN", "inf"])
    def test_parse_raw_amount_rejects_invalid(self, value: object) -> None:
        assert parse_raw_amount(value) is None

    def test_parse_raw_amount_does_not_lose_precision(self) -> None:
        big = "123456789012345678901234567890"

        assert parse_raw_amount(big) == 123456789012345678901234567890

    def test_parse_decimal(self) -> None:
        assert parse_decimal("15000.5") == Decimal("15000.5")
        assert parse_decimal(12) == Decimal(12)
        assert parse_decimal("n/a") is None
        assert parse_decimal("Infinity") is None
        assert parse_decimal(None) is None
