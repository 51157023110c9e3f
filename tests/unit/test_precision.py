"""Tests for perp_common.precision — fixed-point integer helpers."""

import pytest

from src.perp_common.errors import InvalidPrecisionError, MathOverflowError
from src.perp_common.precision import (
    AMM_TIMES_PEG_TO_QUOTE_PRECISION_RATIO,
    FUNDING_RATE_PRECISION,
    MAX_I64,
    MAX_MARGIN_RATIO,
    MIN_I64,
    div_round_half_up,
    div_trunc,
    ensure_i64,
    ensure_non_negative,
    ensure_u64,
    mul_div,
    quote_to_display,
)


class TestConstants:
    def test_derived_ratios(self) -> None:
        assert AMM_TIMES_PEG_TO_QUOTE_PRECISION_RATIO == 10**9
        assert FUNDING_RATE_PRECISION == 10**9

    def test_max_margin_ratio_is_js_safe_integer(self) -> None:
        assert MAX_MARGIN_RATIO == 9_007_199_254_740_991


class TestDivTrunc:
    def test_positive(self) -> None:
        assert div_trunc(7, 2) == 3

    def test_negative_numerator_rounds_toward_zero(self) -> None:
        # floor division would give -4
        assert div_trunc(-7, 2) == -3

    def test_negative_denominator(self) -> None:
        assert div_trunc(7, -2) == -3

    def test_both_negative(self) -> None:
        assert div_trunc(-7, -2) == 3

    def test_exact(self) -> None:
        assert div_trunc(-8, 2) == -4


class TestDivRoundHalfUp:
    def test_half_rounds_up(self) -> None:
        assert div_round_half_up(5, 2) == 3

    def test_below_half_rounds_down(self) -> None:
        assert div_round_half_up(14, 10) == 1

    def test_negative_half_rounds_away_from_zero(self) -> None:
        assert div_round_half_up(-5, 2) == -3


class TestMulDiv:
    def test_multiplies_before_dividing(self) -> None:
        # (1 / 3) * 3 would lose everything if divided first
        assert mul_div(1, 3, 3) == 1

    def test_truncates_toward_zero(self) -> None:
        assert mul_div(-1, 1_500_000, 10**9) == 0

    def test_round_half_up(self) -> None:
        assert mul_div(3, 10**6, 2 * 10**6, round_half_up=True) == 2

    def test_overflow_raises(self) -> None:
        with pytest.raises(MathOverflowError):
            mul_div(2**100, 2**30, 1)

    def test_large_but_in_range(self) -> None:
        assert mul_div(2**63, 2**62, 2**62) == 2**63


class TestDomainChecks:
    def test_non_negative_ok(self) -> None:
        assert ensure_non_negative(0, "x") == 0

    def test_non_negative_raises(self) -> None:
        with pytest.raises(InvalidPrecisionError, match="x must be >= 0"):
            ensure_non_negative(-1, "x")

    def test_u64_bounds(self) -> None:
        assert ensure_u64(2**64 - 1, "q") == 2**64 - 1
        with pytest.raises(InvalidPrecisionError):
            ensure_u64(2**64, "q")
        with pytest.raises(InvalidPrecisionError):
            ensure_u64(-1, "q")

    def test_i64_bounds(self) -> None:
        assert ensure_i64(MIN_I64, "b") == MIN_I64
        assert ensure_i64(MAX_I64, "b") == MAX_I64
        with pytest.raises(InvalidPrecisionError):
            ensure_i64(MAX_I64 + 1, "b")


class TestQuoteToDisplay:
    def test_basic(self) -> None:
        assert quote_to_display(20_000_000) == "$20.00"

    def test_zero(self) -> None:
        assert quote_to_display(0) == "$0.00"

    def test_truncates_sub_cent(self) -> None:
        assert quote_to_display(19_999_750) == "$19.99"

    def test_negative(self) -> None:
        assert quote_to_display(-50_002) == "-$0.05"

    def test_negative_below_one_cent_has_no_sign(self) -> None:
        assert quote_to_display(-250) == "$0.00"

    def test_thousands_separator(self) -> None:
        assert quote_to_display(1_500_000_000) == "$1,500.00"
