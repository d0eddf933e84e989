"""Unit tests for fixed-point math, ring index arithmetic and decay integrals."""

import pytest
import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from drawacc.engine import fixed_point as fp
from drawacc.engine import ring_buffer
from drawacc.engine.decay import coerce_alpha, integrate, integrate_to_infinity
from drawacc.engine.errors import InvalidAlpha, InvalidRange, ValueOverflow


ALPHA_09 = 9 * 10 ** 17
ALPHA_05 = 5 * 10 ** 17


class TestFixedPoint:
    """Tests for 18-decimal fixed-point arithmetic."""

    def test_to_and_from_fixed(self):
        assert fp.to_fixed(3) == 3 * 10 ** 18
        assert fp.from_fixed(fp.to_fixed(42)) == 42

    def test_from_fixed_truncates_toward_zero(self):
        assert fp.from_fixed(15 * 10 ** 17) == 1
        assert fp.from_fixed(-15 * 10 ** 17) == -1

    def test_from_decimal(self):
        """Floats convert through their shortest repr, extra digits truncate."""
        assert fp.from_decimal(0.9) == ALPHA_09
        assert fp.from_decimal("0.123456789012345678999") == 123456789012345678
        assert fp.from_decimal(Decimal("2.5")) == 25 * 10 ** 17
        assert fp.to_decimal(ALPHA_09) == Decimal("0.9")

    def test_mul_and_div(self):
        assert fp.mul(fp.from_decimal("1.5"), fp.to_fixed(2)) == fp.to_fixed(3)
        assert fp.mul(-fp.from_decimal("1.5"), fp.from_decimal("0.5")) == -75 * 10 ** 16
        assert fp.div(fp.to_fixed(1), fp.to_fixed(4)) == 25 * 10 ** 16
        with pytest.raises(ZeroDivisionError):
            fp.div(fp.to_fixed(1), 0)

    def test_pow_whole_exponent_is_exact(self):
        """0.9^9 has fewer than 18 decimals, so square-and-multiply is exact."""
        assert fp.pow(ALPHA_09, fp.to_fixed(2)) == 81 * 10 ** 16
        assert fp.pow(ALPHA_09, fp.to_fixed(9)) == 387420489 * 10 ** 9

    def test_pow_edge_cases(self):
        assert fp.pow(ALPHA_09, 0) == fp.SCALE
        assert fp.pow(0, fp.to_fixed(3)) == 0
        assert fp.pow(fp.SCALE, fp.to_fixed(1000)) == fp.SCALE
        with pytest.raises(ValueError):
            fp.pow(-1, fp.to_fixed(2))

    def test_pow_fractional_exponent(self):
        assert fp.pow(fp.from_decimal("0.25"), fp.from_decimal("0.5")) == ALPHA_05

    def test_overflow_is_rejected(self):
        with pytest.raises(ValueOverflow):
            fp.to_fixed(2 ** 250)
        with pytest.raises(ValueOverflow):
            fp.mul(fp.MAX_FIXED, fp.to_fixed(2))


class TestRingBuffer:
    """Tests for circular index arithmetic."""

    def test_wrap_and_next(self):
        assert ring_buffer.wrap(367, 366) == 1
        assert ring_buffer.next_index(365, 366) == 0
        assert ring_buffer.next_index(4, 366) == 5

    def test_offset_steps_back(self):
        assert ring_buffer.offset(0, 1, 5) == 4
        assert ring_buffer.offset(3, 1, 5) == 2

    def test_newest_index(self):
        assert ring_buffer.newest_index(0, 366) == 365
        assert ring_buffer.newest_index(3, 366) == 2
        assert ring_buffer.newest_index(3, 0) == 0

    def test_oldest_index(self):
        """Oldest is slot 0 until full, then the slot written next."""
        assert ring_buffer.oldest_index(5, 3, 366) == 0
        assert ring_buffer.oldest_index(5, 366, 366) == 5
        assert ring_buffer.oldest_index(0, 366, 366) == 0


class TestDecayIntegral:
    """Tests for the closed-form decay integrals."""

    def test_nothing_decays_at_offset_zero(self):
        assert integrate_to_infinity(ALPHA_09, 0, 1000) == 1000

    def test_remaining_after_nine_periods(self):
        """1000 * 0.9^9 = 387.420489, truncated."""
        assert integrate_to_infinity(ALPHA_09, 9, 1000) == 387

    def test_released_after_nine_periods(self):
        """1000 - 387.420489 = 612.579511, truncated."""
        assert integrate(ALPHA_09, 0, 9, 1000) == 612

    def test_truncation_residue_is_at_most_one(self):
        remaining = integrate_to_infinity(ALPHA_09, 9, 1000)
        released = integrate(ALPHA_09, 0, 9, 1000)
        assert 1000 - (remaining + released) == 1

    def test_single_period(self):
        assert integrate(ALPHA_09, 0, 1, 100) == 10
        assert integrate(ALPHA_05, 1, 3, 1000) == 375

    def test_empty_interval_is_zero(self):
        assert integrate(ALPHA_09, 3, 3, 1000) == 0

    def test_reversed_interval_is_rejected(self):
        with pytest.raises(InvalidRange):
            integrate(ALPHA_09, 5, 3, 1000)

    def test_alpha_one_never_decays(self):
        assert integrate(fp.SCALE, 0, 50, 1000) == 0
        assert integrate_to_infinity(fp.SCALE, 50, 1000) == 1000


class TestCoerceAlpha:
    """Tests for decay rate conversion and validation."""

    def test_natural_units(self):
        assert coerce_alpha(0.9) == ALPHA_09
        assert coerce_alpha("0.5") == ALPHA_05
        assert coerce_alpha(Decimal("1")) == fp.SCALE
        assert coerce_alpha(1.0) == fp.SCALE

    def test_ints_are_already_fixed_point(self):
        assert coerce_alpha(ALPHA_09) == ALPHA_09

    @pytest.mark.parametrize("alpha", [
        0, 0.0, -0.5, 1.5, "abc", True, 2 * 10 ** 18, float("nan"), "NaN", float("inf"),
    ])
    def test_invalid_alpha(self, alpha):
        with pytest.raises(InvalidAlpha):
            coerce_alpha(alpha)
