"""Tests for the exact integer statistics."""

from fractions import Fraction
import math

import numpy as np
import pandas as pd
import pytest

from robust_moments.int128 import INT_MAX, INT_MIN, LONG_MAX, LONG_MIN
from robust_moments.integer_statistics import (
    IntMean,
    IntStandardDeviation,
    IntSum,
    IntSumOfSquares,
    IntVariance,
    LongMean,
    LongStandardDeviation,
    LongSum,
    LongSumOfSquares,
    LongVariance,
)


def exact_variance(values, biased=False):
    n = len(values)
    s = sum(values)
    q = sum(x * x for x in values)
    return float(Fraction(q * n - s * s, n * n if biased else n * (n - 1)))


class TestSum:
    """Test the 128-bit exact sum."""

    def test_beyond_long_range(self):
        """Test a sum larger than any 64-bit value."""
        total = LongSum.of([LONG_MAX] * 5)
        assert total.get_as_integer() == 5 * LONG_MAX
        assert total.get_as_double() == float(5 * LONG_MAX)
        with pytest.raises(OverflowError):
            total.get_as_long()
        with pytest.raises(OverflowError):
            total.get_as_int()

    def test_back_into_range(self):
        """Test that cancelling terms return the sum to 64 bits."""
        total = LongSum.of(LONG_MAX, LONG_MAX, LONG_MIN, LONG_MIN, 7)
        assert total.get_as_long() == 5
        assert total.get_as_int() == 5

    def test_int_sum(self):
        """Test the 32-bit variant."""
        total = IntSum.of([INT_MAX, INT_MAX, INT_MIN])
        assert total.get_as_long() == INT_MAX - 1
        assert total.get_as_int() == INT_MAX - 1
        assert IntSum.create().get_as_double() == 0.0

    def test_numpy_integers(self):
        """Test numpy integer arrays and scalars."""
        data = np.array([LONG_MAX, LONG_MAX, 1], dtype=np.int64)
        assert LongSum.of(data).get_as_integer() == 2 * LONG_MAX + 1
        total = LongSum.create()
        total.accept(np.int32(-4))
        assert total.get_as_long() == -4


class TestMean:
    """Test the mean computed from the exact sum."""

    def test_extreme_values(self):
        """Test a mean whose sum overflows 64 bits."""
        mean = LongMean.of(LONG_MAX, LONG_MAX)
        assert mean.get_as_double() == float(LONG_MAX)
        assert mean.get_as_long() == LONG_MAX
        assert LongMean.of(LONG_MIN, LONG_MIN).get_as_long() == LONG_MIN

    def test_rounds_half_up(self):
        """Test that the integer getters round the exact quotient half up."""
        assert LongMean.of(-3, -2).get_as_long() == -2
        assert LongMean.of(2, 3).get_as_long() == 3
        assert LongMean.of(1, 1, 2).get_as_int() == 1
        assert IntMean.of(INT_MAX, INT_MAX - 1).get_as_int() == INT_MAX

    def test_int_overflow(self):
        """Test that a 64-bit mean cannot be read as a 32-bit value."""
        with pytest.raises(OverflowError):
            LongMean.of(LONG_MAX, 1).get_as_int()

    def test_empty(self):
        """Test the empty mean."""
        mean = LongMean.create()
        assert math.isnan(mean.get_as_double())
        with pytest.raises(OverflowError):
            mean.get_as_long()
        with pytest.raises(OverflowError):
            mean.get_as_int()
        with pytest.raises(OverflowError):
            mean.get_as_integer()

    def test_large_sum_is_accurate(self):
        """Test the extended precision division."""
        values = [LONG_MAX, LONG_MAX, LONG_MAX - 6]
        expected = float(Fraction(sum(values), 3))
        assert LongMean.of(values).get_as_double() == pytest.approx(expected, rel=2.3e-16)


class TestSumOfSquares:
    """Test the 192-bit exact sum of squares."""

    def test_int_values(self):
        """Test the sum of squares of 32-bit extremes."""
        values = [INT_MAX, 1, 2, 3, 4, INT_MAX]
        expected = sum(x * x for x in values)
        assert IntSumOfSquares.of(values).get_as_integer() == expected
        assert IntSumOfSquares.of(values).get_as_long() == expected
        combined = IntSumOfSquares.of(values[:3]).combine(IntSumOfSquares.of(values[3:]))
        assert combined.get_as_integer() == expected
        assert combined.get_as_double() == float(expected)

    def test_long_values(self):
        """Test squares of 64-bit extremes."""
        stat = LongSumOfSquares.of(LONG_MIN, LONG_MAX)
        assert stat.get_as_integer() == LONG_MIN**2 + LONG_MAX**2
        with pytest.raises(OverflowError):
            stat.get_as_long()


class TestVariance:
    """Test the exact variance."""

    def test_known_values(self):
        """Test the variance of 1 to 4."""
        assert IntVariance.of([1, 2, 3, 4]).get_as_double() == 5 / 3
        assert LongVariance.of([1, 2, 3, 4]).set_biased(True).get_as_double() == 1.25
        assert IntStandardDeviation.of([1, 2, 3, 4]).get_as_double() == math.sqrt(5 / 3)
        assert LongStandardDeviation.of([1, 2, 3, 4]).set_biased(True).get_as_double() == (
            math.sqrt(1.25)
        )

    def test_small_counts(self):
        """Test the empty and single value conventions."""
        assert math.isnan(LongVariance.create().get_as_double())
        assert math.isnan(LongVariance.create().set_biased(True).get_as_double())
        assert math.isnan(LongVariance.of(42).get_as_double())
        assert LongVariance.of(42).set_biased(True).get_as_double() == 0.0
        assert LongStandardDeviation.of(42).set_biased(True).get_as_double() == 0.0

    def test_extreme_values_are_correctly_rounded(self):
        """Test values whose squares need more than 128 bits."""
        values = [LONG_MAX, 1, 2, LONG_MAX, LONG_MIN]
        for biased in (True, False):
            v = LongVariance.of(values).set_biased(biased)
            assert v.get_as_double() == exact_variance(values, biased)

    def test_repeated_self_combine(self):
        """Test doubling the data 60 times by combining with itself."""
        values = [LONG_MAX, 1, 2, LONG_MAX]
        v = LongVariance.of(values)
        total = LongSum.of(values)
        squares = LongSumOfSquares.of(values)
        for _ in range(60):
            v.combine(v)
            total.combine(total)
            squares.combine(squares)
        scale = 1 << 60
        s = sum(values) * scale
        q = sum(x * x for x in values) * scale
        n = len(values) * scale
        assert total.get_as_integer() == s
        assert squares.get_as_integer() == q
        assert v.get_as_double() == float(Fraction(q * n - s * s, n * (n - 1)))
        assert v.set_biased(True).get_as_double() == float(Fraction(q * n - s * s, n * n))

    def test_combine_matches_whole(self):
        """Test that merged partitions give the same exact result."""
        values = [INT_MAX, INT_MIN, 17, -5, INT_MAX, 0, 3]
        merged = IntVariance.of(values[:2]).combine(IntVariance.of(values[2:]))
        assert merged.get_as_double() == IntVariance.of(values).get_as_double()
        assert merged.get_as_double() == exact_variance(values)

    def test_copy_keeps_bias(self):
        """Test that a copy is independent and keeps the bias flag."""
        v = LongVariance.of(1, 2, 3).set_biased(True)
        other = v.copy()
        assert other.is_biased()
        other.accept(100)
        assert v.get_as_double() == exact_variance([1, 2, 3], biased=True)


class TestDomain:
    """Test rejection of values outside the accepted domain."""

    @pytest.mark.parametrize(
        "statistic, value",
        [
            (IntSum, INT_MAX + 1),
            (IntMean, INT_MIN - 1),
            (IntVariance, 2**40),
            (IntSumOfSquares, -(2**31) - 1),
            (LongSum, LONG_MAX + 1),
            (LongVariance, LONG_MIN - 1),
        ],
    )
    def test_out_of_range_leaves_state_unchanged(self, statistic, value):
        """Test that a rejected value does not modify the accumulator."""
        stat = statistic.of(1, 2, 3)
        before = stat.get_as_double()
        with pytest.raises(ValueError):
            stat.accept(value)
        assert stat.get_as_double() == before

    def test_out_of_range_in_factory(self):
        """Test that the factories validate every value."""
        with pytest.raises(ValueError):
            IntSum.of([1, 2, INT_MAX + 1])
        with pytest.raises(ValueError):
            LongMean.of_range([LONG_MAX + 1, 1, 2], 0, 3)
        assert LongMean.of_range([LONG_MAX + 1, 1, 2], 1, 3).get_as_double() == 1.5

    def test_float_rejected(self):
        """Test that non-integer observations are a type error."""
        with pytest.raises(TypeError):
            LongSum.create().accept(1.5)
        with pytest.raises(TypeError):
            IntVariance.of([1.0, 2.0])

    def test_bool_rejected(self):
        """Test that booleans are not taken as 0 and 1."""
        stat = LongSum.of(1, 2)
        for value in (True, False, np.True_):
            with pytest.raises(TypeError):
                stat.accept(value)
        assert stat.get_as_long() == 3
        with pytest.raises(TypeError):
            IntMean.of([1, True])

    def test_range_and_series_input(self):
        """Test integer collections other than lists."""
        assert LongSum.of(range(1, 101)).get_as_long() == 5050
        series = pd.Series([1, 2, 3, 4], index=[3, 2, 1, 0])
        assert IntVariance.of(series).get_as_double() == 5 / 3
        assert LongMean.of_range(pd.Series([9, 1, 2]), 1, 3).get_as_double() == 1.5
