"""Exact statistics over integer observations.

The running sum is held in an :class:`~robust_moments.int128.Int128` and the
running sum of squares in a :class:`~robust_moments.int128.UInt192`, so the
results stay exact arbitrarily far past the point where a 64-bit running
sum would overflow.  Only the count is limited to 64 bits.

``Long*`` statistics accept signed 64-bit values and ``Int*`` statistics
signed 32-bit values; anything else raises ``ValueError`` before the
accumulator is modified.

Example:
    Variance of values whose sum overflows 64 bits::

        from robust_moments import LongVariance

        v = LongVariance.of([2**63 - 1, 2**63 - 1, 0])
        v.get_as_double()
"""

import math
from typing import Any, Sequence

from .extended_precision import ExtendedPrecision
from .int128 import INT_MAX, INT_MIN, Int128, UInt192
from .statistic import BiasedStatistic, IntegerStatistic

# Largest count for which float(n) is exact
_EXACT_COUNT = 1 << 53


def exact_mean(total: Int128, n: int) -> float:
    """Return ``total / n`` for a non-empty count.

    Small sums are divided directly.  Otherwise the sum is converted to a
    double-double and divided in extended precision, so the result is
    within 1 ULP of the exact quotient.

    Args:
        total: Exact sum of the values.
        n: Number of values (positive).

    Returns:
        The mean as a double.
    """
    x = total.to_int()
    if -_EXACT_COUNT < x < _EXACT_COUNT and n < _EXACT_COUNT:
        return x / n
    divisor = float(n) if n < _EXACT_COUNT else ExtendedPrecision.of_int(n)
    return total.to_extended_precision().divide(divisor).to_float()


def _sum_of_squares_precursor(sum_sq: UInt192, total: Int128, n: int) -> int:
    """Return ``n * sum(x^2) - sum(x)^2`` exactly (never negative)."""
    return sum_sq.to_int() * n - total.square()


def exact_sum_of_squared_deviations(sum_sq: UInt192, total: Int128, n: int) -> float:
    """Return ``sum((x - mean)^2)`` rounded once from the exact value."""
    if n == 0:
        return 0.0
    return _sum_of_squares_precursor(sum_sq, total, n) / n


def exact_variance(sum_sq: UInt192, total: Int128, n: int, biased: bool) -> float:
    """Return the variance rounded once from the exact value.

    Returns NaN for no values, and for one value in the unbiased form.
    """
    if n == 0:
        return math.nan
    if n == 1:
        return 0.0 if biased else math.nan
    divisor = n * n if biased else n * (n - 1)
    return _sum_of_squares_precursor(sum_sq, total, n) / divisor


class LongSum(IntegerStatistic):
    """Exact sum of signed 64-bit values."""

    def __init__(self):
        self._sum = Int128.create()

    @classmethod
    def _from_range(cls, values: Sequence, start: int, stop: int) -> "LongSum":
        data = cls._check_range(values, start, stop)
        stat = cls()
        for x in data:
            stat._sum.add(x)
        return stat

    def accept(self, value: Any) -> None:
        self._sum.add(self._check(value))

    def combine(self, other: "LongSum") -> "LongSum":
        self._sum.add(other._sum)
        return self

    def copy(self) -> "LongSum":
        result = type(self)()
        result._sum = self._sum.copy()
        return result

    def get_as_double(self) -> float:
        return self._sum.to_double()

    def get_as_int(self) -> int:
        return self._sum.to_int_exact()

    def get_as_long(self) -> int:
        return self._sum.to_long_exact()

    def get_as_integer(self) -> int:
        return self._sum.to_int()


class IntSum(LongSum):
    """Exact sum of signed 32-bit values."""

    MIN_VALUE = INT_MIN
    MAX_VALUE = INT_MAX


class LongMean(IntegerStatistic):
    """Mean of signed 64-bit values computed from the exact sum.

    The integer getters round the exact quotient half up (toward positive
    infinity) rather than rounding the double.
    """

    def __init__(self):
        self._sum = Int128.create()
        self._n = 0

    @classmethod
    def _from_range(cls, values: Sequence, start: int, stop: int) -> "LongMean":
        data = cls._check_range(values, start, stop)
        stat = cls()
        for x in data:
            stat._sum.add(x)
        stat._n = len(data)
        return stat

    def accept(self, value: Any) -> None:
        self._sum.add(self._check(value))
        self._n += 1

    def combine(self, other: "LongMean") -> "LongMean":
        self._sum.add(other._sum)
        self._n += other._n
        return self

    def copy(self) -> "LongMean":
        result = type(self)()
        result._sum = self._sum.copy()
        result._n = self._n
        return result

    def get_as_double(self) -> float:
        if self._n == 0:
            return math.nan
        return exact_mean(self._sum, self._n)

    def get_as_integer(self) -> int:
        if self._n == 0:
            return super().get_as_integer()
        n = self._n
        return (2 * self._sum.to_int() + n) // (2 * n)

    def get_as_long(self) -> int:
        if self._n == 0:
            return super().get_as_long()
        # The mean of 64-bit values is a 64-bit value
        return self.get_as_integer()

    def get_as_int(self) -> int:
        if self._n == 0:
            return super().get_as_int()
        x = self.get_as_integer()
        if not INT_MIN <= x <= INT_MAX:
            raise OverflowError(f"integer overflow: {x}")
        return x


class IntMean(LongMean):
    """Mean of signed 32-bit values computed from the exact sum."""

    MIN_VALUE = INT_MIN
    MAX_VALUE = INT_MAX


class LongSumOfSquares(IntegerStatistic):
    """Exact sum of squares of signed 64-bit values."""

    def __init__(self):
        self._sum_sq = UInt192.create()

    @classmethod
    def _from_range(cls, values: Sequence, start: int, stop: int) -> "LongSumOfSquares":
        data = cls._check_range(values, start, stop)
        stat = cls()
        for x in data:
            stat._sum_sq.add_square(x)
        return stat

    def accept(self, value: Any) -> None:
        self._sum_sq.add_square(self._check(value))

    def combine(self, other: "LongSumOfSquares") -> "LongSumOfSquares":
        self._sum_sq.add(other._sum_sq)
        return self

    def copy(self) -> "LongSumOfSquares":
        result = type(self)()
        result._sum_sq = self._sum_sq.copy()
        return result

    def get_as_double(self) -> float:
        return self._sum_sq.to_double()

    def get_as_int(self) -> int:
        return self._sum_sq.to_int_exact()

    def get_as_long(self) -> int:
        return self._sum_sq.to_long_exact()

    def get_as_integer(self) -> int:
        return self._sum_sq.to_int()


class IntSumOfSquares(LongSumOfSquares):
    """Exact sum of squares of signed 32-bit values."""

    MIN_VALUE = INT_MIN
    MAX_VALUE = INT_MAX


class LongVariance(BiasedStatistic, IntegerStatistic):
    """Variance of signed 64-bit values.

    The precursor ``n * sum(x^2) - sum(x)^2`` is computed exactly from the
    128-bit sum and 192-bit sum of squares, followed by a single rounding
    division by ``n * (n - 1)`` (or ``n * n`` when biased).
    """

    def __init__(self):
        self._sum = Int128.create()
        self._sum_sq = UInt192.create()
        self._n = 0

    @classmethod
    def _from_range(cls, values: Sequence, start: int, stop: int):
        data = cls._check_range(values, start, stop)
        stat = cls()
        for x in data:
            stat._sum.add(x)
            stat._sum_sq.add_square(x)
        stat._n = len(data)
        return stat

    def accept(self, value: Any) -> None:
        x = self._check(value)
        self._sum.add(x)
        self._sum_sq.add_square(x)
        self._n += 1

    def combine(self, other: "LongVariance"):
        self._sum.add(other._sum)
        self._sum_sq.add(other._sum_sq)
        self._n += other._n
        return self

    def copy(self):
        result = type(self)()
        result._sum = self._sum.copy()
        result._sum_sq = self._sum_sq.copy()
        result._n = self._n
        result._biased = self._biased
        return result

    def get_as_double(self) -> float:
        return exact_variance(self._sum_sq, self._sum, self._n, self._biased)


class IntVariance(LongVariance):
    """Variance of signed 32-bit values."""

    MIN_VALUE = INT_MIN
    MAX_VALUE = INT_MAX


class LongStandardDeviation(LongVariance):
    """Standard deviation of signed 64-bit values (square root of the variance)."""

    def get_as_double(self) -> float:
        return math.sqrt(super().get_as_double())


class IntStandardDeviation(LongStandardDeviation):
    """Standard deviation of signed 32-bit values."""

    MIN_VALUE = INT_MIN
    MAX_VALUE = INT_MAX
