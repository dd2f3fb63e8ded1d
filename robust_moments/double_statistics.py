"""Statistics over ``float`` observations.

The moment statistics (:class:`Mean` through :class:`Kurtosis`) each wrap a
:class:`~robust_moments.moment_state.MomentState` of the order they need
and read it with the formulas in :mod:`robust_moments.moment_formulas`.
They merge through the moment state, so any of them can be computed over
partitions and combined.

Example:
    Compute over partitions and merge::

        import numpy as np
        from robust_moments import Variance

        data = np.random.default_rng(0).normal(size=1000)
        v = Variance.of(data[:400]).combine(Variance.of(data[400:]))
        v.set_biased(True).get_as_double()
"""

import math
from typing import Any, Sequence

import numpy as np

from . import moment_formulas
from .extended_precision import CompensatedSum
from .moment_state import MomentState
from .statistic import BiasedStatistic, Statistic


class _MomentStatistic(Statistic):
    """Statistic backed by a moment state of order ``_ORDER``."""

    _ORDER = 1

    def __init__(self):
        self._state = MomentState(self._ORDER)

    @classmethod
    def _from_range(cls, values: Sequence, start: int, stop: int):
        stat = cls()
        stat._state = MomentState.of_range(values, start, stop, cls._ORDER)
        return stat

    def accept(self, value: Any) -> None:
        self._state.accept(value)

    def combine(self, other):
        self._state.combine(other._state)
        return self

    def copy(self):
        result = type(self)()
        result._state = self._state.copy()
        return result

    def get_n(self) -> int:
        """Return the number of observations."""
        return self._state.n


class _BiasedMomentStatistic(BiasedStatistic, _MomentStatistic):
    def copy(self):
        result = super().copy()
        result._biased = self._biased
        return result


class Mean(_MomentStatistic):
    """Arithmetic mean.

    The running mean cannot overflow for finite values.  If an infinite or
    NaN value is observed the result is the IEEE sum of the values, so
    ``Mean.of(inf, 1)`` is ``inf`` and ``Mean.of(inf, -inf)`` is NaN.
    The empty mean is NaN.
    """

    _ORDER = 1

    def get_as_double(self) -> float:
        return self._state.mean()


class SumOfSquaredDeviations(_MomentStatistic):
    """Sum of squared deviations from the mean; 0 when empty."""

    _ORDER = 2

    def get_as_double(self) -> float:
        return self._state.sum_of_squared_deviations()


class SumOfCubedDeviations(_MomentStatistic):
    """Sum of cubed deviations from the mean; 0 when empty.

    The sum is prone to cancellation: for near-symmetric data its relative
    error can be large even though the absolute error is small.
    """

    _ORDER = 3

    def get_as_double(self) -> float:
        return self._state.sum_of_cubed_deviations()


class SumOfFourthDeviations(_MomentStatistic):
    """Sum of fourth powers of deviations from the mean; 0 when empty."""

    _ORDER = 4

    def get_as_double(self) -> float:
        return self._state.sum_of_fourth_deviations()


class Variance(_BiasedMomentStatistic):
    """Variance, unbiased (``n - 1`` denominator) by default.

    NaN for no values.  For one value the unbiased variance is NaN and the
    biased variance is 0.
    """

    _ORDER = 2

    def get_as_double(self) -> float:
        return moment_formulas.variance(self._state, self._biased)


class StandardDeviation(_BiasedMomentStatistic):
    """Square root of the :class:`Variance`."""

    _ORDER = 2

    def get_as_double(self) -> float:
        return moment_formulas.standard_deviation(self._state, self._biased)


class Skewness(_BiasedMomentStatistic):
    """Skewness, the adjusted Fisher-Pearson coefficient by default.

    NaN for fewer than 3 values or a zero variance.
    """

    _ORDER = 3

    def get_as_double(self) -> float:
        return moment_formulas.skewness(self._state, self._biased)


class Kurtosis(_BiasedMomentStatistic):
    """Excess kurtosis, bias corrected by default.

    NaN for fewer than 4 values or a zero variance.
    """

    _ORDER = 4

    def get_as_double(self) -> float:
        return moment_formulas.kurtosis(self._state, self._biased)


def _as_floats(values: Sequence, start: int, stop: int) -> list:
    return np.asarray(values[start:stop], dtype=np.float64).tolist()


class Sum(Statistic):
    """Sum with compensation for rounding error; 0 when empty.

    Non-finite values propagate as they would in an ordinary IEEE sum.
    """

    def __init__(self):
        self._sum = CompensatedSum()

    @classmethod
    def _from_range(cls, values: Sequence, start: int, stop: int) -> "Sum":
        stat = cls()
        stat._sum.add_all(_as_floats(values, start, stop))
        return stat

    def accept(self, value: Any) -> None:
        self._sum.add(float(value))

    def combine(self, other: "Sum") -> "Sum":
        self._sum.add_sum(other._sum)
        return self

    def copy(self) -> "Sum":
        result = Sum()
        result._sum = self._sum.copy()
        return result

    def get_as_double(self) -> float:
        return self._sum.get_as_double()


class SumOfSquares(Statistic):
    """Sum of squared values; 0 when empty.

    Each square is added exactly using the rounding error of the product.
    """

    def __init__(self):
        self._sum = CompensatedSum()

    @classmethod
    def _from_range(cls, values: Sequence, start: int, stop: int) -> "SumOfSquares":
        stat = cls()
        for x in _as_floats(values, start, stop):
            stat._sum.add_product(x, x)
        return stat

    def accept(self, value: Any) -> None:
        x = float(value)
        self._sum.add_product(x, x)

    def combine(self, other: "SumOfSquares") -> "SumOfSquares":
        self._sum.add_sum(other._sum)
        return self

    def copy(self) -> "SumOfSquares":
        result = SumOfSquares()
        result._sum = self._sum.copy()
        return result

    def get_as_double(self) -> float:
        return self._sum.get_as_double()


class Product(Statistic):
    """Product of the values; 1 when empty."""

    def __init__(self):
        self._product = 1.0

    @classmethod
    def _from_range(cls, values: Sequence, start: int, stop: int) -> "Product":
        stat = cls()
        stat._product = math.prod(_as_floats(values, start, stop), start=1.0)
        return stat

    def accept(self, value: Any) -> None:
        self._product *= float(value)

    def combine(self, other: "Product") -> "Product":
        self._product *= other._product
        return self

    def copy(self) -> "Product":
        result = Product()
        result._product = self._product
        return result

    def get_as_double(self) -> float:
        return self._product
