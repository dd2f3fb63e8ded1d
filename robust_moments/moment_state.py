"""Shared accumulator for the central moments of a stream of doubles.

One :class:`MomentState` holds the count, the running mean and the sums of
powers of deviations from the mean up to a requested ``order``:

=====  ==========================================  =================
order  sum                                         used by
=====  ==========================================  =================
1      none (running mean only)                    Mean
2      ``SS = sum((x - mean)**2)``                 Variance, StdDev
3      ``SC = sum((x - mean)**3)``                 Skewness
4      ``SQ = sum((x - mean)**4)``                 Kurtosis
=====  ==========================================  =================

Statistics only carry the moments they read; a variance never pays for the
cubed and fourth power updates.

The mean is stored scaled by one half.  The deviation of a finite value
from half the mean can then never overflow, so the rolling mean of any
finite data is finite.  A plain IEEE running sum of the raw values is kept
alongside and reported as the mean when a non-finite value was observed,
giving ``inf`` for ``[inf, 1]`` and ``NaN`` for ``[inf, -inf]``.

Two construction paths exist:

- :meth:`MomentState.accept` applies the Welford/Terriberry online update
  for one observation.
- :meth:`MomentState.of_range` runs a whole-array algorithm: a corrected
  two-pass mean with an extended precision first pass, a compensated sum of
  squared deviations, then vectorised sums of the higher powers.  Integer
  input takes an exact path for the mean and the sum of squared deviations.

:meth:`MomentState.combine` merges a state built over a disjoint partition
using the pairwise formulas of Chan et al. (1979) and Pebay (2008).
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from .extended_precision import CompensatedSum
from .int128 import LONG_MAX, LONG_MIN, Int128, UInt192
from .integer_statistics import exact_mean, exact_sum_of_squared_deviations

logger = logging.getLogger(__name__)

MIN_ORDER = 1
MAX_ORDER = 4


class MomentState:
    """Running count, mean and sums of power deviations.

    Attributes:
        order: Highest moment maintained (1 to 4).
        n: Number of observations.
    """

    __slots__ = ("order", "n", "_m1", "_non_finite", "_ss", "_sc", "_sq")

    def __init__(self, order: int = MAX_ORDER):
        """Create an empty state.

        Args:
            order: Highest moment to maintain.

        Raises:
            ValueError: If ``order`` is not in ``[1, 4]``.
        """
        if not MIN_ORDER <= order <= MAX_ORDER:
            raise ValueError(f"Moment order must be in [{MIN_ORDER}, {MAX_ORDER}]: {order}")
        self.order = order
        self.n = 0
        # Half of the mean
        self._m1 = 0.0
        self._non_finite = 0.0
        self._ss = CompensatedSum()
        self._sc = 0.0
        self._sq = 0.0

    # ------------------------------------------------------------------
    # Streaming update
    # ------------------------------------------------------------------

    def accept(self, value: float) -> None:
        """Add one observation."""
        x = float(value)
        self._non_finite += x
        n_prev = self.n
        n = n_prev + 1
        self.n = n
        dev = x * 0.5 - self._m1
        n_dev = dev / n
        self._m1 += n_dev
        if self.order == 1 or n_prev == 0:
            # The deviation sums of a single value are zero
            return
        # Higher moments read the previous values of the lower ones
        ss = self._ss.get_as_double()
        if self.order == 4:
            self._sq = (
                self._sq
                - self._sc * n_dev * 8
                + ss * n_dev * n_dev * 24
                + n_prev * (n * n - 3.0 * n_prev) * (n_dev * n_dev * n_dev) * dev * 16
            )
        if self.order >= 3:
            self._sc = self._sc - ss * n_dev * 6 + (n_prev - 1.0) * n_prev * (n_dev * n_dev) * dev * 8
        self._ss.add(n_prev * dev * n_dev * 4)

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def combine(self, other: "MomentState") -> "MomentState":
        """Merge the state of a disjoint partition.

        ``other`` is not modified.  Combining a state with itself doubles
        the observations.

        Args:
            other: State to merge; must maintain at least this ``order``.

        Returns:
            This instance.

        Raises:
            ValueError: If ``other`` maintains fewer moments.
        """
        if other.order < self.order:
            raise ValueError(f"Cannot combine order {other.order} moments into order {self.order}")
        if other is self:
            other = other.copy()
        n2 = other.n
        if n2 == 0:
            return self
        n1 = self.n
        if n1 == 0:
            self._assign(other)
            return self

        n = n1 + n2
        m1a = self._m1
        m1b = other._m1
        # Half the difference of the means
        hd = m1a - m1b
        if self.order >= 2:
            ss1 = self._ss.get_as_double()
            ss2 = other._ss.get_as_double()
            if self.order == 4:
                self._sq += other._sq
            if self.order >= 3:
                sc1 = self._sc
                sc2 = other._sc
                self._sc += sc2
            if hd != 0:
                if n1 == n2:
                    if self.order == 4:
                        hd2 = hd * hd
                        self._sq += (sc1 - sc2) * hd * 4 + (ss1 + ss2) * hd2 * 6 + hd2 * hd2 * n1 * 2
                    if self.order >= 3:
                        self._sc += (ss1 - ss2) * hd * 3
                else:
                    dm = 2 * (hd / n)
                    if self.order == 4:
                        dm2 = dm * dm
                        self._sq += (
                            (sc1 * n2 - sc2 * n1) * dm * 4
                            + (float(n2) * n2 * ss1 + float(n1) * n1 * ss2) * dm2 * 6
                            + (float(n1) * n2) * (float(n) * n - 3.0 * n1 * n2) * (dm2 * dm2) * n
                        )
                    if self.order >= 3:
                        self._sc += (ss1 * n2 - ss2 * n1) * dm * 3 + (
                            (float(n2) - n1) * (float(n1) * n2) * (dm * dm * dm) * n
                        )
            self._ss.add_sum(other._ss)
            if hd != 0:
                d = hd * 2
                self._ss.add(d * d * (float(n1) * n2 / n))

        if n1 == n2:
            self._m1 = (m1a + m1b) * 0.5
        elif n1 > n2:
            self._m1 = m1a + (m1b - m1a) * (n2 / n)
        else:
            self._m1 = m1b + (m1a - m1b) * (n1 / n)
        self._non_finite += other._non_finite
        self.n = n
        return self

    def _assign(self, other: "MomentState") -> None:
        self.n = other.n
        self._m1 = other._m1
        self._non_finite = other._non_finite
        self._ss = other._ss.copy()
        if self.order >= 3:
            self._sc = other._sc
        if self.order == 4:
            self._sq = other._sq

    def copy(self) -> "MomentState":
        """Return an independent copy."""
        result = MomentState(self.order)
        result._assign(self)
        return result

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def mean(self) -> float:
        """Return the mean, or NaN when empty."""
        if self.n == 0:
            return math.nan
        m = self._m1 * 2
        if math.isfinite(m):
            return m
        # Non-finite input: the IEEE sum carries the inf/NaN result
        return self._non_finite

    def sum_of_squared_deviations(self) -> float:
        """Return ``sum((x - mean)**2)``; 0 when empty, NaN for a non-finite mean.

        NaN if the state only maintains the mean.
        """
        if self.order < 2:
            return math.nan
        if self.n == 0:
            return 0.0
        if not math.isfinite(self.mean()):
            return math.nan
        return self._ss.get_as_double()

    def sum_of_cubed_deviations(self) -> float:
        """Return ``sum((x - mean)**3)``; 0 when empty, NaN for a non-finite mean.

        NaN if the state does not maintain third order moments.
        """
        if self.order < 3:
            return math.nan
        if self.n == 0:
            return 0.0
        if not math.isfinite(self.mean()):
            return math.nan
        return self._sc

    def sum_of_fourth_deviations(self) -> float:
        """Return ``sum((x - mean)**4)``; 0 when empty, NaN for a non-finite mean.

        NaN if the state does not maintain fourth order moments.
        """
        if self.order < 4:
            return math.nan
        if self.n == 0:
            return 0.0
        if not math.isfinite(self.mean()):
            return math.nan
        return self._sq

    def __repr__(self) -> str:
        return (
            f"MomentState(order={self.order}, n={self.n}, mean={self.mean()!r}, "
            f"ss={self._ss.get_as_double()!r}, sc={self._sc!r}, sq={self._sq!r})"
        )

    # ------------------------------------------------------------------
    # Array construction
    # ------------------------------------------------------------------

    @classmethod
    def of_range(
        cls, values: Sequence, start: int, stop: int, order: int = MAX_ORDER
    ) -> "MomentState":
        """Build a state from ``values[start:stop]`` with the array algorithm.

        The range must already be validated.  Integer input (a numpy integer
        array, or a sequence of Python ``int`` in the signed 64-bit range)
        uses exact integer arithmetic for the mean and the sum of squared
        deviations.

        Args:
            values: Observations.
            start: Inclusive start of the range.
            stop: Exclusive end of the range.
            order: Highest moment to compute.

        Returns:
            New state over the range.
        """
        longs = _as_longs(values, start, stop)
        if longs is not None:
            return cls._from_longs(longs, order)
        return cls._from_doubles(np.asarray(values[start:stop], dtype=np.float64), order)

    @classmethod
    def _from_doubles(cls, data: np.ndarray, order: int) -> "MomentState":
        state = cls(order)
        n = data.size
        if n == 0:
            return state
        state.n = n
        with np.errstate(over="ignore", invalid="ignore"):
            state._non_finite = float(np.sum(data))
            state._m1 = _half_mean(data)
            if order == 1:
                return state
            mean = state._m1 * 2
            ss = _sum_of_squared_deviations(data, mean)
            state._ss = CompensatedSum(ss)
            if order >= 3 and math.isfinite(mean):
                state._higher_moments(data - mean, ss)
        return state

    @classmethod
    def _from_longs(cls, values: List[int], order: int) -> "MomentState":
        state = cls(order)
        n = len(values)
        if n == 0:
            return state
        total = Int128.create()
        sum_sq = UInt192.create()
        for x in values:
            total.add(x)
            sum_sq.add_square(x)
        mean = exact_mean(total, n)
        state.n = n
        state._m1 = mean * 0.5
        state._non_finite = total.to_double()
        if order == 1:
            return state
        ss = exact_sum_of_squared_deviations(sum_sq, total, n)
        state._ss = CompensatedSum(ss)
        if order >= 3:
            with np.errstate(over="ignore", invalid="ignore"):
                state._higher_moments(np.asarray(values, dtype=np.float64) - mean, ss)
        return state

    def _higher_moments(self, dx: np.ndarray, ss: float) -> None:
        """Set the cubed and fourth power sums from deviations ``dx``."""
        n = dx.size
        if n <= 2:
            # Symmetric about the mean
            sc = 0.0
        elif not math.isfinite(ss):
            sc = math.nan
        else:
            sc = float(np.sum(dx * dx * dx))
        self._sc = sc
        if self.order == 4:
            if math.isfinite(ss) and math.isfinite(sc):
                d2 = dx * dx
                self._sq = float(np.sum(d2 * d2))
            else:
                self._sq = math.nan


def _half_mean(data: np.ndarray) -> float:
    """Return half the mean of a non-empty array.

    The first pass divides an extended precision sum by ``n``; the second
    pass adds the mean deviation from that estimate.  If the sum overflows
    the rolling mean is used instead.
    """
    n = data.size
    m = CompensatedSum().add_all(data.tolist()).get_as_double() / n
    if math.isfinite(m):
        correction = float(np.sum(data - m)) / n
        if math.isfinite(correction):
            m += correction
        return m * 0.5
    logger.debug(f"Sum of {n} values is not finite, using the rolling mean")
    rolling = MomentState(1)
    for x in data.tolist():
        rolling.accept(x)
    return rolling._m1


def _sum_of_squared_deviations(data: np.ndarray, mean: float) -> float:
    """Return ``sum(dx**2) - sum(dx)**2 / n`` with ``dx = data - mean``."""
    if not math.isfinite(mean):
        return math.nan
    n = data.size
    squares = CompensatedSum()
    s = 0.0
    for x in data.tolist():
        dx = x - mean
        squares.add_product(dx, dx)
        s += dx
    ss = squares.get_as_double()
    correction = s * s / n
    if math.isfinite(correction):
        ss -= correction
    return ss


def _as_longs(values: Sequence, start: int, stop: int) -> Optional[List[int]]:
    """Return the range as ``int`` values if it is signed 64-bit integer data."""
    if isinstance(values, np.ndarray):
        if values.dtype.kind not in "iu":
            return None
        chunk = values[start:stop]
        if values.dtype.kind == "u" and chunk.size and int(chunk.max()) > LONG_MAX:
            return None
        return [int(x) for x in chunk.tolist()]
    chunk = values[start:stop]
    if len(chunk) == 0:
        return None
    for x in chunk:
        if type(x) is not int or not LONG_MIN <= x <= LONG_MAX:
            return None
    return list(chunk)
