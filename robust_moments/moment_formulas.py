"""Closed-form statistics over a :class:`~robust_moments.moment_state.MomentState`.

These functions read the accumulated sums each time they are called, so a
statistic can switch between its biased and unbiased form without any
re-accumulation.

Conventions for insufficient data:

- variance and standard deviation: NaN for no values; for one value NaN
  in the unbiased form and 0 in the biased form
- skewness: NaN for fewer than 3 values
- kurtosis: NaN for fewer than 4 values

Skewness and kurtosis are also NaN when the variance is effectively zero
relative to the mean.
"""

import math

from .moment_state import MomentState

# Relative threshold below which a variance is treated as zero
_ZERO_VARIANCE_THRESHOLD = 1e-15


def zero_variance(mean: float, m2: float) -> bool:
    """Return ``True`` if the second central moment is effectively zero.

    A variance is zero when the standard deviation is below ``1e-15`` times
    the magnitude of the mean, i.e. within rounding error of the mean.

    Args:
        mean: Mean of the values.
        m2: Second central moment (biased variance).
    """
    threshold = _ZERO_VARIANCE_THRESHOLD * mean
    return m2 <= threshold * threshold


def variance(state: MomentState, biased: bool = False) -> float:
    """Return the variance ``SS / (n - 1)``, or ``SS / n`` when biased."""
    n = state.n
    if n == 0:
        return math.nan
    ss = state.sum_of_squared_deviations()
    if n == 1:
        # Non-finite input still gives NaN
        if not biased or not math.isfinite(ss):
            return math.nan
        return 0.0
    return ss / (n if biased else n - 1.0)


def standard_deviation(state: MomentState, biased: bool = False) -> float:
    """Return the square root of :func:`variance`."""
    return math.sqrt(variance(state, biased))


def skewness(state: MomentState, biased: bool = False) -> float:
    """Return the skewness of the values.

    The biased form is the Fisher-Pearson coefficient
    ``g1 = m3 / m2^1.5``; the unbiased form is the adjusted coefficient
    ``G1 = g1 * sqrt(n * (n - 1)) / (n - 2)``.

    Args:
        state: Moments of order 3 or more.
        biased: Select the biased form.

    Returns:
        The skewness, or NaN for fewer than 3 values, non-finite sums, or a
        zero variance.
    """
    n = state.n
    if n < 3:
        return math.nan
    ss = state.sum_of_squared_deviations()
    sc = state.sum_of_cubed_deviations()
    if not (math.isfinite(ss) and math.isfinite(sc)):
        return math.nan
    m2 = ss / n
    if zero_variance(state.mean(), m2):
        return math.nan
    m3 = sc / n
    g1 = m3 / (math.sqrt(m2) * m2)
    if biased:
        return g1
    return g1 * math.sqrt(n * (n - 1.0)) / (n - 2.0)


def kurtosis(state: MomentState, biased: bool = False) -> float:
    """Return the excess kurtosis of the values.

    The biased form is ``g2 = m4 / m2^2 - 3``; the unbiased form is
    ``G2 = ((n^2 - 1) * m4 / m2^2 - 3 * (n - 1)^2) / ((n - 2) * (n - 3))``.

    Args:
        state: Moments of order 4.
        biased: Select the biased form.

    Returns:
        The kurtosis, or NaN for fewer than 4 values, non-finite sums, or a
        zero variance.
    """
    n = state.n
    if n < 4:
        return math.nan
    ss = state.sum_of_squared_deviations()
    sq = state.sum_of_fourth_deviations()
    if not (math.isfinite(ss) and math.isfinite(sq)):
        return math.nan
    m2 = ss / n
    if zero_variance(state.mean(), m2):
        return math.nan
    m4 = sq / n
    ratio = m4 / (m2 * m2)
    if biased:
        return ratio - 3
    n = float(n)
    return ((n * n - 1) * ratio - 3 * (n - 1) * (n - 1)) / ((n - 2) * (n - 3))
