"""Moment summary of an array in a single pass.

:func:`summarize` applies the configured NaN policy to an array range,
builds one fourth order :class:`~robust_moments.moment_state.MomentState`
with the array algorithm and reads every moment statistic from it.

Example:
    >>> from robust_moments.summary import summarize
    >>> summary = summarize([1.0, 2.0, 4.0, 8.0])
    >>> summary.mean
    3.75
    >>> summary.to_dataframe()  # doctest: +SKIP
"""

from dataclasses import asdict, dataclass
import logging
import math
from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd

from . import moment_formulas
from .config import StatisticsConfiguration
from .moment_state import MomentState
from .statistic import as_sequence, check_from_to_index

logger = logging.getLogger(__name__)

_METRICS = (
    "n",
    "mean",
    "variance",
    "standard_deviation",
    "skewness",
    "kurtosis",
    "sum_of_squared_deviations",
)


@dataclass(frozen=True)
class MomentSummary:
    """Moment statistics of one data set."""

    n: int
    mean: float
    variance: float
    standard_deviation: float
    skewness: float
    kurtosis: float
    sum_of_squared_deviations: float
    biased: bool

    @classmethod
    def from_state(cls, state: MomentState, biased: bool = False) -> "MomentSummary":
        """Read a summary from fourth order moments."""
        return cls(
            n=state.n,
            mean=state.mean(),
            variance=moment_formulas.variance(state, biased),
            standard_deviation=moment_formulas.standard_deviation(state, biased),
            skewness=moment_formulas.skewness(state, biased),
            kurtosis=moment_formulas.kurtosis(state, biased),
            sum_of_squared_deviations=state.sum_of_squared_deviations(),
            biased=biased,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the fields as a dictionary."""
        return asdict(self)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert summary to pandas DataFrame.

        Returns:
            DataFrame with one row per metric and columns ``metric`` and
            ``value``.
        """
        rows = [{"metric": metric, "value": getattr(self, metric)} for metric in _METRICS]
        return pd.DataFrame(rows)


def summarize(
    values: Sequence[float],
    config: Optional[StatisticsConfiguration] = None,
    start: Optional[int] = None,
    stop: Optional[int] = None,
) -> MomentSummary:
    """Compute the moment summary of ``values[start:stop]``.

    Integer numpy arrays (and integer pandas Series) cannot hold NaN; they bypass the NaN policy and use
    exact integer arithmetic for the mean and variance.

    Args:
        values: Observations.
        config: Evaluation options (default configuration if omitted).
        start: Inclusive start of the range (default 0).
        stop: Exclusive end of the range (default end of the array).

    Returns:
        The summary.

    Raises:
        IndexError: If the range is outside the array.
        NaNValueError: If the ERROR policy finds a NaN in the range.
        TypeError: If in-place NaN handling is configured for input that is
            not a floating point numpy array.
    """
    if config is None:
        config = StatisticsConfiguration()
    if start is None:
        start = 0
    if stop is None:
        stop = len(values)

    data = as_sequence(values)
    if isinstance(data, np.ndarray) and data.dtype.kind in "iu":
        check_from_to_index(start, stop, len(data))
        state = MomentState.of_range(data, start, stop)
    else:
        transformed = config.nan_transformer().apply(values, start, stop)
        state = MomentState.of_range(transformed.values, transformed.start, transformed.stop)

    summary = MomentSummary.from_state(state, config.biased)
    if state.n and not all(math.isfinite(v) for v in (summary.mean, summary.variance)):
        logger.debug(f"Non-finite moment summary for {state.n} values: {summary}")
    return summary
