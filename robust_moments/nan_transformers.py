"""Pre-processing of NaN values in an array range.

A :class:`NaNTransformer` prepares ``values[start:stop]`` for a statistic
according to a :class:`NaNPolicy`:

- ``INCLUDE``: the values are used unchanged and NaN propagates through the
  IEEE arithmetic of the statistic.
- ``EXCLUDE``: NaN values are removed from the effective range.
- ``ERROR``: a NaN in the range raises :class:`NaNValueError`.

Every transformer returns a :class:`TransformedRange` naming the array and
the effective bounds to evaluate.  Copying transformers never modify the
input and return a new array holding only the range, with bounds
``(0, k)``.  In-place transformers work on the input ``numpy`` array: they
only ever modify elements inside ``[start, stop)``, moving the non-NaN
values to the front of the range in their original order.

Example:
    >>> import numpy as np
    >>> t = create_nan_transformer(NaNPolicy.EXCLUDE, copy=True)
    >>> r = t.apply(np.array([1.0, np.nan, 3.0]))
    >>> r.values[r.start:r.stop]
    array([1., 3.])
"""

from abc import ABC, abstractmethod
from enum import Enum
import logging
from typing import NamedTuple, Optional, Sequence

import numpy as np

from .statistic import check_from_to_index

logger = logging.getLogger(__name__)


class NaNPolicy(str, Enum):
    """Handling of NaN values in statistic input."""

    INCLUDE = "include"
    EXCLUDE = "exclude"
    ERROR = "error"


class NaNValueError(ValueError):
    """Raised when a NaN is found under the ``ERROR`` policy.

    Attributes:
        index: Index of the first NaN in the input array.
    """

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"NaN at index {index}")


class TransformedRange(NamedTuple):
    """Array and effective bounds produced by a transformer.

    Attributes:
        values: Array holding the values to evaluate.
        start: Inclusive start of the effective range.
        stop: Exclusive end of the effective range.
    """

    values: np.ndarray
    start: int
    stop: int

    def data(self) -> np.ndarray:
        """Return a view of the effective range."""
        return self.values[self.start : self.stop]


class NaNTransformer(ABC):
    """Prepare an array range for evaluation under a NaN policy.

    Args:
        copy: Work on a copy of the range (``True``) or on the input array.
    """

    policy: NaNPolicy

    def __init__(self, copy: bool = True):
        self.copy = copy

    def apply(
        self, values: Sequence[float], start: int = 0, stop: Optional[int] = None
    ) -> TransformedRange:
        """Apply the policy to ``values[start:stop]``.

        Args:
            values: Input values.  In-place transformers require a floating
                point ``numpy`` array.
            start: Inclusive start of the range.
            stop: Exclusive end of the range (default: end of the array).

        Returns:
            The array and effective range to evaluate.

        Raises:
            IndexError: If the range is outside the array.
            TypeError: If an in-place transformer is given anything other
                than a floating point ``numpy`` array.
            NaNValueError: If the policy rejects a NaN in the range.
        """
        if self.copy:
            data = np.asarray(values, dtype=np.float64)
        else:
            if not isinstance(values, np.ndarray) or values.dtype.kind != "f":
                raise TypeError(
                    f"In-place NaN transformation requires a floating point numpy array, "
                    f"got {type(values).__name__}"
                )
            data = values
        if stop is None:
            stop = len(data)
        check_from_to_index(start, stop, len(data))
        return self._transform(data, start, stop)

    @abstractmethod
    def _transform(self, data: np.ndarray, start: int, stop: int) -> TransformedRange:
        """Transform a validated range."""

    def _result(self, data: np.ndarray, start: int, stop: int) -> TransformedRange:
        """Return the unmodified range, copied if required."""
        if self.copy:
            chunk = np.array(data[start:stop], dtype=np.float64, copy=True)
            return TransformedRange(chunk, 0, chunk.size)
        return TransformedRange(data, start, stop)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(copy={self.copy})"


class IncludeNaNTransformer(NaNTransformer):
    """Pass the range through unchanged."""

    policy = NaNPolicy.INCLUDE

    def _transform(self, data: np.ndarray, start: int, stop: int) -> TransformedRange:
        return self._result(data, start, stop)


class ExcludeNaNTransformer(NaNTransformer):
    """Remove NaN values from the effective range.

    The remaining values keep their relative order and their exact bit
    patterns (``-0.0`` stays ``-0.0``).  In place, the NaN values are moved
    to the end of the range.
    """

    policy = NaNPolicy.EXCLUDE

    def _transform(self, data: np.ndarray, start: int, stop: int) -> TransformedRange:
        chunk = data[start:stop]
        nan_mask = np.isnan(chunk)
        count = int(np.count_nonzero(nan_mask))
        if count == 0:
            return self._result(data, start, stop)
        logger.debug(f"Excluded {count} NaN values from range [{start}, {stop})")
        if self.copy:
            kept = chunk[~nan_mask]
            return TransformedRange(kept, 0, kept.size)
        # Boolean indexing returns copies, so the view can be overwritten
        kept = chunk[~nan_mask]
        nans = chunk[nan_mask]
        end = kept.size
        chunk[:end] = kept
        chunk[end:] = nans
        return TransformedRange(data, start, start + end)


class ErrorNaNTransformer(NaNTransformer):
    """Raise :class:`NaNValueError` if the range contains a NaN."""

    policy = NaNPolicy.ERROR

    def _transform(self, data: np.ndarray, start: int, stop: int) -> TransformedRange:
        nan_index = np.flatnonzero(np.isnan(data[start:stop]))
        if nan_index.size:
            raise NaNValueError(start + int(nan_index[0]))
        return self._result(data, start, stop)


_TRANSFORMERS = {
    NaNPolicy.INCLUDE: IncludeNaNTransformer,
    NaNPolicy.EXCLUDE: ExcludeNaNTransformer,
    NaNPolicy.ERROR: ErrorNaNTransformer,
}


def create_nan_transformer(policy: NaNPolicy, copy: bool = True) -> NaNTransformer:
    """Create a transformer for a NaN policy.

    Args:
        policy: NaN policy (a :class:`NaNPolicy` or its string value).
        copy: Work on a copy of the range instead of the input array.

    Returns:
        A new transformer.
    """
    return _TRANSFORMERS[NaNPolicy(policy)](copy)
