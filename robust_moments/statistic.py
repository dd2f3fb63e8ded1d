"""Common interface for streaming statistics.

Every statistic in the package is an accumulator with the same capability
surface so an external dispatcher can compose any subset of them over one
pass of data:

- ``create()`` / ``of(*values)`` / ``of_range(values, start, stop)``
- ``accept(value)`` for a single observation
- ``combine(other)`` to merge a partial result over a disjoint partition
- ``get_as_double()`` and the integer getters

Accumulators are not thread-safe.  Parallel computation is done by building
independent accumulators over disjoint partitions and reducing them with
``combine``; the argument of ``combine`` is never modified.
"""

from abc import ABC, abstractmethod
from collections import abc
import math
import operator
from typing import Any, Sequence, Tuple, TypeVar

import numpy as np
import pandas as pd

from .int128 import LONG_MAX, LONG_MIN

S = TypeVar("S", bound="Statistic")

_TWO_POW_31 = 2.0**31
_TWO_POW_63 = 2.0**63


def check_from_to_index(start: int, stop: int, length: int) -> None:
    """Validate a sub-range ``[start, stop)`` of a sequence.

    Args:
        start: Inclusive start index.
        stop: Exclusive end index.
        length: Length of the sequence.

    Raises:
        IndexError: Unless ``0 <= start <= stop <= length``.
    """
    if start < 0 or start > stop or stop > length:
        raise IndexError(f"Range [start={start}, stop={stop}) out of bounds for length {length}")


def round_to_integer(x: float) -> float:
    """Round half up to an integral double.

    The sign of a result in ``(-0.5, -0.0]`` is not preserved since the value
    is only used for integer conversion.
    """
    if not math.isfinite(x):
        return x
    y = math.floor(x)
    if x - y >= 0.5:
        return y + 1.0
    return float(y)


def is_collection(value: Any) -> bool:
    """Return ``True`` for an array, pandas object or non-string sequence."""
    if isinstance(value, (str, bytes)):
        return False
    return isinstance(value, (np.ndarray, pd.Series, pd.Index, abc.Sequence))


def as_sequence(values: Any) -> Sequence:
    """Return ``values`` in a form that supports positional indexing.

    Arrays and sequences are returned unchanged; pandas objects and other
    array-likes are converted to a ``numpy`` array.
    """
    if isinstance(values, (np.ndarray, abc.Sequence)):
        return values
    return np.asarray(values)


def as_values(values: Tuple[Any, ...]) -> Sequence:
    """Unpack the ``*values`` argument of an ``of`` factory.

    A single array, pandas object or sequence argument (a list, tuple or
    ``range``) is used as the values; otherwise the positional arguments
    themselves are the values.
    """
    if len(values) == 1 and is_collection(values[0]):
        return as_sequence(values[0])
    return values


class Statistic(ABC):
    """Abstract base class for a streaming statistic accumulator."""

    @classmethod
    def create(cls: type[S]) -> S:
        """Create an empty accumulator."""
        return cls()

    @classmethod
    def of(cls: type[S], *values: Any) -> S:
        """Create an accumulator populated with ``values``.

        The array algorithm used here may be more accurate than repeated calls
        to :meth:`accept`, so the two can differ in the last bits.

        Args:
            *values: Observations, or a single array/sequence of observations.
        """
        data = as_values(values)
        return cls._from_range(data, 0, len(data))

    @classmethod
    def of_range(cls: type[S], values: Sequence, start: int, stop: int) -> S:
        """Create an accumulator populated with ``values[start:stop]``.

        Args:
            values: Observations.
            start: Inclusive start of the range.
            stop: Exclusive end of the range.

        Raises:
            IndexError: If the range is outside the bounds of ``values``.
        """
        values = as_sequence(values)
        check_from_to_index(start, stop, len(values))
        return cls._from_range(values, start, stop)

    @classmethod
    @abstractmethod
    def _from_range(cls: type[S], values: Sequence, start: int, stop: int) -> S:
        """Build an accumulator from a validated range."""

    @abstractmethod
    def accept(self, value: Any) -> None:
        """Update the statistic with one observation."""

    @abstractmethod
    def combine(self: S, other: S) -> S:
        """Merge the state of ``other`` (unchanged) into this accumulator.

        Returns:
            This instance.
        """

    @abstractmethod
    def copy(self: S) -> S:
        """Return an independent copy of this accumulator."""

    @abstractmethod
    def get_as_double(self) -> float:
        """Return the current value of the statistic."""

    def get_as_int(self) -> int:
        """Return the value rounded half up to a 32-bit integer.

        Raises:
            OverflowError: If the rounded value is not a 32-bit integer.
        """
        x = self.get_as_double()
        r = round_to_integer(x)
        if -_TWO_POW_31 <= r < _TWO_POW_31:
            return int(r)
        raise OverflowError(f"integer overflow: {x}")

    def get_as_long(self) -> int:
        """Return the value rounded half up to a 64-bit integer.

        Raises:
            OverflowError: If the rounded value is not a 64-bit integer.
        """
        x = self.get_as_double()
        r = round_to_integer(x)
        if -_TWO_POW_63 <= r < _TWO_POW_63:
            return int(r)
        raise OverflowError(f"long integer overflow: {x}")

    def get_as_integer(self) -> int:
        """Return the value rounded half up to an unbounded integer.

        Raises:
            OverflowError: If the value is not finite.
        """
        x = self.get_as_double()
        if not math.isfinite(x):
            raise OverflowError(f"integer overflow: {x}")
        return int(round_to_integer(x))

    def __float__(self) -> float:
        return self.get_as_double()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.get_as_double()!r})"


class IntegerStatistic(Statistic):
    """Statistic over integer observations in ``[MIN_VALUE, MAX_VALUE]``.

    Subclasses narrow the accepted domain; the default is signed 64-bit.
    """

    MIN_VALUE = LONG_MIN
    MAX_VALUE = LONG_MAX

    @classmethod
    def _check(cls, value: Any) -> int:
        """Convert an observation to ``int`` and validate the domain.

        Raises:
            TypeError: If the value is not an integer type or is a ``bool``.
            ValueError: If the value is outside the accepted domain.
        """
        if isinstance(value, (bool, np.bool_)):
            raise TypeError(f"{cls.__name__} does not accept boolean values: {value!r}")
        x = operator.index(value)
        if not cls.MIN_VALUE <= x <= cls.MAX_VALUE:
            raise ValueError(
                f"{cls.__name__} value out of range [{cls.MIN_VALUE}, {cls.MAX_VALUE}]: {x}"
            )
        return x

    @classmethod
    def _check_range(cls, values: Sequence, start: int, stop: int) -> list:
        """Validate a range of observations before any accumulation."""
        return [cls._check(values[i]) for i in range(start, stop)]


class BiasedStatistic:
    """Mixin for statistics with a biased (population) form.

    The flag only changes how the value is computed from the accumulated
    sums, so it can be toggled at any time without re-accumulation.
    """

    _biased = False

    def set_biased(self, biased: bool):
        """Select the biased (``True``) or unbiased (``False``) form.

        Returns:
            This instance.
        """
        self._biased = bool(biased)
        return self

    def is_biased(self) -> bool:
        """Return ``True`` if the biased form is selected."""
        return self._biased
