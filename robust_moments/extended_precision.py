"""Extended precision (double-double) arithmetic.

This module provides the error-free transformations used by the moment
accumulators to keep the low-order bits that ordinary ``float`` arithmetic
would discard.  A double-double number is the unevaluated sum of two
doubles ``high + low`` where ``|low|`` is at most half an ULP of ``high``.

The primitives follow Dekker (1971) and Knuth (TAOCP vol. 2):

- :func:`two_sum` returns ``(s, e)`` with ``s = fl(a + b)`` and
  ``a + b = s + e`` exactly.
- :func:`fast_two_sum` is the same transformation when ``|a| >= |b|``.
- :func:`two_product` returns ``(p, e)`` with ``p = fl(a * b)`` and
  ``a * b = p + e`` exactly (barring underflow).

:class:`CompensatedSum` folds a long chain of terms into a double-double
and rounds to a single ``float`` only when the value is requested.

Example:
    Sum values spanning many orders of magnitude::

        from robust_moments.extended_precision import CompensatedSum

        total = CompensatedSum.of(1e100, 1.0, -1e100)
        total.get_as_double()  # 1.0
"""

import math
from typing import Iterable, Tuple, Union

# Dekker split multiplier 2^27 + 1
_SPLIT = 134217729.0
# Above this magnitude the split multiplication can overflow
_SAFE_UPPER = 2.0**996
_DOWN_SCALE = 2.0**-30
_UP_SCALE = 2.0**30


def two_sum(a: float, b: float) -> Tuple[float, float]:
    """Compute the sum and its exact rounding error.

    Args:
        a: First addend.
        b: Second addend.

    Returns:
        Tuple ``(s, e)`` where ``s`` is the rounded sum and ``a + b = s + e``.
    """
    s = a + b
    bb = s - a
    e = (a - (s - bb)) + (b - bb)
    return s, e


def fast_two_sum(a: float, b: float) -> Tuple[float, float]:
    """Compute the sum and its rounding error assuming ``|a| >= |b|``.

    Args:
        a: Larger magnitude addend.
        b: Smaller magnitude addend.

    Returns:
        Tuple ``(s, e)`` where ``s`` is the rounded sum and ``a + b = s + e``.
    """
    s = a + b
    return s, b - (s - a)


def _high_part(value: float) -> float:
    """Return the upper 26 bits of the 53-bit significand of ``value``."""
    if abs(value) > _SAFE_UPPER:
        # Scale to avoid overflow in the split multiplication
        c = _SPLIT * (value * _DOWN_SCALE)
        return (c - (c - value * _DOWN_SCALE)) * _UP_SCALE
    c = _SPLIT * value
    return c - (c - value)


def two_product(a: float, b: float) -> Tuple[float, float]:
    """Compute the product and its exact rounding error.

    Uses Dekker's split so no fused multiply-add is required.  For a
    non-finite product the error term is ``0.0``.

    Args:
        a: First factor.
        b: Second factor.

    Returns:
        Tuple ``(p, e)`` where ``p`` is the rounded product and ``a * b = p + e``.
    """
    p = a * b
    if not math.isfinite(p):
        return p, 0.0
    ha = _high_part(a)
    la = a - ha
    hb = _high_part(b)
    lb = b - hb
    e = la * lb - (((p - ha * hb) - la * hb) - ha * lb)
    return p, e


class ExtendedPrecision:
    """Immutable double-double value ``high + low``.

    Attributes:
        high: Leading double, the value rounded to double precision.
        low: Trailing correction term.
    """

    __slots__ = ("high", "low")

    def __init__(self, high: float, low: float = 0.0):
        self.high = high
        self.low = low

    @classmethod
    def of(cls, value: float) -> "ExtendedPrecision":
        """Create an instance representing a single double."""
        return cls(float(value), 0.0)

    @classmethod
    def of_int(cls, value: int) -> "ExtendedPrecision":
        """Create an instance from an integer.

        The result is exact for any integer with at most 106 significant bits
        and correctly rounded in the high part otherwise.

        Args:
            value: Integer value.

        Returns:
            Double-double representation of ``value``.
        """
        high = float(value)
        if not math.isfinite(high):
            return cls(high, 0.0)
        return cls(*fast_two_sum(high, float(value - int(high))))

    def add(self, other: Union["ExtendedPrecision", float]) -> "ExtendedPrecision":
        """Return ``self + other``."""
        if isinstance(other, ExtendedPrecision):
            s, e = two_sum(self.high, other.high)
            t, f = two_sum(self.low, other.low)
            s, e = fast_two_sum(s, e + t)
            return ExtendedPrecision(*fast_two_sum(s, e + f))
        s, e = two_sum(self.high, other)
        return ExtendedPrecision(*fast_two_sum(s, e + self.low))

    def negate(self) -> "ExtendedPrecision":
        """Return ``-self``."""
        return ExtendedPrecision(-self.high, -self.low)

    def subtract(self, other: Union["ExtendedPrecision", float]) -> "ExtendedPrecision":
        """Return ``self - other``."""
        if isinstance(other, ExtendedPrecision):
            return self.add(other.negate())
        return self.add(-other)

    def multiply(self, other: Union["ExtendedPrecision", float]) -> "ExtendedPrecision":
        """Return ``self * other``."""
        if isinstance(other, ExtendedPrecision):
            p, e = two_product(self.high, other.high)
            e += self.high * other.low + self.low * other.high
            return ExtendedPrecision(*fast_two_sum(p, e))
        p, e = two_product(self.high, other)
        return ExtendedPrecision(*fast_two_sum(p, e + self.low * other))

    def divide(self, other: Union["ExtendedPrecision", float]) -> "ExtendedPrecision":
        """Return ``self / other``.

        Division by a double uses one correction step; division by a
        double-double uses two.  The relative error is a small multiple of
        2^-104 for finite operands.
        """
        if isinstance(other, ExtendedPrecision):
            q1 = self.high / other.high
            if not math.isfinite(q1):
                return ExtendedPrecision(q1, 0.0)
            r = self.subtract(other.multiply(q1))
            q2 = r.high / other.high
            r = r.subtract(other.multiply(q2))
            q3 = r.high / other.high
            s, e = fast_two_sum(q1, q2)
            return ExtendedPrecision(*fast_two_sum(s, e + q3))
        q1 = self.high / other
        if not math.isfinite(q1):
            return ExtendedPrecision(q1, 0.0)
        p, e = two_product(q1, other)
        q2 = (((self.high - p) - e) + self.low) / other
        return ExtendedPrecision(*fast_two_sum(q1, q2))

    def to_float(self) -> float:
        """Round to the nearest double."""
        return self.high + self.low

    def __float__(self) -> float:
        return self.to_float()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExtendedPrecision):
            return NotImplemented
        return self.high == other.high and self.low == other.low

    def __hash__(self) -> int:
        return hash((self.high, self.low))

    def __repr__(self) -> str:
        return f"ExtendedPrecision(high={self.high!r}, low={self.low!r})"


class CompensatedSum:
    """Running sum that carries the rounding error of every addition.

    The sum is held as a double-double.  A plain IEEE running sum is kept
    alongside it and returned when the compensated total is not finite, so
    infinities and NaN propagate exactly as ordinary ``float`` summation
    would propagate them.

    The empty sum is ``0.0``.
    """

    __slots__ = ("_high", "_low", "_simple")

    def __init__(self, value: float = 0.0):
        self._high = float(value)
        self._low = 0.0
        self._simple = float(value)

    @classmethod
    def create(cls) -> "CompensatedSum":
        """Create an empty sum."""
        return cls()

    @classmethod
    def of(cls, *values: float) -> "CompensatedSum":
        """Create a sum of the given values."""
        return cls().add_all(values)

    def add(self, value: float) -> "CompensatedSum":
        """Add a term.

        Args:
            value: Term to add.

        Returns:
            This instance.
        """
        s, e = two_sum(self._high, value)
        self._high = s
        self._low += e
        self._simple += value
        return self

    def add_all(self, values: Iterable[float]) -> "CompensatedSum":
        """Add every term of ``values`` in iteration order."""
        high = self._high
        low = self._low
        simple = self._simple
        for value in values:
            x = float(value)
            s = high + x
            bb = s - high
            low += (high - (s - bb)) + (x - bb)
            high = s
            simple += x
        self._high = high
        self._low = low
        self._simple = simple
        return self

    def add_product(self, a: float, b: float) -> "CompensatedSum":
        """Add the exact product ``a * b``.

        The product error from :func:`two_product` is folded into the
        correction term so the product itself contributes no rounding.
        """
        p, e = two_product(a, b)
        s, e2 = two_sum(self._high, p)
        self._high = s
        self._low += e + e2
        self._simple += p
        return self

    def add_sum(self, other: "CompensatedSum") -> "CompensatedSum":
        """Add the total of another compensated sum (which is not modified)."""
        high, low, simple = other._high, other._low, other._simple
        s, e = two_sum(self._high, high)
        self._high = s
        self._low += e + low
        self._simple += simple
        return self

    def copy(self) -> "CompensatedSum":
        """Return an independent copy."""
        result = CompensatedSum.__new__(CompensatedSum)
        result._high = self._high
        result._low = self._low
        result._simple = self._simple
        return result

    def to_extended_precision(self) -> ExtendedPrecision:
        """Return the normalised double-double total."""
        return ExtendedPrecision(*fast_two_sum(self._high, self._low))

    def get_as_double(self) -> float:
        """Return the total rounded once to a double."""
        total = self._high + self._low
        if math.isfinite(total):
            return total
        return self._simple

    def __float__(self) -> float:
        return self.get_as_double()

    def __repr__(self) -> str:
        return f"CompensatedSum({self.get_as_double()!r})"
