"""Fixed-width integer accumulators built from 64-bit words.

:class:`Int128` is a signed two's-complement 128-bit integer held as two
unsigned 64-bit words.  Addition propagates the carry explicitly and wraps
modulo 2^128 exactly like a hardware register, so a running sum of 64-bit
values stays exact far beyond the point where a 64-bit sum overflows.

:class:`UInt192` is an unsigned 192-bit accumulator of squares of 64-bit
values, used by the integer sum-of-squares and variance statistics.

Both types never raise on overflow while accumulating.  Narrowing
conversions (:meth:`Int128.to_long_exact` and friends) raise
``OverflowError`` when the stored value does not fit the target width.

Example:
    Accumulate past the 64-bit limit::

        from robust_moments.int128 import Int128

        total = Int128.of(2**63 - 1).add(2**63 - 1)
        total.to_int()  # 18446744073709551614
"""

import operator
from typing import Tuple, Union

from .extended_precision import ExtendedPrecision

MASK32 = 0xFFFF_FFFF
MASK64 = 0xFFFF_FFFF_FFFF_FFFF
_SIGN_BIT = 1 << 63
_WORD = 1 << 64

LONG_MIN = -(1 << 63)
LONG_MAX = (1 << 63) - 1
INT_MIN = -(1 << 31)
INT_MAX = (1 << 31) - 1

_TWO_POW_64 = 2.0**64
_TWO_POW_96 = 2.0**96


def _to_signed(word: int) -> int:
    """Interpret an unsigned 64-bit word as a signed value."""
    return word - _WORD if word & _SIGN_BIT else word


def check_long(x: int) -> int:
    """Validate that ``x`` is a signed 64-bit integer.

    Args:
        x: Value to check (any integer type, including numpy scalars).

    Returns:
        The value as a Python ``int``.

    Raises:
        TypeError: If ``x`` is not an integer type.
        ValueError: If ``x`` is outside ``[-2^63, 2^63)``.
    """
    x = operator.index(x)
    if not LONG_MIN <= x <= LONG_MAX:
        raise ValueError(f"Value is not a 64-bit integer: {x}")
    return x


def widening_multiply(x: int, y: int) -> Tuple[int, int]:
    """Multiply two unsigned 64-bit words into a 128-bit result.

    The product is assembled from four 32x32-bit partial products with the
    carry composed so no intermediate exceeds 64 bits.

    Args:
        x: Unsigned 64-bit word.
        y: Unsigned 64-bit word.

    Returns:
        Tuple ``(hi, lo)`` of unsigned 64-bit words.
    """
    a = x >> 32
    b = x & MASK32
    c = y >> 32
    d = y & MASK32
    bd = b * d
    bc = b * c
    ad = a * d
    ac = a * c
    carry = (bd >> 32) + (bc & MASK32) + (ad & MASK32)
    lo = ((carry & MASK32) << 32) | (bd & MASK32)
    hi = ac + (bc >> 32) + (ad >> 32) + (carry >> 32)
    return hi & MASK64, lo


class Int128:
    """Signed 128-bit integer accumulator.

    The value is ``signed(hi) * 2^64 + lo`` where both words are stored as
    unsigned 64-bit integers.  All arithmetic wraps modulo 2^128.
    """

    __slots__ = ("_hi", "_lo")

    def __init__(self, hi: int = 0, lo: int = 0):
        """Create an instance from a binary representation.

        Args:
            hi: Upper 64 bits (only the low 64 bits of the argument are used).
            lo: Lower 64 bits (only the low 64 bits of the argument are used).
        """
        self._hi = hi & MASK64
        self._lo = lo & MASK64

    @classmethod
    def create(cls) -> "Int128":
        """Create an instance with value zero."""
        return cls()

    @classmethod
    def of(cls, x: int) -> "Int128":
        """Create an instance from a signed 64-bit value.

        Raises:
            ValueError: If ``x`` is not a 64-bit integer.
        """
        x = check_long(x)
        return cls(MASK64 if x < 0 else 0, x)

    def add(self, x: Union[int, "Int128"]) -> "Int128":
        """Add a signed 64-bit value or another ``Int128`` in place.

        Overflow wraps modulo 2^128.  Adding an instance to itself doubles it.

        Args:
            x: Value to add.

        Returns:
            This instance.
        """
        if isinstance(x, Int128):
            # Read both words first; x may be self
            hi, lo = x._hi, x._lo
        else:
            x = check_long(x)
            hi = MASK64 if x < 0 else 0
            lo = x & MASK64
        s = self._lo + lo
        self._lo = s & MASK64
        self._hi = (self._hi + hi + (s >> 64)) & MASK64
        return self

    def square(self) -> int:
        """Return the exact square of the current value.

        The magnitude ``a * 2^64 + b`` is squared from the three 128-bit
        partial products ``b^2``, ``2ab`` and ``a^2`` with explicit carries.

        Returns:
            The unsigned square as a (up to 256-bit) ``int``.
        """
        magnitude = self.to_int()
        if magnitude < 0:
            magnitude = -magnitude
        a = magnitude >> 64
        b = magnitude & MASK64
        bb_hi, bb_lo = widening_multiply(b, b)
        ab_hi, ab_lo = widening_multiply(a, b)
        aa_hi, aa_lo = widening_multiply(a, a)
        # 2ab spans 129 bits
        ab2_lo = (ab_lo << 1) & MASK64
        ab2_hi = ((ab_hi << 1) | (ab_lo >> 63)) & MASK64
        ab2_top = ab_hi >> 63
        w0 = bb_lo
        s = bb_hi + ab2_lo
        w1 = s & MASK64
        s = (s >> 64) + ab2_hi + aa_lo
        w2 = s & MASK64
        w3 = (s >> 64) + ab2_top + aa_hi
        return (w3 << 192) | (w2 << 128) | (w1 << 64) | w0

    def lo64(self) -> int:
        """Return the lower 64 bits as a signed value."""
        return _to_signed(self._lo)

    def hi64(self) -> int:
        """Return the upper 64 bits as a signed value."""
        return _to_signed(self._hi)

    def to_int(self) -> int:
        """Return the exact value as an unbounded ``int``."""
        return (_to_signed(self._hi) << 64) | self._lo

    def to_double(self) -> float:
        """Return the nearest double (IEEE-754 round half even)."""
        return float(self.to_int())

    def to_extended_precision(self) -> ExtendedPrecision:
        """Return the value as a double-double.

        The low word is converted exactly and the high word is added in two
        32-bit halves, summing from low to high magnitude.
        """
        hi = _to_signed(self._hi)
        return (
            ExtendedPrecision.of_int(self._lo)
            .add((hi & MASK32) * _TWO_POW_64)
            .add((hi >> 32) * _TWO_POW_96)
        )

    def to_long_exact(self) -> int:
        """Return the value as a signed 64-bit integer.

        Raises:
            OverflowError: If the value does not fit in 64 bits.
        """
        # The high word must be the sign extension of the low word
        if self._hi != (MASK64 if self._lo & _SIGN_BIT else 0):
            raise OverflowError("long integer overflow")
        return _to_signed(self._lo)

    def to_int_exact(self) -> int:
        """Return the value as a signed 32-bit integer.

        Raises:
            OverflowError: If the value does not fit in 32 bits.
        """
        x = self.to_long_exact()
        if not INT_MIN <= x <= INT_MAX:
            raise OverflowError("integer overflow")
        return x

    def copy(self) -> "Int128":
        """Return an independent copy."""
        return Int128(self._hi, self._lo)

    def __int__(self) -> int:
        return self.to_int()

    def __float__(self) -> float:
        return self.to_double()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Int128):
            return self._hi == other._hi and self._lo == other._lo
        if isinstance(other, int):
            return self.to_int() == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.to_int())

    def __repr__(self) -> str:
        return f"Int128({self.to_int()})"


class UInt192:
    """Unsigned 192-bit accumulator of squared 64-bit values.

    The value is ``hi * 2^128 + mid * 2^64 + lo``.  The upper word wraps
    modulo 2^64; a sum of squares of 64-bit values overflows only after
    more than 2^64 additions.
    """

    __slots__ = ("_hi", "_mid", "_lo")

    def __init__(self, hi: int = 0, mid: int = 0, lo: int = 0):
        self._hi = hi & MASK64
        self._mid = mid & MASK64
        self._lo = lo & MASK64

    @classmethod
    def create(cls) -> "UInt192":
        """Create an instance with value zero."""
        return cls()

    def add_square(self, x: int) -> "UInt192":
        """Add ``x * x`` for a signed 64-bit ``x``.

        Returns:
            This instance.

        Raises:
            ValueError: If ``x`` is not a 64-bit integer.
        """
        x = check_long(x)
        magnitude = -x if x < 0 else x
        sq_hi, sq_lo = widening_multiply(magnitude, magnitude)
        s = self._lo + sq_lo
        self._lo = s & MASK64
        s = (s >> 64) + self._mid + sq_hi
        self._mid = s & MASK64
        self._hi = (self._hi + (s >> 64)) & MASK64
        return self

    def add(self, other: "UInt192") -> "UInt192":
        """Add another accumulator (which may be this instance).

        Returns:
            This instance.
        """
        hi, mid, lo = other._hi, other._mid, other._lo
        s = self._lo + lo
        self._lo = s & MASK64
        s = (s >> 64) + self._mid + mid
        self._mid = s & MASK64
        self._hi = (self._hi + hi + (s >> 64)) & MASK64
        return self

    def to_int(self) -> int:
        """Return the exact value as an unbounded ``int``."""
        return (self._hi << 128) | (self._mid << 64) | self._lo

    def to_double(self) -> float:
        """Return the nearest double."""
        return float(self.to_int())

    def to_long_exact(self) -> int:
        """Return the value as a signed 64-bit integer.

        Raises:
            OverflowError: If the value uses more than 63 bits.
        """
        if self._hi or self._mid or self._lo & _SIGN_BIT:
            raise OverflowError("long integer overflow")
        return self._lo

    def to_int_exact(self) -> int:
        """Return the value as a signed 32-bit integer.

        Raises:
            OverflowError: If the value uses more than 31 bits.
        """
        x = self.to_long_exact()
        if x > INT_MAX:
            raise OverflowError("integer overflow")
        return x

    def copy(self) -> "UInt192":
        """Return an independent copy."""
        return UInt192(self._hi, self._mid, self._lo)

    def __int__(self) -> int:
        return self.to_int()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, UInt192):
            return self.to_int() == other.to_int()
        if isinstance(other, int):
            return self.to_int() == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.to_int())

    def __repr__(self) -> str:
        return f"UInt192({self.to_int()})"
