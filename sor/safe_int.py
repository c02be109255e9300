"""Checked integer wrapper for pool math.

SafeInt mirrors the uint256 arithmetic of the on-chain pool contracts:
- Division by zero raises DivisionByZero
- Subtraction underflow raises Underflow
- Addition or multiplication past 2^256-1 raises Uint256Overflow

Python integers never wrap, so without these checks an out-of-range
intermediate would silently produce a number the contracts could never
compute. All three errors are ArithmeticOverflow, so the router treats them
like any other out-of-range pool quote.

Usage pattern:
    from sor.safe_int import S

    def calculate(a: int, b: int, c: int) -> int:
        sa, sb, sc = S(a), S(b), S(c)
        result = (sa * sb) // sc  # Raises if sc == 0 or a * b overflows
        return result.value
"""

from __future__ import annotations

import functools

from sor.errors import ArithmeticOverflow

UINT256_MAX = 2**256 - 1


class SafeIntError(ArithmeticOverflow):
    """Base class for SafeInt arithmetic errors."""


class DivisionByZero(SafeIntError):
    """Division by zero."""


class Underflow(SafeIntError):
    """Subtraction would produce negative result."""


class Uint256Overflow(SafeIntError):
    """Value exceeds uint256 maximum."""


def _checked(value: int) -> int:
    if value > UINT256_MAX:
        raise Uint256Overflow(f"Value exceeds uint256 max: {value}")
    return value


@functools.total_ordering
class SafeInt:
    """Non-negative integer with uint256-checked arithmetic.

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            self._value = value._value
        elif isinstance(value, int):
            if value < 0:
                raise Underflow(f"SafeInt cannot hold negative value {value}")
            self._value = _checked(value)
        else:
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")

    @property
    def value(self) -> int:
        """The underlying integer value."""
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __hash__(self) -> int:
        return hash(self._value)

    # --- Arithmetic operations ---

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(_checked(self._value + _extract_value(other)))

    __radd__ = __add__

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        other_val = _extract_value(other)
        result = self._value - other_val
        if result < 0:
            raise Underflow(f"Underflow: {self._value} - {other_val} = {result}")
        return SafeInt(result)

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(_checked(self._value * _extract_value(other)))

    __rmul__ = __mul__

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Division by zero: {self._value} // 0")
        return SafeInt(self._value // other_val)

    def ceiling_div(self, other: SafeInt | int) -> SafeInt:
        """Division rounding up, matching Math.divUp in the pool contracts."""
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Ceiling division by zero: {self._value}")
        if self._value == 0:
            return SafeInt(0)
        return SafeInt((self._value - 1) // other_val + 1)

    # --- Comparison operations ---

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0


def _extract_value(x: SafeInt | int) -> int:
    """Extract integer value from SafeInt or int."""
    if isinstance(x, SafeInt):
        return x._value
    return x


# Convenience alias for concise code
S = SafeInt
