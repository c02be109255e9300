"""High-precision Decimal helpers for spot prices and derivatives.

Swap quotes are exact integer fixed-point math (see fixed_point.py). Spot
prices and their derivatives only steer the optimizer, so they are computed
in Decimal with human-unit amounts, like the on-chain values they model but
without rounding direction concerns.
"""

from __future__ import annotations

import decimal
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from decimal import ROUND_DOWN, Decimal

from sor.errors import ArithmeticOverflow, DomainError

# 50 significant digits covers products of 18-decimal balances comfortably.
# Emax bounds magnitudes so runaway powers trap instead of producing inf.
PRICE_CONTEXT = decimal.Context(
    prec=50,
    rounding=decimal.ROUND_HALF_EVEN,
    Emax=120,
    Emin=-120,
    traps=[decimal.Overflow, decimal.InvalidOperation, decimal.DivisionByZero],
)

ZERO = Decimal(0)
ONE = Decimal(1)

# Relative step for finite-difference derivatives
_DERIVATIVE_STEP = Decimal("1e-9")
_MIN_DERIVATIVE_STEP = Decimal("1e-12")


@contextmanager
def price_math() -> Iterator[None]:
    """Run Decimal math in PRICE_CONTEXT, mapping traps to router errors."""
    try:
        with decimal.localcontext(PRICE_CONTEXT):
            yield
    except decimal.Overflow as err:
        raise ArithmeticOverflow(str(err)) from err
    except (decimal.InvalidOperation, decimal.DivisionByZero) as err:
        raise DomainError(f"Price undefined at this point: {err!r}") from err


def to_human(raw: int, decimals: int) -> Decimal:
    """Convert raw token units to a human-unit Decimal."""
    with decimal.localcontext(PRICE_CONTEXT):
        return Decimal(raw).scaleb(-decimals)


def from_human(amount: Decimal, decimals: int) -> int:
    """Convert a human-unit Decimal to raw token units, rounding down."""
    with decimal.localcontext(PRICE_CONTEXT):
        return int(amount.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


def numeric_derivative(
    fn: Callable[[Decimal], Decimal], x: Decimal, *, min_step: Decimal = _MIN_DERIVATIVE_STEP
) -> Decimal:
    """First derivative of fn at x by finite differences.

    Uses a central difference when x - h stays in the domain (x >= h),
    a forward difference at the boundary. Callers whose fn rounds to raw
    token units pass a min_step of a few hundred units so rounding noise
    does not swamp the difference.
    """
    with price_math():
        h = max(abs(x) * _DERIVATIVE_STEP, min_step)
        if x >= h:
            return (fn(x + h) - fn(x - h)) / (2 * h)
        return (fn(x + h) - fn(x)) / h


__all__ = [
    "PRICE_CONTEXT",
    "ZERO",
    "ONE",
    "price_math",
    "to_human",
    "from_human",
    "numeric_derivative",
]
