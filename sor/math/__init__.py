"""Mathematical utilities for the router.

- Bfp: 18-decimal fixed-point arithmetic (Balancer-style) for exact quotes
- decimal_utils: Decimal helpers for spot prices and derivatives
"""

from sor.math.decimal_utils import from_human, numeric_derivative, price_math, to_human
from sor.math.fixed_point import Bfp

__all__ = ["Bfp", "from_human", "numeric_derivative", "price_math", "to_human"]
