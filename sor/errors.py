"""Router error classes.

Projection and pricing errors are recoverable: the router logs them and
drops the offending pool or path. Only NoRoute, InsufficientLiquidity and
InvalidConfiguration reach the caller.
"""


class SorError(Exception):
    """Base error for routing operations."""

    pass


class TokenNotInPool(SorError):
    """Token is not one of the pool's constituents."""

    pass


class PoolIncompatible(SorError):
    """Pool type cannot price the requested token pair."""

    pass


class DomainError(SorError):
    """Swap amount is outside the valid domain of the pool curve."""

    pass


class ArithmeticOverflow(SorError, ArithmeticError):
    """Intermediate result exceeds the representable fixed-point range."""

    pass


class NoRoute(SorError):
    """No path connects token_in to token_out under the given filter."""

    pass


class InsufficientLiquidity(SorError):
    """Candidate paths cannot absorb the requested amount."""

    pass


class InvalidConfiguration(SorError, ValueError):
    """Swap options or trade parameters are malformed."""

    pass


__all__ = [
    "SorError",
    "TokenNotInPool",
    "PoolIncompatible",
    "DomainError",
    "ArithmeticOverflow",
    "NoRoute",
    "InsufficientLiquidity",
    "InvalidConfiguration",
]
