"""Pool math error classes.

These map to Balancer V2 protocol error codes. All of them mean the
requested amount is outside the pool curve's valid domain.
"""

from sor.errors import DomainError


class BalancerError(DomainError):
    """Base error for pool math."""

    pass


class MaxInRatioError(BalancerError):
    """BAL#304: input amount exceeds 30% of balance_in."""

    pass


class MaxOutRatioError(BalancerError):
    """BAL#305: output amount exceeds 30% of balance_out."""

    pass


class InvalidFeeError(BalancerError):
    """Swap fee must be in range [0, 1)."""

    pass


class ZeroWeightError(BalancerError):
    """Token weight must be positive."""

    pass


class ZeroBalanceError(BalancerError):
    """Token balance must be positive for swaps."""

    pass


class StableInvariantDidNotConverge(BalancerError):
    """Newton-Raphson iteration for stable invariant D did not converge."""

    pass


class StableGetBalanceDidNotConverge(BalancerError):
    """Newton-Raphson iteration for stable balance Y did not converge."""

    pass


class ExpiredPoolError(BalancerError):
    """Fixed-term pool is at or past its expiry."""

    pass
