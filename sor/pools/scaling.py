"""Scaling and fee helpers.

Pool math runs on 18-decimal fixed-point values. These helpers move token
amounts between native decimals and Bfp, apply price rates, and apply swap
fees with the same rounding as the pool contracts.
"""

from decimal import Decimal

from sor.math.fixed_point import Bfp

from .errors import InvalidFeeError


def scaling_factor(decimals: int) -> int:
    """Factor that lifts a native amount to 18 decimals (10^12 for USDC)."""
    return 10 ** (18 - decimals)


def scale_up(amount: int, decimals: int) -> Bfp:
    """Scale a native token amount to 18 decimals."""
    return Bfp.from_wei(amount * scaling_factor(decimals))


def scale_down_down(bfp: Bfp, decimals: int) -> int:
    """Scale an 18-decimal result back to native decimals, rounding down."""
    return bfp.value // scaling_factor(decimals)


def scale_down_up(bfp: Bfp, decimals: int) -> int:
    """Scale an 18-decimal result back to native decimals, rounding up."""
    if bfp.value == 0:
        return 0
    return (bfp.value - 1) // scaling_factor(decimals) + 1


def apply_rate(amount: Bfp, rate: Decimal, *, round_up: bool = False) -> Bfp:
    """Multiply by a token price rate (e.g. wstETH per stETH)."""
    rate_bfp = Bfp.from_decimal(rate)
    return amount.mul_up(rate_bfp) if round_up else amount.mul_down(rate_bfp)


def remove_rate(amount: Bfp, rate: Decimal, *, round_up: bool = False) -> Bfp:
    """Divide by a token price rate."""
    rate_bfp = Bfp.from_decimal(rate)
    return amount.div_up(rate_bfp) if round_up else amount.div_down(rate_bfp)


def _check_fee(swap_fee: Decimal) -> Bfp:
    if swap_fee < 0 or swap_fee >= 1:
        raise InvalidFeeError(f"Swap fee must be in range [0, 1), got {swap_fee}")
    return Bfp.from_decimal(swap_fee)


def subtract_swap_fee_amount(amount: Bfp, swap_fee: Decimal) -> Bfp:
    """Deduct the swap fee from an exact input (fee rounded up)."""
    fee_amount = amount.mul_up(_check_fee(swap_fee))
    return amount.sub(fee_amount)


def add_swap_fee_amount(amount: Bfp, swap_fee: Decimal) -> Bfp:
    """Gross up a computed input so that amount = result * (1 - fee)."""
    return amount.div_up(_check_fee(swap_fee).complement())
