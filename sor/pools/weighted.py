"""Weighted pool pricing (Weighted, Investment, LiquidityBootstrapping).

Quotes run the exact Bfp math of weighted_math.py. Spot prices and their
derivatives are closed forms of the same curve, in human units with the
fee applied, expressed as token_in per token_out. With g = 1 - fee,
r = w_in / w_out and s = w_out / w_in:

    exact in:   SP(a) = (B_i + g a) / (g r B_o) * ((B_i + g a) / B_i) ^ r
    exact out:  SP(a) = s B_i / (g B_o) * (B_o / (B_o - a)) ^ (s + 1)
"""

from __future__ import annotations

from decimal import Decimal

from sor.math.decimal_utils import ONE, ZERO, price_math, to_human
from sor.math.fixed_point import Bfp
from sor.models.swap import SwapTypes

from .errors import ZeroBalanceError
from .scaling import (
    add_swap_fee_amount,
    scale_down_down,
    scale_down_up,
    scale_up,
    subtract_swap_fee_amount,
)
from .types import WeightedPoolPairData
from .weighted_math import calc_in_given_out, calc_out_given_in


def _curve(pair: WeightedPoolPairData) -> tuple[Bfp, Bfp, Bfp, Bfp]:
    return (
        scale_up(pair.balance_in, pair.decimals_in),
        Bfp.from_decimal(pair.weight_in),
        scale_up(pair.balance_out, pair.decimals_out),
        Bfp.from_decimal(pair.weight_out),
    )


def exact_token_in_for_token_out(pair: WeightedPoolPairData, amount: int) -> int:
    """Raw amount of token_out received for exactly `amount` raw token_in."""
    if amount == 0:
        return 0
    balance_in, weight_in, balance_out, weight_out = _curve(pair)
    amount_in = subtract_swap_fee_amount(scale_up(amount, pair.decimals_in), pair.swap_fee)
    amount_out = calc_out_given_in(balance_in, weight_in, balance_out, weight_out, amount_in)
    return scale_down_down(amount_out, pair.decimals_out)


def token_in_for_exact_token_out(pair: WeightedPoolPairData, amount: int) -> int:
    """Raw amount of token_in required to receive exactly `amount` raw token_out."""
    if amount == 0:
        return 0
    balance_in, weight_in, balance_out, weight_out = _curve(pair)
    amount_in = calc_in_given_out(
        balance_in, weight_in, balance_out, weight_out, scale_up(amount, pair.decimals_out)
    )
    return scale_down_up(add_swap_fee_amount(amount_in, pair.swap_fee), pair.decimals_in)


def _human(pair: WeightedPoolPairData) -> tuple[Decimal, Decimal, Decimal]:
    gamma = ONE - pair.swap_fee
    balance_in = to_human(pair.balance_in, pair.decimals_in)
    return balance_in, to_human(pair.balance_out, pair.decimals_out), gamma


def spot_price_after_swap_exact_token_in_for_token_out(
    pair: WeightedPoolPairData, amount: Decimal
) -> Decimal:
    with price_math():
        balance_in, balance_out, gamma = _human(pair)
        r = pair.weight_in / pair.weight_out
        grown_in = balance_in + gamma * amount
        return grown_in / (gamma * r * balance_out) * (grown_in / balance_in) ** r


def spot_price_after_swap_token_in_for_exact_token_out(
    pair: WeightedPoolPairData, amount: Decimal
) -> Decimal:
    with price_math():
        balance_in, balance_out, gamma = _human(pair)
        if amount >= balance_out:
            raise ZeroBalanceError("amount_out must be less than balance_out")
        s = pair.weight_out / pair.weight_in
        ratio = balance_out / (balance_out - amount)
        return s * balance_in / (gamma * balance_out) * ratio ** (s + 1)


def derivative_spot_price_after_swap_exact_token_in_for_token_out(
    pair: WeightedPoolPairData, amount: Decimal
) -> Decimal:
    with price_math():
        balance_in, balance_out, gamma = _human(pair)
        r = pair.weight_in / pair.weight_out
        grown_ratio = (balance_in + gamma * amount) / balance_in
        return (pair.weight_in + pair.weight_out) / (balance_out * pair.weight_in) * grown_ratio**r


def derivative_spot_price_after_swap_token_in_for_exact_token_out(
    pair: WeightedPoolPairData, amount: Decimal
) -> Decimal:
    with price_math():
        balance_in, balance_out, gamma = _human(pair)
        if amount >= balance_out:
            raise ZeroBalanceError("amount_out must be less than balance_out")
        s = pair.weight_out / pair.weight_in
        ratio = balance_out / (balance_out - amount)
        return s * (s + 1) * balance_in / (gamma * balance_out * balance_out) * ratio ** (s + 2)


def get_limit_amount_swap(pair: WeightedPoolPairData, swap_type: SwapTypes) -> int:
    """30% of balance_in (exact in) or balance_out (exact out), raw units."""
    if swap_type == SwapTypes.SWAP_EXACT_IN:
        return pair.balance_in * 3 // 10
    return pair.balance_out * 3 // 10


def get_normalized_liquidity(pair: WeightedPoolPairData) -> Decimal:
    with price_math():
        total_weight = pair.weight_in + pair.weight_out
        if total_weight == ZERO:
            return ZERO
        return to_human(pair.balance_out, pair.decimals_out) * pair.weight_in / total_weight
