"""Fixed-term (Element) pool pricing.

With alpha = 1 - t the curve is x^alpha + y^alpha = k, and its marginal
price is (x / y)^t, token_in per token_out. The fee is a share of the
implied yield, so it scales the curve price differently depending on
whether the trader buys or sells principal.
"""

from __future__ import annotations

from decimal import Decimal

from sor.constants import STABLE_LIMIT_RATIO
from sor.math.decimal_utils import ONE, from_human, numeric_derivative, price_math, to_human
from sor.math.fixed_point import Bfp
from sor.models.swap import SwapTypes

from . import element_math
from .errors import ZeroBalanceError
from .scaling import scale_down_down, scale_down_up, scale_up
from .types import ElementPoolPairData


def _reserves(pair: ElementPoolPairData) -> tuple[Bfp, Bfp]:
    shares = Bfp.from_decimal(pair.total_shares)
    reserve_in = scale_up(pair.balance_in, pair.decimals_in)
    reserve_out = scale_up(pair.balance_out, pair.decimals_out)
    if pair.principal_in:
        return reserve_in.add(shares), reserve_out
    return reserve_in, reserve_out.add(shares)


def exact_token_in_for_token_out(pair: ElementPoolPairData, amount: int) -> int:
    if amount == 0:
        return 0
    reserve_in, reserve_out = _reserves(pair)
    amount_out = element_math.calc_out_given_in(
        reserve_in,
        reserve_out,
        scale_up(amount, pair.decimals_in),
        Bfp.from_decimal(pair.time_to_expiry),
        Bfp.from_decimal(pair.swap_fee),
        principal_in=pair.principal_in,
    )
    return scale_down_down(amount_out, pair.decimals_out)


def token_in_for_exact_token_out(pair: ElementPoolPairData, amount: int) -> int:
    if amount == 0:
        return 0
    reserve_in, reserve_out = _reserves(pair)
    amount_in = element_math.calc_in_given_out(
        reserve_in,
        reserve_out,
        scale_up(amount, pair.decimals_out),
        Bfp.from_decimal(pair.time_to_expiry),
        Bfp.from_decimal(pair.swap_fee),
        principal_in=pair.principal_in,
    )
    return scale_down_up(amount_in, pair.decimals_in)


def _human_reserves(pair: ElementPoolPairData) -> tuple[Decimal, Decimal]:
    reserve_in = to_human(pair.balance_in, pair.decimals_in)
    reserve_out = to_human(pair.balance_out, pair.decimals_out)
    if pair.principal_in:
        return reserve_in + pair.total_shares, reserve_out
    return reserve_in, reserve_out + pair.total_shares


def spot_price_after_swap_exact_token_in_for_token_out(
    pair: ElementPoolPairData, amount: Decimal
) -> Decimal:
    with price_math():
        t = pair.time_to_expiry
        alpha = ONE - t
        x, y = _human_reserves(pair)
        invariant = x**alpha + y**alpha
        new_x = x + amount
        remaining = invariant - new_x**alpha
        if remaining <= 0:
            raise ZeroBalanceError("Trade exceeds the curve's reserves")
        new_y = remaining ** (ONE / alpha)
        curve_price = (new_x / new_y) ** t

        fee = pair.swap_fee
        if pair.principal_in:
            return ONE / ((ONE + fee) / curve_price - fee)
        return ONE / ((ONE - fee) / curve_price + fee)


def spot_price_after_swap_token_in_for_exact_token_out(
    pair: ElementPoolPairData, amount: Decimal
) -> Decimal:
    with price_math():
        t = pair.time_to_expiry
        alpha = ONE - t
        x, y = _human_reserves(pair)
        if amount >= y:
            raise ZeroBalanceError("amount_out must be less than the output reserve")
        invariant = x**alpha + y**alpha
        new_y = y - amount
        new_x = (invariant - new_y**alpha) ** (ONE / alpha)
        curve_price = (new_x / new_y) ** t

        fee = pair.swap_fee
        if pair.principal_in:
            return (ONE + fee) * curve_price - fee
        return (ONE - fee) * curve_price + fee


def derivative_spot_price_after_swap_exact_token_in_for_token_out(
    pair: ElementPoolPairData, amount: Decimal
) -> Decimal:
    return numeric_derivative(
        lambda x: spot_price_after_swap_exact_token_in_for_token_out(pair, x), amount
    )


def derivative_spot_price_after_swap_token_in_for_exact_token_out(
    pair: ElementPoolPairData, amount: Decimal
) -> Decimal:
    return numeric_derivative(
        lambda x: spot_price_after_swap_token_in_for_exact_token_out(pair, x), amount
    )


def get_limit_amount_swap(pair: ElementPoolPairData, swap_type: SwapTypes) -> int:
    if swap_type == SwapTypes.SWAP_EXACT_OUT:
        return int(pair.balance_out * STABLE_LIMIT_RATIO)
    with price_math():
        max_out = to_human(pair.balance_out, pair.decimals_out) * STABLE_LIMIT_RATIO
        spot_price = spot_price_after_swap_exact_token_in_for_token_out(pair, Decimal(0))
        return from_human(max_out * spot_price, pair.decimals_in)


def get_normalized_liquidity(pair: ElementPoolPairData) -> Decimal:
    return to_human(pair.balance_out, pair.decimals_out)
