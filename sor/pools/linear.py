"""Linear pool pricing.

Only trades against the pool token are priced: main <-> pool token and
wrapped <-> pool token. The pool token is worth invariant / supply, where
the invariant is the nominal main balance plus the rate-scaled wrapped
balance, so the spot price is piecewise constant: it only moves when the
main balance crosses a target and the nominal slope changes between
1 + fee, 1 and 1 - fee.
"""

from __future__ import annotations

from decimal import Decimal

from sor.constants import STABLE_LIMIT_RATIO
from sor.math.decimal_utils import ONE, ZERO, from_human, price_math, to_human
from sor.math.fixed_point import Bfp
from sor.models.swap import SwapTypes

from . import linear_math
from .linear_math import LinearParams
from .scaling import apply_rate, remove_rate, scale_down_down, scale_down_up, scale_up
from .types import LinearPoolPairData

BPT_DECIMALS = 18


def _state(pair: LinearPoolPairData) -> tuple[Bfp, Bfp, Bfp, LinearParams]:
    main = apply_rate(scale_up(pair.main_balance, pair.main_decimals), pair.main_rate)
    wrapped = apply_rate(scale_up(pair.wrapped_balance, pair.wrapped_decimals), pair.wrapped_rate)
    params = LinearParams(
        fee=Bfp.from_decimal(pair.swap_fee),
        lower_target=Bfp.from_decimal(pair.lower_target),
        upper_target=Bfp.from_decimal(pair.upper_target),
    )
    return main, wrapped, Bfp.from_wei(pair.virtual_supply), params


def _token_rate(pair: LinearPoolPairData) -> Decimal:
    return pair.main_rate if pair.via_main else pair.wrapped_rate


def exact_token_in_for_token_out(pair: LinearPoolPairData, amount: int) -> int:
    if amount == 0:
        return 0
    main, wrapped, supply, params = _state(pair)
    rate = _token_rate(pair)

    if pair.bpt_out:
        token_in = apply_rate(scale_up(amount, pair.decimals_in), rate)
        calc = (
            linear_math.calc_bpt_out_per_main_in
            if pair.via_main
            else linear_math.calc_bpt_out_per_wrapped_in
        )
        return scale_down_down(calc(token_in, main, wrapped, supply, params), BPT_DECIMALS)

    calc = (
        linear_math.calc_main_out_per_bpt_in
        if pair.via_main
        else linear_math.calc_wrapped_out_per_bpt_in
    )
    token_out = calc(scale_up(amount, BPT_DECIMALS), main, wrapped, supply, params)
    return scale_down_down(remove_rate(token_out, rate), pair.decimals_out)


def token_in_for_exact_token_out(pair: LinearPoolPairData, amount: int) -> int:
    if amount == 0:
        return 0
    main, wrapped, supply, params = _state(pair)
    rate = _token_rate(pair)

    if pair.bpt_out:
        calc = (
            linear_math.calc_main_in_per_bpt_out
            if pair.via_main
            else linear_math.calc_wrapped_in_per_bpt_out
        )
        token_in = calc(scale_up(amount, BPT_DECIMALS), main, wrapped, supply, params)
        return scale_down_up(remove_rate(token_in, rate, round_up=True), pair.decimals_in)

    token_out = apply_rate(scale_up(amount, pair.decimals_out), rate, round_up=True)
    calc = (
        linear_math.calc_bpt_in_per_main_out
        if pair.via_main
        else linear_math.calc_bpt_in_per_wrapped_out
    )
    return scale_down_up(calc(token_out, main, wrapped, supply, params), BPT_DECIMALS)


def _nominal_slope(pair: LinearPoolPairData, main: Decimal) -> Decimal:
    """d(nominal)/d(real) for the main balance, one-sided in the trade direction."""
    if not pair.via_main:
        return ONE
    adding_main = pair.bpt_out
    below = main < pair.lower_target if adding_main else main <= pair.lower_target
    above = main >= pair.upper_target if adding_main else main > pair.upper_target
    if below:
        return ONE + pair.swap_fee
    if above:
        return ONE - pair.swap_fee
    return ONE


def _nominal(pair: LinearPoolPairData, main: Decimal) -> Decimal:
    if main < pair.lower_target:
        return main - (pair.lower_target - main) * pair.swap_fee
    if main <= pair.upper_target:
        return main
    return main - (main - pair.upper_target) * pair.swap_fee


def _spot_price(pair: LinearPoolPairData) -> Decimal:
    with price_math():
        main = to_human(pair.main_balance, pair.main_decimals) * pair.main_rate
        wrapped = to_human(pair.wrapped_balance, pair.wrapped_decimals) * pair.wrapped_rate
        supply = to_human(pair.virtual_supply, BPT_DECIMALS)
        # An empty pool mints pool tokens one for one with nominal value
        bpt_value = (_nominal(pair, main) + wrapped) / supply if supply > ZERO else ONE
        token_value = _nominal_slope(pair, main) * _token_rate(pair)
        if pair.bpt_out:
            return bpt_value / token_value
        return token_value / bpt_value


def spot_price_after_swap_exact_token_in_for_token_out(
    pair: LinearPoolPairData, amount: Decimal
) -> Decimal:
    amount_in = from_human(amount, pair.decimals_in)
    amount_out = exact_token_in_for_token_out(pair, amount_in)
    return _spot_price(pair.after_swap(amount_in, amount_out))


def spot_price_after_swap_token_in_for_exact_token_out(
    pair: LinearPoolPairData, amount: Decimal
) -> Decimal:
    amount_out = from_human(amount, pair.decimals_out)
    amount_in = token_in_for_exact_token_out(pair, amount_out)
    return _spot_price(pair.after_swap(amount_in, amount_out))


def derivative_spot_price_after_swap_exact_token_in_for_token_out(
    pair: LinearPoolPairData, amount: Decimal
) -> Decimal:
    return ZERO


def derivative_spot_price_after_swap_token_in_for_exact_token_out(
    pair: LinearPoolPairData, amount: Decimal
) -> Decimal:
    return ZERO


def get_limit_amount_swap(pair: LinearPoolPairData, swap_type: SwapTypes) -> int:
    if swap_type == SwapTypes.SWAP_EXACT_OUT:
        return int(pair.balance_out * STABLE_LIMIT_RATIO)
    with price_math():
        max_out = to_human(pair.balance_out, pair.decimals_out) * STABLE_LIMIT_RATIO
        return from_human(max_out * _spot_price(pair), pair.decimals_in)


def get_normalized_liquidity(pair: LinearPoolPairData) -> Decimal:
    return to_human(pair.balance_out, pair.decimals_out)
