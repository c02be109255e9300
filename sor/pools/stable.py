"""Stable-family pool pricing (Stable, MetaStable, StablePhantom).

Balances are scaled to 18 decimals and multiplied by their price rates
before entering the invariant, so MetaStable pools price rate-bearing
tokens at parity. Phantom pools also trade their own pool token; those
legs run the single-token join and exit math.

Spot prices come from the invariant's partial derivatives at the post-trade
balances. With F(x, D) = 0 the StableSwap invariant and D_P = D^(n+1) / (n^n prod x):

    dF/dx_i = A n + D_P / x_i
    dD/dx_i = (A n + D_P / x_i) / (A n - 1 + (n + 1) D_P / D)

Derivatives of the spot price are taken numerically.
"""

from __future__ import annotations

from decimal import Decimal

from sor.constants import STABLE_LIMIT_RATIO
from sor.math.decimal_utils import ONE, ZERO, from_human, numeric_derivative, price_math, to_human
from sor.math.fixed_point import AMP_PRECISION, Bfp
from sor.models.swap import SwapTypes

from .scaling import (
    add_swap_fee_amount,
    apply_rate,
    remove_rate,
    scale_down_down,
    scale_down_up,
    scale_up,
    subtract_swap_fee_amount,
)
from .stable_math import (
    bpt_in_given_exact_token_out,
    bpt_out_given_exact_token_in,
    calculate_invariant,
    stable_calc_in_given_out,
    stable_calc_out_given_in,
    token_in_given_exact_bpt_out,
    token_out_given_exact_bpt_in,
)
from .types import StablePoolPairData

BPT_DECIMALS = 18


def _amp(pair: StablePoolPairData) -> int:
    return int(pair.amp * AMP_PRECISION)


def _scaled_balances(pair: StablePoolPairData) -> list[Bfp]:
    return [
        apply_rate(scale_up(balance, decimals), rate)
        for balance, decimals, rate in zip(pair.balances, pair.decimals, pair.rates)
    ]


def exact_token_in_for_token_out(pair: StablePoolPairData, amount: int) -> int:
    """Raw token_out received for exactly `amount` raw token_in."""
    if amount == 0:
        return 0
    balances = _scaled_balances(pair)
    fee = Bfp.from_decimal(pair.swap_fee)
    supply = Bfp.from_wei(pair.virtual_supply)

    if pair.index_in is None:
        amount_out = token_out_given_exact_bpt_in(
            _amp(pair), balances, pair.index_out, scale_up(amount, BPT_DECIMALS), supply, fee
        )
        rate_out = pair.rates[pair.index_out]
        return scale_down_down(remove_rate(amount_out, rate_out), pair.decimals_out)

    amount_in = apply_rate(scale_up(amount, pair.decimals_in), pair.rates[pair.index_in])
    if pair.index_out is None:
        bpt_out = bpt_out_given_exact_token_in(
            _amp(pair), balances, pair.index_in, amount_in, supply, fee
        )
        return scale_down_down(bpt_out, BPT_DECIMALS)

    amount_in = subtract_swap_fee_amount(amount_in, pair.swap_fee)
    amount_out = stable_calc_out_given_in(
        _amp(pair), balances, pair.index_in, pair.index_out, amount_in
    )
    return scale_down_down(remove_rate(amount_out, pair.rates[pair.index_out]), pair.decimals_out)


def token_in_for_exact_token_out(pair: StablePoolPairData, amount: int) -> int:
    """Raw token_in required to receive exactly `amount` raw token_out."""
    if amount == 0:
        return 0
    balances = _scaled_balances(pair)
    fee = Bfp.from_decimal(pair.swap_fee)
    supply = Bfp.from_wei(pair.virtual_supply)

    if pair.index_out is None:
        amount_in = token_in_given_exact_bpt_out(
            _amp(pair), balances, pair.index_in, scale_up(amount, BPT_DECIMALS), supply, fee
        )
        rate_in = pair.rates[pair.index_in]
        return scale_down_up(remove_rate(amount_in, rate_in, round_up=True), pair.decimals_in)

    amount_out = apply_rate(
        scale_up(amount, pair.decimals_out), pair.rates[pair.index_out], round_up=True
    )
    if pair.index_in is None:
        bpt_in = bpt_in_given_exact_token_out(
            _amp(pair), balances, pair.index_out, amount_out, supply, fee
        )
        return scale_down_up(bpt_in, BPT_DECIMALS)

    amount_in = stable_calc_in_given_out(
        _amp(pair), balances, pair.index_in, pair.index_out, amount_out
    )
    amount_in = remove_rate(amount_in, pair.rates[pair.index_in], round_up=True)
    return scale_down_up(add_swap_fee_amount(amount_in, pair.swap_fee), pair.decimals_in)


def invariant_partials(
    amp: Decimal, balances: list[Decimal], invariant: Decimal
) -> tuple[list[Decimal], Decimal]:
    """Partials of the invariant at scaled human balances.

    Returns dF/dx_i for every balance, and -dF/dD, so that
    dD/dx_i = partials[i] / slope. Call inside price_math().
    """
    n = len(balances)
    amp_n = amp * n
    product = ONE
    for x in balances:
        product *= x
    d_p = invariant ** (n + 1) / (Decimal(n) ** n * product)
    partials = [amp_n + d_p / x for x in balances]
    slope = amp_n - ONE + (n + 1) * d_p / invariant
    return partials, slope


def _spot_price(pair: StablePoolPairData) -> Decimal:
    """Marginal token_in per token_out at the pair's current balances."""
    balances = _scaled_balances(pair)
    invariant = calculate_invariant(_amp(pair), balances).to_decimal()
    with price_math():
        xs = [b.to_decimal() for b in balances]
        partials, slope = invariant_partials(pair.amp, xs, invariant)

        if pair.index_in is not None and pair.index_out is not None:
            rate_ratio = pair.rates[pair.index_out] / pair.rates[pair.index_in]
            curve_price = partials[pair.index_out] / partials[pair.index_in] * rate_ratio
            return curve_price / (ONE - pair.swap_fee)

        i = pair.index_in if pair.index_out is None else pair.index_out
        supply = to_human(pair.virtual_supply, BPT_DECIMALS)
        bpt_per_token = supply * partials[i] / slope / invariant * pair.rates[i]
        # Only the non-proportional share of a single-token join or exit pays the fee
        fee_factor = ONE - pair.swap_fee * (ONE - xs[i] / sum(xs))
        if pair.index_out is None:
            return ONE / (bpt_per_token * fee_factor)
        return bpt_per_token / fee_factor


def _min_step(pair: StablePoolPairData) -> Decimal:
    return Decimal(1000).scaleb(-min(pair.decimals_in, pair.decimals_out))


def spot_price_after_swap_exact_token_in_for_token_out(
    pair: StablePoolPairData, amount: Decimal
) -> Decimal:
    amount_in = from_human(amount, pair.decimals_in)
    amount_out = exact_token_in_for_token_out(pair, amount_in)
    return _spot_price(pair.after_swap(amount_in, amount_out))


def spot_price_after_swap_token_in_for_exact_token_out(
    pair: StablePoolPairData, amount: Decimal
) -> Decimal:
    amount_out = from_human(amount, pair.decimals_out)
    amount_in = token_in_for_exact_token_out(pair, amount_out)
    return _spot_price(pair.after_swap(amount_in, amount_out))


def derivative_spot_price_after_swap_exact_token_in_for_token_out(
    pair: StablePoolPairData, amount: Decimal
) -> Decimal:
    return numeric_derivative(
        lambda x: spot_price_after_swap_exact_token_in_for_token_out(pair, x),
        amount,
        min_step=_min_step(pair),
    )


def derivative_spot_price_after_swap_token_in_for_exact_token_out(
    pair: StablePoolPairData, amount: Decimal
) -> Decimal:
    return numeric_derivative(
        lambda x: spot_price_after_swap_token_in_for_exact_token_out(pair, x),
        amount,
        min_step=_min_step(pair),
    )


def get_limit_amount_swap(pair: StablePoolPairData, swap_type: SwapTypes) -> int:
    """99% of balance_out, expressed in token_in at the current price for exact in."""
    if swap_type == SwapTypes.SWAP_EXACT_OUT:
        return int(pair.balance_out * STABLE_LIMIT_RATIO)
    with price_math():
        max_out = to_human(pair.balance_out, pair.decimals_out) * STABLE_LIMIT_RATIO
        return from_human(max_out * _spot_price(pair), pair.decimals_in)


def get_normalized_liquidity(pair: StablePoolPairData) -> Decimal:
    with price_math():
        if pair.amp <= ZERO:
            return ZERO
        return to_human(pair.balance_out, pair.decimals_out) * pair.amp
