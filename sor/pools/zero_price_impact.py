"""Pool tokens for a join at zero price impact.

Each helper values `amounts` at the pool's current marginal join price,
i.e. the pool tokens the join would mint if it caused no slippage.
Comparing this with the actual join output gives the join's price impact.
All amounts are raw native units; the result is raw (18-decimal) pool
tokens, rounded down.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from sor.math.decimal_utils import ONE, ZERO, from_human, price_math, to_human
from sor.math.fixed_point import AMP_PRECISION

from .scaling import apply_rate, scale_up
from .stable import BPT_DECIMALS, invariant_partials
from .stable_math import calculate_invariant


def _check_lengths(*sequences: Sequence) -> None:
    if len({len(s) for s in sequences}) != 1:
        raise ValueError("balances, decimals and amounts must have the same length")


def weighted_bpt_for_tokens_zero_price_impact(
    balances: Sequence[int],
    decimals: Sequence[int],
    normalized_weights: Sequence[Decimal],
    amounts: Sequence[int],
    bpt_total_supply: int,
) -> int:
    """sum_i amount_i * supply * w_i / balance_i."""
    _check_lengths(balances, decimals, normalized_weights, amounts)
    with price_math():
        supply = to_human(bpt_total_supply, BPT_DECIMALS)
        bpt_out = ZERO
        for balance, dec, weight, amount in zip(balances, decimals, normalized_weights, amounts):
            if amount == 0:
                continue
            price = supply * weight / to_human(balance, dec)
            bpt_out += to_human(amount, dec) * price
        return from_human(bpt_out, BPT_DECIMALS)


def _stable_bpt_for_tokens(
    balances: Sequence[int],
    decimals: Sequence[int],
    amounts: Sequence[int],
    bpt_total_supply: int,
    amp: Decimal,
    rates: Sequence[Decimal],
) -> int:
    scaled = [
        apply_rate(scale_up(balance, dec), rate)
        for balance, dec, rate in zip(balances, decimals, rates)
    ]
    invariant = calculate_invariant(int(amp * AMP_PRECISION), scaled).to_decimal()
    with price_math():
        partials, slope = invariant_partials(amp, [b.to_decimal() for b in scaled], invariant)
        supply = to_human(bpt_total_supply, BPT_DECIMALS)
        bpt_out = ZERO
        for i, (amount, dec, rate) in enumerate(zip(amounts, decimals, rates)):
            if amount == 0:
                continue
            bpt_per_token = supply * partials[i] / slope / invariant
            bpt_out += to_human(amount, dec) * rate * bpt_per_token
        return from_human(bpt_out, BPT_DECIMALS)


def stable_bpt_for_tokens_zero_price_impact(
    balances: Sequence[int],
    decimals: Sequence[int],
    amounts: Sequence[int],
    bpt_total_supply: int,
    amp: Decimal,
) -> int:
    _check_lengths(balances, decimals, amounts)
    rates = [ONE] * len(balances)
    return _stable_bpt_for_tokens(balances, decimals, amounts, bpt_total_supply, amp, rates)


def phantom_stable_bpt_for_tokens_zero_price_impact(
    balances: Sequence[int],
    decimals: Sequence[int],
    amounts: Sequence[int],
    bpt_total_supply: int,
    amp: Decimal,
    price_rates: Sequence[Decimal],
) -> int:
    """As for stable pools, with rate-scaled balances and amounts.

    balances must exclude the pool token and bpt_total_supply is the
    virtual (circulating) supply.
    """
    _check_lengths(balances, decimals, amounts, price_rates)
    return _stable_bpt_for_tokens(
        balances, decimals, amounts, bpt_total_supply, amp, price_rates
    )
