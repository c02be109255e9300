"""Path construction and path-level pricing.

A path's quote chains its hops: exact in runs forward from token_in, exact
out runs backward from token_out. Spot prices compose by the chain rule.
For a two-hop path with hop prices SP1, SP2 (token_in per token_out of each
hop):

    exact in,  amount a:   SP = SP1(a) * SP2(b),  b = out1(a)
                           dSP = dSP1 * SP2 + dSP2
    exact out, amount c:   SP = SP2(c) * SP1(b),  b = in2(c)
                           dSP = dSP2 * SP1 + SP2^2 * dSP1
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from sor.errors import InvalidConfiguration
from sor.math.decimal_utils import ZERO, from_human, price_math, to_human
from sor.models.swap import SwapTypes
from sor.pools import registry
from sor.pools.types import PoolPairData, SwapPairType

from .types import Path


def amount_decimals(path: Path, swap_type: SwapTypes) -> int:
    """Decimals of the token whose amount the optimizer allocates."""
    if swap_type == SwapTypes.SWAP_EXACT_IN:
        return path.pools[0].decimals_in
    return path.pools[-1].decimals_out


def quote_path(path: Path, swap_type: SwapTypes, amount: int) -> int:
    """Raw output for `amount` in (exact in) or raw input for `amount` out (exact out)."""
    if swap_type == SwapTypes.SWAP_EXACT_IN:
        for pair in path.pools:
            amount = registry.exact_token_in_for_token_out(pair, amount)
        return amount
    for pair in reversed(path.pools):
        amount = registry.token_in_for_exact_token_out(pair, amount)
    return amount


def spot_price_after_swap(path: Path, swap_type: SwapTypes, amount: Decimal) -> Decimal:
    """Marginal token_in per token_out after routing `amount` (human units) through the path."""
    if not path.is_multihop:
        return registry.spot_price_after_swap(path.pools[0], swap_type, amount)

    first, second = path.pools
    if swap_type == SwapTypes.SWAP_EXACT_IN:
        intermediate = _intermediate_exact_in(first, amount)
        sp_first = registry.spot_price_after_swap(first, swap_type, amount)
        sp_second = registry.spot_price_after_swap(second, swap_type, intermediate)
    else:
        intermediate = _intermediate_exact_out(second, amount)
        sp_second = registry.spot_price_after_swap(second, swap_type, amount)
        sp_first = registry.spot_price_after_swap(first, swap_type, intermediate)
    with price_math():
        return sp_first * sp_second


def derivative_spot_price_after_swap(
    path: Path, swap_type: SwapTypes, amount: Decimal
) -> Decimal:
    """d(path spot price)/d(amount) at `amount` (human units)."""
    if not path.is_multihop:
        return registry.derivative_spot_price_after_swap(path.pools[0], swap_type, amount)

    first, second = path.pools
    if swap_type == SwapTypes.SWAP_EXACT_IN:
        intermediate = _intermediate_exact_in(first, amount)
        d_first = registry.derivative_spot_price_after_swap(first, swap_type, amount)
        sp_second = registry.spot_price_after_swap(second, swap_type, intermediate)
        d_second = registry.derivative_spot_price_after_swap(second, swap_type, intermediate)
        with price_math():
            return d_first * sp_second + d_second

    intermediate = _intermediate_exact_out(second, amount)
    sp_second = registry.spot_price_after_swap(second, swap_type, amount)
    d_second = registry.derivative_spot_price_after_swap(second, swap_type, amount)
    sp_first = registry.spot_price_after_swap(first, swap_type, intermediate)
    d_first = registry.derivative_spot_price_after_swap(first, swap_type, intermediate)
    with price_math():
        return d_second * sp_first + sp_second * sp_second * d_first


def _intermediate_exact_in(first: PoolPairData, amount: Decimal) -> Decimal:
    raw_out = registry.exact_token_in_for_token_out(first, from_human(amount, first.decimals_in))
    return to_human(raw_out, first.decimals_out)


def _intermediate_exact_out(second: PoolPairData, amount: Decimal) -> Decimal:
    raw_in = registry.token_in_for_exact_token_out(second, from_human(amount, second.decimals_out))
    return to_human(raw_in, second.decimals_in)


def get_limit_amount_swap_for_path(pools: Sequence[PoolPairData], swap_type: SwapTypes) -> int:
    """Largest raw amount the chain accepts without breaching any hop's limit.

    For two hops, if the first hop's limit would overrun the second hop's
    limit, the path limit is the amount that saturates the tighter of the
    second hop's limit and the first hop's own limit on the opposite side.
    """
    if len(pools) == 1:
        return registry.get_limit_amount_swap(pools[0], swap_type)

    first, second = pools
    limit_first = registry.get_limit_amount_swap(first, swap_type)
    limit_second = registry.get_limit_amount_swap(second, swap_type)
    if swap_type == SwapTypes.SWAP_EXACT_IN:
        # limits in token_in and intermediate units respectively
        if registry.exact_token_in_for_token_out(first, limit_first) > limit_second:
            # inverting the first hop is itself bound by its output limit
            middle = min(
                limit_second,
                registry.get_limit_amount_swap(first, SwapTypes.SWAP_EXACT_OUT),
            )
            return min(limit_first, registry.token_in_for_exact_token_out(first, middle))
        return limit_first
    # limits in intermediate and token_out units respectively
    if registry.token_in_for_exact_token_out(second, limit_second) > limit_first:
        # running the second hop forward is itself bound by its input limit
        middle = min(
            limit_first,
            registry.get_limit_amount_swap(second, SwapTypes.SWAP_EXACT_IN),
        )
        return min(limit_second, registry.exact_token_in_for_token_out(second, middle))
    return limit_second


def get_normalized_liquidity_for_path(pools: Sequence[PoolPairData]) -> Decimal:
    """Path depth in token_out units.

    For two hops, the shallower hop, with the first converted through the
    second hop's price.
    """
    if len(pools) == 1:
        return registry.get_normalized_liquidity(pools[0])

    first, second = pools
    liquidity_first = registry.get_normalized_liquidity(first)
    liquidity_second = registry.get_normalized_liquidity(second)
    second_price = registry.spot_price_after_swap(second, SwapTypes.SWAP_EXACT_IN, ZERO)
    with price_math():
        return min(liquidity_second, liquidity_first / second_price)


def create_path(pools: Sequence[PoolPairData], swap_type: SwapTypes) -> Path:
    """Build a Path from one or two chained pairs.

    Stamps each pair's SwapPairType and computes the limit and liquidity.

    Raises:
        InvalidConfiguration: If the hops do not chain, repeat a pool, or
            number other than one or two
        DomainError: If a hop cannot price its own limit
    """
    if len(pools) not in (1, 2):
        raise InvalidConfiguration(f"Paths have one or two hops, got {len(pools)}")
    if len(pools) == 2:
        first, second = pools
        if first.token_out != second.token_in:
            raise InvalidConfiguration(
                f"Hop tokens do not chain: {first.token_out} != {second.token_in}"
            )
        if first.id == second.id:
            raise InvalidConfiguration(f"Pool {first.id} repeated within a path")
        pools = (
            first.with_pair_type(SwapPairType.HOP_IN),
            second.with_pair_type(SwapPairType.HOP_OUT),
        )
    else:
        pools = (pools[0].with_pair_type(SwapPairType.DIRECT),)

    return Path(
        id="".join(pair.id for pair in pools),
        pools=tuple(pools),
        limit_amount=get_limit_amount_swap_for_path(pools, swap_type),
        normalized_liquidity=get_normalized_liquidity_for_path(pools),
    )


__all__ = [
    "amount_decimals",
    "quote_path",
    "spot_price_after_swap",
    "derivative_spot_price_after_swap",
    "get_limit_amount_swap_for_path",
    "get_normalized_liquidity_for_path",
    "create_path",
]
