"""Pricing dispatch.

PRICING maps each PoolTypes member to the functions that price it. Callers
go through the module-level dispatchers below, which look up the pair's
pool_type; adding a pool family means adding a pricing module and one
entry here.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from decimal import Decimal
from types import MappingProxyType, ModuleType
from typing import Any

from sor.errors import DomainError
from sor.models.swap import SwapTypes

from . import element, linear, stable, weighted
from .types import PoolPairData, PoolTypes


def _guarded(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Report degenerate pool state (zero balances, zero weights) as DomainError."""

    @functools.wraps(fn)
    def wrapper(pair: PoolPairData, *args: Any) -> Any:
        try:
            return fn(pair, *args)
        except ZeroDivisionError as err:
            raise DomainError(f"Pool {pair.id}: division by zero in pricing") from err

    return wrapper


@dataclass(frozen=True)
class PoolPricing:
    """The pricing operations of one pool family."""

    exact_token_in_for_token_out: Callable[[Any, int], int]
    token_in_for_exact_token_out: Callable[[Any, int], int]
    spot_price_after_swap_exact_token_in_for_token_out: Callable[[Any, Decimal], Decimal]
    spot_price_after_swap_token_in_for_exact_token_out: Callable[[Any, Decimal], Decimal]
    derivative_spot_price_after_swap_exact_token_in_for_token_out: Callable[[Any, Decimal], Decimal]
    derivative_spot_price_after_swap_token_in_for_exact_token_out: Callable[[Any, Decimal], Decimal]
    get_limit_amount_swap: Callable[[Any, SwapTypes], int]
    get_normalized_liquidity: Callable[[Any], Decimal]

    @classmethod
    def from_module(cls, module: ModuleType) -> PoolPricing:
        return cls(**{f.name: _guarded(getattr(module, f.name)) for f in fields(cls)})


PRICING: Mapping[PoolTypes, PoolPricing] = MappingProxyType(
    {
        PoolTypes.WEIGHTED: PoolPricing.from_module(weighted),
        PoolTypes.STABLE: PoolPricing.from_module(stable),
        PoolTypes.META_STABLE: PoolPricing.from_module(stable),
        PoolTypes.LINEAR: PoolPricing.from_module(linear),
        PoolTypes.ELEMENT: PoolPricing.from_module(element),
    }
)


def exact_token_in_for_token_out(pair: PoolPairData, amount: int) -> int:
    """Raw token_out received for exactly `amount` raw token_in."""
    if amount < 0:
        raise DomainError(f"Negative swap amount {amount}")
    return PRICING[pair.pool_type].exact_token_in_for_token_out(pair, amount)


def token_in_for_exact_token_out(pair: PoolPairData, amount: int) -> int:
    """Raw token_in required to receive exactly `amount` raw token_out."""
    if amount < 0:
        raise DomainError(f"Negative swap amount {amount}")
    return PRICING[pair.pool_type].token_in_for_exact_token_out(pair, amount)


def spot_price_after_swap(pair: PoolPairData, swap_type: SwapTypes, amount: Decimal) -> Decimal:
    """Marginal token_in per token_out after trading `amount` (human units).

    `amount` is the input for exact in and the output for exact out.
    """
    pricing = PRICING[pair.pool_type]
    if swap_type == SwapTypes.SWAP_EXACT_IN:
        return pricing.spot_price_after_swap_exact_token_in_for_token_out(pair, amount)
    return pricing.spot_price_after_swap_token_in_for_exact_token_out(pair, amount)


def derivative_spot_price_after_swap(
    pair: PoolPairData, swap_type: SwapTypes, amount: Decimal
) -> Decimal:
    """d(spot price)/d(amount) at `amount` (human units)."""
    pricing = PRICING[pair.pool_type]
    if swap_type == SwapTypes.SWAP_EXACT_IN:
        return pricing.derivative_spot_price_after_swap_exact_token_in_for_token_out(pair, amount)
    return pricing.derivative_spot_price_after_swap_token_in_for_exact_token_out(pair, amount)


def get_limit_amount_swap(pair: PoolPairData, swap_type: SwapTypes) -> int:
    """Largest raw amount the pair accepts (input for exact in, output for exact out)."""
    return PRICING[pair.pool_type].get_limit_amount_swap(pair, swap_type)


def get_normalized_liquidity(pair: PoolPairData) -> Decimal:
    """Liquidity in token_out units, comparable across pool families."""
    return PRICING[pair.pool_type].get_normalized_liquidity(pair)


__all__ = [
    "PoolPricing",
    "PRICING",
    "exact_token_in_for_token_out",
    "token_in_for_exact_token_out",
    "spot_price_after_swap",
    "derivative_spot_price_after_swap",
    "get_limit_amount_swap",
    "get_normalized_liquidity",
]
