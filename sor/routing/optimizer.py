"""Path allocation optimizer.

get_best_paths() splits a trade across the top-ranked candidate paths so
that their marginal prices match, then weighs the extra pools each split
touches against their gas cost.

For each k the split starts proportional to normalized liquidity and is
refined by moving amount from the path with the highest marginal price to
the one with the lowest. The step is the Newton estimate that equalizes
the two prices:

    delta = (SP_hi - SP_lo) / (dSP_hi + dSP_lo)

Prices are token_in per token_out for both swap types, so the highest
price is always the worst marginal execution.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

import structlog

from sor.constants import DEFAULT_MAX_ITERATIONS, DEFAULT_PRICE_TOLERANCE
from sor.errors import (
    ArithmeticOverflow,
    DomainError,
    InsufficientLiquidity,
    InvalidConfiguration,
    NoRoute,
)
from sor.math.decimal_utils import ZERO, from_human, price_math, to_human
from sor.models.swap import SwapTypes

from .paths import (
    amount_decimals,
    derivative_spot_price_after_swap,
    quote_path,
    spot_price_after_swap,
)
from .types import BestPaths, Path, PathAllocation

logger = structlog.get_logger()


@dataclass(frozen=True)
class OptimizerConfig:
    """Search parameters for get_best_paths.

    Attributes:
        price_tolerance: Stop once (SP_hi - SP_lo) / SP_lo falls below this
        max_iterations: Cap on rebalancing steps per k
        exhaustive: Try every k instead of stopping at the first that does
            not improve the net return
    """

    price_tolerance: Decimal = DEFAULT_PRICE_TOLERANCE
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    exhaustive: bool = False

    def __post_init__(self) -> None:
        if self.price_tolerance <= 0:
            raise InvalidConfiguration(f"price_tolerance must be positive: {self.price_tolerance}")
        if self.max_iterations < 1:
            raise InvalidConfiguration(f"max_iterations must be at least 1: {self.max_iterations}")


class _PathFailed(Exception):
    """A path could not be priced at its current allocation."""

    def __init__(self, index: int, cause: Exception) -> None:
        super().__init__(str(cause))
        self.index = index
        self.cause = cause


def _initial_split(paths: Sequence[Path], total_amount: int) -> list[int]:
    """Split proportional to normalized liquidity, clamped to path limits.

    Whatever the clamping leaves over goes to paths with headroom, in rank
    order. Callers guarantee the limits add up to at least total_amount.
    """
    total_liquidity = sum((p.normalized_liquidity for p in paths), ZERO)
    with price_math():
        if total_liquidity > ZERO:
            shares = [
                int(Decimal(total_amount) * p.normalized_liquidity / total_liquidity)
                for p in paths
            ]
        else:
            shares = [total_amount // len(paths)] * len(paths)

    amounts = [min(share, p.limit_amount) for share, p in zip(shares, paths)]
    remainder = total_amount - sum(amounts)
    for i, path in enumerate(paths):
        if remainder <= 0:
            break
        extra = min(remainder, path.limit_amount - amounts[i])
        amounts[i] += extra
        remainder -= extra
    return amounts


def _prices(
    paths: Sequence[Path], amounts: Sequence[int], swap_type: SwapTypes
) -> list[Decimal]:
    prices = []
    for i, (path, amount) in enumerate(zip(paths, amounts)):
        try:
            human = to_human(amount, amount_decimals(path, swap_type))
            prices.append(spot_price_after_swap(path, swap_type, human))
        except (DomainError, ArithmeticOverflow) as err:
            raise _PathFailed(i, err) from err
    return prices


def _derivative(path: Path, index: int, amount: int, swap_type: SwapTypes) -> Decimal:
    try:
        human = to_human(amount, amount_decimals(path, swap_type))
        return derivative_spot_price_after_swap(path, swap_type, human)
    except (DomainError, ArithmeticOverflow) as err:
        raise _PathFailed(index, err) from err


def _equalize(
    paths: Sequence[Path],
    swap_type: SwapTypes,
    total_amount: int,
    config: OptimizerConfig,
) -> list[int]:
    """Rebalance the split until marginal prices agree within tolerance."""
    amounts = _initial_split(paths, total_amount)
    if len(paths) == 1:
        return amounts

    for iteration in range(config.max_iterations):
        prices = _prices(paths, amounts, swap_type)
        donors = [i for i in range(len(paths)) if amounts[i] > 0]
        receivers = [i for i in range(len(paths)) if amounts[i] < paths[i].limit_amount]
        if not donors or not receivers:
            break
        hi = max(donors, key=lambda i: prices[i])
        lo = min(receivers, key=lambda i: prices[i])
        if hi == lo or prices[hi] <= prices[lo]:
            break
        with price_math():
            spread = (prices[hi] - prices[lo]) / prices[lo]
        if spread < config.price_tolerance:
            logger.debug("split_converged", iterations=iteration, spread=str(spread))
            break

        slope = _derivative(paths[hi], hi, amounts[hi], swap_type) + _derivative(
            paths[lo], lo, amounts[lo], swap_type
        )
        if slope > ZERO:
            with price_math():
                step = (prices[hi] - prices[lo]) / slope
            delta = from_human(step, amount_decimals(paths[hi], swap_type))
        else:
            delta = amounts[hi] // 2
        delta = max(1, min(delta, amounts[hi], paths[lo].limit_amount - amounts[lo]))

        amounts[hi] -= delta
        amounts[lo] += delta
    else:
        logger.debug("split_not_converged", iterations=config.max_iterations)

    return amounts


def _evaluate(
    paths: Sequence[Path], amounts: Sequence[int], swap_type: SwapTypes
) -> tuple[int, list[PathAllocation]]:
    total_return = 0
    allocation = []
    for i, (path, amount) in enumerate(zip(paths, amounts)):
        if amount == 0:
            continue
        try:
            total_return += quote_path(path, swap_type, amount)
        except (DomainError, ArithmeticOverflow) as err:
            raise _PathFailed(i, err) from err
        allocation.append(PathAllocation(path, amount))
    return total_return, allocation


def _optimize(
    paths: list[Path], swap_type: SwapTypes, total_amount: int, config: OptimizerConfig
) -> tuple[int, list[PathAllocation]] | None:
    """Best split over `paths`, dropping any path that fails to price.

    Returns None once the remaining paths cannot absorb total_amount.
    """
    while paths:
        if sum(p.limit_amount for p in paths) < total_amount:
            return None
        try:
            amounts = _equalize(paths, swap_type, total_amount, config)
            total_return, allocation = _evaluate(paths, amounts, swap_type)
        except _PathFailed as failure:
            logger.debug(
                "path_excluded",
                path_id=paths[failure.index].id,
                reason=str(failure.cause),
            )
            paths = paths[: failure.index] + paths[failure.index + 1 :]
            continue
        return total_return, allocation
    return None


def _market_sp(allocation: Sequence[PathAllocation], swap_type: SwapTypes) -> Decimal:
    path, amount = allocation[0]
    try:
        human = to_human(amount, amount_decimals(path, swap_type))
        return spot_price_after_swap(path, swap_type, human)
    except (DomainError, ArithmeticOverflow):
        return ZERO


def get_best_paths(
    paths: Sequence[Path],
    swap_type: SwapTypes,
    total_amount: int,
    max_pools: int,
    cost_per_pool: int = 0,
    config: OptimizerConfig | None = None,
) -> BestPaths:
    """Choose paths and split total_amount across them.

    For k = 1..min(len(paths), max_pools) the top k paths are split to
    equalize marginal prices. Each split is scored by its net return: the
    realized total, less (exact in) or plus (exact out) cost_per_pool for
    every pool beyond those of the first path. The search stops at the
    first k that does not improve the score unless config.exhaustive.

    Args:
        paths: Candidates in rank order
        swap_type: Which side of the trade is fixed
        total_amount: Raw amount to route (input for exact in, output for exact out)
        max_pools: Cap on distinct pools used
        cost_per_pool: Gas cost of one extra pool, in raw units of the returned token
        config: Search parameters

    Returns:
        BestPaths with the allocation in rank order

    Raises:
        NoRoute: If there are no candidate paths
        InsufficientLiquidity: If no subset of paths can absorb total_amount
        InvalidConfiguration: If total_amount or max_pools is not positive
    """
    config = config or OptimizerConfig()
    if total_amount <= 0:
        raise InvalidConfiguration(f"Swap amount must be positive: {total_amount}")
    if max_pools < 1:
        raise InvalidConfiguration(f"max_pools must be at least 1: {max_pools}")
    if not paths:
        raise NoRoute("No candidate paths")

    exact_in = swap_type == SwapTypes.SWAP_EXACT_IN
    best: tuple[int, int, list[PathAllocation]] | None = None

    for k in range(1, min(len(paths), max_pools) + 1):
        selected = list(paths[:k])
        if len(frozenset().union(*(p.pool_ids for p in selected))) > max_pools:
            break

        result = _optimize(selected, swap_type, total_amount, config)
        if result is None:
            logger.debug("split_infeasible", k=k)
            continue
        total_return, allocation = result

        pools_used = frozenset().union(*(a.path.pool_ids for a in allocation))
        extra_pools = max(0, len(pools_used) - len(allocation[0].path.pool_ids))
        cost = cost_per_pool * extra_pools
        net = total_return - cost if exact_in else total_return + cost
        logger.debug("split_scored", k=k, total_return=total_return, net=net)

        if best is None or (net > best[0] if exact_in else net < best[0]):
            best = (net, total_return, allocation)
        elif not config.exhaustive:
            break

    if best is None:
        raise InsufficientLiquidity(f"Candidate paths cannot absorb {total_amount}")

    _, total_return, allocation = best
    return BestPaths(allocation, total_return, _market_sp(allocation, swap_type))


__all__ = ["OptimizerConfig", "get_best_paths"]
