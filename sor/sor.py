"""Router entry point.

The SOR class ties the pieces together: the pool cacher supplies the
snapshot, the route proposer enumerates candidate paths, the optimizer
splits the trade and the assembler renders the batch-swap plan.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from sor.costs import SwapCostCalculator, get_default_swap_cost_calculator
from sor.constants import DEFAULT_SWAP_GAS
from sor.errors import InvalidConfiguration
from sor.models.pool import PoolRecord
from sor.models.swap import SwapInfo, SwapOptions, SwapTypes, parse_swap_options
from sor.models.types import normalize_address
from sor.pool_cacher import PoolCacher
from sor.routing import OptimizerConfig, RouteProposer, format_swaps, get_best_paths

logger = structlog.get_logger()


def find_token_decimals(pools: Iterable[PoolRecord], token: str) -> int | None:
    """Decimals of `token` as published by the first pool holding it."""
    token = normalize_address(token)
    for pool in pools:
        pool_token = pool.get_token(token)
        if pool_token is not None:
            return pool_token.decimals
    return None


class SOR:
    """Smart order router over a pool snapshot.

    Usage:
        sor = SOR(PoolCacher(initial_pools=pools))
        info = sor.get_swaps(weth, usdc, SwapTypes.SWAP_EXACT_IN, 10**18)

    Args:
        pool_cacher: Snapshot holder; defaults to an empty one
        swap_cost_calculator: Gas cost conversion; defaults to the shared
            process-wide calculator, which has no price source until one is
            pinned, so extra pools are free
        optimizer_config: Optimizer search parameters
    """

    def __init__(
        self,
        pool_cacher: PoolCacher | None = None,
        swap_cost_calculator: SwapCostCalculator | None = None,
        optimizer_config: OptimizerConfig | None = None,
    ) -> None:
        self.pool_cacher = pool_cacher or PoolCacher()
        self.swap_cost_calculator = swap_cost_calculator or get_default_swap_cost_calculator()
        self.optimizer_config = optimizer_config or OptimizerConfig()
        self._route_proposer = RouteProposer()

    def get_pools(self) -> list[PoolRecord]:
        return self.pool_cacher.get_pools()

    def fetch_pools(
        self, pools_data: Iterable[PoolRecord | Mapping[str, Any]] | None = None
    ) -> bool:
        """Refresh the snapshot and drop candidate paths cached against the old one."""
        fetched = self.pool_cacher.fetch_pools(pools_data)
        if fetched:
            self._route_proposer.invalidate()
        return fetched

    def get_cost_of_swap_in_token(
        self,
        output_token: str,
        output_token_decimals: int,
        gas_price: int,
        swap_gas: int = DEFAULT_SWAP_GAS,
    ) -> int:
        """Gas cost of one extra pool in raw `output_token` units."""
        return self.swap_cost_calculator.convert_gas_cost_to_token(
            output_token, output_token_decimals, gas_price, swap_gas
        )

    def get_swaps(
        self,
        token_in: str,
        token_out: str,
        swap_type: SwapTypes | int,
        swap_amount: int,
        options: SwapOptions | Mapping[str, Any] | None = None,
    ) -> SwapInfo:
        """Best batch-swap plan for trading token_in to token_out.

        Args:
            token_in: Address sold
            token_out: Address bought
            swap_type: SWAP_EXACT_IN fixes the input, SWAP_EXACT_OUT the output
            swap_amount: Raw amount of the fixed side
            options: Gas, pool budget, filter, timestamp and cache control

        Returns:
            SwapInfo; empty when no pools are loaded

        Raises:
            InvalidConfiguration: On malformed options, a non-positive amount
                or token_in == token_out
            NoRoute: If no path connects the tokens
            InsufficientLiquidity: If the paths cannot absorb swap_amount
        """
        options = parse_swap_options(options)
        try:
            swap_type = SwapTypes(swap_type)
        except ValueError as err:
            raise InvalidConfiguration(f"Unknown swap type: {swap_type}") from err
        token_in = normalize_address(token_in)
        token_out = normalize_address(token_out)
        if swap_amount <= 0:
            raise InvalidConfiguration(f"Swap amount must be positive: {swap_amount}")
        if token_in == token_out:
            raise InvalidConfiguration(f"Cannot swap {token_in} for itself")

        pools = self.pool_cacher.get_pools()
        if not self.pool_cacher.finished_fetching or not pools:
            logger.warning("no_pools_loaded", token_in=token_in, token_out=token_out)
            return SwapInfo.empty(token_in, token_out)

        paths = self._route_proposer.get_candidate_paths(
            token_in, token_out, swap_type, pools, options
        )

        exact_in = swap_type == SwapTypes.SWAP_EXACT_IN
        cost_per_pool = self._cost_per_pool(
            pools, token_out if exact_in else token_in, options
        )

        best = get_best_paths(
            paths,
            swap_type,
            swap_amount,
            options.max_pools,
            cost_per_pool,
            self.optimizer_config,
        )

        pools_used = frozenset().union(*(a.path.pool_ids for a in best.allocation))
        cost = cost_per_pool * len(pools_used)
        considering_fees = best.total_return - cost if exact_in else best.total_return + cost

        logger.info(
            "swaps_found",
            token_in=token_in,
            token_out=token_out,
            swap_type=swap_type.name,
            swap_amount=swap_amount,
            return_amount=best.total_return,
            path_count=len(best.allocation),
            pool_count=len(pools_used),
        )

        return format_swaps(
            best.allocation,
            swap_type,
            swap_amount,
            token_in,
            token_out,
            best.total_return,
            considering_fees,
            best.market_sp,
        )

    def _cost_per_pool(
        self, pools: list[PoolRecord], return_token: str, options: SwapOptions
    ) -> int:
        if options.gas_price == 0:
            return 0
        decimals = find_token_decimals(pools, return_token)
        if decimals is None:
            return 0
        return self.get_cost_of_swap_in_token(
            return_token, decimals, options.gas_price, options.swap_gas
        )


__all__ = ["SOR", "find_token_decimals"]
