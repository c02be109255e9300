"""Type definitions for routing."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import NamedTuple

from sor.pools.types import PoolPairData


@dataclass(frozen=True)
class Path:
    """A direct or two-hop route from token_in to token_out.

    Attributes:
        id: Concatenated pool ids, unique per route
        pools: One pair per hop; hop i's token_out is hop i+1's token_in
        limit_amount: Largest raw amount the path accepts (input for exact
            in, output for exact out)
        normalized_liquidity: Depth in token_out units, used for ranking
    """

    id: str
    pools: tuple[PoolPairData, ...]
    limit_amount: int
    normalized_liquidity: Decimal

    @property
    def token_in(self) -> str:
        return self.pools[0].token_in

    @property
    def token_out(self) -> str:
        return self.pools[-1].token_out

    @property
    def pool_ids(self) -> frozenset[str]:
        return frozenset(pair.id for pair in self.pools)

    @property
    def is_multihop(self) -> bool:
        return len(self.pools) > 1


class PathAllocation(NamedTuple):
    """Raw amount routed through one path."""

    path: Path
    amount: int


class BestPaths(NamedTuple):
    """Optimizer result.

    Attributes:
        allocation: Paths with non-zero amounts, in rank order; amounts sum
            to the requested amount
        total_return: Realized output (exact in) or required input (exact out)
        market_sp: Marginal token_in per token_out at the final split
    """

    allocation: list[PathAllocation]
    total_return: int
    market_sp: Decimal


__all__ = ["Path", "PathAllocation", "BestPaths"]
