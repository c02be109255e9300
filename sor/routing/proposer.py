"""Candidate path enumeration.

RouteProposer finds every direct and two-hop path between two tokens in a
pool snapshot, ranks them by normalized liquidity and keeps the best ones
that fit the pool budget. Paths never share a pool, so the optimizer can
price each one against the unmodified snapshot.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterable, Mapping

import structlog

from sor.constants import DEFAULT_PATH_CACHE_SIZE
from sor.errors import ArithmeticOverflow, DomainError, PoolIncompatible, TokenNotInPool
from sor.models.pool import PoolRecord
from sor.models.swap import PoolFilter, SwapOptions, SwapTypes
from sor.models.types import normalize_address
from sor.pools.parsing import (
    filter_pools_by_type,
    parse_pool_pair_data,
    parse_to_pools_dict,
    pool_tokens,
)
from sor.pools.types import PoolPairData

from .paths import create_path
from .types import Path

logger = structlog.get_logger()

# (token_in, token_out, swap_type, pool filter, max_pools, timestamp)
CacheKey = tuple[str, str, SwapTypes, PoolFilter, int, int]


def select_paths(paths: Iterable[Path], max_pools: int) -> list[Path]:
    """Rank paths and keep those that fit the distinct-pool budget.

    Paths are ranked by normalized liquidity (descending, ties by id). A
    path is kept if it shares no pool with an already-kept path and the
    distinct pools touched stay within max_pools.
    """
    ranked = sorted(paths, key=lambda p: (-p.normalized_liquidity, p.id))
    selected: list[Path] = []
    used_pools: set[str] = set()
    for path in ranked:
        if used_pools & path.pool_ids:
            continue
        if len(used_pools | path.pool_ids) > max_pools:
            continue
        selected.append(path)
        used_pools |= path.pool_ids
    return selected


class RouteProposer:
    """Enumerates candidate paths, caching results per request shape.

    The cache assumes a fixed pool snapshot: call invalidate() when the
    snapshot changes, or pass force_refresh in the options. It holds at most
    max_entries request shapes and evicts the least recently used first.

    Usage:
        proposer = RouteProposer()
        paths = proposer.get_candidate_paths(weth, usdc, SwapTypes.SWAP_EXACT_IN, pools, options)
    """

    def __init__(self, max_entries: int = DEFAULT_PATH_CACHE_SIZE) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._cache: OrderedDict[CacheKey, list[Path]] = OrderedDict()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def invalidate(self) -> None:
        """Drop all cached candidate paths."""
        self._cache.clear()

    def get_candidate_paths(
        self,
        token_in: str,
        token_out: str,
        swap_type: SwapTypes,
        pools: Mapping[str, PoolRecord] | Iterable[PoolRecord],
        options: SwapOptions,
    ) -> list[Path]:
        """Ranked, budget-respecting candidate paths from token_in to token_out.

        Args:
            token_in: Address sold
            token_out: Address bought
            swap_type: Which side of the trade is fixed
            pools: Pool snapshot, as records or a dict keyed by pool id
            options: Filter, pool budget, timestamp and cache control

        Returns:
            Paths in rank order; empty if the tokens are not connected
        """
        token_in = normalize_address(token_in)
        token_out = normalize_address(token_out)
        key: CacheKey = (
            token_in,
            token_out,
            swap_type,
            options.pool_type_filter,
            options.max_pools,
            options.timestamp,
        )
        if options.force_refresh:
            self._cache.clear()
        elif key in self._cache:
            self._cache.move_to_end(key)
            return list(self._cache[key])

        records = pools.values() if isinstance(pools, Mapping) else pools
        pools_dict = filter_pools_by_type(
            parse_to_pools_dict(records, options.timestamp), options.pool_type_filter
        )

        candidates = self._enumerate(token_in, token_out, swap_type, pools_dict, options.timestamp)
        selected = select_paths(candidates, options.max_pools)
        logger.debug(
            "candidate_paths",
            token_in=token_in,
            token_out=token_out,
            swap_type=swap_type.name,
            candidates=len(candidates),
            selected=len(selected),
        )
        self._cache[key] = selected
        while len(self._cache) > self.max_entries:
            self._cache.popitem(last=False)
        return list(selected)

    def _enumerate(
        self,
        token_in: str,
        token_out: str,
        swap_type: SwapTypes,
        pools_dict: dict[str, PoolRecord],
        timestamp: int,
    ) -> list[Path]:
        tokens_by_pool = {pid: pool_tokens(record) for pid, record in pools_dict.items()}
        pairs: dict[tuple[str, str, str], PoolPairData | None] = {}

        def project(pool_id: str, t_in: str, t_out: str) -> PoolPairData | None:
            memo_key = (pool_id, t_in, t_out)
            if memo_key not in pairs:
                try:
                    pairs[memo_key] = parse_pool_pair_data(
                        pools_dict[pool_id], t_in, t_out, timestamp
                    )
                except (TokenNotInPool, PoolIncompatible) as err:
                    logger.debug("pool_pair_skipped", pool_id=pool_id, reason=str(err))
                    pairs[memo_key] = None
            return pairs[memo_key]

        hop_sequences: list[tuple[PoolPairData, ...]] = []

        for pool_id, tokens in tokens_by_pool.items():
            if token_in in tokens and token_out in tokens:
                pair = project(pool_id, token_in, token_out)
                if pair is not None:
                    hop_sequences.append((pair,))

        in_pools = [pid for pid, tokens in tokens_by_pool.items() if token_in in tokens]
        out_pools = [pid for pid, tokens in tokens_by_pool.items() if token_out in tokens]
        in_neighbors = set().union(*(tokens_by_pool[pid] for pid in in_pools))
        out_neighbors = set().union(*(tokens_by_pool[pid] for pid in out_pools))
        intermediates = sorted((in_neighbors & out_neighbors) - {token_in, token_out})

        for middle in intermediates:
            for first_id in in_pools:
                if middle not in tokens_by_pool[first_id]:
                    continue
                first = project(first_id, token_in, middle)
                if first is None:
                    continue
                for second_id in out_pools:
                    if second_id == first_id or middle not in tokens_by_pool[second_id]:
                        continue
                    second = project(second_id, middle, token_out)
                    if second is not None:
                        hop_sequences.append((first, second))

        paths: list[Path] = []
        for hops in hop_sequences:
            try:
                path = create_path(hops, swap_type)
            except (DomainError, ArithmeticOverflow) as err:
                logger.debug(
                    "path_skipped",
                    pool_ids=[pair.id for pair in hops],
                    reason=str(err),
                )
                continue
            if path.limit_amount <= 0:
                logger.debug("path_zero_limit", path_id=path.id)
                continue
            paths.append(path)
        return paths


__all__ = ["RouteProposer", "select_paths"]
