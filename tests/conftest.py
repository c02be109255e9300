"""Pytest configuration and fixtures."""

from collections.abc import Callable, Sequence
from decimal import Decimal

import pytest

from sor.costs import get_default_swap_cost_calculator
from sor.models.pool import PoolRecord
from sor.models.swap import SwapTypes, SwapV2
from sor.pool_cacher import PoolCacher
from sor.sor import SOR
from tests.helpers import (
    BAL,
    DAI,
    USDC,
    USDT,
    WETH,
    make_stable_pool,
    make_weighted_pool,
)


@pytest.fixture(autouse=True)
def reset_shared_swap_cost_calculator():
    """Drop prices pinned on the process-wide calculator between tests."""
    yield
    get_default_swap_cost_calculator().invalidate()


@pytest.fixture
def two_weighted_pools() -> list[PoolRecord]:
    """Two 50/50 WETH/USDC pools, the second twice as deep as the first."""
    return [
        make_weighted_pool(1, {WETH: "1000", USDC: "2000000"}),
        make_weighted_pool(2, {WETH: "2000", USDC: "4000000"}),
    ]


@pytest.fixture
def mixed_pools() -> list[PoolRecord]:
    """A small snapshot with direct, two-hop and unconnected liquidity.

    WETH/USDC trades directly (pool 1) or via DAI (pools 2 and 3);
    BAL only pairs with WETH (pool 4).
    """
    return [
        make_weighted_pool(1, {WETH: "1000", USDC: "2000000"}),
        make_weighted_pool(2, {WETH: "500", DAI: "1000000"}),
        make_stable_pool(3, {DAI: "5000000", USDC: "5000000", USDT: "5000000"}),
        make_weighted_pool(4, {BAL: "100000", WETH: "400"}, weights={BAL: "80", WETH: "20"}),
    ]


@pytest.fixture
def sor_factory() -> Callable[[list[PoolRecord]], SOR]:
    """Build a router over a fixed snapshot."""

    def build(pools: list[PoolRecord]) -> SOR:
        return SOR(PoolCacher(initial_pools=pools))

    return build


# =============================================================================
# Test doubles for injected dependencies
# =============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticPriceSource:
    """Native asset price source with fixed answers and a call log.

    Usage:
        source = StaticPriceSource({USDC: "2000"})
        calculator = SwapCostCalculator(price_source=source)
    """

    def __init__(self, prices: dict[str, str | Decimal | None]) -> None:
        self.prices = prices
        self.calls: list[str] = []

    def __call__(self, token: str) -> str | Decimal | None:
        self.calls.append(token)
        return self.prices.get(token)


class MockVault:
    """Vault double for batch-swap queries.

    Returns deltas from `deltas_for(swaps, assets)` and records every call.
    """

    def __init__(
        self, deltas_for: Callable[[list[SwapV2], list[str]], Sequence[int]]
    ) -> None:
        self.deltas_for = deltas_for
        self.calls: list[tuple[SwapTypes, list[SwapV2], list[str]]] = []

    def query_batch_swap(
        self, kind: SwapTypes, swaps: list[SwapV2], assets: list[str]
    ) -> Sequence[int]:
        self.calls.append((kind, list(swaps), list(assets)))
        return self.deltas_for(swaps, assets)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock(start=1000.0)
