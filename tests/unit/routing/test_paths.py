"""Tests for path construction and path-level pricing."""

from decimal import Decimal

import pytest

from sor.errors import InvalidConfiguration
from sor.math.decimal_utils import to_human
from sor.models.swap import SwapTypes
from sor.pools import registry
from sor.pools.types import SwapPairType
from sor.routing.paths import (
    amount_decimals,
    create_path,
    derivative_spot_price_after_swap,
    quote_path,
    spot_price_after_swap,
)
from tests.helpers import DAI, USDC, WETH, make_pair, make_stable_pool, make_weighted_pool

EXACT_IN = SwapTypes.SWAP_EXACT_IN
EXACT_OUT = SwapTypes.SWAP_EXACT_OUT


@pytest.fixture
def direct_pair(mixed_pools):
    return make_pair(mixed_pools[0], WETH, USDC)


@pytest.fixture
def hops(mixed_pools):
    """WETH -> DAI (weighted), DAI -> USDC (stable)."""
    return make_pair(mixed_pools[1], WETH, DAI), make_pair(mixed_pools[2], DAI, USDC)


class TestCreatePath:
    def test_direct_path(self, direct_pair) -> None:
        path = create_path([direct_pair], EXACT_IN)
        assert path.id == direct_pair.id
        assert path.pools[0].pair_type == SwapPairType.DIRECT
        assert not path.is_multihop
        assert path.token_in == WETH
        assert path.token_out == USDC
        assert path.limit_amount == registry.get_limit_amount_swap(direct_pair, EXACT_IN)
        assert path.normalized_liquidity == registry.get_normalized_liquidity(direct_pair)

    def test_two_hop_path(self, hops) -> None:
        first, second = hops
        path = create_path(hops, EXACT_IN)
        assert path.id == first.id + second.id
        assert [p.pair_type for p in path.pools] == [SwapPairType.HOP_IN, SwapPairType.HOP_OUT]
        assert path.pool_ids == {first.id, second.id}
        assert path.token_in == WETH
        assert path.token_out == USDC

    def test_hops_must_chain(self, direct_pair, hops) -> None:
        with pytest.raises(InvalidConfiguration):
            create_path([direct_pair, hops[1]], EXACT_IN)

    def test_pool_cannot_repeat(self, mixed_pools) -> None:
        first = make_pair(mixed_pools[2], DAI, USDC)
        second = make_pair(mixed_pools[2], USDC, DAI)
        with pytest.raises(InvalidConfiguration):
            create_path([first, second], EXACT_IN)

    @pytest.mark.parametrize("count", [0, 3])
    def test_hop_count(self, direct_pair, count) -> None:
        with pytest.raises(InvalidConfiguration):
            create_path([direct_pair] * count, EXACT_IN)

    def test_amount_decimals(self, hops) -> None:
        path = create_path(hops, EXACT_IN)
        assert amount_decimals(path, EXACT_IN) == 18
        assert amount_decimals(path, EXACT_OUT) == 6


class TestQuotePath:
    def test_exact_in_chains_forward(self, hops) -> None:
        first, second = hops
        path = create_path(hops, EXACT_IN)
        amount = 10**18
        middle = registry.exact_token_in_for_token_out(first, amount)
        expected = registry.exact_token_in_for_token_out(second, middle)
        assert quote_path(path, EXACT_IN, amount) == expected

    def test_exact_out_chains_backward(self, hops) -> None:
        first, second = hops
        path = create_path(hops, EXACT_OUT)
        amount = 1000 * 10**6
        middle = registry.token_in_for_exact_token_out(second, amount)
        expected = registry.token_in_for_exact_token_out(first, middle)
        assert quote_path(path, EXACT_OUT, amount) == expected

    def test_direct_matches_pool(self, direct_pair) -> None:
        path = create_path([direct_pair], EXACT_IN)
        assert quote_path(path, EXACT_IN, 10**18) == registry.exact_token_in_for_token_out(
            direct_pair, 10**18
        )


class TestPathSpotPrice:
    def test_chain_rule_exact_in(self, hops) -> None:
        first, second = hops
        path = create_path(hops, EXACT_IN)
        amount = Decimal(2)
        middle = to_human(registry.exact_token_in_for_token_out(first, 2 * 10**18), 18)
        expected = registry.spot_price_after_swap(
            first, EXACT_IN, amount
        ) * registry.spot_price_after_swap(second, EXACT_IN, middle)
        assert spot_price_after_swap(path, EXACT_IN, amount) == pytest.approx(expected)

    def test_chain_rule_exact_out(self, hops) -> None:
        first, second = hops
        path = create_path(hops, EXACT_OUT)
        amount = Decimal(4000)
        middle = to_human(registry.token_in_for_exact_token_out(second, 4000 * 10**6), 18)
        expected = registry.spot_price_after_swap(
            second, EXACT_OUT, amount
        ) * registry.spot_price_after_swap(first, EXACT_OUT, middle)
        assert spot_price_after_swap(path, EXACT_OUT, amount) == pytest.approx(expected)

    def test_two_hop_price_is_product_at_zero(self, hops) -> None:
        """At zero amount the path price is WETH per DAI times DAI per USDC."""
        first, second = hops
        path = create_path(hops, EXACT_IN)
        sp = spot_price_after_swap(path, EXACT_IN, Decimal(0))
        expected = registry.spot_price_after_swap(
            first, EXACT_IN, Decimal(0)
        ) * registry.spot_price_after_swap(second, EXACT_IN, Decimal(0))
        assert float(sp) == pytest.approx(float(expected), rel=1e-12)

    @pytest.mark.parametrize(
        "swap_type, amount, step",
        [(EXACT_IN, Decimal(5), Decimal("0.001")), (EXACT_OUT, Decimal(5000), Decimal("1"))],
    )
    def test_derivative_matches_finite_difference(self, hops, swap_type, amount, step) -> None:
        path = create_path(hops, swap_type)
        numeric = (
            spot_price_after_swap(path, swap_type, amount + step)
            - spot_price_after_swap(path, swap_type, amount - step)
        ) / (2 * step)
        analytic = derivative_spot_price_after_swap(path, swap_type, amount)
        assert float(analytic) == pytest.approx(float(numeric), rel=1e-3)


class TestPathLimits:
    def test_first_hop_limit_when_second_is_deep(self, hops) -> None:
        first, _ = hops
        path = create_path(hops, EXACT_IN)
        assert path.limit_amount == registry.get_limit_amount_swap(first, EXACT_IN)

    def test_shallow_second_hop_caps_the_path(self, mixed_pools) -> None:
        first = make_pair(mixed_pools[1], WETH, DAI)
        shallow = make_stable_pool(8, {DAI: "1000", USDC: "1000"})
        second = make_pair(shallow, DAI, USDC)
        path = create_path([first, second], EXACT_IN)
        second_limit = registry.get_limit_amount_swap(second, EXACT_IN)
        assert path.limit_amount < registry.get_limit_amount_swap(first, EXACT_IN)
        middle = registry.exact_token_in_for_token_out(first, path.limit_amount)
        assert middle <= second_limit + 10**6

    def test_exact_out_shallow_first_hop(self) -> None:
        shallow = make_weighted_pool(8, {WETH: "1", DAI: "2000"})
        deep = make_weighted_pool(9, {DAI: "1000000", USDC: "1000000"})
        first = make_pair(shallow, WETH, DAI)
        second = make_pair(deep, DAI, USDC)
        path = create_path([first, second], EXACT_OUT)
        first_limit = registry.get_limit_amount_swap(first, EXACT_OUT)
        assert path.limit_amount < registry.get_limit_amount_swap(second, EXACT_OUT)
        middle = registry.token_in_for_exact_token_out(second, path.limit_amount)
        assert middle <= first_limit + 10**6

    def test_heavy_input_first_hop_keeps_exact_in_route(self) -> None:
        # 80/20 first hop: its input limit yields more than its own output limit
        heavy = make_weighted_pool(
            8, {WETH: "1000", DAI: "100000"}, weights={WETH: "80", DAI: "20"}
        )
        deep = make_weighted_pool(9, {DAI: "150000", USDC: "150000"})
        first = make_pair(heavy, WETH, DAI)
        second = make_pair(deep, DAI, USDC)
        path = create_path([first, second], EXACT_IN)
        assert 0 < path.limit_amount < registry.get_limit_amount_swap(first, EXACT_IN)
        middle = registry.exact_token_in_for_token_out(first, path.limit_amount)
        assert middle <= registry.get_limit_amount_swap(first, EXACT_OUT) + 10**6
        assert quote_path(path, EXACT_IN, path.limit_amount) > 0

    def test_light_input_second_hop_keeps_exact_out_route(self) -> None:
        # 20/80 second hop: its output limit needs more than its own input limit
        deep = make_weighted_pool(8, {WETH: "1000", DAI: "100000"})
        light = make_weighted_pool(
            9, {DAI: "10000", USDC: "40000"}, weights={DAI: "20", USDC: "80"}
        )
        first = make_pair(deep, WETH, DAI)
        second = make_pair(light, DAI, USDC)
        path = create_path([first, second], EXACT_OUT)
        assert 0 < path.limit_amount < registry.get_limit_amount_swap(second, EXACT_OUT)
        middle = registry.token_in_for_exact_token_out(second, path.limit_amount)
        assert middle <= registry.get_limit_amount_swap(second, EXACT_IN) + 10**6
        assert quote_path(path, EXACT_OUT, path.limit_amount) > 0

    def test_two_hop_liquidity_is_shallower_hop(self, hops) -> None:
        first, second = hops
        path = create_path(hops, EXACT_IN)
        second_price = registry.spot_price_after_swap(second, EXACT_IN, Decimal(0))
        expected = min(
            registry.get_normalized_liquidity(second),
            registry.get_normalized_liquidity(first) / second_price,
        )
        assert path.normalized_liquidity == pytest.approx(expected)
