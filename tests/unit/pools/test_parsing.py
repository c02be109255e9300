"""Tests for pool snapshot parsing and pair projection."""

from decimal import Decimal

import pytest

from sor.errors import PoolIncompatible, TokenNotInPool
from sor.models.pool import PoolRecord
from sor.models.swap import PoolFilter
from sor.pools.parsing import (
    filter_pools_by_type,
    is_pool_active,
    parse_pool_pair_data,
    parse_to_pools_dict,
    pool_tokens,
)
from sor.pools.types import PoolTypes, SwapPairType, WeightedPoolPairData
from tests.helpers import (
    BAL,
    DAI,
    EP_USDC,
    NOW,
    USDC,
    WETH,
    make_element_pool,
    make_linear_pool,
    make_phantom_stable_pool,
    make_stable_pool,
    make_weighted_pool,
    pool_address,
    pool_id,
)


class TestPoolRecord:
    def test_addresses_are_lowercased(self) -> None:
        pool = make_weighted_pool(1, {WETH.upper().replace("0X", "0x"): "1", USDC: "1"})
        assert pool.tokens[0].address == WETH

    def test_tokens_list_derived_from_tokens(self) -> None:
        pool = make_weighted_pool(1, {WETH: "1", USDC: "1"})
        assert pool.tokens_list == (WETH, USDC)
        assert pool.index_of(USDC) == 1
        assert pool.get_token(DAI) is None

    def test_rejects_fee_of_one(self) -> None:
        with pytest.raises(ValueError):
            make_weighted_pool(1, {WETH: "1", USDC: "1"}, swap_fee="1")


class TestPoolFiltering:
    def test_active_pools_kept(self) -> None:
        pools = [
            make_weighted_pool(1, {WETH: "1", USDC: "1"}),
            make_weighted_pool(2, {WETH: "1", USDC: "1"}, swap_enabled=False),
            make_weighted_pool(3, {WETH: "1", USDC: "1"}, pool_type="Gyro2"),
        ]
        assert list(parse_to_pools_dict(pools, NOW)) == [pool_id(1)]

    def test_expired_element_dropped(self) -> None:
        live = make_element_pool(1, "1000", "1000", "1000")
        expired = make_element_pool(2, "1000", "1000", "1000", expiry_time=NOW - 1)
        assert list(parse_to_pools_dict([live, expired], NOW)) == [pool_id(1)]

    def test_element_without_term_is_inactive(self) -> None:
        pool = make_element_pool(1, "1000", "1000", "1000").model_copy(
            update={"unit_seconds": None}
        )
        assert not is_pool_active(pool, NOW)

    def test_filter_by_type(self, mixed_pools) -> None:
        pools_dict = parse_to_pools_dict(mixed_pools, NOW)
        stable_only = filter_pools_by_type(pools_dict, PoolFilter.STABLE)
        assert list(stable_only) == [pool_id(3)]
        assert filter_pools_by_type(pools_dict, PoolFilter.ALL) == pools_dict
        assert filter_pools_by_type(pools_dict, PoolFilter.ALL) is not pools_dict

    def test_pool_tokens_include_phantom_pool_token(self) -> None:
        phantom = make_phantom_stable_pool(5, {DAI: "1", USDC: "1"}, virtual_supply="2")
        linear = make_linear_pool(6, "1", "1", "2")
        weighted = make_weighted_pool(7, {WETH: "1", USDC: "1"})
        assert pool_address(5) in pool_tokens(phantom)
        assert pool_address(6) in pool_tokens(linear)
        assert pool_tokens(weighted) == {WETH, USDC}


class TestParsePoolPairData:
    @pytest.mark.parametrize(
        "pool, token_in, token_out",
        [
            (make_weighted_pool(1, {WETH: "1000", USDC: "2000000"}), WETH, USDC),
            (make_stable_pool(2, {DAI: "1000", USDC: "1000"}), DAI, USDC),
            (make_linear_pool(3, "1000", "1000", "2000"), USDC, pool_address(3)),
            (make_element_pool(4, "1000", "1000", "1000"), USDC, EP_USDC),
        ],
        ids=["weighted", "stable", "linear", "element"],
    )
    def test_projection_is_repeatable(self, pool, token_in, token_out) -> None:
        first = parse_pool_pair_data(pool, token_in, token_out, NOW)
        assert parse_pool_pair_data(pool, token_in, token_out, NOW) == first

    def test_weighted_projection(self) -> None:
        pool = make_weighted_pool(
            1, {BAL: "100000", WETH: "400"}, weights={BAL: "80", WETH: "20"}, swap_fee="0.01"
        )
        pair = parse_pool_pair_data(pool, WETH, BAL, NOW)
        assert isinstance(pair, WeightedPoolPairData)
        assert pair.pool_type == PoolTypes.WEIGHTED
        assert pair.pair_type == SwapPairType.DIRECT
        assert pair.weight_in == Decimal("0.2")
        assert pair.weight_out == Decimal("0.8")
        assert pair.balance_in == 400 * 10**18
        assert pair.balance_out == 100_000 * 10**18
        assert pair.swap_fee == Decimal("0.01")

    def test_explicit_total_weight(self) -> None:
        pool = make_weighted_pool(1, {WETH: "1", USDC: "1"}).model_copy(
            update={"total_weight": Decimal(4)}
        )
        pair = parse_pool_pair_data(pool, WETH, USDC, NOW)
        assert pair.weight_in == Decimal("0.25")

    def test_usdc_raw_balance(self) -> None:
        pool = make_weighted_pool(1, {WETH: "1", USDC: "2000.123456"})
        pair = parse_pool_pair_data(pool, WETH, USDC, NOW)
        assert pair.decimals_out == 6
        assert pair.balance_out == 2_000_123_456

    def test_investment_and_lbp_price_as_weighted(self) -> None:
        for tag in ("Investment", "LiquidityBootstrapping"):
            pool = make_weighted_pool(1, {WETH: "1", USDC: "1"}, pool_type=tag)
            assert parse_pool_pair_data(pool, WETH, USDC, NOW).pool_type == PoolTypes.WEIGHTED

    def test_meta_stable_and_phantom_family(self) -> None:
        meta = make_stable_pool(1, {DAI: "1", USDC: "1"}, pool_type="MetaStable")
        phantom = make_phantom_stable_pool(2, {DAI: "1", USDC: "1"}, virtual_supply="2")
        assert parse_pool_pair_data(meta, DAI, USDC, NOW).pool_type == PoolTypes.META_STABLE
        assert parse_pool_pair_data(phantom, DAI, USDC, NOW).pool_type == PoolTypes.META_STABLE

    def test_input_addresses_are_normalized(self) -> None:
        pool = make_weighted_pool(1, {WETH: "1", USDC: "1"})
        pair = parse_pool_pair_data(pool, WETH.upper().replace("0X", "0x"), USDC, NOW)
        assert pair.token_in == WETH

    def test_token_not_in_pool(self) -> None:
        pool = make_weighted_pool(1, {WETH: "1", USDC: "1"})
        with pytest.raises(TokenNotInPool):
            parse_pool_pair_data(pool, WETH, DAI, NOW)

    def test_same_token_rejected(self) -> None:
        pool = make_weighted_pool(1, {WETH: "1", USDC: "1"})
        with pytest.raises(PoolIncompatible):
            parse_pool_pair_data(pool, WETH, WETH, NOW)

    def test_unknown_type_rejected(self) -> None:
        pool = make_weighted_pool(1, {WETH: "1", USDC: "1"}, pool_type="Gyro2")
        with pytest.raises(PoolIncompatible):
            parse_pool_pair_data(pool, WETH, USDC, NOW)

    def test_weighted_missing_weights(self) -> None:
        pool = PoolRecord.model_validate(
            {
                "id": pool_id(1),
                "address": pool_address(1),
                "poolType": "Weighted",
                "swapFee": "0.003",
                "tokens": [
                    {"address": WETH, "balance": "1", "decimals": 18},
                    {"address": USDC, "balance": "1", "decimals": 6},
                ],
            }
        )
        with pytest.raises(PoolIncompatible):
            parse_pool_pair_data(pool, WETH, USDC, NOW)

    def test_stable_without_amp(self) -> None:
        pool = make_stable_pool(1, {DAI: "1", USDC: "1"}).model_copy(update={"amp": None})
        with pytest.raises(PoolIncompatible):
            parse_pool_pair_data(pool, DAI, USDC, NOW)

    def test_phantom_without_supply(self) -> None:
        phantom = make_phantom_stable_pool(2, {DAI: "1", USDC: "1"}, virtual_supply="0")
        with pytest.raises(PoolIncompatible):
            parse_pool_pair_data(phantom, DAI, pool_address(2), NOW)

    def test_linear_without_indices(self) -> None:
        pool = make_linear_pool(6, "1", "1", "2").model_copy(update={"main_index": None})
        with pytest.raises(PoolIncompatible):
            parse_pool_pair_data(pool, USDC, pool_address(6), NOW)
