"""Tests for multi-token batch-swap queries and their vault encoding."""

import pytest
from eth_abi import decode, encode

from sor.errors import InvalidConfiguration
from sor.models.swap import SwapInfo, SwapTypes, SwapV2
from sor.queries import (
    QUERY_BATCH_SWAP_SELECTOR,
    BatchSwap,
    decode_query_batch_swap_result,
    encode_query_batch_swap,
    query_batch_swap_tokens_in,
    query_batch_swap_tokens_out,
)
from tests.conftest import MockVault
from tests.helpers import DAI, USDC, WBTC, WETH, make_options, pool_id

EXACT_IN = SwapTypes.SWAP_EXACT_IN


def fixed_deltas(deltas: dict[str, int]) -> MockVault:
    """Vault answering with the given per-token deltas (0 for anything else)."""
    return MockVault(lambda swaps, assets: [deltas.get(asset, 0) for asset in assets])


def legs(swaps: list[SwapV2], assets: list[str]) -> list[tuple[str, str, str, int]]:
    """Swaps with indices resolved to addresses."""
    return [
        (s.pool_id, assets[s.asset_in_index], assets[s.asset_out_index], s.amount) for s in swaps
    ]


class TestBatchSwap:
    def test_add_remaps_indices(self) -> None:
        batch = BatchSwap()
        batch.add(
            SwapInfo(
                token_addresses=[WETH, USDC],
                swaps=[SwapV2(pool_id=pool_id(1), asset_in_index=0, asset_out_index=1, amount=5)],
            )
        )
        batch.add(
            SwapInfo(
                token_addresses=[DAI, USDC, WETH],
                swaps=[
                    SwapV2(pool_id=pool_id(2), asset_in_index=0, asset_out_index=2, amount=7),
                    SwapV2(pool_id=pool_id(1), asset_in_index=2, asset_out_index=1, amount=0),
                ],
            )
        )
        assert batch.assets == [WETH, USDC, DAI]
        assert legs(batch.swaps, batch.assets) == [
            (pool_id(1), WETH, USDC, 5),
            (pool_id(2), DAI, WETH, 7),
            (pool_id(1), WETH, USDC, 0),
        ]

    def test_amount_out(self) -> None:
        batch = BatchSwap(assets=[WETH, USDC])
        assert batch.amount_out([10**18, -2000 * 10**6], USDC) == 2000 * 10**6
        assert batch.amount_out([10**18, -2000 * 10**6], USDC.upper()[2:]) == 2000 * 10**6

    def test_amount_out_untouched_token(self) -> None:
        batch = BatchSwap(assets=[WETH, USDC])
        assert batch.amount_out([10**18, -2000 * 10**6], DAI) == 0


class TestTokensIn:
    def test_merges_routes_into_one_query(self, sor_factory, mixed_pools) -> None:
        sor = sor_factory(mixed_pools)
        options = make_options()
        amounts = [10**18, 1000 * 10**18]
        vault = fixed_deltas({WETH: 10**18, DAI: 1000 * 10**18, USDC: -2990 * 10**6})

        result = query_batch_swap_tokens_in(sor, vault, [WETH, DAI], amounts, USDC, options)

        assert result.amount_token_out == 2990 * 10**6
        assert result.assets[:2] == [WETH, USDC]
        expected = []
        for token_in, amount in zip([WETH, DAI], amounts):
            info = sor.get_swaps(token_in, USDC, EXACT_IN, amount, options)
            expected += legs(info.swaps, info.token_addresses)
        assert legs(result.swaps, result.assets) == expected

        assert len(vault.calls) == 1
        kind, swaps, assets = vault.calls[0]
        assert kind == EXACT_IN
        assert swaps == result.swaps
        assert assets == result.assets

    def test_skips_zero_and_unrouted_legs(self, sor_factory, mixed_pools) -> None:
        sor = sor_factory(mixed_pools)
        vault = fixed_deltas({WETH: 10**18, USDC: -1990 * 10**6})
        result = query_batch_swap_tokens_in(
            sor, vault, [WETH, DAI, WBTC], [10**18, 0, 10**8], USDC, make_options()
        )
        assert result.amount_token_out == 1990 * 10**6
        assert DAI not in result.assets
        assert WBTC not in result.assets

    def test_nothing_routable(self, sor_factory, mixed_pools) -> None:
        vault = fixed_deltas({})
        result = query_batch_swap_tokens_in(
            sor_factory(mixed_pools), vault, [WBTC], [10**8], USDC, make_options()
        )
        assert result.amount_token_out == 0
        assert result.swaps == []
        assert vault.calls == []

    def test_length_mismatch(self, sor_factory, mixed_pools) -> None:
        with pytest.raises(InvalidConfiguration):
            query_batch_swap_tokens_in(
                sor_factory(mixed_pools), fixed_deltas({}), [WETH, DAI], [10**18], USDC
            )

    def test_vault_delta_count_checked(self, sor_factory, mixed_pools) -> None:
        vault = MockVault(lambda swaps, assets: [0])
        with pytest.raises(InvalidConfiguration):
            query_batch_swap_tokens_in(
                sor_factory(mixed_pools), vault, [WETH], [10**18], USDC, make_options()
            )


class TestTokensOut:
    def test_amount_per_token(self, sor_factory, mixed_pools) -> None:
        vault = fixed_deltas({WETH: 2 * 10**18, USDC: -1990 * 10**6, DAI: -1985 * 10**18})
        result = query_batch_swap_tokens_out(
            sor_factory(mixed_pools), vault, WETH, [10**18, 10**18], [USDC, DAI], make_options()
        )
        assert result.amount_tokens_out == [1990 * 10**6, 1985 * 10**18]
        assert result.assets[0] == WETH
        assert len(vault.calls) == 1

    def test_unrouted_token_is_zero(self, sor_factory, mixed_pools) -> None:
        vault = fixed_deltas({WETH: 10**18, USDC: -1990 * 10**6})
        result = query_batch_swap_tokens_out(
            sor_factory(mixed_pools), vault, WETH, [10**18, 10**18], [USDC, WBTC], make_options()
        )
        assert result.amount_tokens_out == [1990 * 10**6, 0]

    def test_empty_batch_skips_vault(self, sor_factory, mixed_pools) -> None:
        vault = fixed_deltas({})
        result = query_batch_swap_tokens_out(
            sor_factory(mixed_pools), vault, WETH, [0, 0], [USDC, DAI], make_options()
        )
        assert result.amount_tokens_out == [0, 0]
        assert vault.calls == []

    def test_length_mismatch(self, sor_factory, mixed_pools) -> None:
        with pytest.raises(InvalidConfiguration):
            query_batch_swap_tokens_out(
                sor_factory(mixed_pools), fixed_deltas({}), WETH, [10**18], [USDC, DAI]
            )


class TestAbiEncoding:
    @pytest.fixture
    def swaps(self) -> list[SwapV2]:
        return [
            SwapV2(pool_id=pool_id(2), asset_in_index=0, asset_out_index=2, amount=10**18),
            SwapV2(pool_id=pool_id(3), asset_in_index=2, asset_out_index=1, amount=0),
        ]

    def test_selector_prefix(self, swaps) -> None:
        calldata = encode_query_batch_swap(EXACT_IN, swaps, [WETH, USDC, DAI])
        assert calldata.startswith("0x" + QUERY_BATCH_SWAP_SELECTOR.hex())

    def test_arguments(self, swaps) -> None:
        calldata = encode_query_batch_swap(
            SwapTypes.SWAP_EXACT_OUT, swaps, [WETH, USDC, DAI], sender=WETH
        )
        args = bytes.fromhex(calldata[2 + 8 :])
        kind, steps, assets, funds = decode(
            [
                "uint8",
                "(bytes32,uint256,uint256,uint256,bytes)[]",
                "address[]",
                "(address,bool,address,bool)",
            ],
            args,
        )
        assert kind == 1
        assert [a.lower() for a in assets] == [WETH, USDC, DAI]
        first, second = steps
        assert first == (bytes.fromhex(pool_id(2)[2:]), 0, 2, 10**18, b"")
        assert second[1:4] == (2, 1, 0)
        assert funds[0].lower() == WETH
        assert funds[1] is False
        assert int(funds[2], 16) == 0

    def test_decode_result(self) -> None:
        raw = encode(["int256[]"], [[10**18, -2000 * 10**6, 0]])
        expected = [10**18, -2000 * 10**6, 0]
        assert decode_query_batch_swap_result(raw) == expected
        assert decode_query_batch_swap_result("0x" + raw.hex()) == expected
