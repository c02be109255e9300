"""Multi-token batch-swap queries.

Routes several trades that share one side, merges them into a single batch
and asks the vault's read-only queryBatchSwap entrypoint for the amounts it
would actually settle. The vault is injected: anything with a
query_batch_swap(kind, swaps, assets) method returning per-asset deltas
will do (a web3 contract wrapper, a fork simulator, a test double).

Vault deltas are signed from the vault's side: positive amounts flow into
the vault, negative amounts flow out to the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

import structlog
from eth_abi import decode, encode  # type: ignore[attr-defined]

from sor.constants import ZERO_ADDRESS
from sor.errors import InsufficientLiquidity, InvalidConfiguration, NoRoute
from sor.models.swap import SwapInfo, SwapOptions, SwapTypes, SwapV2
from sor.models.types import normalize_address

if TYPE_CHECKING:
    from sor.sor import SOR

logger = structlog.get_logger()

# queryBatchSwap(uint8 kind, BatchSwapStep[] swaps, address[] assets, FundManagement funds)
QUERY_BATCH_SWAP_SELECTOR = bytes.fromhex("f84d066e")

_QUERY_BATCH_SWAP_TYPES = [
    "uint8",
    "(bytes32,uint256,uint256,uint256,bytes)[]",
    "address[]",
    "(address,bool,address,bool)",
]


class BatchSwapVault(Protocol):
    """Read-only vault entrypoint used to confirm batch amounts."""

    def query_batch_swap(
        self, kind: SwapTypes, swaps: list[SwapV2], assets: list[str]
    ) -> Sequence[int]:
        """Per-asset deltas, aligned with `assets`."""
        ...


@dataclass
class BatchSwap:
    """A merged batch: legs plus the asset index they refer to."""

    swaps: list[SwapV2] = field(default_factory=list)
    assets: list[str] = field(default_factory=list)

    def add(self, info: SwapInfo) -> None:
        """Append a routed trade, remapping its asset indices into this batch."""
        remap = [self._index(address) for address in info.token_addresses]
        for swap in info.swaps:
            self.swaps.append(
                swap.model_copy(
                    update={
                        "asset_in_index": remap[swap.asset_in_index],
                        "asset_out_index": remap[swap.asset_out_index],
                    }
                )
            )

    def amount_out(self, deltas: Sequence[int], token: str) -> int:
        """Amount of `token` paid out by the vault, 0 if the batch never touches it."""
        token = normalize_address(token)
        if token not in self.assets:
            return 0
        return -deltas[self.assets.index(token)]

    def _index(self, address: str) -> int:
        if address not in self.assets:
            self.assets.append(address)
        return self.assets.index(address)


@dataclass
class TokensInQueryResult:
    amount_token_out: int
    swaps: list[SwapV2]
    assets: list[str]


@dataclass
class TokensOutQueryResult:
    amount_tokens_out: list[int]
    swaps: list[SwapV2]
    assets: list[str]


def _route(
    sor: SOR,
    token_in: str,
    token_out: str,
    amount: int,
    options: SwapOptions | None,
) -> SwapInfo | None:
    if amount == 0:
        return None
    try:
        info = sor.get_swaps(token_in, token_out, SwapTypes.SWAP_EXACT_IN, amount, options)
    except (NoRoute, InsufficientLiquidity) as err:
        logger.info("query_leg_unrouted", token_in=token_in, token_out=token_out, reason=str(err))
        return None
    return None if info.is_empty else info


def _query(vault: BatchSwapVault, batch: BatchSwap) -> Sequence[int]:
    deltas = vault.query_batch_swap(SwapTypes.SWAP_EXACT_IN, batch.swaps, batch.assets)
    if len(deltas) != len(batch.assets):
        raise InvalidConfiguration(
            f"Vault returned {len(deltas)} deltas for {len(batch.assets)} assets"
        )
    return deltas


def query_batch_swap_tokens_in(
    sor: SOR,
    vault: BatchSwapVault,
    tokens_in: Sequence[str],
    amounts_in: Sequence[int],
    token_out: str,
    options: SwapOptions | None = None,
) -> TokensInQueryResult:
    """Sell each tokens_in[i] for amounts_in[i] of it, all into token_out.

    Returns:
        Total token_out the vault would pay, with the merged batch
    """
    if len(tokens_in) != len(amounts_in):
        raise InvalidConfiguration("tokens_in and amounts_in must have the same length")

    batch = BatchSwap()
    for token_in, amount in zip(tokens_in, amounts_in):
        info = _route(sor, token_in, token_out, amount, options)
        if info is not None:
            batch.add(info)

    if not batch.swaps:
        return TokensInQueryResult(0, [], [])

    deltas = _query(vault, batch)
    return TokensInQueryResult(batch.amount_out(deltas, token_out), batch.swaps, batch.assets)


def query_batch_swap_tokens_out(
    sor: SOR,
    vault: BatchSwapVault,
    token_in: str,
    amounts_in: Sequence[int],
    tokens_out: Sequence[str],
    options: SwapOptions | None = None,
) -> TokensOutQueryResult:
    """Sell amounts_in[i] of token_in for each tokens_out[i].

    Returns:
        Amount of each tokens_out[i] the vault would pay (0 where no route
        exists), with the merged batch
    """
    if len(tokens_out) != len(amounts_in):
        raise InvalidConfiguration("tokens_out and amounts_in must have the same length")

    batch = BatchSwap()
    for token_out, amount in zip(tokens_out, amounts_in):
        info = _route(sor, token_in, token_out, amount, options)
        if info is not None:
            batch.add(info)

    if not batch.swaps:
        return TokensOutQueryResult([0] * len(tokens_out), [], [])

    deltas = _query(vault, batch)
    return TokensOutQueryResult(
        [batch.amount_out(deltas, token) for token in tokens_out],
        batch.swaps,
        batch.assets,
    )


def _hex_bytes(value: str) -> bytes:
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


def encode_query_batch_swap(
    kind: SwapTypes,
    swaps: Sequence[SwapV2],
    assets: Sequence[str],
    sender: str = ZERO_ADDRESS,
    recipient: str = ZERO_ADDRESS,
) -> str:
    """Calldata for Vault.queryBatchSwap, for callers issuing eth_call themselves.

    Funds never use internal balances; queries do not move tokens, so the
    sender and recipient only matter to pools that price by caller.
    """
    encoded_swaps = [
        (
            _hex_bytes(swap.pool_id),
            swap.asset_in_index,
            swap.asset_out_index,
            swap.amount,
            _hex_bytes(swap.user_data),
        )
        for swap in swaps
    ]
    funds = (normalize_address(sender), False, normalize_address(recipient), False)
    encoded_args = encode(
        _QUERY_BATCH_SWAP_TYPES,
        [int(kind), encoded_swaps, [normalize_address(a) for a in assets], funds],
    )
    return "0x" + (QUERY_BATCH_SWAP_SELECTOR + encoded_args).hex()


def decode_query_batch_swap_result(data: str | bytes) -> list[int]:
    """Asset deltas from queryBatchSwap return data."""
    raw = _hex_bytes(data) if isinstance(data, str) else data
    (deltas,) = decode(["int256[]"], raw)
    return list(deltas)


__all__ = [
    "QUERY_BATCH_SWAP_SELECTOR",
    "BatchSwapVault",
    "BatchSwap",
    "TokensInQueryResult",
    "TokensOutQueryResult",
    "query_batch_swap_tokens_in",
    "query_batch_swap_tokens_out",
    "encode_query_batch_swap",
    "decode_query_batch_swap_result",
]
