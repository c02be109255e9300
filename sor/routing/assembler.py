"""Batch-swap plan assembly.

Turns an allocation into the asset index and ordered legs a batch-swap
call expects. Within a two-hop path, a leg amount of 0 tells the
settlement layer to use the amount computed by the previous leg.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from sor.models.swap import SwapInfo, SwapTypes, SwapV2
from sor.models.types import normalize_address

from .types import PathAllocation


class _AssetIndex:
    def __init__(self, *initial: str) -> None:
        self.addresses: list[str] = []
        self._positions: dict[str, int] = {}
        for address in initial:
            self.index(address)

    def index(self, address: str) -> int:
        if address not in self._positions:
            self._positions[address] = len(self.addresses)
            self.addresses.append(address)
        return self._positions[address]


def format_swaps(
    allocation: Sequence[PathAllocation],
    swap_type: SwapTypes,
    swap_amount: int,
    token_in: str,
    token_out: str,
    return_amount: int,
    return_amount_considering_fees: int,
    market_sp: Decimal,
) -> SwapInfo:
    """Render an allocation as a SwapInfo.

    token_in and token_out take asset indices 0 and 1; intermediates follow
    in first-seen order. Legs follow the allocation's rank order. For exact
    out, the legs of a two-hop path are emitted last hop first, matching
    how the settlement layer walks a given-out batch backwards.
    """
    token_in = normalize_address(token_in)
    token_out = normalize_address(token_out)
    if not allocation:
        return SwapInfo.empty(token_in, token_out)

    assets = _AssetIndex(token_in, token_out)
    swaps: list[SwapV2] = []
    for path, amount in allocation:
        hops = path.pools if swap_type == SwapTypes.SWAP_EXACT_IN else tuple(reversed(path.pools))
        for position, pair in enumerate(hops):
            swaps.append(
                SwapV2(
                    pool_id=pair.id,
                    asset_in_index=assets.index(pair.token_in),
                    asset_out_index=assets.index(pair.token_out),
                    amount=amount if position == 0 else 0,
                )
            )

    return SwapInfo(
        token_addresses=assets.addresses,
        swaps=swaps,
        swap_amount=swap_amount,
        return_amount=return_amount,
        return_amount_considering_fees=return_amount_considering_fees,
        token_in=token_in,
        token_out=token_out,
        market_sp=market_sp,
    )


__all__ = ["format_swaps"]
