"""Swap request options and the swap plan returned to callers."""

from __future__ import annotations

import time
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from sor.constants import DEFAULT_MAX_POOLS, DEFAULT_SWAP_GAS
from sor.errors import InvalidConfiguration
from sor.models.pool import PoolRecord
from sor.models.types import Address, Bytes, Uint256


class SwapTypes(IntEnum):
    """Which side of the trade is fixed."""

    SWAP_EXACT_IN = 0
    SWAP_EXACT_OUT = 1


class PoolFilter(str, Enum):
    """Pool-type restriction for a routing call.

    Values are the pool type tags published by the pool source.
    """

    ALL = "All"
    WEIGHTED = "Weighted"
    STABLE = "Stable"
    META_STABLE = "MetaStable"
    LBP = "LiquidityBootstrapping"
    INVESTMENT = "Investment"
    ELEMENT = "Element"
    AAVE_LINEAR = "AaveLinear"
    LINEAR = "Linear"
    STABLE_PHANTOM = "StablePhantom"


class SwapOptions(BaseModel):
    """Per-call routing configuration.

    Attributes:
        gas_price: Gas price in wei, used only to derive the extra-pool cost
        swap_gas: Gas units charged per additional pool
        timestamp: Unix seconds; fixed-term pools outside their window are skipped
        max_pools: Maximum number of distinct pools touched by the route
        pool_type_filter: Restrict routing to one pool type family
        force_refresh: Bypass cached candidate paths
    """

    gas_price: Uint256 = Field(default=0, alias="gasPrice")
    swap_gas: Uint256 = Field(default=DEFAULT_SWAP_GAS, alias="swapGas")
    timestamp: int = Field(default_factory=lambda: int(time.time()), ge=0)
    max_pools: int = Field(default=DEFAULT_MAX_POOLS, ge=1, alias="maxPools")
    pool_type_filter: PoolFilter = Field(default=PoolFilter.ALL, alias="poolTypeFilter")
    force_refresh: bool = Field(default=False, alias="forceRefresh")

    model_config = {"populate_by_name": True, "frozen": True}


def parse_swap_options(options: SwapOptions | Mapping[str, Any] | None) -> SwapOptions:
    """Validate caller-supplied options.

    Raises:
        InvalidConfiguration: If any option is malformed
    """
    if options is None:
        return SwapOptions()
    if isinstance(options, SwapOptions):
        return options
    try:
        return SwapOptions.model_validate(dict(options))
    except ValidationError as err:
        raise InvalidConfiguration(f"Invalid swap options: {err}") from err


class SwapV2(BaseModel):
    """One leg of a batch swap, referencing assets by index."""

    pool_id: str = Field(alias="poolId")
    asset_in_index: int = Field(ge=0, alias="assetInIndex")
    asset_out_index: int = Field(ge=0, alias="assetOutIndex")
    amount: Uint256
    user_data: Bytes = Field(default="0x", alias="userData")

    model_config = {"populate_by_name": True}


class SwapInfo(BaseModel):
    """Best route for a trade, ready for a batch-swap call.

    Attributes:
        token_addresses: Deduplicated asset index (token_in, token_out first)
        swaps: Ordered legs
        swap_amount: Requested amount (input for exact-in, output for exact-out)
        return_amount: Realized output (exact-in) or required input (exact-out)
        return_amount_considering_fees: return_amount net of gas cost
        market_sp: Marginal price at the final split, quoted as token_in per
            token_out (the reciprocal of a token_out-per-token_in rate)
    """

    token_addresses: list[Address] = Field(default_factory=list, alias="tokenAddresses")
    swaps: list[SwapV2] = Field(default_factory=list)
    swap_amount: Uint256 = Field(default=0, alias="swapAmount")
    return_amount: Uint256 = Field(default=0, alias="returnAmount")
    return_amount_considering_fees: int = Field(default=0, alias="returnAmountConsideringFees")
    token_in: str = Field(default="", alias="tokenIn")
    token_out: str = Field(default="", alias="tokenOut")
    market_sp: Decimal = Field(
        default=Decimal(0),
        alias="marketSp",
        description="Marginal price at the final split, in token_in per token_out",
    )

    model_config = {"populate_by_name": True}

    @classmethod
    def empty(cls, token_in: str = "", token_out: str = "") -> SwapInfo:
        """A result with no route."""
        return cls(token_in=token_in, token_out=token_out)

    @property
    def is_empty(self) -> bool:
        return not self.swaps


class SwapRequest(BaseModel):
    """Body of a routing request: a pool snapshot plus the trade."""

    pools: list[PoolRecord]
    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")
    swap_type: SwapTypes = Field(alias="swapType")
    swap_amount: Uint256 = Field(alias="swapAmount")
    options: SwapOptions = Field(default_factory=SwapOptions)

    model_config = {"populate_by_name": True}


__all__ = [
    "SwapTypes",
    "PoolFilter",
    "SwapOptions",
    "parse_swap_options",
    "SwapV2",
    "SwapInfo",
    "SwapRequest",
]
