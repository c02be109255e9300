"""Pydantic models for pool snapshots, swap options and swap plans."""

from sor.models.pool import PoolRecord, PoolToken
from sor.models.swap import (
    PoolFilter,
    SwapInfo,
    SwapOptions,
    SwapRequest,
    SwapTypes,
    SwapV2,
    parse_swap_options,
)
from sor.models.types import Address, Bytes, Uint256

__all__ = [
    # Types
    "Address",
    "Bytes",
    "Uint256",
    # Pool snapshot
    "PoolRecord",
    "PoolToken",
    # Swap request and plan
    "PoolFilter",
    "SwapOptions",
    "SwapRequest",
    "SwapTypes",
    "parse_swap_options",
    "SwapInfo",
    "SwapV2",
]
