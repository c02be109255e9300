"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Token addresses, decimals and the test clock
- factories: Pool snapshot, pair and option factory functions
"""

from tests.helpers.constants import (
    BAL,
    DAI,
    EP_USDC,
    NOW,
    TOKEN_DECIMALS,
    USDC,
    USDT,
    WA_USDC,
    WBTC,
    WETH,
)
from tests.helpers.factories import (
    make_element_pool,
    make_linear_pool,
    make_options,
    make_pair,
    make_phantom_stable_pool,
    make_stable_pool,
    make_weighted_pool,
    pool_address,
    pool_id,
    pools_payload,
)

__all__ = [
    # Constants
    "WETH",
    "USDC",
    "DAI",
    "USDT",
    "BAL",
    "WBTC",
    "WA_USDC",
    "EP_USDC",
    "TOKEN_DECIMALS",
    "NOW",
    # Factories
    "pool_id",
    "pool_address",
    "make_weighted_pool",
    "make_stable_pool",
    "make_phantom_stable_pool",
    "make_linear_pool",
    "make_element_pool",
    "make_pair",
    "make_options",
    "pools_payload",
]
