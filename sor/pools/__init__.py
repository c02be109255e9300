"""Pool pricing engine.

- types: PoolTypes, SwapPairType and the per-variant pair data
- parsing: snapshot filtering and pair projection
- registry: PRICING dispatch table and the pricing operations
- weighted, stable, linear, element: per-variant pricing
- zero_price_impact: join valuation at the marginal price
"""

from .parsing import filter_pools_by_type, parse_pool_pair_data, parse_to_pools_dict, pool_tokens
from .registry import (
    PRICING,
    derivative_spot_price_after_swap,
    exact_token_in_for_token_out,
    get_limit_amount_swap,
    get_normalized_liquidity,
    spot_price_after_swap,
    token_in_for_exact_token_out,
)
from .types import PoolPairData, PoolTypes, SwapPairType
from .zero_price_impact import (
    phantom_stable_bpt_for_tokens_zero_price_impact,
    stable_bpt_for_tokens_zero_price_impact,
    weighted_bpt_for_tokens_zero_price_impact,
)

__all__ = [
    "PRICING",
    "PoolPairData",
    "PoolTypes",
    "SwapPairType",
    "derivative_spot_price_after_swap",
    "exact_token_in_for_token_out",
    "filter_pools_by_type",
    "get_limit_amount_swap",
    "get_normalized_liquidity",
    "parse_pool_pair_data",
    "parse_to_pools_dict",
    "phantom_stable_bpt_for_tokens_zero_price_impact",
    "pool_tokens",
    "spot_price_after_swap",
    "stable_bpt_for_tokens_zero_price_impact",
    "token_in_for_exact_token_out",
    "weighted_bpt_for_tokens_zero_price_impact",
]
