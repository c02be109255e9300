"""Smart Order Router - Python Implementation."""

from sor.costs import SwapCostCalculator
from sor.errors import (
    InsufficientLiquidity,
    InvalidConfiguration,
    NoRoute,
    SorError,
)
from sor.models import PoolFilter, PoolRecord, SwapInfo, SwapOptions, SwapTypes, SwapV2
from sor.pool_cacher import PoolCacher
from sor.queries import query_batch_swap_tokens_in, query_batch_swap_tokens_out
from sor.sor import SOR

__version__ = "0.1.0"
__all__ = [
    "SOR",
    "PoolCacher",
    "SwapCostCalculator",
    "PoolFilter",
    "PoolRecord",
    "SwapInfo",
    "SwapOptions",
    "SwapTypes",
    "SwapV2",
    "SorError",
    "NoRoute",
    "InsufficientLiquidity",
    "InvalidConfiguration",
    "query_batch_swap_tokens_in",
    "query_batch_swap_tokens_out",
    "__version__",
]
