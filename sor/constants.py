"""Router constants.

Gas figures match the settlement layer's per-swap estimates; ratios match
the pool contracts.
"""

from decimal import Decimal

# Gas units charged for each pool beyond the first path's pools
DEFAULT_SWAP_GAS = 35_000

# Default cap on distinct pools touched by one route
DEFAULT_MAX_POOLS = 4

# Native asset sentinel used by the settlement layer
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Stable-family pools: limit trades to 99% of the out balance
STABLE_LIMIT_RATIO = Decimal("0.99")

# Optimizer defaults
DEFAULT_PRICE_TOLERANCE = Decimal("1e-6")
DEFAULT_MAX_ITERATIONS = 100

# Native asset price cache lifetime
DEFAULT_PRICE_CACHE_TTL_SECONDS = 300.0

# Candidate path cache entries kept per router; least recently used go first
DEFAULT_PATH_CACHE_SIZE = 256
