"""Gas cost of extra pools, expressed in a trade token.

The optimizer only adds a path when the extra output beats the gas of the
pools it brings in. Gas is paid in the native asset, so the cost is
converted with the native asset's price in the trade token:

    cost = gas_price_wei * swap_gas * price * 10**decimals / 10**18

Prices come from an injected source and are cached per token for
ttl_seconds. A token with no known price costs nothing, which lets the
optimizer split freely. Routers built without a calculator share one
process-wide instance, so its cache and pinned prices are common to them.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

import structlog

from sor.constants import DEFAULT_PRICE_CACHE_TTL_SECONDS, DEFAULT_SWAP_GAS
from sor.errors import InvalidConfiguration
from sor.math.decimal_utils import ZERO, from_human, price_math
from sor.models.types import normalize_address

logger = structlog.get_logger()

# Native asset price in a token (human units), or None if unknown
PriceSource = Callable[[str], "str | Decimal | None"]

_NATIVE_DECIMALS = 18


@dataclass
class _CachedPrice:
    price: Decimal
    # None for prices set by hand; those live until invalidated
    expires_at: float | None

    def is_fresh(self, now: float) -> bool:
        return self.expires_at is None or now < self.expires_at


def _parse_price(raw: str | Decimal | None) -> Decimal:
    if raw is None:
        return ZERO
    try:
        price = Decimal(raw)
    except (InvalidOperation, ValueError, TypeError) as err:
        raise InvalidConfiguration(f"Invalid native asset price: {raw!r}") from err
    if not price.is_finite() or price < 0:
        raise InvalidConfiguration(f"Invalid native asset price: {raw!r}")
    return price


class SwapCostCalculator:
    """Converts per-pool gas into trade-token units.

    Usage:
        calculator = SwapCostCalculator(price_source=oracle.native_price_in)
        cost = calculator.convert_gas_cost_to_token(usdc, 6, gas_price_wei=30 * 10**9)
    """

    def __init__(
        self,
        price_source: PriceSource | None = None,
        ttl_seconds: float = DEFAULT_PRICE_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds < 0:
            raise InvalidConfiguration(f"ttl_seconds must not be negative: {ttl_seconds}")
        self._price_source = price_source
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: dict[str, _CachedPrice] = {}

    def get_native_asset_price_in_token(self, token: str) -> str:
        """Price of one native asset unit in `token`, as a decimal string.

        Returns "0" when no source is configured or the source has no price.
        """
        token = normalize_address(token)
        now = self._clock()
        cached = self._cache.get(token)
        if cached is not None and cached.is_fresh(now):
            return str(cached.price)

        price = self._fetch(token)
        self._cache[token] = _CachedPrice(price, now + self._ttl_seconds)
        return str(price)

    def set_native_asset_price_in_token(self, token: str, price: str | Decimal) -> None:
        """Pin the native asset price in `token` until invalidated."""
        self._cache[normalize_address(token)] = _CachedPrice(_parse_price(price), None)

    def invalidate(self, token: str | None = None) -> None:
        """Forget the cached price of `token`, or of every token."""
        if token is None:
            self._cache.clear()
        else:
            self._cache.pop(normalize_address(token), None)

    def convert_gas_cost_to_token(
        self,
        token: str,
        decimals: int,
        gas_price_wei: int,
        swap_gas: int = DEFAULT_SWAP_GAS,
    ) -> int:
        """Raw `token` units worth swap_gas at gas_price_wei."""
        if gas_price_wei < 0 or swap_gas < 0:
            raise InvalidConfiguration("Gas price and swap gas must not be negative")
        if gas_price_wei == 0 or swap_gas == 0:
            return 0

        price = Decimal(self.get_native_asset_price_in_token(token))
        if price == ZERO:
            return 0
        with price_math():
            gas_cost_native = Decimal(gas_price_wei * swap_gas).scaleb(-_NATIVE_DECIMALS)
            return from_human(gas_cost_native * price, decimals)

    def _fetch(self, token: str) -> Decimal:
        if self._price_source is None:
            return ZERO
        try:
            raw = self._price_source(token)
        except Exception as err:
            logger.warning("native_price_lookup_failed", token=token, error=str(err))
            return ZERO
        try:
            price = _parse_price(raw)
        except InvalidConfiguration as err:
            logger.warning("native_price_invalid", token=token, error=str(err))
            return ZERO
        if price == ZERO:
            logger.debug("native_price_missing", token=token)
        return price


# Process-wide calculator used wherever none is injected
_default_calculator = SwapCostCalculator()


def get_default_swap_cost_calculator() -> SwapCostCalculator:
    """The process-wide calculator, shared by every router built without one."""
    return _default_calculator


__all__ = ["PriceSource", "SwapCostCalculator", "get_default_swap_cost_calculator"]
