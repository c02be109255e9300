"""Pool variants and the pair data the pricing engine consumes.

A PoolPairData is a frozen projection of one pool onto an ordered
(token_in, token_out) pair. Balances are raw native units; everything the
math needs is denormalized onto the pair so pricing never touches the
pool record again.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import IntEnum
from typing import TypeVar


class PoolTypes(IntEnum):
    """Pricing curve families."""

    WEIGHTED = 0
    STABLE = 1
    ELEMENT = 2
    META_STABLE = 3
    LINEAR = 4


class SwapPairType(IntEnum):
    """Role of a pair within a path."""

    DIRECT = 0
    HOP_IN = 1
    HOP_OUT = 2


# Pool type tags as published by the pool source, mapped to pricing families.
# Phantom stable pools price like meta-stable pools with a pool-token side.
POOL_TYPE_TAGS: dict[str, PoolTypes] = {
    "Weighted": PoolTypes.WEIGHTED,
    "Investment": PoolTypes.WEIGHTED,
    "LiquidityBootstrapping": PoolTypes.WEIGHTED,
    "Stable": PoolTypes.STABLE,
    "MetaStable": PoolTypes.META_STABLE,
    "StablePhantom": PoolTypes.META_STABLE,
    "Element": PoolTypes.ELEMENT,
    "Linear": PoolTypes.LINEAR,
    "AaveLinear": PoolTypes.LINEAR,
}

# Tags whose pool token is itself swappable through the pool
PHANTOM_POOL_TAGS = frozenset({"StablePhantom", "Linear", "AaveLinear"})

P = TypeVar("P", bound="PoolPairBase")


@dataclass(frozen=True, kw_only=True)
class PoolPairBase:
    """Fields shared by every variant.

    Attributes:
        id: Pool id (32-byte hex)
        address: Pool contract address, also the pool token address
        pool_type: Pricing family
        swap_fee: Fee fraction in [0, 1)
        token_in: Address of the token sent to the pool
        token_out: Address of the token received
        decimals_in: Native decimals of token_in
        decimals_out: Native decimals of token_out
        balance_in: Raw balance of token_in (virtual supply if it is the pool token)
        balance_out: Raw balance of token_out (virtual supply if it is the pool token)
        bpt_in: token_in is the pool's own token
        bpt_out: token_out is the pool's own token
        pair_type: Position in a path
    """

    id: str
    address: str
    pool_type: PoolTypes
    swap_fee: Decimal
    token_in: str
    token_out: str
    decimals_in: int
    decimals_out: int
    balance_in: int
    balance_out: int
    bpt_in: bool = False
    bpt_out: bool = False
    pair_type: SwapPairType = SwapPairType.DIRECT

    def with_balances(self: P, balance_in: int, balance_out: int) -> P:
        """Copy of this pair with new raw balances for the traded tokens."""
        return replace(self, balance_in=balance_in, balance_out=balance_out)

    def with_pair_type(self: P, pair_type: SwapPairType) -> P:
        return replace(self, pair_type=pair_type)

    def after_swap(self: P, amount_in: int, amount_out: int) -> P:
        """Pair state once amount_in has entered the pool and amount_out has left.

        A pool token sent in is burned and one sent out is minted, so a
        pool-token side moves the virtual supply the other way.
        """
        balance_in = self.balance_in - amount_in if self.bpt_in else self.balance_in + amount_in
        balance_out = (
            self.balance_out + amount_out if self.bpt_out else self.balance_out - amount_out
        )
        return self.with_balances(balance_in, balance_out)


@dataclass(frozen=True, kw_only=True)
class WeightedPoolPairData(PoolPairBase):
    """Weighted product pair. Weights are normalized to sum to 1 over the pool."""

    weight_in: Decimal
    weight_out: Decimal


@dataclass(frozen=True, kw_only=True)
class StablePoolPairData(PoolPairBase):
    """Stable-family pair (Stable, MetaStable, StablePhantom).

    The invariant depends on every balance, so the full (non pool-token)
    balance vector travels with the pair. index_in/index_out point into it;
    None marks the pool-token side of a phantom pool.

    Attributes:
        amp: Amplification parameter A (unscaled, e.g. 200)
        balances: Raw balances of all constituents except the pool token
        decimals: Native decimals aligned with balances
        rates: Price rates aligned with balances (all 1 for plain Stable)
        index_in: Index of token_in in balances, None if it is the pool token
        index_out: Index of token_out in balances, None if it is the pool token
        virtual_supply: Raw (18-decimal) circulating pool-token supply
    """

    amp: Decimal
    balances: tuple[int, ...]
    decimals: tuple[int, ...]
    rates: tuple[Decimal, ...]
    index_in: int | None
    index_out: int | None
    virtual_supply: int = 0

    def with_balances(self, balance_in: int, balance_out: int) -> StablePoolPairData:
        balances = list(self.balances)
        virtual_supply = self.virtual_supply
        if self.index_in is None:
            virtual_supply = balance_in
        else:
            balances[self.index_in] = balance_in
        if self.index_out is None:
            virtual_supply = balance_out
        else:
            balances[self.index_out] = balance_out
        return replace(
            self,
            balance_in=balance_in,
            balance_out=balance_out,
            balances=tuple(balances),
            virtual_supply=virtual_supply,
        )


@dataclass(frozen=True, kw_only=True)
class LinearPoolPairData(PoolPairBase):
    """Linear pool pair: main or wrapped token against the pool token.

    Attributes:
        main_balance: Raw main token balance
        wrapped_balance: Raw wrapped token balance
        main_decimals: Native decimals of the main token
        wrapped_decimals: Native decimals of the wrapped token
        main_rate: Price rate of the main token
        wrapped_rate: Main tokens per wrapped token
        virtual_supply: Raw (18-decimal) circulating pool-token supply
        lower_target: Lower main balance target (human units)
        upper_target: Upper main balance target (human units)
        via_main: The non pool-token side is the main token (else wrapped)
    """

    main_balance: int
    wrapped_balance: int
    main_decimals: int
    wrapped_decimals: int
    main_rate: Decimal
    wrapped_rate: Decimal
    virtual_supply: int
    lower_target: Decimal
    upper_target: Decimal
    via_main: bool

    def with_balances(self, balance_in: int, balance_out: int) -> LinearPoolPairData:
        token_balance = balance_out if self.bpt_in else balance_in
        virtual_supply = balance_in if self.bpt_in else balance_out
        if self.via_main:
            main_balance, wrapped_balance = token_balance, self.wrapped_balance
        else:
            main_balance, wrapped_balance = self.main_balance, token_balance
        return replace(
            self,
            balance_in=balance_in,
            balance_out=balance_out,
            main_balance=main_balance,
            wrapped_balance=wrapped_balance,
            virtual_supply=virtual_supply,
        )


@dataclass(frozen=True, kw_only=True)
class ElementPoolPairData(PoolPairBase):
    """Fixed-term (principal/base) pair.

    Attributes:
        total_shares: Pool token supply (human units), added to the principal reserve
        time_to_expiry: Fraction of the term remaining, (expiry - now) / unit_seconds
        principal_in: token_in is the principal token (else the base token)
    """

    total_shares: Decimal
    time_to_expiry: Decimal
    principal_in: bool


PoolPairData = WeightedPoolPairData | StablePoolPairData | LinearPoolPairData | ElementPoolPairData


__all__ = [
    "PoolTypes",
    "SwapPairType",
    "POOL_TYPE_TAGS",
    "PHANTOM_POOL_TAGS",
    "PoolPairBase",
    "WeightedPoolPairData",
    "StablePoolPairData",
    "LinearPoolPairData",
    "ElementPoolPairData",
    "PoolPairData",
]
