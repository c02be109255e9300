"""Pydantic models for pool snapshot records.

Field names follow the pool subgraph schema (camelCase aliases), so a
subgraph `pools` query result validates as-is:

    records = [PoolRecord.model_validate(p) for p in response["pools"]]
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from sor.models.types import Address, normalize_address


class PoolToken(BaseModel):
    """A constituent token of a pool.

    Balances are in human units (e.g. "1500.25"), as published by the
    subgraph. Weights may be normalized (0.8) or raw (80); the projector
    divides by the pool's total weight.
    """

    address: Address
    balance: Decimal = Field(ge=0)
    decimals: int = Field(ge=0, le=18)
    price_rate: Decimal = Field(default=Decimal(1), gt=0, alias="priceRate")
    weight: Decimal | None = Field(default=None, ge=0)

    model_config = {"populate_by_name": True, "frozen": True}


class PoolRecord(BaseModel):
    """Immutable snapshot of one pool.

    The router never mutates a record; fetch a fresh snapshot per routing
    call so balances stay consistent across pools.
    """

    id: str
    address: Address
    pool_type: str = Field(alias="poolType")
    swap_fee: Decimal = Field(ge=0, lt=1, alias="swapFee")
    swap_enabled: bool = Field(default=True, alias="swapEnabled")
    total_shares: Decimal = Field(default=Decimal(0), ge=0, alias="totalShares")
    tokens: tuple[PoolToken, ...]
    tokens_list: tuple[Address, ...] = Field(default=(), alias="tokensList")
    total_weight: Decimal | None = Field(default=None, alias="totalWeight")
    # Stable family
    amp: Decimal | None = None
    # Element (fixed-term)
    expiry_time: int | None = Field(default=None, alias="expiryTime")
    unit_seconds: int | None = Field(default=None, alias="unitSeconds")
    principal_token: Address | None = Field(default=None, alias="principalToken")
    base_token: Address | None = Field(default=None, alias="baseToken")
    # Linear
    main_index: int | None = Field(default=None, ge=0, alias="mainIndex")
    wrapped_index: int | None = Field(default=None, ge=0, alias="wrappedIndex")
    lower_target: Decimal | None = Field(default=None, ge=0, alias="lowerTarget")
    upper_target: Decimal | None = Field(default=None, ge=0, alias="upperTarget")

    model_config = {"populate_by_name": True, "frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _default_tokens_list(cls, data: object) -> object:
        """Derive tokensList from tokens when the source omits it."""
        if isinstance(data, dict) and not data.get("tokensList") and not data.get("tokens_list"):
            tokens = data.get("tokens") or ()
            data = {
                **data,
                "tokensList": [
                    t["address"] if isinstance(t, dict) else t.address for t in tokens
                ],
            }
        return data

    def get_token(self, address: str) -> PoolToken | None:
        """Find a constituent token by address (case-insensitive)."""
        address_norm = normalize_address(address)
        for token in self.tokens:
            if token.address == address_norm:
                return token
        return None

    def index_of(self, address: str) -> int | None:
        """Index of a token in `tokens`, or None if absent."""
        address_norm = normalize_address(address)
        for i, token in enumerate(self.tokens):
            if token.address == address_norm:
                return i
        return None

    @property
    def token_set(self) -> frozenset[str]:
        return frozenset(self.tokens_list)


__all__ = ["PoolToken", "PoolRecord"]
