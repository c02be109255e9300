"""Pool snapshot parsing and pair projection.

parse_to_pools_dict() turns a snapshot into the pools eligible for routing
at a given timestamp. parse_pool_pair_data() projects one pool onto an
ordered token pair, producing the variant pair data the pricing engine
consumes. Both are pure functions of their inputs.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

import structlog

from sor.errors import PoolIncompatible, TokenNotInPool
from sor.math.decimal_utils import ONE, ZERO, from_human, price_math
from sor.models.pool import PoolRecord, PoolToken
from sor.models.swap import PoolFilter
from sor.models.types import normalize_address

from .types import (
    PHANTOM_POOL_TAGS,
    POOL_TYPE_TAGS,
    ElementPoolPairData,
    LinearPoolPairData,
    PoolPairData,
    PoolTypes,
    StablePoolPairData,
    WeightedPoolPairData,
)

logger = structlog.get_logger()

POOL_TOKEN_DECIMALS = 18


def pool_tokens(record: PoolRecord) -> frozenset[str]:
    """Tokens tradeable through a pool, including its own token for phantom pools."""
    if record.pool_type in PHANTOM_POOL_TAGS:
        return record.token_set | {record.address}
    return record.token_set


def is_pool_active(record: PoolRecord, timestamp: int) -> bool:
    """Swaps enabled, known type, and (for fixed-term pools) before expiry."""
    if not record.swap_enabled:
        return False
    pool_type = POOL_TYPE_TAGS.get(record.pool_type)
    if pool_type is None:
        return False
    if pool_type == PoolTypes.ELEMENT:
        if record.expiry_time is None or not record.unit_seconds:
            return False
        return record.expiry_time > timestamp
    return True


def parse_to_pools_dict(pools: Iterable[PoolRecord], timestamp: int) -> dict[str, PoolRecord]:
    """Index active pools by id.

    Pools with swaps disabled, an unknown type tag, or past their expiry at
    `timestamp` are left out.
    """
    pools_dict: dict[str, PoolRecord] = {}
    for record in pools:
        if not is_pool_active(record, timestamp):
            logger.debug(
                "pool_inactive",
                pool_id=record.id,
                pool_type=record.pool_type,
                swap_enabled=record.swap_enabled,
            )
            continue
        pools_dict[record.id] = record
    return pools_dict


def filter_pools_by_type(
    pools_dict: dict[str, PoolRecord], pool_filter: PoolFilter
) -> dict[str, PoolRecord]:
    """Keep only pools whose type tag matches the filter (All keeps everything)."""
    if pool_filter == PoolFilter.ALL:
        return dict(pools_dict)
    return {pid: p for pid, p in pools_dict.items() if p.pool_type == pool_filter.value}


def _raw_balance(token: PoolToken) -> int:
    return from_human(token.balance, token.decimals)


def _require_token(record: PoolRecord, address: str) -> PoolToken:
    token = record.get_token(address)
    if token is None:
        raise TokenNotInPool(f"Token {address} not in pool {record.id}")
    return token


def _parse_weighted(
    record: PoolRecord, token_in: str, token_out: str, base: dict
) -> WeightedPoolPairData:
    t_in = _require_token(record, token_in)
    t_out = _require_token(record, token_out)
    if t_in.weight is None or t_out.weight is None:
        raise PoolIncompatible(f"Weighted pool {record.id} is missing token weights")

    with price_math():
        total_weight = record.total_weight
        if not total_weight:
            total_weight = sum((t.weight or ZERO for t in record.tokens), ZERO)
        if total_weight <= ZERO:
            raise PoolIncompatible(f"Weighted pool {record.id} has zero total weight")
        weight_in = t_in.weight / total_weight
        weight_out = t_out.weight / total_weight

    return WeightedPoolPairData(
        **base,
        decimals_in=t_in.decimals,
        decimals_out=t_out.decimals,
        balance_in=_raw_balance(t_in),
        balance_out=_raw_balance(t_out),
        weight_in=weight_in,
        weight_out=weight_out,
    )


def _parse_stable(
    record: PoolRecord, token_in: str, token_out: str, pool_type: PoolTypes, base: dict
) -> StablePoolPairData:
    if record.amp is None or record.amp <= 0:
        raise PoolIncompatible(f"Stable pool {record.id} has no amplification parameter")

    constituents = [t for t in record.tokens if t.address != record.address]
    addresses = [t.address for t in constituents]
    use_rates = pool_type == PoolTypes.META_STABLE
    rates = tuple(t.price_rate if use_rates else ONE for t in constituents)
    virtual_supply = from_human(record.total_shares, POOL_TOKEN_DECIMALS)

    def side(address: str) -> tuple[int | None, int, int]:
        if address == record.address:
            return None, POOL_TOKEN_DECIMALS, virtual_supply
        if address not in addresses:
            raise TokenNotInPool(f"Token {address} not in pool {record.id}")
        index = addresses.index(address)
        return index, constituents[index].decimals, _raw_balance(constituents[index])

    index_in, decimals_in, balance_in = side(token_in)
    index_out, decimals_out, balance_out = side(token_out)
    if (index_in is None or index_out is None) and virtual_supply == 0:
        raise PoolIncompatible(f"Pool {record.id} has no pool token supply to trade against")

    return StablePoolPairData(
        **base,
        decimals_in=decimals_in,
        decimals_out=decimals_out,
        balance_in=balance_in,
        balance_out=balance_out,
        bpt_in=index_in is None,
        bpt_out=index_out is None,
        amp=record.amp,
        balances=tuple(_raw_balance(t) for t in constituents),
        decimals=tuple(t.decimals for t in constituents),
        rates=rates,
        index_in=index_in,
        index_out=index_out,
        virtual_supply=virtual_supply,
    )


def _parse_linear(
    record: PoolRecord, token_in: str, token_out: str, base: dict
) -> LinearPoolPairData:
    if record.main_index is None or record.wrapped_index is None:
        raise PoolIncompatible(f"Linear pool {record.id} is missing main/wrapped indices")
    if max(record.main_index, record.wrapped_index) >= len(record.tokens):
        raise PoolIncompatible(f"Linear pool {record.id} has out-of-range token indices")
    if record.upper_target is None:
        raise PoolIncompatible(f"Linear pool {record.id} has no upper target")

    bpt_in = token_in == record.address
    bpt_out = token_out == record.address
    if not bpt_in and not bpt_out:
        raise PoolIncompatible(f"Linear pool {record.id} only trades against its pool token")

    main = record.tokens[record.main_index]
    wrapped = record.tokens[record.wrapped_index]
    other = token_out if bpt_in else token_in
    if other not in (main.address, wrapped.address):
        raise TokenNotInPool(f"Token {other} not in pool {record.id}")
    token = main if other == main.address else wrapped

    virtual_supply = from_human(record.total_shares, POOL_TOKEN_DECIMALS)
    token_balance = _raw_balance(token)
    return LinearPoolPairData(
        **base,
        decimals_in=POOL_TOKEN_DECIMALS if bpt_in else token.decimals,
        decimals_out=token.decimals if bpt_in else POOL_TOKEN_DECIMALS,
        balance_in=virtual_supply if bpt_in else token_balance,
        balance_out=token_balance if bpt_in else virtual_supply,
        bpt_in=bpt_in,
        bpt_out=bpt_out,
        main_balance=_raw_balance(main),
        wrapped_balance=_raw_balance(wrapped),
        main_decimals=main.decimals,
        wrapped_decimals=wrapped.decimals,
        main_rate=main.price_rate,
        wrapped_rate=wrapped.price_rate,
        virtual_supply=virtual_supply,
        lower_target=record.lower_target or ZERO,
        upper_target=record.upper_target,
        via_main=token is main,
    )


def _parse_element(
    record: PoolRecord, token_in: str, token_out: str, timestamp: int, base: dict
) -> ElementPoolPairData:
    if (
        record.principal_token is None
        or record.base_token is None
        or record.expiry_time is None
        or not record.unit_seconds
    ):
        raise PoolIncompatible(f"Element pool {record.id} is missing term parameters")
    if {token_in, token_out} != {record.principal_token, record.base_token}:
        raise PoolIncompatible(f"Element pool {record.id} only trades principal against base")

    with price_math():
        time_to_expiry = Decimal(record.expiry_time - timestamp) / Decimal(record.unit_seconds)
    if not ZERO < time_to_expiry < ONE:
        raise PoolIncompatible(
            f"Element pool {record.id} outside its trading window at {timestamp}"
        )

    t_in = _require_token(record, token_in)
    t_out = _require_token(record, token_out)
    return ElementPoolPairData(
        **base,
        decimals_in=t_in.decimals,
        decimals_out=t_out.decimals,
        balance_in=_raw_balance(t_in),
        balance_out=_raw_balance(t_out),
        total_shares=record.total_shares,
        time_to_expiry=time_to_expiry,
        principal_in=token_in == record.principal_token,
    )


def parse_pool_pair_data(
    record: PoolRecord, token_in: str, token_out: str, timestamp: int
) -> PoolPairData:
    """Project a pool onto the ordered pair (token_in, token_out).

    Args:
        record: Pool snapshot
        token_in: Address sent to the pool
        token_out: Address received from the pool
        timestamp: Unix seconds, used by fixed-term pools

    Returns:
        Variant pair data with pair_type DIRECT

    Raises:
        TokenNotInPool: If either token is not tradeable through the pool
        PoolIncompatible: If the pool type cannot price this pair
    """
    token_in = normalize_address(token_in)
    token_out = normalize_address(token_out)
    if token_in == token_out:
        raise PoolIncompatible(f"Cannot swap {token_in} for itself")

    pool_type = POOL_TYPE_TAGS.get(record.pool_type)
    if pool_type is None:
        raise PoolIncompatible(f"Unsupported pool type {record.pool_type!r}")

    tradeable = pool_tokens(record)
    for token in (token_in, token_out):
        if token not in tradeable:
            raise TokenNotInPool(f"Token {token} not in pool {record.id}")

    base = {
        "id": record.id,
        "address": record.address,
        "pool_type": pool_type,
        "swap_fee": record.swap_fee,
        "token_in": token_in,
        "token_out": token_out,
    }
    if pool_type == PoolTypes.WEIGHTED:
        return _parse_weighted(record, token_in, token_out, base)
    if pool_type in (PoolTypes.STABLE, PoolTypes.META_STABLE):
        return _parse_stable(record, token_in, token_out, pool_type, base)
    if pool_type == PoolTypes.LINEAR:
        return _parse_linear(record, token_in, token_out, base)
    return _parse_element(record, token_in, token_out, timestamp, base)


__all__ = [
    "pool_tokens",
    "is_pool_active",
    "parse_to_pools_dict",
    "filter_pools_by_type",
    "parse_pool_pair_data",
]
