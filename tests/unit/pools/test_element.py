"""Tests for fixed-term (Element) pool pricing."""

from decimal import Decimal

import pytest

from sor.errors import PoolIncompatible, TokenNotInPool
from sor.math.fixed_point import Bfp
from sor.models.swap import SwapTypes
from sor.pools import element
from sor.pools.element_math import calc_out_given_in
from sor.pools.errors import ExpiredPoolError
from sor.pools.parsing import is_pool_active
from sor.pools.types import ElementPoolPairData
from tests.helpers import DAI, EP_USDC, NOW, USDC, make_element_pool, make_pair


@pytest.fixture
def pool():
    """1000 principal, 1000 base, 1000 shares, half the term left."""
    return make_element_pool(9, principal_balance="1000", base_balance="1000", total_shares="1000")


@pytest.fixture
def sell_principal(pool):
    return make_pair(pool, EP_USDC, USDC)


@pytest.fixture
def buy_principal(pool):
    return make_pair(pool, USDC, EP_USDC)


class TestElementProjection:
    def test_time_to_expiry(self, sell_principal) -> None:
        assert isinstance(sell_principal, ElementPoolPairData)
        assert sell_principal.time_to_expiry == Decimal("0.5")
        assert sell_principal.principal_in

    def test_expired_pool_is_inactive(self, pool) -> None:
        assert is_pool_active(pool, NOW)
        assert not is_pool_active(pool, NOW + 5_000_000)

    def test_expired_pool_cannot_be_projected(self, pool) -> None:
        with pytest.raises(PoolIncompatible):
            make_pair(pool, EP_USDC, USDC, timestamp=NOW + 5_000_000)

    def test_foreign_token(self, pool) -> None:
        with pytest.raises(TokenNotInPool):
            make_pair(pool, DAI, USDC)


class TestElementQuotes:
    def test_sell_principal(self, sell_principal) -> None:
        """Curve output ~0.7069, less 10% of the implied yield."""
        out = element.exact_token_in_for_token_out(sell_principal, 10**6)
        assert 677_000 < out < 678_200

    def test_buy_principal_exact_out(self, buy_principal) -> None:
        amount_in = element.token_in_for_exact_token_out(buy_principal, 10**6)
        assert 730_000 < amount_in < 740_000

    def test_fee_on_yield(self, pool) -> None:
        fee_free = make_element_pool(
            9, principal_balance="1000", base_balance="1000", total_shares="1000", swap_fee="0"
        )
        with_fee = element.exact_token_in_for_token_out(make_pair(pool, EP_USDC, USDC), 10**6)
        no_fee = element.exact_token_in_for_token_out(make_pair(fee_free, EP_USDC, USDC), 10**6)
        assert with_fee < no_fee

    def test_expired_math_raises(self) -> None:
        with pytest.raises(ExpiredPoolError):
            calc_out_given_in(
                Bfp.from_int(1000),
                Bfp.from_int(1000),
                Bfp.from_int(1),
                Bfp(0),
                Bfp(0),
                principal_in=True,
            )

    def test_zero_amount(self, sell_principal) -> None:
        assert element.exact_token_in_for_token_out(sell_principal, 0) == 0
        assert element.token_in_for_exact_token_out(sell_principal, 0) == 0


class TestElementSpotPrice:
    def test_sell_principal_spot_price(self, sell_principal) -> None:
        sp = element.spot_price_after_swap_exact_token_in_for_token_out(sell_principal, Decimal(0))
        expected = 1 / (1.1 / 2**0.5 - 0.1)
        assert float(sp) == pytest.approx(expected, rel=1e-9)

    def test_buy_principal_spot_price(self, buy_principal) -> None:
        sp = element.spot_price_after_swap_token_in_for_exact_token_out(buy_principal, Decimal(0))
        assert float(sp) == pytest.approx(0.9 * 0.5**0.5 + 0.1, rel=1e-9)

    def test_spot_price_matches_quote(self, sell_principal) -> None:
        sp = element.spot_price_after_swap_exact_token_in_for_token_out(sell_principal, Decimal(0))
        out = element.exact_token_in_for_token_out(sell_principal, 10**6)
        assert float(1 / sp) == pytest.approx(out / 10**6, rel=1e-3)

    def test_derivative_positive(self, sell_principal, buy_principal) -> None:
        d_in = element.derivative_spot_price_after_swap_exact_token_in_for_token_out(
            sell_principal, Decimal(10)
        )
        d_out = element.derivative_spot_price_after_swap_token_in_for_exact_token_out(
            buy_principal, Decimal(10)
        )
        assert d_in > 0
        assert d_out > 0


class TestElementLimitsAndLiquidity:
    def test_exact_out_limit(self, sell_principal) -> None:
        limit = element.get_limit_amount_swap(sell_principal, SwapTypes.SWAP_EXACT_OUT)
        assert limit == 990 * 10**6

    def test_exact_in_limit(self, sell_principal) -> None:
        limit = element.get_limit_amount_swap(sell_principal, SwapTypes.SWAP_EXACT_IN)
        # 99% of the base balance, priced in principal
        expected = 990 / (1.1 / 2**0.5 - 0.1)
        assert limit / 10**6 == pytest.approx(expected, rel=1e-6)

    def test_normalized_liquidity(self, sell_principal) -> None:
        assert element.get_normalized_liquidity(sell_principal) == Decimal(1000)
