"""Tests for weighted pool pricing."""

from decimal import Decimal

import pytest

from sor.math.fixed_point import Bfp
from sor.models.swap import SwapTypes
from sor.pools import weighted
from sor.pools.errors import MaxInRatioError, MaxOutRatioError, ZeroWeightError
from sor.pools.weighted_math import calc_in_given_out, calc_out_given_in
from tests.helpers import USDC, WETH, make_pair, make_weighted_pool


@pytest.fixture
def pair():
    """50/50 WETH/USDC at 2000 USDC per WETH, 0.3% fee, WETH in."""
    return make_pair(make_weighted_pool(1, {WETH: "1000", USDC: "2000000"}), WETH, USDC)


@pytest.fixture
def fee_free_pair():
    pool = make_weighted_pool(1, {WETH: "1000", USDC: "1000"}, swap_fee="0")
    return make_pair(pool, WETH, USDC)


class TestWeightedMath:
    def test_out_given_in_matches_closed_form(self) -> None:
        balance = Bfp.from_int(1000)
        half = Bfp.from_decimal(Decimal("0.5"))
        out = calc_out_given_in(balance, half, balance, half, Bfp.from_int(1))
        expected = Decimal(1000) * (1 - Decimal(1000) / Decimal(1001))
        assert abs(out.to_decimal() - expected) / expected < Decimal("1e-9")

    def test_in_given_out_inverts_out_given_in(self) -> None:
        balance = Bfp.from_int(1000)
        half = Bfp.from_decimal(Decimal("0.5"))
        out = calc_out_given_in(balance, half, balance, half, Bfp.from_int(10))
        back = calc_in_given_out(balance, half, balance, half, out)
        assert abs(back.value - Bfp.from_int(10).value) < 10**10

    def test_max_in_ratio(self) -> None:
        balance = Bfp.from_int(1000)
        half = Bfp.from_decimal(Decimal("0.5"))
        with pytest.raises(MaxInRatioError):
            calc_out_given_in(balance, half, balance, half, Bfp.from_int(301))

    def test_max_out_ratio(self) -> None:
        balance = Bfp.from_int(1000)
        half = Bfp.from_decimal(Decimal("0.5"))
        with pytest.raises(MaxOutRatioError):
            calc_in_given_out(balance, half, balance, half, Bfp.from_int(301))

    def test_zero_weight(self) -> None:
        balance = Bfp.from_int(1000)
        with pytest.raises(ZeroWeightError):
            calc_out_given_in(balance, Bfp(0), balance, Bfp(10**18), Bfp.from_int(1))


class TestWeightedQuotes:
    def test_exact_in(self, fee_free_pair) -> None:
        out = weighted.exact_token_in_for_token_out(fee_free_pair, 10**18)
        # USDC has 6 decimals: 0.999000999 USDC
        assert 999_000 <= out <= 999_001

    def test_exact_out(self, fee_free_pair) -> None:
        amount_in = weighted.token_in_for_exact_token_out(fee_free_pair, 999_000)
        assert abs(amount_in - 10**18) < 10**15

    def test_fee_reduces_output(self, pair) -> None:
        fee_free = make_weighted_pool(1, {WETH: "1000", USDC: "2000000"}, swap_fee="0")
        with_fee = weighted.exact_token_in_for_token_out(pair, 10**18)
        no_fee = weighted.exact_token_in_for_token_out(make_pair(fee_free, WETH, USDC), 10**18)
        assert with_fee < no_fee
        assert abs(with_fee - no_fee * Decimal("0.997")) < no_fee * Decimal("0.0001")

    def test_zero_amount(self, pair) -> None:
        assert weighted.exact_token_in_for_token_out(pair, 0) == 0
        assert weighted.token_in_for_exact_token_out(pair, 0) == 0

    def test_monotonic_in_amount(self, pair) -> None:
        outs = [weighted.exact_token_in_for_token_out(pair, a * 10**18) for a in (1, 2, 5, 50)]
        assert outs == sorted(outs)
        assert len(set(outs)) == len(outs)


class TestWeightedSpotPrice:
    def test_spot_price_at_zero(self, pair) -> None:
        """(B_i / w_i) / ((1 - fee) * B_o / w_o), WETH per USDC."""
        sp = weighted.spot_price_after_swap_exact_token_in_for_token_out(pair, Decimal(0))
        expected = Decimal(1000) / (Decimal("0.997") * Decimal(2000000))
        assert float(sp) == pytest.approx(float(expected), rel=1e-12)

    def test_both_conventions_agree_at_zero(self, pair) -> None:
        sp_in = weighted.spot_price_after_swap_exact_token_in_for_token_out(pair, Decimal(0))
        sp_out = weighted.spot_price_after_swap_token_in_for_exact_token_out(pair, Decimal(0))
        assert float(sp_in) == pytest.approx(float(sp_out), rel=1e-12)

    def test_spot_price_matches_quote_slope(self, pair) -> None:
        """1 / SP(a) is the marginal output of the exact-in quote at a."""
        a = Decimal(10)
        sp = weighted.spot_price_after_swap_exact_token_in_for_token_out(pair, a)
        h = 10**15
        raw_a = 10 * 10**18
        d_out = weighted.exact_token_in_for_token_out(
            pair, raw_a + h
        ) - weighted.exact_token_in_for_token_out(pair, raw_a - h)
        marginal = Decimal(d_out) / Decimal(10**6) / (Decimal(2 * h) / Decimal(10**18))
        assert float(1 / sp) == pytest.approx(float(marginal), rel=1e-4)

    @pytest.mark.parametrize("swap_type", list(SwapTypes))
    def test_derivative_matches_finite_difference(self, pair, swap_type) -> None:
        if swap_type == SwapTypes.SWAP_EXACT_IN:
            sp_fn = weighted.spot_price_after_swap_exact_token_in_for_token_out
            d_fn = weighted.derivative_spot_price_after_swap_exact_token_in_for_token_out
            a, h = Decimal(50), Decimal("0.001")
        else:
            sp_fn = weighted.spot_price_after_swap_token_in_for_exact_token_out
            d_fn = weighted.derivative_spot_price_after_swap_token_in_for_exact_token_out
            a, h = Decimal(50000), Decimal("0.01")
        numeric = (sp_fn(pair, a + h) - sp_fn(pair, a - h)) / (2 * h)
        assert float(d_fn(pair, a)) == pytest.approx(float(numeric), rel=1e-6)

    def test_spot_price_increases_with_amount(self, pair) -> None:
        prices = [
            weighted.spot_price_after_swap_exact_token_in_for_token_out(pair, Decimal(a))
            for a in (0, 10, 100)
        ]
        assert prices == sorted(prices)


class TestWeightedLimitsAndLiquidity:
    def test_limits(self, pair) -> None:
        assert weighted.get_limit_amount_swap(pair, SwapTypes.SWAP_EXACT_IN) == 300 * 10**18
        assert weighted.get_limit_amount_swap(pair, SwapTypes.SWAP_EXACT_OUT) == 600_000 * 10**6

    def test_limit_is_quotable(self, pair) -> None:
        limit = weighted.get_limit_amount_swap(pair, SwapTypes.SWAP_EXACT_IN)
        assert weighted.exact_token_in_for_token_out(pair, limit) > 0

    def test_normalized_liquidity(self) -> None:
        """B_o * w_i / (w_i + w_o)."""
        pool = make_weighted_pool(
            1, {WETH: "100", USDC: "400000"}, weights={WETH: "80", USDC: "20"}
        )
        liquidity = weighted.get_normalized_liquidity(make_pair(pool, WETH, USDC))
        assert liquidity == Decimal("320000")
