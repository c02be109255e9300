"""Weighted product pool math.

Invariant: prod(B_i ^ w_i) = k. All amounts are 18-decimal Bfp; fees are
handled by the caller (subtracted before calc_out_given_in, added after
calc_in_given_out).
"""

from sor.math.fixed_point import MAX_IN_RATIO, MAX_OUT_RATIO, ONE_18, Bfp

from .errors import MaxInRatioError, MaxOutRatioError, ZeroBalanceError, ZeroWeightError


def _check_pool(balance_in: Bfp, weight_in: Bfp, balance_out: Bfp, weight_out: Bfp) -> None:
    if weight_in.value <= 0 or weight_out.value <= 0:
        raise ZeroWeightError("Token weights must be positive")
    if balance_in.value <= 0 or balance_out.value <= 0:
        raise ZeroBalanceError("Token balances must be positive")


def calc_out_given_in(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_in: Bfp,
) -> Bfp:
    """Output for an exact input.

    Formula:
        amount_out = B_o * (1 - (B_i / (B_i + A_i)) ^ (w_i / w_o))

    Args:
        balance_in: Scaled balance of the input token
        weight_in: Normalized weight of the input token
        balance_out: Scaled balance of the output token
        weight_out: Normalized weight of the output token
        amount_in: Scaled input, net of fee

    Returns:
        Scaled output amount, rounded down

    Raises:
        MaxInRatioError: If amount_in exceeds 30% of balance_in
        ZeroWeightError: If a weight is zero
        ZeroBalanceError: If a balance is zero
    """
    _check_pool(balance_in, weight_in, balance_out, weight_out)

    if amount_in.value > balance_in.mul_down(MAX_IN_RATIO).value:
        raise MaxInRatioError(f"Input {amount_in.value} exceeds 30% of balance {balance_in.value}")

    base = balance_in.div_up(balance_in.add(amount_in))
    exponent = weight_in.div_down(weight_out)
    power = base.pow_up(exponent)
    return balance_out.mul_down(power.complement())


def calc_in_given_out(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_out: Bfp,
) -> Bfp:
    """Input (before fee) for an exact output.

    Formula:
        amount_in = B_i * ((B_o / (B_o - A_o)) ^ (w_o / w_i) - 1)

    Raises:
        MaxOutRatioError: If amount_out exceeds 30% of balance_out
        ZeroWeightError: If a weight is zero
        ZeroBalanceError: If a balance is zero or amount_out drains the pool
    """
    _check_pool(balance_in, weight_in, balance_out, weight_out)

    if amount_out.value > balance_out.mul_down(MAX_OUT_RATIO).value:
        raise MaxOutRatioError(
            f"Output {amount_out.value} exceeds 30% of balance {balance_out.value}"
        )
    if amount_out.value >= balance_out.value:
        raise ZeroBalanceError("amount_out must be less than balance_out")

    base = balance_out.div_up(balance_out.sub(amount_out))
    # Rounded up on this side: the pool never under-charges
    exponent = weight_out.div_up(weight_in)
    power = base.pow_up(exponent)
    return balance_in.mul_up(power.sub(Bfp(ONE_18)))
