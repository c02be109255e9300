"""Fixed-term (yield space) pool math.

Invariant: x^(1-t) + y^(1-t) = k, where t is the fraction of the term left
before expiry. The principal reserve is virtual: it includes the pool
token supply. Fees are charged on the implied yield, i.e. the difference
between the amounts in and out, in the direction of the trade.
"""

from sor.math.fixed_point import ONE_18, Bfp

from .errors import ExpiredPoolError, ZeroBalanceError


def _exponents(time_to_expiry: Bfp) -> tuple[Bfp, Bfp]:
    if time_to_expiry.value <= 0 or time_to_expiry.value >= ONE_18:
        raise ExpiredPoolError(f"Time to expiry {time_to_expiry} outside (0, 1)")
    alpha = time_to_expiry.complement()
    return alpha, Bfp(ONE_18).div_down(alpha)


def _solve_other_reserve(invariant: Bfp, known: Bfp, alpha: Bfp, inverse: Bfp) -> Bfp:
    known_term = known.pow_down(alpha)
    if known_term >= invariant:
        raise ZeroBalanceError("Trade exceeds the curve's reserves")
    return invariant.sub(known_term).pow_up(inverse)


def calc_out_given_in(
    reserve_in: Bfp,
    reserve_out: Bfp,
    amount_in: Bfp,
    time_to_expiry: Bfp,
    swap_fee: Bfp,
    *,
    principal_in: bool,
) -> Bfp:
    """Output for an exact input, fee included.

    Args:
        reserve_in: Scaled input reserve (virtual if principal)
        reserve_out: Scaled output reserve (virtual if principal)
        amount_in: Scaled gross input
        time_to_expiry: t in (0, 1)
        swap_fee: Fee on implied yield
        principal_in: Trader sells principal for base

    Raises:
        ExpiredPoolError: If t is not in (0, 1)
        ZeroBalanceError: If the trade leaves the curve
    """
    alpha, inverse = _exponents(time_to_expiry)
    invariant = reserve_in.pow_up(alpha).add(reserve_out.pow_up(alpha))
    new_reserve_out = _solve_other_reserve(invariant, reserve_in.add(amount_in), alpha, inverse)
    if new_reserve_out >= reserve_out:
        return Bfp(0)
    amount_out = reserve_out.sub(new_reserve_out)

    if principal_in:
        fee = amount_in.sub(amount_out).mul_up(swap_fee)
    else:
        fee = amount_out.sub(amount_in).mul_up(swap_fee)
    return amount_out.sub(fee)


def calc_in_given_out(
    reserve_in: Bfp,
    reserve_out: Bfp,
    amount_out: Bfp,
    time_to_expiry: Bfp,
    swap_fee: Bfp,
    *,
    principal_in: bool,
) -> Bfp:
    """Input for an exact output, fee included.

    Raises:
        ExpiredPoolError: If t is not in (0, 1)
        ZeroBalanceError: If amount_out reaches the output reserve
    """
    if amount_out >= reserve_out:
        raise ZeroBalanceError("amount_out must be less than the output reserve")
    alpha, inverse = _exponents(time_to_expiry)
    invariant = reserve_in.pow_up(alpha).add(reserve_out.pow_up(alpha))
    new_reserve_in = _solve_other_reserve(invariant, reserve_out.sub(amount_out), alpha, inverse)
    amount_in = new_reserve_in.sub(reserve_in)

    if principal_in:
        fee = amount_in.sub(amount_out).mul_up(swap_fee)
    else:
        fee = amount_out.sub(amount_in).mul_up(swap_fee)
    return amount_in.add(fee)
