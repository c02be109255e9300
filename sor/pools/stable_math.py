"""Stable (StableSwap) pool math.

Balancer parameterization: the Newton-Raphson steps use A*n rather than
A*n^n, with n^n folded into the iterative D_P term. amp is always scaled by
AMP_PRECISION. Intermediate integer math goes through SafeInt so any
out-of-range step surfaces as ArithmeticOverflow.

Besides token-for-token swaps, the single-token join and exit functions
price trades against the pool token of phantom stable pools.
"""

from sor.math.fixed_point import AMP_PRECISION, ONE_18, Bfp
from sor.safe_int import S

from .errors import StableGetBalanceDidNotConverge, StableInvariantDidNotConverge, ZeroBalanceError

_STABLE_MAX_ITERATIONS = 255


def _within_one(a: S, b: S) -> bool:
    return (a - b if a > b else b - a) <= 1


def calculate_invariant(amp: int, balances: list[Bfp]) -> Bfp:
    """StableSwap invariant D by Newton-Raphson.

    Starts from D = sum(balances) and iterates until successive values
    differ by at most 1 wei.

    Args:
        amp: Amplification parameter, scaled by AMP_PRECISION
        balances: Scaled (18-decimal) balances

    Raises:
        StableInvariantDidNotConverge: After 255 iterations
        ZeroBalanceError: If any balance is zero
    """
    n_coins = len(balances)
    if n_coins == 0:
        return Bfp(0)
    for i, bal in enumerate(balances):
        if bal.value <= 0:
            raise ZeroBalanceError(f"Balance at index {i} must be positive")

    sum_balances = S(sum(b.value for b in balances))
    d_prev = sum_balances
    amp_times_n = S(amp) * S(n_coins)

    for _ in range(_STABLE_MAX_ITERATIONS):
        # d_p = D^(n+1) / (n^n * prod(balances))
        d_p = d_prev
        for bal in balances:
            d_p = (d_p * d_prev) // (S(n_coins) * S(bal.value))

        numerator = ((amp_times_n * sum_balances) // S(AMP_PRECISION) + d_p * S(n_coins)) * d_prev
        denominator = ((amp_times_n - S(AMP_PRECISION)) * d_prev) // S(
            AMP_PRECISION
        ) + S(n_coins + 1) * d_p
        d_new = numerator // denominator

        if _within_one(d_new, d_prev):
            return Bfp(d_new.value)
        d_prev = d_new

    raise StableInvariantDidNotConverge(
        f"Stable invariant did not converge after {_STABLE_MAX_ITERATIONS} iterations"
    )


def get_token_balance_given_invariant_and_all_other_balances(
    amp: int,
    balances: list[Bfp],
    invariant: Bfp,
    token_index: int,
) -> Bfp:
    """Solve for balances[token_index] so that the invariant equals D.

    Follows StableMath._getTokenBalanceGivenInvariantAndAllOtherBalances:
    the current value at token_index cancels out of P_D via the c term.

    Raises:
        StableGetBalanceDidNotConverge: After 255 iterations or on a degenerate step
        IndexError: If token_index is out of range
    """
    n_coins = len(balances)
    if token_index < 0 or token_index >= n_coins:
        raise IndexError(f"token_index {token_index} out of range for {n_coins} tokens")

    d = S(invariant.value)
    amp_times_total = S(amp) * S(n_coins)

    sum_balances = S(balances[0].value)
    p_d = S(balances[0].value) * S(n_coins)
    for j in range(1, n_coins):
        p_d = (p_d * S(balances[j].value) * S(n_coins)) // d
        sum_balances = sum_balances + S(balances[j].value)
    sum_others = sum_balances - S(balances[token_index].value)

    inv2 = d * d
    amp_times_p_d = amp_times_total * p_d
    if amp_times_p_d == 0:
        raise StableGetBalanceDidNotConverge("amp_times_p_d is zero")
    c = inv2.ceiling_div(amp_times_p_d) * S(AMP_PRECISION) * S(balances[token_index].value)
    b = sum_others + (d // amp_times_total) * S(AMP_PRECISION)

    token_balance = (inv2 + c).ceiling_div(d + b)

    for _ in range(_STABLE_MAX_ITERATIONS):
        prev_token_balance = token_balance

        # y = (y^2 + c) / (2y + b - D), rounded up
        denominator = S(2) * token_balance + b
        if denominator <= d:
            raise StableGetBalanceDidNotConverge("Denominator became non-positive")
        token_balance = (token_balance * token_balance + c).ceiling_div(denominator - d)

        if _within_one(token_balance, prev_token_balance):
            return Bfp(token_balance.value)

    raise StableGetBalanceDidNotConverge(
        f"Stable get_balance did not converge after {_STABLE_MAX_ITERATIONS} iterations"
    )


def _check_indices(n_coins: int, token_index_in: int, token_index_out: int) -> None:
    if not 0 <= token_index_in < n_coins:
        raise IndexError(f"token_index_in {token_index_in} out of range for {n_coins} tokens")
    if not 0 <= token_index_out < n_coins:
        raise IndexError(f"token_index_out {token_index_out} out of range for {n_coins} tokens")
    if token_index_in == token_index_out:
        raise ValueError("Cannot swap token with itself")


def stable_calc_out_given_in(
    amp: int,
    balances: list[Bfp],
    token_index_in: int,
    token_index_out: int,
    amount_in: Bfp,
) -> Bfp:
    """Output for an exact input (fee already subtracted from amount_in).

    Returns old_out - new_out - 1; the extra wei keeps rounding in the
    pool's favor.
    """
    _check_indices(len(balances), token_index_in, token_index_out)

    invariant = calculate_invariant(amp, balances)
    new_balances = list(balances)
    new_balances[token_index_in] = balances[token_index_in].add(amount_in)
    new_balance_out = get_token_balance_given_invariant_and_all_other_balances(
        amp, new_balances, invariant, token_index_out
    )

    old_balance_out = balances[token_index_out].value
    if new_balance_out.value >= old_balance_out:
        return Bfp(0)
    return Bfp(old_balance_out - new_balance_out.value - 1)


def stable_calc_in_given_out(
    amp: int,
    balances: list[Bfp],
    token_index_in: int,
    token_index_out: int,
    amount_out: Bfp,
) -> Bfp:
    """Input (before fee) for an exact output.

    Raises:
        ZeroBalanceError: If amount_out would drain balance_out
    """
    _check_indices(len(balances), token_index_in, token_index_out)
    if amount_out.value >= balances[token_index_out].value:
        raise ZeroBalanceError("amount_out must be less than balance_out")

    invariant = calculate_invariant(amp, balances)
    new_balances = list(balances)
    new_balances[token_index_out] = balances[token_index_out].sub(amount_out)
    new_balance_in = get_token_balance_given_invariant_and_all_other_balances(
        amp, new_balances, invariant, token_index_in
    )
    return Bfp(new_balance_in.value - balances[token_index_in].value + 1)


def _current_weight(balances: list[Bfp], token_index: int) -> Bfp:
    total = Bfp(sum(b.value for b in balances))
    return balances[token_index].div_down(total)


def bpt_out_given_exact_token_in(
    amp: int,
    balances: list[Bfp],
    token_index: int,
    amount_in: Bfp,
    bpt_total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Pool tokens minted for a single-token join.

    Only the part of amount_in that is not proportional to the current
    balances pays the swap fee.
    """
    current_invariant = calculate_invariant(amp, balances)

    weight = _current_weight(balances, token_index)
    balance_ratio = balances[token_index].add(amount_in).div_down(balances[token_index])
    # Single-token join: every other ratio is exactly 1
    invariant_ratio_with_fees = balance_ratio.mul_down(weight).add(weight.complement())

    if balance_ratio > invariant_ratio_with_fees:
        non_taxable = balances[token_index].mul_down(invariant_ratio_with_fees.sub(Bfp(ONE_18)))
        taxable = amount_in.sub(non_taxable)
        amount_in_without_fee = non_taxable.add(taxable.mul_down(swap_fee.complement()))
    else:
        amount_in_without_fee = amount_in

    new_balances = list(balances)
    new_balances[token_index] = balances[token_index].add(amount_in_without_fee)
    new_invariant = calculate_invariant(amp, new_balances)

    invariant_ratio = new_invariant.div_down(current_invariant)
    if invariant_ratio.value <= ONE_18:
        return Bfp(0)
    return bpt_total_supply.mul_down(invariant_ratio.sub(Bfp(ONE_18)))


def token_in_given_exact_bpt_out(
    amp: int,
    balances: list[Bfp],
    token_index: int,
    bpt_amount_out: Bfp,
    bpt_total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Single token required to mint exactly bpt_amount_out."""
    current_invariant = calculate_invariant(amp, balances)
    new_invariant = (
        bpt_total_supply.add(bpt_amount_out).div_up(bpt_total_supply).mul_up(current_invariant)
    )
    new_balance = get_token_balance_given_invariant_and_all_other_balances(
        amp, balances, new_invariant, token_index
    )
    amount_in_without_fee = new_balance.sub(balances[token_index])

    taxable = amount_in_without_fee.mul_up(_current_weight(balances, token_index).complement())
    non_taxable = amount_in_without_fee.sub(taxable)
    return non_taxable.add(taxable.div_up(swap_fee.complement()))


def token_out_given_exact_bpt_in(
    amp: int,
    balances: list[Bfp],
    token_index: int,
    bpt_amount_in: Bfp,
    bpt_total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Single token paid out for burning exactly bpt_amount_in.

    Raises:
        ZeroBalanceError: If bpt_amount_in is not below the supply
    """
    if bpt_amount_in >= bpt_total_supply:
        raise ZeroBalanceError("bpt_amount_in must be less than the pool token supply")

    current_invariant = calculate_invariant(amp, balances)
    new_invariant = (
        bpt_total_supply.sub(bpt_amount_in).div_up(bpt_total_supply).mul_up(current_invariant)
    )
    new_balance = get_token_balance_given_invariant_and_all_other_balances(
        amp, balances, new_invariant, token_index
    )
    amount_out_without_fee = balances[token_index].sub(new_balance)

    taxable = amount_out_without_fee.mul_up(_current_weight(balances, token_index).complement())
    non_taxable = amount_out_without_fee.sub(taxable)
    return non_taxable.add(taxable.mul_down(swap_fee.complement()))


def bpt_in_given_exact_token_out(
    amp: int,
    balances: list[Bfp],
    token_index: int,
    amount_out: Bfp,
    bpt_total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Pool tokens burned to withdraw exactly amount_out of one token.

    Raises:
        ZeroBalanceError: If amount_out would drain the token
    """
    if amount_out >= balances[token_index]:
        raise ZeroBalanceError("amount_out must be less than balance_out")

    current_invariant = calculate_invariant(amp, balances)

    weight = _current_weight(balances, token_index)
    balance_ratio = balances[token_index].sub(amount_out).div_up(balances[token_index])
    invariant_ratio_without_fees = balance_ratio.mul_up(weight).add(weight.complement())

    if invariant_ratio_without_fees > balance_ratio:
        non_taxable = balances[token_index].mul_down(invariant_ratio_without_fees.complement())
        taxable = amount_out.sub(non_taxable)
        amount_out_with_fee = non_taxable.add(taxable.div_up(swap_fee.complement()))
    else:
        amount_out_with_fee = amount_out
    if amount_out_with_fee >= balances[token_index]:
        raise ZeroBalanceError("amount_out plus fee must be less than balance_out")

    new_balances = list(balances)
    new_balances[token_index] = balances[token_index].sub(amount_out_with_fee)
    new_invariant = calculate_invariant(amp, new_balances)

    invariant_ratio = new_invariant.div_down(current_invariant)
    return bpt_total_supply.mul_up(invariant_ratio.complement())
