"""
Constant Product AMM

Fee-less x * y = k pricing for the USDC/GEM pool. Only buy-side swaps
(USDC in, GEM out) are needed by the scenario.
"""

from dataclasses import dataclass
import math

from flashsim.core.errors import InvalidPoolStateError
from flashsim.core.state import INVARIANT_TOLERANCE


@dataclass(frozen=True)
class SwapQuote:
    """
    Result of a constant product swap.

    Attributes:
        k: Constant product before the swap
        new_reserve_in: Input-side reserve after the swap
        new_reserve_out: Output-side reserve after the swap
        amount_out: Tokens paid out by the pool
        spot_price: New price of the output token in input-token units
    """
    k: float
    new_reserve_in: float
    new_reserve_out: float
    amount_out: float
    spot_price: float


def _is_valid_reserve(value: float) -> bool:
    return math.isfinite(value) and value > 0


def constant_product_swap(
    reserve_in: float,
    reserve_out: float,
    amount_in: float,
) -> SwapQuote:
    """
    Swap amount_in against the pool.

    k = x * y, new_x = x + dx, new_y = k / new_x, dy = y - new_y,
    price = new_x / new_y.

    Args:
        reserve_in: Reserve of the token being sold into the pool
        reserve_out: Reserve of the token being bought
        amount_in: Amount sold into the pool

    Returns:
        SwapQuote with post-swap reserves and price

    Raises:
        InvalidPoolStateError: If a reserve is not a positive finite number
            or amount_in is negative
    """
    if not (_is_valid_reserve(reserve_in) and _is_valid_reserve(reserve_out)):
        raise InvalidPoolStateError(reserve_in, reserve_out, amount_in)
    if not math.isfinite(amount_in) or amount_in < 0:
        raise InvalidPoolStateError(reserve_in, reserve_out, amount_in)

    k = reserve_in * reserve_out
    new_in = reserve_in + amount_in
    new_out = k / new_in
    amount_out = reserve_out - new_out

    if not _is_valid_reserve(new_out):
        raise InvalidPoolStateError(new_in, new_out, amount_in)

    return SwapQuote(
        k=k,
        new_reserve_in=new_in,
        new_reserve_out=new_out,
        amount_out=amount_out,
        spot_price=new_in / new_out,
    )


def check_constant_product(
    k: float,
    reserve_in: float,
    reserve_out: float,
    rel_tol: float = INVARIANT_TOLERANCE,
) -> bool:
    """True if reserve_in * reserve_out equals k within rel_tol."""
    return math.isclose(reserve_in * reserve_out, k, rel_tol=rel_tol)
