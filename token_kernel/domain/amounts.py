"""
Amounts -- token units and checked integer arithmetic.

Responsibility:
    Defines the token's unit constants and the checked add/sub/mul-div
    primitives every balance, allowance and supply mutation goes through.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Every stored amount fits the 128-bit signed range the host ledger uses.
    - Amounts are ints, never floats; fee and vesting math floor-divides.

Failure modes:
    - ArithmeticOverflowError when a sum leaves the 128-bit range.
    - ArithmeticUnderflowError when a difference drops below zero.
    - InvalidAmountError for non-int, bool, non-positive or out-of-range input.
"""

from token_kernel.exceptions import (
    ArithmeticOverflowError,
    ArithmeticUnderflowError,
    InvalidAmountError,
)

DECIMALS = 7

# 1 token = 10,000,000 bra
BRA_PER_TOKEN = 10**DECIMALS

MAX_SUPPLY = 21_000_000 * BRA_PER_TOKEN

# Upper bound of the host's signed 128-bit amount type.
I128_MAX = 2**127 - 1

BASIS_POINTS = 10_000


def tokens(whole: int) -> int:
    """Convert whole tokens to bra."""
    return whole * BRA_PER_TOKEN


def require_positive_amount(amount: object) -> int:
    """Return ``amount`` if it is an int in (0, I128_MAX]."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(amount, "amount must be an integer number of bra")
    if amount <= 0:
        raise InvalidAmountError(amount)
    if amount > I128_MAX:
        raise InvalidAmountError(amount, "amount exceeds the 128-bit range")
    return amount


def require_non_negative_amount(amount: object) -> int:
    """Return ``amount`` if it is an int in [0, I128_MAX]."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(amount, "amount must be an integer number of bra")
    if amount < 0:
        raise InvalidAmountError(amount, "amount must not be negative")
    if amount > I128_MAX:
        raise InvalidAmountError(amount, "amount exceeds the 128-bit range")
    return amount


def checked_add(left: int, right: int) -> int:
    result = left + right
    if result > I128_MAX:
        raise ArithmeticOverflowError(left, right)
    return result


def checked_sub(left: int, right: int) -> int:
    result = left - right
    if result < 0:
        raise ArithmeticUnderflowError(left, right)
    return result


def mul_div_floor(value: int, numerator: int, denominator: int) -> int:
    """
    Compute ``floor(value * numerator / denominator)``.

    The product is formed as an unbounded Python int, so amounts near the
    supply cap never overflow before the division.
    """
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    return (value * numerator) // denominator
