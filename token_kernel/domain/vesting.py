"""
Vesting -- Pure linear-vesting math with cliffs.

Responsibility:
    Computes how much of a schedule is unlocked at a ledger sequence, how
    much can be released, which lifecycle state the schedule is in, and how
    a revocation splits the remainder.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  VestingService
    persists schedules and moves tokens; this module only does arithmetic.

Invariants enforced:
    - 0 <= unlocked(now) <= total_amount
    - unlocked(now) is monotonically non-decreasing in ``now``
    - releasable == unlocked(now) - released_amount, never negative

Failure modes:
    - InvalidVestingParamsError from validate_terms() for a zero duration,
      a total below the minimum, or negative sequences.

The ramp begins at ``max(start_sequence, cliff_sequence)``.  Nothing is
unlocked before the cliff, and the full amount is unlocked once the ramp
has run for ``duration`` ledgers.
"""

from dataclasses import dataclass
from enum import Enum

from token_kernel.domain.amounts import mul_div_floor
from token_kernel.exceptions import InvalidVestingParamsError


class VestingState(str, Enum):
    PENDING = "pending"
    CLIFF_LOCKED = "cliff_locked"
    RELEASING = "releasing"
    COMPLETED = "completed"
    REVOKED = "revoked"


@dataclass(frozen=True)
class VestingTerms:
    """Immutable parameters of one schedule."""

    total_amount: int
    start_sequence: int
    cliff_sequence: int
    duration: int

    @property
    def ramp_start(self) -> int:
        return max(self.start_sequence, self.cliff_sequence)

    @property
    def end_sequence(self) -> int:
        return self.ramp_start + self.duration


def validate_terms(terms: VestingTerms, min_vesting_amount: int = 1) -> None:
    if terms.duration <= 0:
        raise InvalidVestingParamsError("duration must be positive")
    if terms.total_amount < min_vesting_amount:
        raise InvalidVestingParamsError(
            f"total_amount {terms.total_amount} is below the minimum {min_vesting_amount}"
        )
    if terms.start_sequence < 0 or terms.cliff_sequence < 0:
        raise InvalidVestingParamsError("start and cliff sequences must be non-negative")


def unlocked_amount(terms: VestingTerms, now: int) -> int:
    """Amount unlocked by time at ledger ``now``."""
    if now < terms.cliff_sequence or now <= terms.ramp_start:
        return 0
    if now >= terms.end_sequence:
        return terms.total_amount
    elapsed = now - terms.ramp_start
    return min(terms.total_amount, mul_div_floor(terms.total_amount, elapsed, terms.duration))


def releasable_amount(
    terms: VestingTerms,
    released_amount: int,
    now: int,
    revoked: bool = False,
) -> int:
    if revoked:
        return 0
    return max(0, unlocked_amount(terms, now) - released_amount)


def vesting_state(
    terms: VestingTerms,
    released_amount: int,
    revoked: bool,
    now: int,
) -> VestingState:
    """
    Classify a schedule at ledger ``now``.

    COMPLETED means every token has been released, not merely unlocked.
    """
    if revoked:
        return VestingState.REVOKED
    if released_amount >= terms.total_amount:
        return VestingState.COMPLETED
    if now < terms.start_sequence:
        return VestingState.PENDING
    if now < terms.cliff_sequence:
        return VestingState.CLIFF_LOCKED
    return VestingState.RELEASING


def split_on_revoke(
    terms: VestingTerms,
    released_amount: int,
    now: int,
) -> tuple[int, int]:
    """
    Split the unreleased remainder at revocation.

    Returns:
        ``(vested_unreleased, unvested)``; the first goes to the
        beneficiary, the second back to the admin.
    """
    unlocked = unlocked_amount(terms, now)
    vested_unreleased = max(0, unlocked - released_amount)
    unvested = terms.total_amount - max(unlocked, released_amount)
    return vested_unreleased, unvested
