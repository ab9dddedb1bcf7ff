"""
AllowanceStore -- delegated spending authorizations.

Responsibility:
    Sets, reads and consumes (owner, spender) allowances with a ledger
    sequence expiry.

Architecture position:
    Kernel > Services -- imperative shell.  Called by TokenLedger.

Invariants enforced:
    - Allowances are never negative.
    - An expired allowance reads as zero without any write.
    - A zero allowance has no row.
    - approve() overwrites; it never increments.

Failure modes:
    - InsufficientAllowanceError when consuming more than the live amount.
    - InvalidParameterError for a non-zero approval that is already expired.
    - InvalidAmountError for negative or non-int amounts.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from token_kernel.domain.amounts import (
    checked_add,
    require_non_negative_amount,
    require_positive_amount,
)
from token_kernel.domain.clock import LedgerClock
from token_kernel.domain.policy import TokenPolicy
from token_kernel.exceptions import InsufficientAllowanceError, InvalidParameterError
from token_kernel.logging_config import get_logger
from token_kernel.models.balance import Allowance
from token_kernel.services.base import BaseService
from token_kernel.services.event_emitter import EventEmitter

logger = get_logger("services.allowance")


class AllowanceStore(BaseService):
    def __init__(
        self,
        session: Session,
        clock: LedgerClock,
        policy: TokenPolicy,
        events: EventEmitter,
    ):
        super().__init__(session, clock, policy)
        self.events = events

    def _row(self, owner: str, spender: str) -> Allowance | None:
        return self.session.execute(
            select(Allowance).where(Allowance.owner == owner, Allowance.spender == spender)
        ).scalar_one_or_none()

    def allowance(self, owner: str, spender: str) -> int:
        row = self._row(owner, spender)
        if row is None or row.is_expired(self.now()):
            return 0
        return row.amount

    def expiration(self, owner: str, spender: str) -> int | None:
        row = self._row(owner, spender)
        return row.expiration_sequence if row is not None else None

    def _store(self, owner: str, spender: str, amount: int, expiration_sequence: int) -> None:
        row = self._row(owner, spender)
        if amount == 0:
            if row is not None:
                self.session.delete(row)
            self.session.flush()
            return
        if row is None:
            row = Allowance(owner=owner, spender=spender, live_until=0)
            self.session.add(row)
        row.amount = amount
        row.expiration_sequence = expiration_sequence
        self._touch(row)
        self.session.flush()

    def approve(self, owner: str, spender: str, amount: int, expiration_sequence: int) -> int:
        """
        Set the allowance to exactly ``amount``; returns the previous live value.

        Replacing a non-zero allowance with another non-zero value also
        emits ``allowance_overwrite`` so that watchers can flag the classic
        approve race.
        """
        require_non_negative_amount(amount)
        if isinstance(expiration_sequence, bool) or not isinstance(expiration_sequence, int):
            raise InvalidParameterError(
                "expiration_sequence", expiration_sequence, "must be an integer ledger sequence"
            )
        now = self.now()
        if amount > 0 and expiration_sequence < now:
            raise InvalidParameterError(
                "expiration_sequence",
                expiration_sequence,
                f"already expired at ledger {now}",
            )

        old_amount = self.allowance(owner, spender)
        self._store(owner, spender, amount, expiration_sequence)

        self.events.emit(
            "approve",
            owner,
            owner=owner,
            spender=spender,
            old_amount=old_amount,
            amount=amount,
            expiration_sequence=expiration_sequence,
        )
        if old_amount > 0 and amount > 0:
            self.events.emit(
                "allowance_overwrite",
                owner,
                owner=owner,
                spender=spender,
                old_amount=old_amount,
                amount=amount,
            )
            logger.warning(
                "allowance_overwritten",
                extra={"owner": owner, "spender": spender, "old_amount": old_amount},
            )
        return old_amount

    def increase_allowance(self, owner: str, spender: str, delta: int) -> int:
        """Raise the live allowance by ``delta`` keeping its expiry."""
        require_positive_amount(delta)
        row = self._row(owner, spender)
        if row is None or row.is_expired(self.now()):
            raise InvalidParameterError(
                "spender", spender, "no live allowance to increase; use approve"
            )
        old_amount = row.amount
        new_amount = checked_add(old_amount, delta)
        self._store(owner, spender, new_amount, row.expiration_sequence)
        self.events.emit(
            "approve",
            owner,
            owner=owner,
            spender=spender,
            old_amount=old_amount,
            amount=new_amount,
            expiration_sequence=row.expiration_sequence,
        )
        return new_amount

    def decrease_allowance(self, owner: str, spender: str, delta: int) -> int:
        """Lower the live allowance by ``delta``; going below zero fails."""
        require_positive_amount(delta)
        current = self.allowance(owner, spender)
        if delta > current:
            raise InsufficientAllowanceError(owner, spender, delta, current)
        expiry = self.expiration(owner, spender)
        new_amount = current - delta
        self._store(owner, spender, new_amount, expiry)
        self.events.emit(
            "approve",
            owner,
            owner=owner,
            spender=spender,
            old_amount=current,
            amount=new_amount,
            expiration_sequence=expiry,
        )
        return new_amount

    def consume_allowance(self, owner: str, spender: str, amount: int) -> int:
        """Spend ``amount`` of the allowance; returns what remains."""
        require_positive_amount(amount)
        row = self._row(owner, spender)
        current = 0 if row is None or row.is_expired(self.now()) else row.amount
        if amount > current:
            raise InsufficientAllowanceError(owner, spender, amount, current)
        remaining = current - amount
        self._store(owner, spender, remaining, row.expiration_sequence)
        return remaining
