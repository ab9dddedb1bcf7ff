"""
VestingService -- creates, releases and revokes vesting schedules.

Responsibility:
    Persists schedules and performs the token movements that go with
    them.  All time arithmetic is delegated to domain/vesting.py.

Architecture position:
    Kernel > Services -- imperative shell.  Called by TokenLedger.

Invariants enforced:
    - Creating a schedule moves ``total`` from the admin's spendable
      balance to the beneficiary's balance, locked.  total_supply is
      unchanged; locked_supply grows by ``total``.
    - locked_amount(beneficiary) == sum(total - released) over the
      beneficiary's non-revoked schedules, and never exceeds its balance.
    - release moves tokens from locked to spendable only; no balance row
      changes.
    - A revoked schedule is terminal.
    - Per-account and global schedule counts are capped.

Failure modes:
    - InvalidVestingParamsError, LimitExceededError on create.
    - NothingToReleaseError when nothing is releasable.
    - VestingNotFoundError for an unknown (beneficiary, schedule_id).
    - NotRevocableError, AlreadyRevokedError on revoke.
"""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from token_kernel.domain.amounts import require_positive_amount
from token_kernel.domain.clock import LedgerClock
from token_kernel.domain.policy import TokenPolicy
from token_kernel.domain.vesting import (
    VestingTerms,
    releasable_amount,
    split_on_revoke,
    validate_terms,
)
from token_kernel.exceptions import (
    AlreadyRevokedError,
    InvalidVestingParamsError,
    LimitExceededError,
    NotRevocableError,
    NothingToReleaseError,
    VestingNotFoundError,
)
from token_kernel.logging_config import get_logger
from token_kernel.models.vesting_schedule import VestingSchedule
from token_kernel.services.balance_service import BalanceStore, SupplyController
from token_kernel.services.base import BaseService
from token_kernel.services.event_emitter import EventEmitter

logger = get_logger("services.vesting")


class VestingService(BaseService):
    def __init__(
        self,
        session: Session,
        clock: LedgerClock,
        policy: TokenPolicy,
        balances: BalanceStore,
        supply: SupplyController,
        events: EventEmitter,
    ):
        super().__init__(session, clock, policy)
        self.balances = balances
        self.supply = supply
        self.events = events

    def schedules(self, beneficiary: str) -> list[VestingSchedule]:
        return list(
            self.session.execute(
                select(VestingSchedule)
                .where(VestingSchedule.beneficiary == beneficiary)
                .order_by(VestingSchedule.schedule_id)
            ).scalars()
        )

    def get(self, beneficiary: str, schedule_id: int) -> VestingSchedule:
        schedule = self.session.execute(
            select(VestingSchedule).where(
                VestingSchedule.beneficiary == beneficiary,
                VestingSchedule.schedule_id == schedule_id,
            )
        ).scalar_one_or_none()
        if schedule is None:
            raise VestingNotFoundError(beneficiary, schedule_id)
        return schedule

    def _slot_count(self, beneficiary: str) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(VestingSchedule)
            .where(VestingSchedule.beneficiary == beneficiary)
        ).scalar_one()

    def create(
        self,
        funder: str,
        beneficiary: str,
        total_amount: int,
        start_sequence: int,
        cliff_sequence: int,
        duration: int,
        revocable: bool,
    ) -> int:
        """
        Lock ``total_amount`` of the funder's tokens for ``beneficiary``.

        Returns:
            The new schedule's slot id.
        """
        require_positive_amount(total_amount)
        for name, value in (
            ("start_sequence", start_sequence),
            ("cliff_sequence", cliff_sequence),
            ("duration", duration),
        ):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidVestingParamsError(f"{name} must be an integer")
        terms = VestingTerms(
            total_amount=total_amount,
            start_sequence=start_sequence,
            cliff_sequence=cliff_sequence,
            duration=duration,
        )
        validate_terms(terms, self.policy.vesting.min_vesting_amount)

        limits = self.policy.vesting
        slot = self._slot_count(beneficiary)
        if slot >= limits.max_schedules_per_account:
            raise LimitExceededError(
                "max_schedules_per_account", limits.max_schedules_per_account, beneficiary
            )
        state = self.supply.state()
        if state.vesting_schedule_count >= limits.max_schedules_global:
            raise LimitExceededError("max_schedules_global", limits.max_schedules_global)

        self.balances.debit_spendable(funder, total_amount)
        self.balances.credit(beneficiary, total_amount)
        self.supply.lock(total_amount)
        state.vesting_schedule_count += 1

        schedule = VestingSchedule(
            beneficiary=beneficiary,
            schedule_id=slot,
            total_amount=total_amount,
            released_amount=0,
            start_sequence=start_sequence,
            cliff_sequence=cliff_sequence,
            duration=duration,
            revocable=bool(revocable),
            revoked=False,
            revoked_at_sequence=None,
            created_sequence=self.now(),
            live_until=0,
        )
        self._touch(schedule)
        self.session.add(schedule)
        self.session.flush()

        self.events.emit(
            "vesting_created",
            beneficiary,
            beneficiary=beneficiary,
            schedule_id=slot,
            total_amount=total_amount,
            start_sequence=start_sequence,
            cliff_sequence=cliff_sequence,
            duration=duration,
            revocable=bool(revocable),
        )
        logger.info(
            "vesting_schedule_created",
            extra={"beneficiary": beneficiary, "schedule_id": slot, "total_amount": total_amount},
        )
        return slot

    def releasable(self, beneficiary: str, schedule_id: int | None = None) -> int:
        now = self.now()
        targets = self.schedules(beneficiary) if schedule_id is None else [self.get(beneficiary, schedule_id)]
        return sum(
            releasable_amount(s.terms, s.released_amount, now, s.revoked) for s in targets
        )

    def _release_one(self, schedule: VestingSchedule, amount: int) -> None:
        schedule.released_amount += amount
        self.supply.unlock(amount)
        self._touch(schedule)
        self.events.emit(
            "vesting_released",
            schedule.beneficiary,
            beneficiary=schedule.beneficiary,
            schedule_id=schedule.schedule_id,
            amount=amount,
            released_amount=schedule.released_amount,
        )

    def release(self, beneficiary: str, schedule_id: int | None = None) -> int:
        """
        Release everything currently releasable.

        With ``schedule_id`` None every schedule of the beneficiary is
        released.  Returns the total released.
        """
        now = self.now()
        targets = self.schedules(beneficiary) if schedule_id is None else [self.get(beneficiary, schedule_id)]

        released = 0
        for schedule in targets:
            amount = releasable_amount(schedule.terms, schedule.released_amount, now, schedule.revoked)
            if amount > 0:
                self._release_one(schedule, amount)
                released += amount

        if released == 0:
            raise NothingToReleaseError(beneficiary, schedule_id)

        self.session.flush()
        logger.info(
            "vesting_released",
            extra={"beneficiary": beneficiary, "schedule_id": schedule_id, "amount": released},
        )
        return released

    def revoke(self, admin: str, beneficiary: str, schedule_id: int) -> int:
        """
        Terminate a revocable schedule.

        The vested-but-unreleased part is released to the beneficiary; the
        unvested part moves from the beneficiary back to ``admin``.

        Returns:
            The unvested amount returned to the admin.
        """
        schedule = self.get(beneficiary, schedule_id)
        if schedule.revoked:
            raise AlreadyRevokedError(beneficiary, schedule_id)
        if not schedule.revocable:
            raise NotRevocableError(beneficiary, schedule_id)
        if schedule.released_amount >= schedule.total_amount:
            raise NotRevocableError(beneficiary, schedule_id, "schedule is already completed")

        now = self.now()
        vested_unreleased, unvested = split_on_revoke(schedule.terms, schedule.released_amount, now)

        if vested_unreleased > 0:
            self._release_one(schedule, vested_unreleased)

        schedule.revoked = True
        schedule.revoked_at_sequence = now
        self._touch(schedule)

        if unvested > 0:
            self.supply.unlock(unvested)
            self.balances.debit(beneficiary, unvested)
            self.balances.credit(admin, unvested)
        self.session.flush()

        self.events.emit(
            "vesting_revoked",
            beneficiary,
            beneficiary=beneficiary,
            schedule_id=schedule_id,
            unvested_amount=unvested,
            released_amount=schedule.released_amount,
        )
        logger.info(
            "vesting_schedule_revoked",
            extra={"beneficiary": beneficiary, "schedule_id": schedule_id, "unvested": unvested},
        )
        return unvested
