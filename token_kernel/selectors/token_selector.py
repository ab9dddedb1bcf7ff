"""
Module: token_kernel.selectors.token_selector
Responsibility: Pure reads over balances, allowances, supply, metadata,
    compliance records, vesting schedules and the event log.
Architecture position: Kernel > Selectors.  Read-only; see selectors/base.py.

Invariants enforced:
    - balance() and allowance() read as zero for unknown keys and work
      before initialization; every other read raises NotInitializedError
      until the ledger is initialized.
    - Expired allowances read as zero.
    - Vesting snapshots are evaluated at the clock's current sequence.
"""

from sqlalchemy import select

from token_kernel.domain.dtos import (
    AllowanceInfo,
    ComplianceInfo,
    LedgerEventRecord,
    SupplyStats,
    TokenMetadata,
    VestingScheduleInfo,
)
from token_kernel.domain.vesting import releasable_amount, unlocked_amount, vesting_state
from token_kernel.exceptions import NotInitializedError, VestingNotFoundError
from token_kernel.models.admin_config import SINGLETON_KEY, AdminConfig, SupplyState
from token_kernel.models.balance import AccountBalance, Allowance
from token_kernel.models.compliance import AllowedCountry, ComplianceRecord
from token_kernel.models.ledger_event import LedgerEvent
from token_kernel.models.vesting_schedule import VestingSchedule
from token_kernel.selectors.base import BaseSelector


class TokenSelector(BaseSelector):
    def _config(self) -> AdminConfig:
        config = self.session.execute(
            select(AdminConfig).where(AdminConfig.singleton_key == SINGLETON_KEY)
        ).scalar_one_or_none()
        if config is None:
            raise NotInitializedError()
        return config

    def _supply(self) -> SupplyState:
        state = self.session.execute(
            select(SupplyState).where(SupplyState.singleton_key == SINGLETON_KEY)
        ).scalar_one_or_none()
        if state is None:
            raise NotInitializedError()
        return state

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def balance(self, address: str) -> int:
        amount = self.session.execute(
            select(AccountBalance.amount).where(AccountBalance.address == address)
        ).scalar_one_or_none()
        return amount or 0

    def locked_amount(self, address: str) -> int:
        self._config()
        schedules = self.session.execute(
            select(VestingSchedule).where(
                VestingSchedule.beneficiary == address,
                VestingSchedule.revoked.is_(False),
            )
        ).scalars()
        return sum(s.locked_amount for s in schedules)

    def spendable_balance(self, address: str) -> int:
        return max(0, self.balance(address) - self.locked_amount(address))

    # ------------------------------------------------------------------
    # Allowances
    # ------------------------------------------------------------------

    def _allowance_row(self, owner: str, spender: str) -> Allowance | None:
        return self.session.execute(
            select(Allowance).where(Allowance.owner == owner, Allowance.spender == spender)
        ).scalar_one_or_none()

    def allowance(self, owner: str, spender: str) -> int:
        row = self._allowance_row(owner, spender)
        if row is None or row.is_expired(self.clock.sequence()):
            return 0
        return row.amount

    def allowance_info(self, owner: str, spender: str) -> AllowanceInfo | None:
        row = self._allowance_row(owner, spender)
        if row is None:
            return None
        return AllowanceInfo(
            owner=row.owner,
            spender=row.spender,
            amount=0 if row.is_expired(self.clock.sequence()) else row.amount,
            expiration_sequence=row.expiration_sequence,
        )

    # ------------------------------------------------------------------
    # Supply and metadata
    # ------------------------------------------------------------------

    def total_supply(self) -> int:
        return self._supply().total_supply

    def max_supply(self) -> int:
        return self._supply().max_supply

    def circulating_supply(self) -> int:
        return self._supply().circulating_supply

    def supply_stats(self) -> SupplyStats:
        state = self._supply()
        return SupplyStats(
            total_supply=state.total_supply,
            max_supply=state.max_supply,
            locked_supply=state.locked_supply,
            circulating_supply=state.circulating_supply,
            vesting_schedule_count=state.vesting_schedule_count,
        )

    def metadata(self) -> TokenMetadata:
        config = self._config()
        return TokenMetadata(name=config.name, symbol=config.symbol, decimals=config.decimals)

    def admin(self) -> str:
        return self._config().admin_address

    def fee_collector(self) -> str:
        return self._config().fee_collector

    def is_paused(self) -> bool:
        return self._config().paused

    # ------------------------------------------------------------------
    # Compliance
    # ------------------------------------------------------------------

    def _compliance_row(self, address: str) -> ComplianceRecord | None:
        self._config()
        return self.session.execute(
            select(ComplianceRecord).where(ComplianceRecord.address == address)
        ).scalar_one_or_none()

    def is_blacklisted(self, address: str) -> bool:
        record = self._compliance_row(address)
        return record is not None and record.is_blacklisted

    def compliance_record(self, address: str) -> ComplianceInfo | None:
        record = self._compliance_row(address)
        if record is None:
            return None
        return ComplianceInfo(
            address=record.address,
            kyc_level=record.kyc_level,
            country_code=record.country_code,
            risk_score=record.risk_score,
            daily_spent=record.daily_spent,
            daily_window_start=record.daily_window_start,
            daily_limit=record.daily_limit,
            is_blacklisted=record.is_blacklisted,
        )

    def allowed_countries(self) -> list[str]:
        self._config()
        return list(
            self.session.execute(select(AllowedCountry.code).order_by(AllowedCountry.code)).scalars()
        )

    # ------------------------------------------------------------------
    # Vesting
    # ------------------------------------------------------------------

    def _to_info(self, schedule: VestingSchedule, now: int) -> VestingScheduleInfo:
        terms = schedule.terms
        return VestingScheduleInfo(
            beneficiary=schedule.beneficiary,
            schedule_id=schedule.schedule_id,
            total_amount=schedule.total_amount,
            released_amount=schedule.released_amount,
            start_sequence=schedule.start_sequence,
            cliff_sequence=schedule.cliff_sequence,
            duration=schedule.duration,
            revocable=schedule.revocable,
            revoked=schedule.revoked,
            revoked_at_sequence=schedule.revoked_at_sequence,
            state=vesting_state(terms, schedule.released_amount, schedule.revoked, now),
            unlocked_amount=unlocked_amount(terms, now),
            releasable_amount=releasable_amount(
                terms, schedule.released_amount, now, schedule.revoked
            ),
            as_of_sequence=now,
        )

    def vesting_schedules(self, beneficiary: str) -> list[VestingScheduleInfo]:
        self._config()
        now = self.clock.sequence()
        rows = self.session.execute(
            select(VestingSchedule)
            .where(VestingSchedule.beneficiary == beneficiary)
            .order_by(VestingSchedule.schedule_id)
        ).scalars()
        return [self._to_info(row, now) for row in rows]

    def vesting_schedule(self, beneficiary: str, schedule_id: int) -> VestingScheduleInfo:
        self._config()
        row = self.session.execute(
            select(VestingSchedule).where(
                VestingSchedule.beneficiary == beneficiary,
                VestingSchedule.schedule_id == schedule_id,
            )
        ).scalar_one_or_none()
        if row is None:
            raise VestingNotFoundError(beneficiary, schedule_id)
        return self._to_info(row, self.clock.sequence())

    def releasable_amount(self, beneficiary: str, schedule_id: int | None = None) -> int:
        if schedule_id is not None:
            return self.vesting_schedule(beneficiary, schedule_id).releasable_amount
        return sum(s.releasable_amount for s in self.vesting_schedules(beneficiary))

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def events(
        self,
        topic: str | None = None,
        subject: str | None = None,
        after_seq: int = 0,
        limit: int | None = None,
    ) -> list[LedgerEventRecord]:
        """Return committed-or-pending events in sequence order."""
        query = select(LedgerEvent).where(LedgerEvent.seq > after_seq).order_by(LedgerEvent.seq)
        if topic is not None:
            query = query.where(LedgerEvent.topic == topic)
        if subject is not None:
            query = query.where(LedgerEvent.subject == subject)
        if limit is not None:
            query = query.limit(limit)
        return [
            LedgerEventRecord(
                seq=row.seq,
                ledger_sequence=row.ledger_sequence,
                topic=row.topic,
                subject=row.subject,
                payload=dict(row.payload),
            )
            for row in self.session.execute(query).scalars()
        ]
