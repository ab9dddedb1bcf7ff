"""
Module: token_kernel.models.vesting_schedule
Responsibility: ORM persistence for vesting schedules.  Schedules are
    slot-indexed per beneficiary (schedule_id 0..n-1) and capped in count.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/vesting.py (pure value types only).

Invariants enforced:
    - released_amount <= total_amount
    - (beneficiary, schedule_id) is unique
    - once revoked, the row is terminal: released_amount never changes again

Failure modes:
    - IntegrityError on duplicate (beneficiary, schedule_id).
"""

from sqlalchemy import BigInteger, Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from token_kernel.db.base import Base, LiveUntilMixin, TokenAmount
from token_kernel.domain.vesting import VestingTerms


class VestingSchedule(LiveUntilMixin, Base):
    __tablename__ = "vesting_schedules"

    __table_args__ = (
        UniqueConstraint("beneficiary", "schedule_id", name="uq_vesting_beneficiary_slot"),
        Index("idx_vesting_beneficiary", "beneficiary"),
    )

    beneficiary: Mapped[str] = mapped_column(String(64), nullable=False)

    # Slot index within the beneficiary's schedules
    schedule_id: Mapped[int] = mapped_column(Integer, nullable=False)

    total_amount: Mapped[int] = mapped_column(TokenAmount(), nullable=False)

    released_amount: Mapped[int] = mapped_column(TokenAmount(), nullable=False, default=0)

    start_sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)

    cliff_sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)

    duration: Mapped[int] = mapped_column(BigInteger, nullable=False)

    revocable: Mapped[bool] = mapped_column(Boolean, nullable=False)

    revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    revoked_at_sequence: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    created_sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)

    @property
    def terms(self) -> VestingTerms:
        return VestingTerms(
            total_amount=self.total_amount,
            start_sequence=self.start_sequence,
            cliff_sequence=self.cliff_sequence,
            duration=self.duration,
        )

    @property
    def locked_amount(self) -> int:
        if self.revoked:
            return 0
        return self.total_amount - self.released_amount

    def __repr__(self) -> str:
        return (
            f"<VestingSchedule {self.beneficiary}#{self.schedule_id} "
            f"{self.released_amount}/{self.total_amount} revoked={self.revoked}>"
        )
