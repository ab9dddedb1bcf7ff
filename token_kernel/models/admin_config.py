"""
Module: token_kernel.models.admin_config
Responsibility: ORM persistence for the two ledger singletons: the admin
    configuration (admin, fee collector, pause flag, metadata) and the
    supply state (total, cap, locked, schedule count).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Exactly one row per table; the ``singleton_key`` unique column holds
      the constant 1.
    - supply_state.total_supply <= supply_state.max_supply (checked in
      SupplyController, stored here).
    - supply_state.locked_supply == sum of unreleased amounts of all
      non-revoked vesting schedules.

Failure modes:
    - IntegrityError if a second singleton row is inserted.
"""

from sqlalchemy import BigInteger, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from token_kernel.db.base import Base, LiveUntilMixin, TokenAmount

SINGLETON_KEY = 1


class AdminConfig(LiveUntilMixin, Base):
    """
    Administrative configuration record.

    Passed by reference to every service that needs authorization or pause
    state; there is no module-level admin global.
    """

    __tablename__ = "admin_config"

    singleton_key: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        unique=True,
        default=SINGLETON_KEY,
    )

    admin_address: Mapped[str] = mapped_column(String(64), nullable=False)

    fee_collector: Mapped[str] = mapped_column(String(64), nullable=False)

    paused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    name: Mapped[str] = mapped_column(String(64), nullable=False)

    symbol: Mapped[str] = mapped_column(String(16), nullable=False)

    decimals: Mapped[int] = mapped_column(Integer, nullable=False)

    initialized_sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<AdminConfig admin={self.admin_address} paused={self.paused}>"


class SupplyState(LiveUntilMixin, Base):
    """Global supply counters."""

    __tablename__ = "supply_state"

    singleton_key: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        unique=True,
        default=SINGLETON_KEY,
    )

    total_supply: Mapped[int] = mapped_column(TokenAmount(), nullable=False, default=0)

    # Immutable after initialization
    max_supply: Mapped[int] = mapped_column(TokenAmount(), nullable=False)

    locked_supply: Mapped[int] = mapped_column(TokenAmount(), nullable=False, default=0)

    vesting_schedule_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def circulating_supply(self) -> int:
        return self.total_supply - self.locked_supply

    def __repr__(self) -> str:
        return f"<SupplyState total={self.total_supply} locked={self.locked_supply}>"
