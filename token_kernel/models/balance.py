"""
Module: token_kernel.models.balance
Responsibility: ORM persistence for per-account balances and per-pair
    allowances.  Each account and each (owner, spender) pair is an
    independently keyed row, so touching one account never loads another.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - sum(AccountBalance.amount) == SupplyState.total_supply
    - amounts are non-negative ints (enforced by BalanceStore)
    - an allowance of zero has no row (pruned by AllowanceStore)

Failure modes:
    - IntegrityError on duplicate address or duplicate (owner, spender).
"""

from sqlalchemy import BigInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from token_kernel.db.base import Base, LiveUntilMixin, TokenAmount


class AccountBalance(LiveUntilMixin, Base):
    __tablename__ = "account_balances"

    address: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    amount: Mapped[int] = mapped_column(TokenAmount(), nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<AccountBalance {self.address}={self.amount}>"


class Allowance(LiveUntilMixin, Base):
    """
    Spending authorization granted by ``owner`` to ``spender``.

    Reads as zero once the current ledger sequence passes
    ``expiration_sequence``; expiry never requires a write.
    """

    __tablename__ = "allowances"

    __table_args__ = (
        UniqueConstraint("owner", "spender", name="uq_allowance_owner_spender"),
    )

    owner: Mapped[str] = mapped_column(String(64), nullable=False)

    spender: Mapped[str] = mapped_column(String(64), nullable=False)

    amount: Mapped[int] = mapped_column(TokenAmount(), nullable=False)

    expiration_sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def is_expired(self, now: int) -> bool:
        return now > self.expiration_sequence

    def __repr__(self) -> str:
        return f"<Allowance {self.owner}->{self.spender}={self.amount}@{self.expiration_sequence}>"
