"""
Module: token_kernel.models.compliance
Responsibility: ORM persistence for per-account compliance records and the
    admin-maintained country allow-list.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - kyc_level, risk_score within the policy's ranges (ComplianceEngine)
    - daily_spent resets lazily when the window elapses; the counter is a
      fixed pair of columns, never a growing history
    - country codes are stored upper-case
"""

from sqlalchemy import BigInteger, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from token_kernel.db.base import Base, LiveUntilMixin, TokenAmount


class ComplianceRecord(LiveUntilMixin, Base):
    __tablename__ = "compliance_records"

    address: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    kyc_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    country_code: Mapped[str | None] = mapped_column(String(8), nullable=True)

    risk_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    daily_spent: Mapped[int] = mapped_column(TokenAmount(), nullable=False, default=0)

    daily_window_start: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # Per-account override of the KYC-level daily cap; NULL uses the policy
    daily_limit: Mapped[int | None] = mapped_column(TokenAmount(), nullable=True)

    is_blacklisted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    updated_sequence: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<ComplianceRecord {self.address} kyc={self.kyc_level} "
            f"country={self.country_code} blacklisted={self.is_blacklisted}>"
        )


class AllowedCountry(LiveUntilMixin, Base):
    __tablename__ = "allowed_countries"

    code: Mapped[str] = mapped_column(String(8), nullable=False, unique=True)
