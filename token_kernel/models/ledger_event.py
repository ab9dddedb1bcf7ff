"""
Module: token_kernel.models.ledger_event
Responsibility: Append-only event log of successful ledger mutations.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - seq is strictly monotonic (allocated by SequenceService).
    - Rows are written inside the invocation's savepoint, so a failed
      invocation leaves no events behind.
    - payload_hash is the SHA-256 of the canonical JSON payload.
"""

from sqlalchemy import JSON, BigInteger, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from token_kernel.db.base import Base


class LedgerEvent(Base):
    __tablename__ = "ledger_events"

    __table_args__ = (
        Index("idx_ledger_event_topic", "topic"),
        Index("idx_ledger_event_subject", "subject"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    ledger_sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)

    topic: Mapped[str] = mapped_column(String(50), nullable=False)

    # Primary account the event concerns, if any
    subject: Mapped[str | None] = mapped_column(String(64), nullable=True)

    payload: Mapped[dict] = mapped_column(JSON, nullable=False)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<LedgerEvent #{self.seq} {self.topic} {self.subject}>"
