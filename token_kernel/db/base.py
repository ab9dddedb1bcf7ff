"""
Module: token_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the UUID primary key convention, the lossless 128-bit TokenAmount column
    type, and the LiveUntilMixin that carries each row's storage TTL.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, or outer layers.

Invariants enforced:
    - UUID primary keys on every model.
    - Amounts are Python ints end-to-end.  TokenAmount stores them as decimal
      text so that values up to 2**127 - 1 survive on every backend.
      NEVER use float for token amounts.
    - Every persistent row carries live_until; writes extend it by the host
      TTL rule (see LiveUntilMixin.touch).

Failure modes:
    - ValueError from TokenAmount if a non-int value is bound.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class TokenAmount(TypeDecorator):
    """
    Non-negative integer amount stored as String(40).

    BigInteger tops out at 2**63 - 1 and Numeric round-trips through
    Decimal on some drivers, so amounts are kept as canonical decimal text.

    Guarantees:
        - process_bind_param: int -> str; rejects bool and non-int values.
        - process_result_value: str -> int.
    """

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"TokenAmount requires an int, got {type(value).__name__}")
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - datetime maps to DateTime(timezone=True).
        - int maps to BigInteger; use TokenAmount explicitly for amounts.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class LiveUntilMixin:
    """
    Row-level storage TTL.

    ``live_until`` is the last ledger sequence at which the row is
    guaranteed to be retained by the host storage.
    """

    live_until: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    def touch(self, now: int, threshold: int, extend_to: int) -> bool:
        """
        Extend ``live_until`` to ``now + extend_to`` when fewer than
        ``threshold`` ledgers remain.  Returns True if the TTL moved.
        """
        current = self.live_until or 0
        if current - now < threshold:
            self.live_until = now + extend_to
            return True
        return False


UUID = PyUUID
