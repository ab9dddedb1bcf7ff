"""
BaseService -- abstract base for all ledger services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  All concrete services receive a
    SQLAlchemy ``Session``, the ledger clock and the active TokenPolicy,
    and use ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  TokenLedger
      owns the per-invocation savepoint; the caller owns the outer commit.
    - Storage TTL: every row a service writes is touched with the policy's
      TTL rule before flush.
"""

from abc import ABC

from sqlalchemy.orm import Session

from token_kernel.db.base import LiveUntilMixin
from token_kernel.domain.clock import LedgerClock
from token_kernel.domain.policy import TokenPolicy


class BaseService(ABC):
    """
    Abstract base class for all ledger services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only DTO reads -- those belong in
          ``token_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: LedgerClock, policy: TokenPolicy):
        self.session = session
        self.clock = clock
        self.policy = policy

    def now(self) -> int:
        return self.clock.sequence()

    def _touch(self, row: LiveUntilMixin) -> None:
        storage = self.policy.storage
        row.touch(self.now(), storage.ttl_threshold, storage.ttl_extend_to)
