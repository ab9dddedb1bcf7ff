"""
EventEmitter -- success-only ledger event log.

Responsibility:
    Appends structured events to ``ledger_events`` and delivers them to
    in-process subscribers.

Architecture position:
    Kernel > Services -- imperative shell.  Every mutating service emits
    through the one EventEmitter owned by its TokenLedger.

Invariants enforced:
    - Event rows are written inside the invocation's savepoint, so a
      failed invocation leaves no events.
    - Subscribers run at the end of the invocation, still inside the
      reentrancy guard and the savepoint.  A subscriber that raises (or
      re-enters the ledger) aborts the whole invocation.
    - seq is strictly monotonic (SequenceService).

Failure modes:
    - Any exception raised by a subscriber propagates unchanged.
"""

import hashlib
import json
from collections.abc import Callable
from typing import Any

from sqlalchemy.orm import Session

from token_kernel.domain.clock import LedgerClock
from token_kernel.domain.dtos import LedgerEventRecord
from token_kernel.domain.policy import TokenPolicy
from token_kernel.logging_config import get_logger
from token_kernel.models.ledger_event import LedgerEvent
from token_kernel.services.base import BaseService
from token_kernel.services.sequence_service import SequenceService

logger = get_logger("services.events")

EventSubscriber = Callable[[LedgerEventRecord], None]


def payload_hash(payload: dict[str, Any]) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class EventEmitter(BaseService):
    """
    Append-only event writer with synchronous subscribers.

    Usage:
        emitter.subscribe(lambda event: print(event.topic))
        emitter.emit("mint", "alice", to="alice", amount=100)
        emitter.dispatch_pending()
    """

    def __init__(self, session: Session, clock: LedgerClock, policy: TokenPolicy):
        super().__init__(session, clock, policy)
        self._sequences = SequenceService(session)
        self._subscribers: list[EventSubscriber] = []
        self._pending: list[LedgerEventRecord] = []

    def subscribe(self, subscriber: EventSubscriber) -> None:
        self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: EventSubscriber) -> None:
        self._subscribers.remove(subscriber)

    def emit(self, topic: str, subject: str | None = None, **payload: Any) -> LedgerEventRecord:
        """Write one event row and queue it for subscribers."""
        seq = self._sequences.next_value(SequenceService.LEDGER_EVENT)
        now = self.now()
        row = LedgerEvent(
            seq=seq,
            ledger_sequence=now,
            topic=topic,
            subject=subject,
            payload=payload,
            payload_hash=payload_hash(payload),
        )
        self.session.add(row)
        self.session.flush()

        record = LedgerEventRecord(
            seq=seq,
            ledger_sequence=now,
            topic=topic,
            subject=subject,
            payload=dict(payload),
        )
        self._pending.append(record)
        logger.debug("ledger_event_emitted", extra={"topic": topic, "seq": seq})
        return record

    def dispatch_pending(self) -> None:
        """Deliver queued events to subscribers in emission order."""
        while self._pending:
            record = self._pending.pop(0)
            for subscriber in list(self._subscribers):
                subscriber(record)

    def discard_pending(self) -> None:
        if self._pending:
            logger.debug("ledger_events_discarded", extra={"count": len(self._pending)})
        self._pending.clear()
