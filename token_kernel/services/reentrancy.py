"""
ReentrancyGuard -- scoped protection against nested entry-point calls.

Responsibility:
    Rejects any mutating entry point invoked while another one on the same
    ledger is still running (for example from an event subscriber).

Architecture position:
    Kernel > Services.  Owned by one TokenLedger instance; never persisted
    and never shared through module state.

Invariants enforced:
    - At most one mutating invocation is active per ledger.
    - The guard is released on every exit path, including exceptions.

Failure modes:
    - ReentrantCallError when the guard is already held.

Sequential calls are unaffected.  This is not a lock between threads.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from token_kernel.exceptions import ReentrantCallError
from token_kernel.logging_config import get_logger

logger = get_logger("services.reentrancy")


class ReentrancyGuard:
    def __init__(self) -> None:
        self._active_operation: str | None = None

    @property
    def held(self) -> bool:
        return self._active_operation is not None

    @property
    def active_operation(self) -> str | None:
        return self._active_operation

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        """Hold the guard for the duration of ``operation``."""
        if self._active_operation is not None:
            logger.warning(
                "reentrant_call_rejected",
                extra={
                    "attempted_operation": operation,
                    "active_operation": self._active_operation,
                },
            )
            raise ReentrantCallError(operation, self._active_operation)
        self._active_operation = operation
        try:
            yield
        finally:
            self._active_operation = None
