"""
LedgerClock -- Deterministic ledger-time abstraction.

Responsibility:
    Provides the host ledger's "current sequence" to the kernel so that
    vesting and daily-window code never reads wall-clock time directly.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except
    SystemLedgerClock, which is the one sanctioned I/O boundary for time).

Invariants enforced:
    - The sequence is monotonically non-decreasing.  DeterministicLedgerClock
      refuses to move backwards.

Failure modes:
    - ValueError when a DeterministicLedgerClock is set or advanced backwards.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone

# Average ledger close time of the host network.
LEDGER_CLOSE_SECONDS = 5

# Ledgers in one day at the average close time (24 * 60 * 60 / 5).
LEDGERS_PER_DAY = 17_280


class LedgerClock(ABC):
    """
    Abstract ledger clock.

    Contract:
        Every service that needs ledger time receives a LedgerClock via
        constructor injection.

    Guarantees:
        - ``sequence()`` is a non-negative int that never decreases.
    """

    @abstractmethod
    def sequence(self) -> int:
        """Get the current ledger sequence."""
        ...


class SystemLedgerClock(LedgerClock):
    """
    Production clock deriving the sequence from wall time.

    The sequence is the number of whole ledger close intervals elapsed since
    ``genesis``.

    Non-goals:
        Not suitable for deterministic replay or testing.
    """

    def __init__(
        self,
        genesis: datetime,
        close_seconds: int = LEDGER_CLOSE_SECONDS,
    ):
        if genesis.tzinfo is None:
            raise ValueError("genesis must be timezone-aware")
        if close_seconds <= 0:
            raise ValueError("close_seconds must be positive")
        self._genesis = genesis
        self._close_seconds = close_seconds

    def sequence(self) -> int:
        elapsed = datetime.now(timezone.utc) - self._genesis
        return max(0, int(elapsed.total_seconds()) // self._close_seconds)


class DeterministicLedgerClock(LedgerClock):
    """
    Test clock with a controlled sequence.

    Guarantees:
        - ``sequence()`` returns the same value until ``advance()`` or
          ``set_sequence()`` is called.
        - The sequence never decreases.
    """

    def __init__(self, sequence: int = 0):
        if sequence < 0:
            raise ValueError("sequence must be non-negative")
        self._sequence = sequence

    def sequence(self) -> int:
        return self._sequence

    def set_sequence(self, sequence: int) -> None:
        """Move the clock to ``sequence`` (must not be in the past)."""
        if sequence < self._sequence:
            raise ValueError(
                f"Ledger sequence cannot move backwards: {sequence} < {self._sequence}"
            )
        self._sequence = sequence

    def advance(self, ledgers: int = 1) -> int:
        """Advance by ``ledgers`` and return the new sequence."""
        if ledgers < 0:
            raise ValueError("ledgers must be non-negative")
        self._sequence += ledgers
        return self._sequence
