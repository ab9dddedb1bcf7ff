"""
Domain Data Transfer Objects.

Immutable value objects returned by selectors and entry points.  They
carry no ORM state, so callers can hold them after the session closes.
"""

from dataclasses import dataclass, field
from typing import Any

from token_kernel.domain.policy import TransferContext
from token_kernel.domain.vesting import VestingState


@dataclass(frozen=True)
class TokenMetadata:
    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class SupplyStats:
    total_supply: int
    max_supply: int
    locked_supply: int
    circulating_supply: int
    vesting_schedule_count: int


@dataclass(frozen=True)
class AllowanceInfo:
    owner: str
    spender: str
    amount: int
    expiration_sequence: int


@dataclass(frozen=True)
class ComplianceInfo:
    address: str
    kyc_level: int
    country_code: str | None
    risk_score: int
    daily_spent: int
    daily_window_start: int
    daily_limit: int | None
    is_blacklisted: bool


@dataclass(frozen=True)
class VestingScheduleInfo:
    """Snapshot of one schedule evaluated at ``as_of_sequence``."""

    beneficiary: str
    schedule_id: int
    total_amount: int
    released_amount: int
    start_sequence: int
    cliff_sequence: int
    duration: int
    revocable: bool
    revoked: bool
    revoked_at_sequence: int | None
    state: VestingState
    unlocked_amount: int
    releasable_amount: int
    as_of_sequence: int


@dataclass(frozen=True)
class TransferReceipt:
    """Outcome of a successful transfer or transfer_from."""

    sender: str
    recipient: str
    amount: int
    fee: int
    net_amount: int
    context: TransferContext
    fee_collector: str


@dataclass(frozen=True)
class LedgerEventRecord:
    seq: int
    ledger_sequence: int
    topic: str
    subject: str | None
    payload: dict[str, Any] = field(default_factory=dict)
