"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

Ledger time enters only through the LedgerClock abstraction.
"""

from token_kernel.domain.amounts import (
    BASIS_POINTS,
    BRA_PER_TOKEN,
    DECIMALS,
    I128_MAX,
    MAX_SUPPLY,
    checked_add,
    checked_sub,
    tokens,
)
from token_kernel.domain.clock import (
    LEDGERS_PER_DAY,
    DeterministicLedgerClock,
    LedgerClock,
    SystemLedgerClock,
)
from token_kernel.domain.dtos import (
    AllowanceInfo,
    ComplianceInfo,
    LedgerEventRecord,
    SupplyStats,
    TokenMetadata,
    TransferReceipt,
    VestingScheduleInfo,
)
from token_kernel.domain.fees import FeeQuote, compute_fee
from token_kernel.domain.policy import (
    DEFAULT_POLICY,
    CompliancePolicy,
    FeePolicy,
    FeeTier,
    StoragePolicy,
    TokenPolicy,
    TransferContext,
    VestingPolicy,
)
from token_kernel.domain.vesting import VestingState, VestingTerms

__all__ = [
    "BASIS_POINTS",
    "BRA_PER_TOKEN",
    "DECIMALS",
    "I128_MAX",
    "MAX_SUPPLY",
    "checked_add",
    "checked_sub",
    "tokens",
    "LEDGERS_PER_DAY",
    "LedgerClock",
    "SystemLedgerClock",
    "DeterministicLedgerClock",
    "AllowanceInfo",
    "ComplianceInfo",
    "LedgerEventRecord",
    "SupplyStats",
    "TokenMetadata",
    "TransferReceipt",
    "VestingScheduleInfo",
    "FeeQuote",
    "compute_fee",
    "DEFAULT_POLICY",
    "CompliancePolicy",
    "FeePolicy",
    "FeeTier",
    "StoragePolicy",
    "TokenPolicy",
    "TransferContext",
    "VestingPolicy",
    "VestingState",
    "VestingTerms",
]
