"""ORM models for the token ledger."""

from token_kernel.models.admin_config import SINGLETON_KEY, AdminConfig, SupplyState
from token_kernel.models.balance import AccountBalance, Allowance
from token_kernel.models.compliance import AllowedCountry, ComplianceRecord
from token_kernel.models.ledger_event import LedgerEvent
from token_kernel.models.sequence_counter import SequenceCounter
from token_kernel.models.vesting_schedule import VestingSchedule

__all__ = [
    "SINGLETON_KEY",
    "AdminConfig",
    "SupplyState",
    "AccountBalance",
    "Allowance",
    "AllowedCountry",
    "ComplianceRecord",
    "LedgerEvent",
    "SequenceCounter",
    "VestingSchedule",
]
