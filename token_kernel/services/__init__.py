"""Services for the token kernel (write side)."""

from token_kernel.services.admin_service import AdminService
from token_kernel.services.allowance_service import AllowanceStore
from token_kernel.services.balance_service import BalanceStore, SupplyController
from token_kernel.services.compliance_service import ComplianceService
from token_kernel.services.event_emitter import EventEmitter, EventSubscriber
from token_kernel.services.fee_service import FeeService
from token_kernel.services.reentrancy import ReentrancyGuard
from token_kernel.services.sequence_service import SequenceService
from token_kernel.services.token_ledger import TokenLedger
from token_kernel.services.vesting_service import VestingService

__all__ = [
    "AdminService",
    "AllowanceStore",
    "BalanceStore",
    "ComplianceService",
    "EventEmitter",
    "EventSubscriber",
    "FeeService",
    "ReentrancyGuard",
    "SequenceService",
    "SupplyController",
    "TokenLedger",
    "VestingService",
]
