"""
Ledger Invariants Contract.

These invariants are structural law.  They are enforced by the services at
the invocation boundary; no TokenPolicy value may switch them off.

This module exists solely to declare them explicitly.  Enforcement is
distributed across BalanceStore, SupplyController, VestingService,
ComplianceService and TokenLedger.
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    SUPPLY_CONSERVATION = "supply_conservation"
    """sum(balances) == total_supply after every invocation.  Mint and burn
    change both in the same savepoint; transfers and fees only move value."""

    SUPPLY_CAP = "supply_cap"
    """total_supply <= max_supply.  Enforced by SupplyController.mint."""

    LOCKED_WITHIN_BALANCE = "locked_within_balance"
    """0 <= locked_amount(address) <= balance(address).  Only spendable
    value can leave an account."""

    ALLOWANCE_NON_NEGATIVE = "allowance_non_negative"
    """Allowances never go negative; expired allowances read as zero."""

    ATOMIC_INVOCATION = "atomic_invocation"
    """A failed invocation leaves state and the event log unchanged.
    Enforced by the savepoint opened in TokenLedger."""

    NO_REENTRANCY = "no_reentrancy"
    """At most one mutating entry point runs at a time per ledger.
    Enforced by ReentrancyGuard."""

    BOUNDED_COLLECTIONS = "bounded_collections"
    """Per-account and global vesting schedule counts are capped."""


ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "token_config",
)
