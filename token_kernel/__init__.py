"""
Token Kernel - fixed-supply token ledger with business-rule engines.

A single-invocation, atomically committed token ledger with:
- Balance, allowance and supply accounting under a hard cap
- Linear vesting with cliffs and admin revocation
- Holding-tier and context-based fees in integer basis points
- Compliance gating (KYC tiers, country allow-list, risk, daily limits, blacklist)
- Re-entrancy protection and checked 128-bit arithmetic
"""

__version__ = "0.1.0"
