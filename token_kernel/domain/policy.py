"""
Policy -- Immutable rule parameters consumed by the kernel engines.

Responsibility:
    Declares the typed, frozen parameter set for fees, compliance, vesting
    limits and storage TTLs.  The kernel only ever receives a TokenPolicy
    instance; token_config builds one from YAML, tests build one directly.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  token_config imports this
    module; the kernel never imports token_config.

Invariants enforced:
    - Rates and holding thresholds are integer basis points.
    - Fee tiers are ordered by threshold and end with an unbounded tier.
    - The supply cap never exceeds the host amount range.

Failure modes:
    - ValueError on construction with inconsistent parameters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from token_kernel.domain.amounts import (
    BASIS_POINTS,
    BRA_PER_TOKEN,
    DECIMALS,
    I128_MAX,
    MAX_SUPPLY,
)
from token_kernel.domain.clock import LEDGERS_PER_DAY


class TransferContext(str, Enum):
    """Business classification of a transfer, declared by the caller."""

    DEFAULT = "default"
    EXCHANGE_TO_EXCHANGE = "exchange_to_exchange"
    LOCAL_COMMERCE = "local_commerce"
    ADMIN_DISTRIBUTION = "admin_distribution"


@dataclass(frozen=True)
class FeeTier:
    """
    Holding-share bracket.

    ``max_holding_bps`` is the upper bound of the sender's share of
    circulating supply in basis points; None means unbounded.
    """

    name: str
    fee_bps: int
    max_holding_bps: int | None = None
    inclusive: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.fee_bps <= BASIS_POINTS:
            raise ValueError(f"fee_bps out of range for tier {self.name}: {self.fee_bps}")
        if self.max_holding_bps is not None and not 0 < self.max_holding_bps <= BASIS_POINTS:
            raise ValueError(
                f"max_holding_bps out of range for tier {self.name}: {self.max_holding_bps}"
            )

    def matches(self, holding: int, circulating: int) -> bool:
        """True if ``holding / circulating`` falls inside this bracket."""
        if self.max_holding_bps is None:
            return True
        lhs = holding * BASIS_POINTS
        rhs = self.max_holding_bps * circulating
        return lhs <= rhs if self.inclusive else lhs < rhs


DEFAULT_FEE_TIERS: tuple[FeeTier, ...] = (
    FeeTier(name="retail", fee_bps=5, max_holding_bps=10, inclusive=False),
    FeeTier(name="holder", fee_bps=15, max_holding_bps=100, inclusive=True),
    FeeTier(name="whale", fee_bps=30, max_holding_bps=None),
)

DEFAULT_CONTEXT_RATES: tuple[tuple[TransferContext, int], ...] = (
    (TransferContext.EXCHANGE_TO_EXCHANGE, 10),
    (TransferContext.LOCAL_COMMERCE, 5),
    (TransferContext.ADMIN_DISTRIBUTION, 0),
)


@dataclass(frozen=True)
class FeePolicy:
    tiers: tuple[FeeTier, ...] = DEFAULT_FEE_TIERS
    context_rates: tuple[tuple[TransferContext, int], ...] = DEFAULT_CONTEXT_RATES

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ValueError("at least one fee tier is required")
        if self.tiers[-1].max_holding_bps is not None:
            raise ValueError("the last fee tier must be unbounded")
        bounds = [t.max_holding_bps for t in self.tiers[:-1]]
        if any(b is None for b in bounds):
            raise ValueError("only the last fee tier may be unbounded")
        if bounds != sorted(bounds):
            raise ValueError("fee tiers must be ordered by max_holding_bps")
        for context, rate in self.context_rates:
            if context is TransferContext.DEFAULT:
                raise ValueError("DEFAULT context is priced by holding tier")
            if not 0 <= rate <= BASIS_POINTS:
                raise ValueError(f"rate out of range for {context.value}: {rate}")

    def context_rate(self, context: TransferContext) -> int | None:
        for ctx, rate in self.context_rates:
            if ctx is context:
                return rate
        return None


# Daily caps indexed by KYC level; None is unlimited.
DEFAULT_DAILY_CAPS: tuple[int | None, ...] = (
    0,
    10_000 * BRA_PER_TOKEN,
    1_000_000 * BRA_PER_TOKEN,
    None,
)


@dataclass(frozen=True)
class CompliancePolicy:
    allowed_countries: tuple[str, ...] = ("BR",)
    risk_threshold: int = 50
    auto_blacklist_risk: int = 80
    max_risk_score: int = 100
    daily_caps: tuple[int | None, ...] = DEFAULT_DAILY_CAPS
    window_ledgers: int = LEDGERS_PER_DAY
    recipient_min_kyc: int = 2

    def __post_init__(self) -> None:
        if not self.daily_caps:
            raise ValueError("daily_caps must define at least KYC level 0")
        if not 0 <= self.recipient_min_kyc <= self.max_kyc_level:
            raise ValueError("recipient_min_kyc must lie within [0, max_kyc_level]")
        if any(c is not None and c < 0 for c in self.daily_caps):
            raise ValueError("daily caps must be non-negative")
        if not 0 <= self.risk_threshold <= self.max_risk_score:
            raise ValueError("risk_threshold must lie within [0, max_risk_score]")
        if self.window_ledgers <= 0:
            raise ValueError("window_ledgers must be positive")
        if any(not code or code != code.upper() for code in self.allowed_countries):
            raise ValueError("allowed country codes must be non-empty upper-case strings")

    @property
    def max_kyc_level(self) -> int:
        return len(self.daily_caps) - 1

    def daily_cap_for(self, kyc_level: int) -> int | None:
        level = min(max(kyc_level, 0), self.max_kyc_level)
        return self.daily_caps[level]


@dataclass(frozen=True)
class VestingPolicy:
    max_schedules_per_account: int = 50
    max_schedules_global: int = 10_000
    min_vesting_amount: int = 1

    def __post_init__(self) -> None:
        if self.max_schedules_per_account <= 0 or self.max_schedules_global <= 0:
            raise ValueError("schedule limits must be positive")
        if self.min_vesting_amount <= 0:
            raise ValueError("min_vesting_amount must be positive")


@dataclass(frozen=True)
class StoragePolicy:
    """Host TTL rule: extend to ``ttl_extend_to`` once below ``ttl_threshold``."""

    ttl_threshold: int = 518_400
    ttl_extend_to: int = 6_307_200

    def __post_init__(self) -> None:
        if not 0 < self.ttl_threshold <= self.ttl_extend_to:
            raise ValueError("require 0 < ttl_threshold <= ttl_extend_to")


@dataclass(frozen=True)
class TokenPolicy:
    """Complete parameter set for one token deployment."""

    policy_id: str = "braza-default"
    version: int = 1
    decimals: int = DECIMALS
    max_supply: int = MAX_SUPPLY
    initial_supply: int = 0
    fees: FeePolicy = field(default_factory=FeePolicy)
    compliance: CompliancePolicy = field(default_factory=CompliancePolicy)
    vesting: VestingPolicy = field(default_factory=VestingPolicy)
    storage: StoragePolicy = field(default_factory=StoragePolicy)

    def __post_init__(self) -> None:
        if not 0 < self.max_supply <= I128_MAX:
            raise ValueError("max_supply must be positive and fit 128 bits")
        if not 0 <= self.initial_supply <= self.max_supply:
            raise ValueError("initial_supply must lie within [0, max_supply]")
        if self.decimals < 0:
            raise ValueError("decimals must be non-negative")


DEFAULT_POLICY = TokenPolicy()
