"""
Fees -- Pure fee computation.

Responsibility:
    Prices a transfer: picks the holding tier from the sender's share of
    circulating supply, applies the context override, and floors the fee
    in integer basis points.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  FeeService feeds
    it the balances it needs.

Invariants enforced:
    - fee + net_amount == amount
    - 0 <= fee <= amount
    - No floating point anywhere; the holding share is compared exactly.
"""

from dataclasses import dataclass

from token_kernel.domain.amounts import BASIS_POINTS, mul_div_floor
from token_kernel.domain.policy import FeePolicy, FeeTier, TransferContext


@dataclass(frozen=True)
class FeeQuote:
    """Result of pricing one transfer."""

    amount: int
    fee: int
    net_amount: int
    rate_bps: int
    context: TransferContext
    tier: str | None = None

    def as_tuple(self) -> tuple[int, int]:
        return self.fee, self.net_amount


def select_tier(holding: int, circulating: int, policy: FeePolicy) -> FeeTier:
    """
    Return the tier for ``holding / circulating``.

    With no circulating supply the share is undefined; the first (lowest)
    tier applies.
    """
    if circulating <= 0:
        return policy.tiers[0]
    for tier in policy.tiers:
        if tier.matches(holding, circulating):
            return tier
    return policy.tiers[-1]


def compute_fee(
    amount: int,
    holding: int,
    circulating: int,
    context: TransferContext,
    policy: FeePolicy,
) -> FeeQuote:
    """
    Price a transfer of ``amount``.

    Args:
        amount: Gross amount in bra.
        holding: Sender balance before the transfer.
        circulating: Circulating supply before the transfer.
        context: Declared transfer context.
        policy: Tier table and context overrides.
    """
    override = policy.context_rate(context)
    if override is not None:
        rate, tier_name = override, None
    else:
        tier = select_tier(holding, circulating, policy)
        rate, tier_name = tier.fee_bps, tier.name

    fee = mul_div_floor(amount, rate, BASIS_POINTS)
    return FeeQuote(
        amount=amount,
        fee=fee,
        net_amount=amount - fee,
        rate_bps=rate,
        context=context,
        tier=tier_name,
    )
