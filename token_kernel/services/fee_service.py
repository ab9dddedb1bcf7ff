"""
FeeService -- prices transfers against live ledger state.

Responsibility:
    Resolves the effective transfer context for a sender and feeds the
    pure fee engine (domain/fees.py) with the sender's balance and the
    circulating supply as they stand before the transfer.

Architecture position:
    Kernel > Services.  Read-only over balances and supply; never writes.

Invariants enforced:
    - A transfer sent by the admin is always priced as ADMIN_DISTRIBUTION.
    - Only the admin may declare ADMIN_DISTRIBUTION.
    - The fee collector pays no fee.

Failure modes:
    - UnauthorizedError when a non-admin declares ADMIN_DISTRIBUTION.
    - InvalidParameterError for an unknown context value.
"""

from sqlalchemy.orm import Session

from token_kernel.domain.amounts import require_positive_amount
from token_kernel.domain.clock import LedgerClock
from token_kernel.domain.fees import FeeQuote, compute_fee
from token_kernel.domain.policy import TokenPolicy, TransferContext
from token_kernel.exceptions import InvalidParameterError, UnauthorizedError
from token_kernel.models.admin_config import AdminConfig
from token_kernel.services.balance_service import BalanceStore, SupplyController
from token_kernel.services.base import BaseService


class FeeService(BaseService):
    def __init__(
        self,
        session: Session,
        clock: LedgerClock,
        policy: TokenPolicy,
        balances: BalanceStore,
        supply: SupplyController,
    ):
        super().__init__(session, clock, policy)
        self.balances = balances
        self.supply = supply

    def resolve_context(
        self,
        config: AdminConfig,
        sender: str,
        context: TransferContext,
    ) -> TransferContext:
        try:
            context = TransferContext(context)
        except ValueError as exc:
            raise InvalidParameterError("context", context, "unknown transfer context") from exc
        if sender == config.admin_address:
            return TransferContext.ADMIN_DISTRIBUTION
        if context is TransferContext.ADMIN_DISTRIBUTION:
            raise UnauthorizedError(
                sender,
                "transfer",
                "only the admin may declare admin_distribution",
            )
        return context

    def quote(
        self,
        config: AdminConfig,
        sender: str,
        amount: int,
        context: TransferContext = TransferContext.DEFAULT,
    ) -> FeeQuote:
        """Price a transfer of ``amount`` from ``sender``."""
        require_positive_amount(amount)
        context = self.resolve_context(config, sender, context)
        if sender == config.fee_collector:
            return FeeQuote(
                amount=amount,
                fee=0,
                net_amount=amount,
                rate_bps=0,
                context=context,
                tier=None,
            )
        return compute_fee(
            amount=amount,
            holding=self.balances.get_balance(sender),
            circulating=self.supply.circulating_supply(),
            context=context,
            policy=self.policy.fees,
        )

    def calculate_fee(
        self,
        config: AdminConfig,
        sender: str,
        amount: int,
        context: TransferContext = TransferContext.DEFAULT,
    ) -> tuple[int, int]:
        """Return ``(fee, net_amount)``."""
        return self.quote(config, sender, amount, context).as_tuple()
