"""
BalanceStore and SupplyController -- balance and supply accounting.

Responsibility:
    BalanceStore owns per-account balance rows: checked credit and debit,
    and the spendable view (balance minus vesting-locked amount).
    SupplyController owns the supply_state singleton: capped mint, burn of
    spendable funds, and the locked-supply counter used by vesting.

Architecture position:
    Kernel > Services -- imperative shell.  Called by TokenLedger,
    VestingService, FeeService and AdminService.

Invariants enforced:
    - sum(balances) == total_supply: every supply change is paired with a
      balance change inside the same method.
    - total_supply <= max_supply
    - Locked tokens can never be burned or transferred.
    - Balances stay within [0, 2**127 - 1].

Failure modes:
    - InvalidAmountError for non-positive or non-int amounts.
    - SupplyExceededError when a mint would cross the cap.
    - InsufficientSpendableError when a debit exceeds spendable funds.
    - ArithmeticOverflowError / ArithmeticUnderflowError from checked math.
    - NotInitializedError when the supply singleton is missing.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from token_kernel.domain.amounts import checked_add, checked_sub, require_positive_amount
from token_kernel.domain.clock import LedgerClock
from token_kernel.domain.policy import TokenPolicy
from token_kernel.exceptions import (
    InsufficientSpendableError,
    NotInitializedError,
    SupplyExceededError,
)
from token_kernel.logging_config import get_logger
from token_kernel.models.admin_config import SINGLETON_KEY, SupplyState
from token_kernel.models.balance import AccountBalance
from token_kernel.models.vesting_schedule import VestingSchedule
from token_kernel.services.base import BaseService

logger = get_logger("services.balance")


class BalanceStore(BaseService):
    def _row(self, address: str) -> AccountBalance | None:
        return self.session.execute(
            select(AccountBalance).where(AccountBalance.address == address)
        ).scalar_one_or_none()

    def _row_for_write(self, address: str) -> AccountBalance:
        row = self._row(address)
        if row is None:
            row = AccountBalance(address=address, amount=0, live_until=0)
            self.session.add(row)
        self._touch(row)
        return row

    def get_balance(self, address: str) -> int:
        row = self._row(address)
        return row.amount if row is not None else 0

    def locked_amount(self, address: str) -> int:
        """Sum of unreleased amounts over the account's live schedules."""
        schedules = self.session.execute(
            select(VestingSchedule).where(
                VestingSchedule.beneficiary == address,
                VestingSchedule.revoked.is_(False),
            )
        ).scalars()
        return sum(s.locked_amount for s in schedules)

    def spendable(self, address: str) -> int:
        return max(0, self.get_balance(address) - self.locked_amount(address))

    def require_spendable(self, address: str, amount: int) -> None:
        available = self.spendable(address)
        if amount > available:
            raise InsufficientSpendableError(address, amount, available)

    def credit(self, address: str, amount: int) -> int:
        """Add ``amount`` to ``address``; returns the new balance."""
        require_positive_amount(amount)
        row = self._row_for_write(address)
        row.amount = checked_add(row.amount, amount)
        self.session.flush()
        return row.amount

    def debit(self, address: str, amount: int) -> int:
        """Remove ``amount`` from ``address`` without a spendable check."""
        require_positive_amount(amount)
        row = self._row_for_write(address)
        row.amount = checked_sub(row.amount, amount)
        self.session.flush()
        return row.amount

    def debit_spendable(self, address: str, amount: int) -> int:
        require_positive_amount(amount)
        self.require_spendable(address, amount)
        return self.debit(address, amount)

    def move(self, sender: str, recipient: str, amount: int) -> None:
        """Move spendable funds between two accounts."""
        self.debit_spendable(sender, amount)
        self.credit(recipient, amount)


class SupplyController(BaseService):
    """
    Capped supply accounting.

    Contract:
        mint() and burn() change total_supply and one balance together.
        lock()/unlock() move amounts between circulating and locked supply
        without changing total_supply.
    """

    def __init__(
        self,
        session: Session,
        clock: LedgerClock,
        policy: TokenPolicy,
        balances: BalanceStore,
    ):
        super().__init__(session, clock, policy)
        self.balances = balances

    def find_state(self) -> SupplyState | None:
        return self.session.execute(
            select(SupplyState).where(SupplyState.singleton_key == SINGLETON_KEY)
        ).scalar_one_or_none()

    def state(self) -> SupplyState:
        state = self.find_state()
        if state is None:
            raise NotInitializedError()
        return state

    def create_state(self) -> SupplyState:
        state = SupplyState(
            singleton_key=SINGLETON_KEY,
            total_supply=0,
            max_supply=self.policy.max_supply,
            locked_supply=0,
            vesting_schedule_count=0,
            live_until=0,
        )
        self._touch(state)
        self.session.add(state)
        self.session.flush()
        return state

    def total_supply(self) -> int:
        return self.state().total_supply

    def circulating_supply(self) -> int:
        return self.state().circulating_supply

    def mint(self, to: str, amount: int) -> int:
        """Create ``amount`` new tokens for ``to``; returns the new total."""
        require_positive_amount(amount)
        state = self.state()
        new_total = checked_add(state.total_supply, amount)
        if new_total > state.max_supply:
            raise SupplyExceededError(state.total_supply, amount, state.max_supply)

        self.balances.credit(to, amount)
        state.total_supply = new_total
        self._touch(state)
        self.session.flush()
        logger.info(
            "supply_minted",
            extra={"to": to, "amount": amount, "total_supply": new_total},
        )
        return new_total

    def burn(self, holder: str, amount: int) -> int:
        """Destroy ``amount`` of ``holder``'s spendable tokens."""
        require_positive_amount(amount)
        state = self.state()
        self.balances.debit_spendable(holder, amount)
        state.total_supply = checked_sub(state.total_supply, amount)
        self._touch(state)
        self.session.flush()
        logger.info(
            "supply_burned",
            extra={"holder": holder, "amount": amount, "total_supply": state.total_supply},
        )
        return state.total_supply

    def lock(self, amount: int) -> None:
        state = self.state()
        state.locked_supply = checked_add(state.locked_supply, amount)
        self._touch(state)

    def unlock(self, amount: int) -> None:
        state = self.state()
        state.locked_supply = checked_sub(state.locked_supply, amount)
        self._touch(state)
