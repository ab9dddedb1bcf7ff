"""
TokenLedger -- the public entry points of the token.

Responsibility:
    Composes the ledger services and exposes every externally reachable
    operation.  Each mutating entry point is one invocation: it holds the
    reentrancy guard, opens a savepoint, checks authorization and pause,
    runs compliance, derives spendable funds, prices fees, mutates state,
    emits events and dispatches them to subscribers, then releases the
    savepoint.

Architecture position:
    Kernel > Services -- the outermost kernel surface.  The caller owns
    the session and the outer transaction; TokenLedger never commits it.

Invariants enforced:
    - Atomicity: any exception rolls back every state change and every
      event of the invocation, then propagates unchanged.
    - No re-entrancy: a nested entry-point call fails with ReentrantCallError.
    - Events are written and delivered only on the success path.

Failure modes:
    - Every TokenKernelError subclass, raised unchanged.

Usage:
    with session_scope() as session:
        ledger = TokenLedger(session, SystemLedgerClock(genesis), get_active_policy())
        ledger.transfer("alice", "bob", tokens(10))
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from token_kernel.domain.amounts import require_positive_amount
from token_kernel.domain.clock import LedgerClock
from token_kernel.domain.dtos import (
    AllowanceInfo,
    ComplianceInfo,
    LedgerEventRecord,
    SupplyStats,
    TransferReceipt,
    VestingScheduleInfo,
)
from token_kernel.domain.fees import FeeQuote
from token_kernel.domain.policy import DEFAULT_POLICY, TokenPolicy, TransferContext
from token_kernel.exceptions import UnauthorizedError
from token_kernel.logging_config import LogContext, get_logger
from token_kernel.models.admin_config import AdminConfig
from token_kernel.selectors.token_selector import TokenSelector
from token_kernel.services.admin_service import AdminService, require_address
from token_kernel.services.allowance_service import AllowanceStore
from token_kernel.services.balance_service import BalanceStore, SupplyController
from token_kernel.services.compliance_service import ComplianceService
from token_kernel.services.event_emitter import EventEmitter, EventSubscriber
from token_kernel.services.fee_service import FeeService
from token_kernel.services.reentrancy import ReentrancyGuard
from token_kernel.services.vesting_service import VestingService

logger = get_logger("services.token_ledger")


class TokenLedger:
    """
    Fixed-supply token ledger.

    Every mutating method takes the authenticated ``caller`` first.
    Amounts are ints in bra (10**-7 token).
    """

    def __init__(
        self,
        session: Session,
        clock: LedgerClock,
        policy: TokenPolicy = DEFAULT_POLICY,
    ):
        self.session = session
        self.clock = clock
        self.policy = policy

        self.guard = ReentrancyGuard()
        self.emitter = EventEmitter(session, clock, policy)
        self.balances = BalanceStore(session, clock, policy)
        self.supply = SupplyController(session, clock, policy, self.balances)
        self.allowances = AllowanceStore(session, clock, policy, self.emitter)
        self.fees = FeeService(session, clock, policy, self.balances, self.supply)
        self.compliance = ComplianceService(session, clock, policy, self.emitter)
        self.vesting = VestingService(
            session, clock, policy, self.balances, self.supply, self.emitter
        )
        self.admin_service = AdminService(
            session, clock, policy, self.balances, self.supply, self.compliance, self.emitter
        )
        self.selector = TokenSelector(session, clock)

    # ------------------------------------------------------------------
    # Invocation boundary
    # ------------------------------------------------------------------

    @contextmanager
    def _invocation(self, operation: str, caller: str) -> Iterator[None]:
        with self.guard.hold(operation):
            with LogContext.invocation(operation, caller, self.clock.sequence()):
                savepoint = self.session.begin_nested()
                try:
                    yield
                    self.emitter.dispatch_pending()
                    savepoint.commit()
                except Exception:
                    self.emitter.discard_pending()
                    if savepoint.is_active:
                        savepoint.rollback()
                    logger.warning("invocation_rolled_back", exc_info=True)
                    raise
                logger.debug("invocation_committed")

    def subscribe(self, subscriber: EventSubscriber) -> None:
        """Register a callback run for each event of a successful invocation."""
        self.emitter.subscribe(subscriber)

    def unsubscribe(self, subscriber: EventSubscriber) -> None:
        self.emitter.unsubscribe(subscriber)

    def _config(self) -> AdminConfig:
        return self.admin_service.config()

    def _admin_config(self, caller: str, operation: str) -> AdminConfig:
        config = self._config()
        self.admin_service.require_admin(config, caller, operation)
        return config

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(
        self,
        admin: str,
        name: str,
        symbol: str,
        fee_collector: str | None = None,
    ) -> None:
        with self._invocation("initialize", admin):
            self.admin_service.initialize(admin, name, symbol, fee_collector)

    def pause(self, caller: str) -> None:
        with self._invocation("pause", caller):
            config = self._admin_config(caller, "pause")
            self.admin_service.set_paused(config, True)

    def unpause(self, caller: str) -> None:
        with self._invocation("unpause", caller):
            config = self._admin_config(caller, "unpause")
            self.admin_service.set_paused(config, False)

    def set_admin(self, caller: str, new_admin: str) -> None:
        with self._invocation("set_admin", caller):
            config = self._admin_config(caller, "set_admin")
            self.admin_service.set_admin(config, new_admin)

    def set_fee_collector(self, caller: str, fee_collector: str) -> None:
        with self._invocation("set_fee_collector", caller):
            config = self._admin_config(caller, "set_fee_collector")
            self.admin_service.set_fee_collector(config, fee_collector)

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def _check_recipient(self, config: AdminConfig, to: str) -> None:
        # The fee collector may hold fees without a compliance record
        if to == config.fee_collector:
            self.compliance.require_not_blacklisted(to)
        else:
            self.compliance.check_recipient(to)

    def _apply_transfer(
        self,
        config: AdminConfig,
        sender: str,
        to: str,
        amount: int,
        context: TransferContext,
    ) -> FeeQuote:
        """Compliance, spendable check, fee split and balance moves."""
        require_address("to", to)
        quote = self.fees.quote(config, sender, amount, context)

        if sender != config.fee_collector:
            self.compliance.check_transfer(sender, amount, quote.context)
        self._check_recipient(config, to)

        self.balances.debit_spendable(sender, amount)
        if quote.net_amount > 0:
            self.balances.credit(to, quote.net_amount)
        if quote.fee > 0:
            self.balances.credit(config.fee_collector, quote.fee)
        return quote

    def _receipt(self, config: AdminConfig, sender: str, to: str, quote: FeeQuote) -> TransferReceipt:
        return TransferReceipt(
            sender=sender,
            recipient=to,
            amount=quote.amount,
            fee=quote.fee,
            net_amount=quote.net_amount,
            context=quote.context,
            fee_collector=config.fee_collector,
        )

    def transfer(
        self,
        caller: str,
        to: str,
        amount: int,
        context: TransferContext = TransferContext.DEFAULT,
    ) -> TransferReceipt:
        with self._invocation("transfer", caller):
            config = self._config()
            self.admin_service.require_not_paused(config, "transfer")
            require_positive_amount(amount)

            quote = self._apply_transfer(config, caller, to, amount, context)
            self.emitter.emit(
                "transfer",
                caller,
                from_address=caller,
                to=to,
                amount=amount,
                fee=quote.fee,
                net_amount=quote.net_amount,
                context=quote.context.value,
            )
            logger.info(
                "transfer_applied",
                extra={"to": to, "amount": amount, "fee": quote.fee},
            )
            return self._receipt(config, caller, to, quote)

    def transfer_from(
        self,
        caller: str,
        owner: str,
        to: str,
        amount: int,
        context: TransferContext = TransferContext.DEFAULT,
    ) -> TransferReceipt:
        with self._invocation("transfer_from", caller):
            config = self._config()
            self.admin_service.require_not_paused(config, "transfer_from")
            require_positive_amount(amount)
            self.compliance.require_not_blacklisted(caller)

            self.allowances.consume_allowance(owner, caller, amount)
            quote = self._apply_transfer(config, owner, to, amount, context)
            self.emitter.emit(
                "transfer",
                owner,
                from_address=owner,
                to=to,
                spender=caller,
                amount=amount,
                fee=quote.fee,
                net_amount=quote.net_amount,
                context=quote.context.value,
            )
            logger.info(
                "transfer_from_applied",
                extra={"owner": owner, "to": to, "amount": amount, "fee": quote.fee},
            )
            return self._receipt(config, owner, to, quote)

    # ------------------------------------------------------------------
    # Allowances
    # ------------------------------------------------------------------

    def approve(self, caller: str, spender: str, amount: int, expiration_sequence: int) -> int:
        """Overwrite the allowance; returns the previous live value."""
        with self._invocation("approve", caller):
            self._config()
            require_address("spender", spender)
            self.compliance.require_not_blacklisted(caller)
            self.compliance.require_not_blacklisted(spender)
            return self.allowances.approve(caller, spender, amount, expiration_sequence)

    def increase_allowance(self, caller: str, spender: str, delta: int) -> int:
        with self._invocation("increase_allowance", caller):
            self._config()
            self.compliance.require_not_blacklisted(caller)
            self.compliance.require_not_blacklisted(spender)
            return self.allowances.increase_allowance(caller, spender, delta)

    def decrease_allowance(self, caller: str, spender: str, delta: int) -> int:
        with self._invocation("decrease_allowance", caller):
            self._config()
            return self.allowances.decrease_allowance(caller, spender, delta)

    # ------------------------------------------------------------------
    # Supply
    # ------------------------------------------------------------------

    def mint(self, caller: str, to: str, amount: int) -> int:
        """Mint new tokens; returns the new total supply."""
        with self._invocation("mint", caller):
            config = self._admin_config(caller, "mint")
            self.admin_service.require_not_paused(config, "mint")
            require_address("to", to)
            require_positive_amount(amount)
            self._check_recipient(config, to)
            total = self.supply.mint(to, amount)
            self.emitter.emit("mint", to, to=to, amount=amount, total_supply=total)
            return total

    def burn(self, caller: str, amount: int) -> int:
        """Burn the caller's spendable tokens; returns the new total supply."""
        with self._invocation("burn", caller):
            config = self._config()
            self.admin_service.require_not_paused(config, "burn")
            require_positive_amount(amount)
            self.compliance.require_not_blacklisted(caller)
            total = self.supply.burn(caller, amount)
            self.emitter.emit("burn", caller, from_address=caller, amount=amount, total_supply=total)
            return total

    def force_transfer(self, caller: str, from_address: str, to: str, amount: int) -> None:
        with self._invocation("force_transfer", caller):
            self._admin_config(caller, "force_transfer")
            require_positive_amount(amount)
            self.admin_service.force_transfer(from_address, to, amount)

    def force_burn(self, caller: str, from_address: str, amount: int) -> int:
        with self._invocation("force_burn", caller):
            self._admin_config(caller, "force_burn")
            require_positive_amount(amount)
            return self.admin_service.force_burn(from_address, amount)

    # ------------------------------------------------------------------
    # Vesting
    # ------------------------------------------------------------------

    def create_vesting(
        self,
        caller: str,
        beneficiary: str,
        total_amount: int,
        start_sequence: int,
        cliff_sequence: int,
        duration: int,
        revocable: bool = True,
    ) -> int:
        """Lock admin funds for ``beneficiary``; returns the schedule id."""
        with self._invocation("create_vesting", caller):
            config = self._admin_config(caller, "create_vesting")
            self.admin_service.require_not_paused(config, "create_vesting")
            require_address("beneficiary", beneficiary)
            self.compliance.require_not_blacklisted(beneficiary)
            return self.vesting.create(
                config.admin_address,
                beneficiary,
                total_amount,
                start_sequence,
                cliff_sequence,
                duration,
                revocable,
            )

    def release_vested(
        self,
        caller: str,
        beneficiary: str | None = None,
        schedule_id: int | None = None,
    ) -> int:
        """Release unlocked tokens; returns the amount released."""
        beneficiary = beneficiary if beneficiary is not None else caller
        with self._invocation("release_vested", caller):
            config = self._config()
            if caller not in (beneficiary, config.admin_address):
                raise UnauthorizedError(
                    caller, "release_vested", "caller is neither the beneficiary nor the admin"
                )
            self.admin_service.require_not_paused(config, "release_vested")
            return self.vesting.release(beneficiary, schedule_id)

    def revoke_vesting(self, caller: str, beneficiary: str, schedule_id: int) -> int:
        """Revoke a schedule; returns the unvested amount returned to the admin."""
        with self._invocation("revoke_vesting", caller):
            config = self._admin_config(caller, "revoke_vesting")
            return self.vesting.revoke(config.admin_address, beneficiary, schedule_id)

    # ------------------------------------------------------------------
    # Compliance administration
    # ------------------------------------------------------------------

    def set_kyc(self, caller: str, address: str, level: int) -> None:
        with self._invocation("set_kyc", caller):
            self._admin_config(caller, "set_kyc")
            self.compliance.set_kyc(require_address("address", address), level)

    def set_country(self, caller: str, address: str, country_code: str) -> None:
        with self._invocation("set_country", caller):
            self._admin_config(caller, "set_country")
            self.compliance.set_country(require_address("address", address), country_code)

    def set_risk_score(self, caller: str, address: str, score: int) -> None:
        with self._invocation("set_risk_score", caller):
            self._admin_config(caller, "set_risk_score")
            self.compliance.set_risk_score(require_address("address", address), score)

    def set_daily_limit(self, caller: str, address: str, limit: int | None) -> None:
        with self._invocation("set_daily_limit", caller):
            self._admin_config(caller, "set_daily_limit")
            self.compliance.set_daily_limit(require_address("address", address), limit)

    def blacklist(self, caller: str, address: str) -> None:
        with self._invocation("blacklist", caller):
            self._admin_config(caller, "blacklist")
            self.compliance.blacklist(require_address("address", address))

    def unblacklist(self, caller: str, address: str) -> None:
        with self._invocation("unblacklist", caller):
            self._admin_config(caller, "unblacklist")
            self.compliance.unblacklist(require_address("address", address))

    def allow_country(self, caller: str, country_code: str) -> bool:
        with self._invocation("allow_country", caller):
            self._admin_config(caller, "allow_country")
            return self.compliance.allow_country(country_code)

    def disallow_country(self, caller: str, country_code: str) -> bool:
        with self._invocation("disallow_country", caller):
            self._admin_config(caller, "disallow_country")
            return self.compliance.disallow_country(country_code)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def balance(self, address: str) -> int:
        return self.selector.balance(address)

    def spendable_balance(self, address: str) -> int:
        return self.selector.spendable_balance(address)

    def locked_amount(self, address: str) -> int:
        return self.selector.locked_amount(address)

    def allowance(self, owner: str, spender: str) -> int:
        return self.selector.allowance(owner, spender)

    def allowance_info(self, owner: str, spender: str) -> AllowanceInfo | None:
        return self.selector.allowance_info(owner, spender)

    def total_supply(self) -> int:
        return self.selector.total_supply()

    def max_supply(self) -> int:
        return self.selector.max_supply()

    def circulating_supply(self) -> int:
        return self.selector.circulating_supply()

    def supply_stats(self) -> SupplyStats:
        return self.selector.supply_stats()

    def name(self) -> str:
        return self.selector.metadata().name

    def symbol(self) -> str:
        return self.selector.metadata().symbol

    def decimals(self) -> int:
        return self.selector.metadata().decimals

    def admin(self) -> str:
        return self.selector.admin()

    def fee_collector(self) -> str:
        return self.selector.fee_collector()

    def is_paused(self) -> bool:
        return self.selector.is_paused()

    def is_blacklisted(self, address: str) -> bool:
        return self.selector.is_blacklisted(address)

    def is_fully_compliant(self, address: str) -> bool:
        self._config()
        return self.compliance.is_fully_compliant(address)

    def compliance_record(self, address: str) -> ComplianceInfo | None:
        return self.selector.compliance_record(address)

    def allowed_countries(self) -> list[str]:
        return self.selector.allowed_countries()

    def vesting_schedule(self, beneficiary: str, schedule_id: int) -> VestingScheduleInfo:
        return self.selector.vesting_schedule(beneficiary, schedule_id)

    def vesting_schedules(self, beneficiary: str) -> list[VestingScheduleInfo]:
        return self.selector.vesting_schedules(beneficiary)

    def releasable_amount(self, beneficiary: str, schedule_id: int | None = None) -> int:
        return self.selector.releasable_amount(beneficiary, schedule_id)

    def quote_fee(
        self,
        sender: str,
        amount: int,
        context: TransferContext = TransferContext.DEFAULT,
    ) -> FeeQuote:
        """Price a transfer without executing it."""
        return self.fees.quote(self._config(), sender, amount, context)

    def calculate_fee(
        self,
        sender: str,
        amount: int,
        context: TransferContext = TransferContext.DEFAULT,
    ) -> tuple[int, int]:
        return self.quote_fee(sender, amount, context).as_tuple()

    def events(
        self,
        topic: str | None = None,
        subject: str | None = None,
        after_seq: int = 0,
        limit: int | None = None,
    ) -> list[LedgerEventRecord]:
        return self.selector.events(topic=topic, subject=subject, after_seq=after_seq, limit=limit)
