"""
AdminService -- authorization, pause state and administrative operations.

Responsibility:
    Owns the admin_config singleton.  Provides the single authorization
    predicate used by every privileged entry point, the pause gate, ledger
    initialization, admin rotation and the recovery operations
    force_transfer / force_burn.

Architecture position:
    Kernel > Services -- imperative shell.  Called by TokenLedger.

Invariants enforced:
    - Initialization happens once.
    - Every privileged operation goes through require_admin().
    - Pause blocks the transfer-class operations only.

Failure modes:
    - NotInitializedError before initialize().
    - AlreadyInitializedError on a second initialize().
    - UnauthorizedError from require_admin().
    - ContractPausedError from require_not_paused().
    - InvalidParameterError for empty name, symbol or addresses.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from token_kernel.domain.clock import LedgerClock
from token_kernel.domain.policy import TokenPolicy
from token_kernel.exceptions import (
    AlreadyInitializedError,
    ContractPausedError,
    InvalidParameterError,
    NotInitializedError,
    UnauthorizedError,
)
from token_kernel.logging_config import get_logger
from token_kernel.models.admin_config import SINGLETON_KEY, AdminConfig
from token_kernel.services.balance_service import BalanceStore, SupplyController
from token_kernel.services.base import BaseService
from token_kernel.services.compliance_service import ComplianceService
from token_kernel.services.event_emitter import EventEmitter

logger = get_logger("services.admin")

MAX_ADDRESS_LENGTH = 64


def require_address(parameter: str, address: object) -> str:
    if not isinstance(address, str) or not address.strip():
        raise InvalidParameterError(parameter, address, "address must be a non-empty string")
    if len(address) > MAX_ADDRESS_LENGTH:
        raise InvalidParameterError(parameter, address, "address is longer than 64 characters")
    return address


class AdminService(BaseService):
    def __init__(
        self,
        session: Session,
        clock: LedgerClock,
        policy: TokenPolicy,
        balances: BalanceStore,
        supply: SupplyController,
        compliance: ComplianceService,
        events: EventEmitter,
    ):
        super().__init__(session, clock, policy)
        self.balances = balances
        self.supply = supply
        self.compliance = compliance
        self.events = events

    # ------------------------------------------------------------------
    # Configuration record
    # ------------------------------------------------------------------

    def find_config(self) -> AdminConfig | None:
        return self.session.execute(
            select(AdminConfig).where(AdminConfig.singleton_key == SINGLETON_KEY)
        ).scalar_one_or_none()

    def config(self) -> AdminConfig:
        config = self.find_config()
        if config is None:
            raise NotInitializedError()
        return config

    def require_admin(self, config: AdminConfig, caller: str, operation: str) -> None:
        """The one authorization predicate for privileged operations."""
        if caller != config.admin_address:
            logger.warning(
                "unauthorized_call",
                extra={"caller": caller, "attempted_operation": operation},
            )
            raise UnauthorizedError(caller, operation, "caller is not the admin")

    def require_not_paused(self, config: AdminConfig, operation: str) -> None:
        if config.paused:
            raise ContractPausedError(operation)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(
        self,
        admin: str,
        name: str,
        symbol: str,
        fee_collector: str | None = None,
    ) -> AdminConfig:
        """
        Create the admin and supply singletons and seed the allow-list.

        The admin receives a top-tier compliance record in the first
        allowed country, and ``policy.initial_supply`` is minted to it.
        """
        existing = self.find_config()
        if existing is not None:
            raise AlreadyInitializedError(existing.admin_address)
        require_address("admin", admin)
        collector = require_address("fee_collector", fee_collector or admin)
        for parameter, value in (("name", name), ("symbol", symbol)):
            if not isinstance(value, str) or not value.strip():
                raise InvalidParameterError(parameter, value, f"{parameter} must be non-empty")

        now = self.now()
        config = AdminConfig(
            singleton_key=SINGLETON_KEY,
            admin_address=admin,
            fee_collector=collector,
            paused=False,
            name=name,
            symbol=symbol,
            decimals=self.policy.decimals,
            initialized_sequence=now,
            live_until=0,
        )
        self._touch(config)
        self.session.add(config)
        self.supply.create_state()

        for code in self.policy.compliance.allowed_countries:
            self.compliance.allow_country(code)
        if self.policy.compliance.allowed_countries:
            self.compliance.seed(
                admin,
                self.policy.compliance.max_kyc_level,
                self.policy.compliance.allowed_countries[0],
            )

        if self.policy.initial_supply > 0:
            self.supply.mint(admin, self.policy.initial_supply)
        self.session.flush()

        self.events.emit(
            "initialized",
            admin,
            admin=admin,
            fee_collector=collector,
            name=name,
            symbol=symbol,
            decimals=self.policy.decimals,
            initial_supply=self.policy.initial_supply,
            max_supply=self.policy.max_supply,
        )
        if self.policy.initial_supply > 0:
            self.events.emit("mint", admin, to=admin, amount=self.policy.initial_supply)
        logger.info(
            "ledger_initialized",
            extra={"admin": admin, "policy_id": self.policy.policy_id, "symbol": symbol},
        )
        return config

    def set_paused(self, config: AdminConfig, paused: bool) -> None:
        config.paused = paused
        self._touch(config)
        self.session.flush()
        self.events.emit("pause" if paused else "unpause", None, paused=paused)
        logger.info("pause_state_changed", extra={"paused": paused})

    def set_admin(self, config: AdminConfig, new_admin: str) -> None:
        require_address("new_admin", new_admin)
        old_admin = config.admin_address
        config.admin_address = new_admin
        self._touch(config)
        self.session.flush()
        self.events.emit("admin_changed", new_admin, old_admin=old_admin, new_admin=new_admin)
        logger.warning("admin_changed", extra={"old_admin": old_admin, "new_admin": new_admin})

    def set_fee_collector(self, config: AdminConfig, collector: str) -> None:
        require_address("fee_collector", collector)
        old = config.fee_collector
        config.fee_collector = collector
        self._touch(config)
        self.session.flush()
        self.events.emit(
            "fee_collector_changed",
            collector,
            old_fee_collector=old,
            fee_collector=collector,
        )

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def force_transfer(self, from_address: str, to: str, amount: int) -> None:
        """Move spendable funds without fees, compliance or pause checks."""
        require_address("to", to)
        self.balances.move(from_address, to, amount)
        self.events.emit("force_transfer", from_address, from_address=from_address, to=to, amount=amount)
        logger.warning(
            "force_transfer_applied",
            extra={"from_address": from_address, "to": to, "amount": amount},
        )

    def force_burn(self, from_address: str, amount: int) -> int:
        total = self.supply.burn(from_address, amount)
        self.events.emit("force_burn", from_address, from_address=from_address, amount=amount)
        logger.warning(
            "force_burn_applied",
            extra={"from_address": from_address, "amount": amount},
        )
        return total
