"""
Typed Exception Hierarchy for the Token Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A token ledger rejects far more calls than it accepts, and callers need to
know exactly why.  Every rejection is a typed exception with:
  1. A TYPED class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (address, amounts, limits)

Example:
    try:
        ledger.transfer(alice, bob, amount)
    except InsufficientSpendableError as e:
        api_response(code=e.code, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TokenKernelError (base)
    |
    +-- AuthorizationError
    |   +-- UnauthorizedError
    |
    +-- LifecycleError
    |   +-- ContractPausedError
    |   +-- ReentrantCallError
    |   +-- NotInitializedError
    |   +-- AlreadyInitializedError
    |
    +-- LedgerArithmeticError
    |   +-- ArithmeticOverflowError
    |   +-- ArithmeticUnderflowError
    |
    +-- ValidationError
    |   +-- InvalidAmountError
    |   +-- InvalidParameterError
    |
    +-- BalanceError
    |   +-- InsufficientSpendableError
    |   +-- SupplyExceededError
    |
    +-- AllowanceError
    |   +-- InsufficientAllowanceError
    |
    +-- ComplianceError
    |   +-- BlacklistedError
    |   +-- CountryNotAllowedError
    |   +-- InsufficientKycError
    |   +-- RiskTooHighError
    |   +-- DailyLimitExceededError
    |
    +-- VestingError
    |   +-- NothingToReleaseError
    |   +-- NotRevocableError
    |   +-- AlreadyRevokedError
    |   +-- VestingNotFoundError
    |   +-- InvalidVestingParamsError
    |
    +-- LimitError
        +-- LimitExceededError

===============================================================================
PROPAGATION
===============================================================================

Every error aborts the whole invocation.  The invocation boundary
(TokenLedger) rolls back its savepoint and re-raises the exception
unchanged, so the caller always sees the original type and code.  There is
no retry inside the kernel.
"""


class TokenKernelError(Exception):
    """
    Base exception for all token kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TOKEN_KERNEL_ERROR"


# Authorization


class AuthorizationError(TokenKernelError):
    """Base exception for authorization failures."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedError(AuthorizationError):
    """Caller is not allowed to perform the operation."""

    code: str = "UNAUTHORIZED"

    def __init__(self, caller: str, operation: str, reason: str = "caller is not authorized"):
        self.caller = caller
        self.operation = operation
        self.reason = reason
        super().__init__(f"Unauthorized {operation} by {caller}: {reason}")


# Lifecycle


class LifecycleError(TokenKernelError):
    """Base exception for contract lifecycle errors."""

    code: str = "LIFECYCLE_ERROR"


class ContractPausedError(LifecycleError):
    """Transfer-class operation attempted while the contract is paused."""

    code: str = "CONTRACT_PAUSED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Contract is paused; {operation} is halted")


class ReentrantCallError(LifecycleError):
    """A mutating entry point was entered while another one is running."""

    code: str = "REENTRANT_CALL"

    def __init__(self, operation: str, active_operation: str | None):
        self.operation = operation
        self.active_operation = active_operation
        super().__init__(
            f"Re-entrant call to {operation} while {active_operation} is in progress"
        )


class NotInitializedError(LifecycleError):
    """Token has not been initialized."""

    code: str = "NOT_INITIALIZED"

    def __init__(self) -> None:
        super().__init__("Token has not been initialized")


class AlreadyInitializedError(LifecycleError):
    """initialize() was called a second time."""

    code: str = "ALREADY_INITIALIZED"

    def __init__(self, admin: str):
        self.admin = admin
        super().__init__(f"Token already initialized with admin {admin}")


# Arithmetic


class LedgerArithmeticError(TokenKernelError):
    """Base exception for checked arithmetic failures."""

    code: str = "ARITHMETIC_ERROR"


class ArithmeticOverflowError(LedgerArithmeticError):
    """Addition would leave the 128-bit signed amount range."""

    code: str = "ARITHMETIC_OVERFLOW"

    def __init__(self, left: int, right: int):
        self.left = left
        self.right = right
        super().__init__(f"Arithmetic overflow: {left} + {right}")


class ArithmeticUnderflowError(LedgerArithmeticError):
    """Subtraction would take an amount below zero."""

    code: str = "ARITHMETIC_UNDERFLOW"

    def __init__(self, left: int, right: int):
        self.left = left
        self.right = right
        super().__init__(f"Arithmetic underflow: {left} - {right}")


# Validation


class ValidationError(TokenKernelError):
    """Base exception for malformed arguments."""

    code: str = "VALIDATION_ERROR"


class InvalidAmountError(ValidationError):
    """Amount is not a positive integer within range."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object, reason: str = "amount must be a positive integer"):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class InvalidParameterError(ValidationError):
    """A non-amount argument is out of its allowed domain."""

    code: str = "INVALID_PARAMETER"

    def __init__(self, parameter: str, value: object, reason: str):
        self.parameter = parameter
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {parameter}={value!r}: {reason}")


# Balances and supply


class BalanceError(TokenKernelError):
    """Base exception for balance and supply errors."""

    code: str = "BALANCE_ERROR"


class InsufficientSpendableError(BalanceError):
    """Amount exceeds balance minus locked (vesting) amount."""

    code: str = "INSUFFICIENT_SPENDABLE"

    def __init__(self, address: str, requested: int, available: int):
        self.address = address
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient spendable balance for {address}: "
            f"requested {requested}, available {available}"
        )


class SupplyExceededError(BalanceError):
    """Mint would push total supply past the cap."""

    code: str = "SUPPLY_EXCEEDED"

    def __init__(self, total_supply: int, amount: int, max_supply: int):
        self.total_supply = total_supply
        self.amount = amount
        self.max_supply = max_supply
        super().__init__(
            f"Minting {amount} would exceed max supply {max_supply} "
            f"(current {total_supply})"
        )


# Allowances


class AllowanceError(TokenKernelError):
    """Base exception for allowance errors."""

    code: str = "ALLOWANCE_ERROR"


class InsufficientAllowanceError(AllowanceError):
    """Spender tried to move more than the live allowance."""

    code: str = "INSUFFICIENT_ALLOWANCE"

    def __init__(self, owner: str, spender: str, requested: int, allowance: int):
        self.owner = owner
        self.spender = spender
        self.requested = requested
        self.allowance = allowance
        super().__init__(
            f"Insufficient allowance {owner}->{spender}: "
            f"requested {requested}, allowed {allowance}"
        )


# Compliance


class ComplianceError(TokenKernelError):
    """Base exception for compliance gate failures."""

    code: str = "COMPLIANCE_ERROR"


class BlacklistedError(ComplianceError):
    """Address is blacklisted."""

    code: str = "BLACKLISTED"

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Address {address} is blacklisted")


class CountryNotAllowedError(ComplianceError):
    """Address has no country or its country is not on the allow-list."""

    code: str = "COUNTRY_NOT_ALLOWED"

    def __init__(self, address: str, country_code: str | None):
        self.address = address
        self.country_code = country_code
        super().__init__(f"Country {country_code!r} of {address} is not allowed")


class InsufficientKycError(ComplianceError):
    """Address is below the KYC level required to receive tokens."""

    code: str = "INSUFFICIENT_KYC"

    def __init__(self, address: str, kyc_level: int, required_level: int):
        self.address = address
        self.kyc_level = kyc_level
        self.required_level = required_level
        super().__init__(
            f"KYC level {kyc_level} of {address} is below required level {required_level}"
        )


class RiskTooHighError(ComplianceError):
    """Risk score is above the configured threshold."""

    code: str = "RISK_TOO_HIGH"

    def __init__(self, address: str, risk_score: int, threshold: int):
        self.address = address
        self.risk_score = risk_score
        self.threshold = threshold
        super().__init__(
            f"Risk score {risk_score} of {address} exceeds threshold {threshold}"
        )


class DailyLimitExceededError(ComplianceError):
    """Amount would push the daily outbound volume past the cap."""

    code: str = "DAILY_LIMIT_EXCEEDED"

    def __init__(self, address: str, daily_spent: int, amount: int, daily_cap: int):
        self.address = address
        self.daily_spent = daily_spent
        self.amount = amount
        self.daily_cap = daily_cap
        super().__init__(
            f"Daily limit exceeded for {address}: spent {daily_spent} + {amount} "
            f"> cap {daily_cap}"
        )


# Vesting


class VestingError(TokenKernelError):
    """Base exception for vesting errors."""

    code: str = "VESTING_ERROR"


class NothingToReleaseError(VestingError):
    """No vested-but-unreleased amount is available."""

    code: str = "NOTHING_TO_RELEASE"

    def __init__(self, beneficiary: str, schedule_id: int | None = None):
        self.beneficiary = beneficiary
        self.schedule_id = schedule_id
        target = f"schedule {schedule_id}" if schedule_id is not None else "any schedule"
        super().__init__(f"Nothing to release for {beneficiary} on {target}")


class NotRevocableError(VestingError):
    """Schedule was created non-revocable or already completed."""

    code: str = "NOT_REVOCABLE"

    def __init__(self, beneficiary: str, schedule_id: int, reason: str = "schedule is not revocable"):
        self.beneficiary = beneficiary
        self.schedule_id = schedule_id
        self.reason = reason
        super().__init__(f"Cannot revoke schedule {schedule_id} of {beneficiary}: {reason}")


class AlreadyRevokedError(VestingError):
    """Schedule is already revoked."""

    code: str = "ALREADY_REVOKED"

    def __init__(self, beneficiary: str, schedule_id: int):
        self.beneficiary = beneficiary
        self.schedule_id = schedule_id
        super().__init__(f"Schedule {schedule_id} of {beneficiary} is already revoked")


class VestingNotFoundError(VestingError):
    """No schedule with the given id exists for the beneficiary."""

    code: str = "VESTING_NOT_FOUND"

    def __init__(self, beneficiary: str, schedule_id: int):
        self.beneficiary = beneficiary
        self.schedule_id = schedule_id
        super().__init__(f"Vesting schedule {schedule_id} not found for {beneficiary}")


class InvalidVestingParamsError(VestingError):
    """Schedule parameters are inconsistent."""

    code: str = "INVALID_VESTING_PARAMS"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid vesting parameters: {reason}")


# Limits


class LimitError(TokenKernelError):
    """Base exception for storage/count ceilings."""

    code: str = "LIMIT_ERROR"


class LimitExceededError(LimitError):
    """A bounded collection is full."""

    code: str = "LIMIT_EXCEEDED"

    def __init__(self, limit_name: str, limit: int, subject: str | None = None):
        self.limit_name = limit_name
        self.limit = limit
        self.subject = subject
        scope = f" for {subject}" if subject else ""
        super().__init__(f"Limit {limit_name}={limit} reached{scope}")


def _collect_codes() -> dict[str, type[TokenKernelError]]:
    registry: dict[str, type[TokenKernelError]] = {}
    pending = [TokenKernelError]
    while pending:
        cls = pending.pop()
        registry[cls.code] = cls
        pending.extend(cls.__subclasses__())
    return registry


# code -> exception class, for API layers that map codes back to types.
ERROR_CODES: dict[str, type[TokenKernelError]] = _collect_codes()
