"""
ComplianceService -- gates senders and recipients on KYC, country and risk.

Responsibility:
    Holds per-account compliance records and the country allow-list, and
    decides whether an account may send a given amount or receive tokens
    right now.

Architecture position:
    Kernel > Services -- imperative shell.  Authorization of the mutators
    is done by the caller (TokenLedger via AdminService.require_admin).

Invariants enforced:
    - Sender checks run in a fixed order: blacklist, country, risk,
      daily limit.  The first failing check determines the error.
    - Recipient checks run in the order blacklist, country, KYC level,
      risk, and never touch the daily window.
    - An account without a record, or without a country, is not allowed
      to send or receive.
    - The daily counter is a single (spent, window_start) pair per
      account; it rolls over lazily once the window has elapsed.
    - A risk score at or above the auto-blacklist level blacklists the
      account in the same call.

Failure modes:
    - BlacklistedError, CountryNotAllowedError, InsufficientKycError and
      RiskTooHighError from check_recipient().
    - BlacklistedError, CountryNotAllowedError, RiskTooHighError,
      DailyLimitExceededError from check_transfer().
    - InvalidParameterError for out-of-range KYC levels, risk scores,
      limits or country codes.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from token_kernel.domain.amounts import (
    checked_add,
    require_non_negative_amount,
    require_positive_amount,
)
from token_kernel.domain.clock import LedgerClock
from token_kernel.domain.policy import TokenPolicy, TransferContext
from token_kernel.exceptions import (
    BlacklistedError,
    CountryNotAllowedError,
    DailyLimitExceededError,
    InsufficientKycError,
    InvalidAmountError,
    InvalidParameterError,
    RiskTooHighError,
)
from token_kernel.logging_config import get_logger
from token_kernel.models.compliance import AllowedCountry, ComplianceRecord
from token_kernel.services.base import BaseService
from token_kernel.services.event_emitter import EventEmitter

logger = get_logger("services.compliance")

# Minimum KYC level for is_fully_compliant()
FULL_COMPLIANCE_KYC_LEVEL = 2

MAX_COUNTRY_CODE_LENGTH = 8


def normalize_country_code(code: object) -> str:
    if not isinstance(code, str) or not code.strip():
        raise InvalidParameterError("country_code", code, "country code must be a non-empty string")
    normalized = code.strip().upper()
    if len(normalized) > MAX_COUNTRY_CODE_LENGTH or not normalized.isalpha():
        raise InvalidParameterError(
            "country_code", code, "country code must be alphabetic, at most 8 letters"
        )
    return normalized


class ComplianceService(BaseService):
    def __init__(
        self,
        session: Session,
        clock: LedgerClock,
        policy: TokenPolicy,
        events: EventEmitter,
    ):
        super().__init__(session, clock, policy)
        self.events = events

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def record(self, address: str) -> ComplianceRecord | None:
        return self.session.execute(
            select(ComplianceRecord).where(ComplianceRecord.address == address)
        ).scalar_one_or_none()

    def _record_for_write(self, address: str) -> ComplianceRecord:
        record = self.record(address)
        if record is None:
            record = ComplianceRecord(
                address=address,
                kyc_level=0,
                country_code=None,
                risk_score=0,
                daily_spent=0,
                daily_window_start=self.now(),
                daily_limit=None,
                is_blacklisted=False,
                live_until=0,
            )
            self.session.add(record)
        record.updated_sequence = self.now()
        self._touch(record)
        return record

    def is_blacklisted(self, address: str) -> bool:
        record = self.record(address)
        return record is not None and record.is_blacklisted

    def require_not_blacklisted(self, address: str) -> None:
        if self.is_blacklisted(address):
            raise BlacklistedError(address)

    # ------------------------------------------------------------------
    # Country allow-list
    # ------------------------------------------------------------------

    def is_country_allowed(self, code: str | None) -> bool:
        if not code:
            return False
        row = self.session.execute(
            select(AllowedCountry).where(AllowedCountry.code == code.upper())
        ).scalar_one_or_none()
        return row is not None

    def allowed_countries(self) -> list[str]:
        return list(
            self.session.execute(select(AllowedCountry.code).order_by(AllowedCountry.code)).scalars()
        )

    def allow_country(self, code: str) -> bool:
        """Add ``code`` to the allow-list; returns False if already present."""
        normalized = normalize_country_code(code)
        if self.is_country_allowed(normalized):
            return False
        row = AllowedCountry(code=normalized, live_until=0)
        self._touch(row)
        self.session.add(row)
        self.session.flush()
        self.events.emit("country_allowed", None, country_code=normalized)
        return True

    def disallow_country(self, code: str) -> bool:
        normalized = normalize_country_code(code)
        row = self.session.execute(
            select(AllowedCountry).where(AllowedCountry.code == normalized)
        ).scalar_one_or_none()
        if row is None:
            return False
        self.session.delete(row)
        self.session.flush()
        self.events.emit("country_disallowed", None, country_code=normalized)
        return True

    # ------------------------------------------------------------------
    # Daily window
    # ------------------------------------------------------------------

    def daily_cap(self, record: ComplianceRecord) -> int | None:
        """Effective cap: the account override, else the KYC-level cap."""
        if record.daily_limit is not None:
            return record.daily_limit
        return self.policy.compliance.daily_cap_for(record.kyc_level)

    def _window_elapsed(self, record: ComplianceRecord, now: int) -> bool:
        return now >= record.daily_window_start + self.policy.compliance.window_ledgers

    def daily_spent(self, address: str) -> int:
        record = self.record(address)
        if record is None or self._window_elapsed(record, self.now()):
            return 0
        return record.daily_spent

    # ------------------------------------------------------------------
    # Sender gate
    # ------------------------------------------------------------------

    def check_transfer(
        self,
        address: str,
        amount: int,
        context: TransferContext = TransferContext.DEFAULT,
    ) -> int:
        """
        Admit ``address`` to send ``amount`` and record it in the daily window.

        Returns:
            The account's daily volume including ``amount``.
        """
        require_positive_amount(amount)
        record = self.record(address)

        if record is not None and record.is_blacklisted:
            raise BlacklistedError(address)

        country = record.country_code if record is not None else None
        if record is None or not self.is_country_allowed(country):
            raise CountryNotAllowedError(address, country)

        threshold = self.policy.compliance.risk_threshold
        if record.risk_score > threshold:
            raise RiskTooHighError(address, record.risk_score, threshold)

        now = self.now()
        if self._window_elapsed(record, now):
            record.daily_spent = 0
            record.daily_window_start = now
        spent = checked_add(record.daily_spent, amount)
        cap = self.daily_cap(record)
        if cap is not None and spent > cap:
            raise DailyLimitExceededError(address, record.daily_spent, amount, cap)

        record.daily_spent = spent
        record.updated_sequence = now
        self._touch(record)
        self.session.flush()
        logger.debug(
            "compliance_check_passed",
            extra={"address": address, "context": context, "daily_spent": spent},
        )
        return spent

    def check_recipient(self, address: str) -> None:
        """
        Admit ``address`` to receive tokens.

        Checks run in order: blacklist, country, KYC level, risk.  Nothing
        is recorded; receiving does not count toward the daily window.
        """
        record = self.record(address)

        if record is not None and record.is_blacklisted:
            raise BlacklistedError(address)

        country = record.country_code if record is not None else None
        if record is None or not self.is_country_allowed(country):
            raise CountryNotAllowedError(address, country)

        required = self.policy.compliance.recipient_min_kyc
        if record.kyc_level < required:
            raise InsufficientKycError(address, record.kyc_level, required)

        threshold = self.policy.compliance.risk_threshold
        if record.risk_score > threshold:
            raise RiskTooHighError(address, record.risk_score, threshold)

    def is_fully_compliant(self, address: str) -> bool:
        record = self.record(address)
        if record is None or record.is_blacklisted:
            return False
        if record.kyc_level < FULL_COMPLIANCE_KYC_LEVEL:
            return False
        if not self.is_country_allowed(record.country_code):
            return False
        return record.risk_score < self.policy.compliance.risk_threshold

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def set_kyc(self, address: str, level: int) -> None:
        max_level = self.policy.compliance.max_kyc_level
        if isinstance(level, bool) or not isinstance(level, int) or not 0 <= level <= max_level:
            raise InvalidParameterError("kyc_level", level, f"must be an integer in [0, {max_level}]")
        record = self._record_for_write(address)
        old_level = record.kyc_level
        record.kyc_level = level
        self.session.flush()
        self.events.emit("kyc_set", address, address=address, old_level=old_level, level=level)

    def set_country(self, address: str, code: str) -> None:
        normalized = normalize_country_code(code)
        record = self._record_for_write(address)
        record.country_code = normalized
        self.session.flush()
        self.events.emit("country_set", address, address=address, country_code=normalized)

    def set_risk_score(self, address: str, score: int) -> None:
        max_score = self.policy.compliance.max_risk_score
        if isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= max_score:
            raise InvalidParameterError("risk_score", score, f"must be an integer in [0, {max_score}]")
        record = self._record_for_write(address)
        record.risk_score = score
        self.session.flush()
        self.events.emit("risk_score_set", address, address=address, risk_score=score)

        if score >= self.policy.compliance.auto_blacklist_risk and not record.is_blacklisted:
            logger.warning(
                "auto_blacklisted",
                extra={"address": address, "risk_score": score},
            )
            self._set_blacklisted(record, True, reason="risk_score")

    def set_daily_limit(self, address: str, limit: int | None) -> None:
        """Override the account's daily cap; ``None`` restores the KYC cap."""
        if limit is not None:
            try:
                require_non_negative_amount(limit)
            except InvalidAmountError as exc:
                raise InvalidParameterError("daily_limit", limit, "must be a non-negative integer") from exc
        record = self._record_for_write(address)
        record.daily_limit = limit
        self.session.flush()
        self.events.emit("daily_limit_set", address, address=address, daily_limit=limit)

    def _set_blacklisted(self, record: ComplianceRecord, value: bool, reason: str) -> None:
        record.is_blacklisted = value
        self.session.flush()
        self.events.emit(
            "blacklist" if value else "unblacklist",
            record.address,
            address=record.address,
            blacklisted=value,
            reason=reason,
        )

    def blacklist(self, address: str) -> None:
        record = self._record_for_write(address)
        self._set_blacklisted(record, True, reason="admin")

    def unblacklist(self, address: str) -> None:
        record = self._record_for_write(address)
        self._set_blacklisted(record, False, reason="admin")

    def seed(self, address: str, kyc_level: int, country_code: str) -> None:
        """Create a fully populated record without emitting events."""
        record = self._record_for_write(address)
        record.kyc_level = kyc_level
        record.country_code = normalize_country_code(country_code)
        record.risk_score = 0
        self.session.flush()
