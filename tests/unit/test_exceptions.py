"""
Unit tests for the typed exception hierarchy.

Verifies:
- Every error carries a unique machine-readable code
- Category membership used by callers to catch broad classes
- Structured attributes are preserved
"""

import pytest

from token_kernel import exceptions as exc
from token_kernel.exceptions import ERROR_CODES, TokenKernelError


def _all_error_classes() -> list[type[TokenKernelError]]:
    pending = [TokenKernelError]
    found = []
    while pending:
        cls = pending.pop()
        found.append(cls)
        pending.extend(cls.__subclasses__())
    return found


class TestErrorCodes:
    def test_codes_are_unique(self):
        codes = [cls.code for cls in _all_error_classes()]
        assert len(codes) == len(set(codes))

    def test_registry_maps_back_to_class(self):
        assert ERROR_CODES["UNAUTHORIZED"] is exc.UnauthorizedError
        assert ERROR_CODES["LIMIT_EXCEEDED"] is exc.LimitExceededError

    @pytest.mark.parametrize(
        "name",
        [
            "UnauthorizedError",
            "ContractPausedError",
            "ReentrantCallError",
            "ArithmeticOverflowError",
            "ArithmeticUnderflowError",
            "InsufficientSpendableError",
            "InsufficientAllowanceError",
            "SupplyExceededError",
            "BlacklistedError",
            "CountryNotAllowedError",
            "InsufficientKycError",
            "RiskTooHighError",
            "DailyLimitExceededError",
            "NothingToReleaseError",
            "NotRevocableError",
            "AlreadyRevokedError",
            "NotInitializedError",
            "AlreadyInitializedError",
            "LimitExceededError",
        ],
    )
    def test_every_ledger_error_kind_exists(self, name):
        cls = getattr(exc, name)
        assert issubclass(cls, TokenKernelError)
        assert cls.code in ERROR_CODES


class TestCategories:
    def test_compliance_errors(self):
        for cls in (
            exc.BlacklistedError,
            exc.CountryNotAllowedError,
            exc.InsufficientKycError,
            exc.RiskTooHighError,
            exc.DailyLimitExceededError,
        ):
            assert issubclass(cls, exc.ComplianceError)

    def test_vesting_errors(self):
        for cls in (
            exc.NothingToReleaseError,
            exc.NotRevocableError,
            exc.AlreadyRevokedError,
            exc.VestingNotFoundError,
            exc.InvalidVestingParamsError,
        ):
            assert issubclass(cls, exc.VestingError)


class TestStructuredAttributes:
    def test_insufficient_spendable(self):
        err = exc.InsufficientSpendableError("GALICE", 10, 3)
        assert (err.address, err.requested, err.available) == ("GALICE", 10, 3)
        assert "GALICE" in str(err)

    def test_daily_limit(self):
        err = exc.DailyLimitExceededError("GALICE", 5, 10, 12)
        assert err.daily_spent == 5
        assert err.amount == 10
        assert err.daily_cap == 12

    def test_reentrant_call(self):
        err = exc.ReentrantCallError("transfer", "mint")
        assert err.operation == "transfer"
        assert err.active_operation == "mint"
