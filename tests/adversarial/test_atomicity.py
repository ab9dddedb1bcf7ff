"""
Adversarial: partial failure never leaves partial state.

Each test provokes a failure after some state has already been written
inside the invocation and checks that every write was rolled back.
"""

import pytest
from sqlalchemy import func, select

from token_kernel.domain.amounts import I128_MAX, tokens
from token_kernel.domain.policy import TokenPolicy
from token_kernel.exceptions import (
    ArithmeticOverflowError,
    BlacklistedError,
    InsufficientSpendableError,
    SupplyExceededError,
)
from token_kernel.models.ledger_event import LedgerEvent
from token_kernel.services.sequence_service import SequenceService
from tests.conftest import ADMIN, ALICE, BOB, onboard


def _event_count(session) -> int:
    return session.execute(select(func.count()).select_from(LedgerEvent)).scalar_one()


class TestRollback:
    def test_blacklisted_recipient_after_daily_count(self, funded_ledger, session):
        """The sender's daily counter is written before the recipient check."""
        funded_ledger.set_kyc(ADMIN, ALICE, 1)
        funded_ledger.blacklist(ADMIN, BOB)
        events_before = _event_count(session)

        with pytest.raises(BlacklistedError):
            funded_ledger.transfer(ALICE, BOB, tokens(500))

        assert funded_ledger.compliance_record(ALICE).daily_spent == 0
        assert _event_count(session) == events_before

    def test_allowance_restored_when_balance_short(self, funded_ledger):
        funded_ledger.approve(ALICE, BOB, tokens(5_000), 1_000)
        with pytest.raises(InsufficientSpendableError):
            funded_ledger.transfer_from(BOB, ALICE, BOB, tokens(2_000))
        assert funded_ledger.allowance(ALICE, BOB) == tokens(5_000)

    def test_event_sequence_not_consumed(self, funded_ledger, session):
        last = SequenceService(session).current_value(SequenceService.LEDGER_EVENT)
        with pytest.raises(InsufficientSpendableError):
            funded_ledger.transfer(ALICE, BOB, tokens(5_000))
        assert SequenceService(session).current_value(SequenceService.LEDGER_EVENT) == last

        funded_ledger.transfer(ALICE, BOB, tokens(1))
        (event,) = funded_ledger.events(topic="transfer")
        assert event.seq == last + 1

    def test_vesting_create_rolled_back(self, funded_ledger):
        funded_ledger.blacklist(ADMIN, ALICE)
        admin_before = funded_ledger.balance(ADMIN)
        with pytest.raises(BlacklistedError):
            funded_ledger.create_vesting(ADMIN, ALICE, tokens(10), 0, 0, 10)
        assert funded_ledger.balance(ADMIN) == admin_before
        assert funded_ledger.vesting_schedules(ALICE) == []
        assert funded_ledger.supply_stats().vesting_schedule_count == 0


class TestOverflow:
    @pytest.fixture
    def policy(self):
        return TokenPolicy(max_supply=I128_MAX)

    def test_balance_overflow_is_rejected(self, initialized_ledger):
        onboard(initialized_ledger, ALICE)
        initialized_ledger.mint(ADMIN, ALICE, I128_MAX)
        with pytest.raises((ArithmeticOverflowError, SupplyExceededError)):
            initialized_ledger.mint(ADMIN, ALICE, 1)
        assert initialized_ledger.balance(ALICE) == I128_MAX
        assert initialized_ledger.total_supply() == I128_MAX
