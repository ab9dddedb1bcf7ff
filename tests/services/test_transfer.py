"""
Transfers with fees and compliance.

Verifies:
- Fee split between recipient and fee collector
- Context pricing, including the admin-only distribution context
- Fee collector exemption
- Spendable, blacklist and pause gates
- Recipient compliance: country, KYC minimum and risk
"""

import pytest

from token_kernel.domain.amounts import tokens
from token_kernel.domain.policy import TransferContext
from token_kernel.exceptions import (
    BlacklistedError,
    ContractPausedError,
    CountryNotAllowedError,
    InsufficientKycError,
    InsufficientSpendableError,
    InvalidParameterError,
    RiskTooHighError,
    UnauthorizedError,
)
from tests.conftest import ADMIN, ALICE, BOB, CAROL, COLLECTOR, onboard


class TestTransfer:
    def test_retail_fee_split(self, funded_ledger):
        receipt = funded_ledger.transfer(ALICE, BOB, 1_000_000)

        assert (receipt.fee, receipt.net_amount) == (500, 999_500)
        assert receipt.context is TransferContext.DEFAULT
        assert receipt.fee_collector == COLLECTOR
        assert funded_ledger.balance(ALICE) == tokens(1_000) - 1_000_000
        assert funded_ledger.balance(BOB) == tokens(1_000) + 999_500
        assert funded_ledger.balance(COLLECTOR) == 500

    def test_quote_matches_transfer(self, funded_ledger):
        assert funded_ledger.calculate_fee(ALICE, 1_000_000) == (500, 999_500)
        quote = funded_ledger.quote_fee(ALICE, 1_000_000)
        assert quote.tier == "retail"

    def test_whale_pays_more(self, funded_ledger):
        funded_ledger.transfer(ADMIN, ALICE, tokens(20_000))
        receipt = funded_ledger.transfer(ALICE, BOB, tokens(100))
        assert receipt.fee == tokens(100) * 30 // 10_000

    def test_context_rate(self, funded_ledger):
        receipt = funded_ledger.transfer(
            ALICE, BOB, 1_000_000, TransferContext.EXCHANGE_TO_EXCHANGE
        )
        assert receipt.fee == 1_000

    def test_context_accepts_string_value(self, funded_ledger):
        receipt = funded_ledger.transfer(ALICE, BOB, 1_000_000, "local_commerce")
        assert receipt.context is TransferContext.LOCAL_COMMERCE

    def test_unknown_context_rejected(self, funded_ledger):
        with pytest.raises(InvalidParameterError):
            funded_ledger.transfer(ALICE, BOB, 1_000_000, "bogus")

    def test_tiny_transfer_pays_no_fee(self, funded_ledger):
        receipt = funded_ledger.transfer(ALICE, BOB, 1_999)
        assert receipt.fee == 0
        assert funded_ledger.balance(COLLECTOR) == 0

    def test_transfer_event(self, funded_ledger):
        funded_ledger.transfer(ALICE, BOB, 1_000_000)
        (event,) = funded_ledger.events(topic="transfer")
        assert event.subject == ALICE
        assert event.payload["to"] == BOB
        assert event.payload["fee"] == 500
        assert event.payload["context"] == "default"


class TestAdminDistribution:
    def test_admin_transfers_are_fee_free(self, funded_ledger):
        onboard(funded_ledger, CAROL)
        receipt = funded_ledger.transfer(ADMIN, CAROL, tokens(1_000))
        assert receipt.fee == 0
        assert receipt.context is TransferContext.ADMIN_DISTRIBUTION
        assert funded_ledger.balance(CAROL) == tokens(1_000)

    def test_admin_context_overrides_declared(self, funded_ledger):
        receipt = funded_ledger.transfer(
            ADMIN, BOB, tokens(1), TransferContext.EXCHANGE_TO_EXCHANGE
        )
        assert receipt.context is TransferContext.ADMIN_DISTRIBUTION

    def test_non_admin_cannot_declare_distribution(self, funded_ledger):
        with pytest.raises(UnauthorizedError):
            funded_ledger.transfer(ALICE, BOB, tokens(1), TransferContext.ADMIN_DISTRIBUTION)
        assert funded_ledger.balance(ALICE) == tokens(1_000)


class TestFeeCollector:
    def test_collector_sends_without_fee_or_record(self, funded_ledger):
        funded_ledger.transfer(ALICE, BOB, 1_000_000)
        assert funded_ledger.compliance_record(COLLECTOR) is None

        receipt = funded_ledger.transfer(COLLECTOR, BOB, 500)
        assert receipt.fee == 0
        assert funded_ledger.balance(COLLECTOR) == 0

    def test_changing_collector_redirects_fees(self, funded_ledger):
        funded_ledger.set_fee_collector(ADMIN, CAROL)
        funded_ledger.transfer(ALICE, BOB, 1_000_000)
        assert funded_ledger.balance(CAROL) == 500
        assert funded_ledger.balance(COLLECTOR) == 0


class TestTransferGates:
    def test_insufficient_spendable(self, funded_ledger):
        with pytest.raises(InsufficientSpendableError) as exc_info:
            funded_ledger.transfer(ALICE, BOB, tokens(1_001))
        assert exc_info.value.available == tokens(1_000)

    def test_locked_tokens_are_not_spendable(self, funded_ledger):
        funded_ledger.create_vesting(ADMIN, ALICE, tokens(500), 0, 100, 1000)
        assert funded_ledger.spendable_balance(ALICE) == tokens(1_000)
        with pytest.raises(InsufficientSpendableError):
            funded_ledger.transfer(ALICE, BOB, tokens(1_200))

    def test_sender_without_record(self, funded_ledger):
        funded_ledger.force_transfer(ADMIN, ADMIN, CAROL, tokens(5))
        with pytest.raises(CountryNotAllowedError):
            funded_ledger.transfer(CAROL, BOB, tokens(1))

    def test_blacklisted_recipient(self, funded_ledger):
        funded_ledger.blacklist(ADMIN, BOB)
        with pytest.raises(BlacklistedError) as exc_info:
            funded_ledger.transfer(ALICE, BOB, tokens(1))
        assert exc_info.value.address == BOB

    def test_paused(self, funded_ledger):
        funded_ledger.pause(ADMIN)
        with pytest.raises(ContractPausedError):
            funded_ledger.transfer(ALICE, BOB, tokens(1))
        funded_ledger.unpause(ADMIN)
        funded_ledger.transfer(ALICE, BOB, tokens(1))

    def test_empty_recipient(self, funded_ledger):
        with pytest.raises(InvalidParameterError):
            funded_ledger.transfer(ALICE, "", tokens(1))

    def test_zero_amount(self, funded_ledger):
        from token_kernel.exceptions import InvalidAmountError

        with pytest.raises(InvalidAmountError):
            funded_ledger.transfer(ALICE, BOB, 0)


class TestRecipientCompliance:
    def test_recipient_without_record(self, funded_ledger):
        with pytest.raises(CountryNotAllowedError) as exc_info:
            funded_ledger.transfer(ALICE, "GDAVE", tokens(10))
        assert exc_info.value.address == "GDAVE"
        assert funded_ledger.balance("GDAVE") == 0
        assert funded_ledger.balance(ALICE) == tokens(1_000)
        assert funded_ledger.compliance_record(ALICE).daily_spent == 0

    def test_recipient_in_disallowed_country(self, funded_ledger):
        funded_ledger.set_country(ADMIN, BOB, "US")
        with pytest.raises(CountryNotAllowedError) as exc_info:
            funded_ledger.transfer(ALICE, BOB, tokens(1))
        assert exc_info.value.country_code == "US"

    def test_recipient_below_kyc_minimum(self, funded_ledger):
        onboard(funded_ledger, CAROL, kyc_level=1)
        with pytest.raises(InsufficientKycError) as exc_info:
            funded_ledger.transfer(ALICE, CAROL, tokens(1))
        assert (exc_info.value.kyc_level, exc_info.value.required_level) == (1, 2)

    def test_recipient_at_kyc_minimum(self, funded_ledger):
        onboard(funded_ledger, CAROL, kyc_level=2)
        receipt = funded_ledger.transfer(ALICE, CAROL, tokens(1))
        assert funded_ledger.balance(CAROL) == receipt.net_amount

    def test_risky_recipient(self, funded_ledger):
        funded_ledger.set_risk_score(ADMIN, BOB, 51)
        with pytest.raises(RiskTooHighError) as exc_info:
            funded_ledger.transfer(ALICE, BOB, tokens(1))
        assert exc_info.value.address == BOB

    def test_fee_collector_receives_without_record(self, funded_ledger):
        receipt = funded_ledger.transfer(ALICE, COLLECTOR, 1_000_000)
        assert funded_ledger.compliance_record(COLLECTOR) is None
        assert funded_ledger.balance(COLLECTOR) == receipt.net_amount + receipt.fee

    def test_blacklisted_fee_collector_cannot_receive(self, funded_ledger):
        funded_ledger.blacklist(ADMIN, COLLECTOR)
        with pytest.raises(BlacklistedError):
            funded_ledger.transfer(ALICE, COLLECTOR, tokens(1))

    def test_transfer_from_to_unverified_recipient(self, funded_ledger):
        funded_ledger.approve(ALICE, BOB, tokens(100), 1_000)
        with pytest.raises(CountryNotAllowedError):
            funded_ledger.transfer_from(BOB, ALICE, "GDAVE", tokens(10))
        assert funded_ledger.allowance(ALICE, BOB) == tokens(100)


class TestTransferFrom:
    @pytest.fixture
    def approved(self, funded_ledger):
        funded_ledger.approve(ALICE, BOB, tokens(100), 1_000)
        onboard(funded_ledger, CAROL)
        return funded_ledger

    def test_spends_allowance(self, approved):
        receipt = approved.transfer_from(BOB, ALICE, CAROL, tokens(10))

        assert receipt.sender == ALICE
        assert receipt.fee == tokens(10) * 5 // 10_000
        assert approved.allowance(ALICE, BOB) == tokens(90)
        assert approved.balance(ALICE) == tokens(990)
        assert approved.balance(CAROL) == receipt.net_amount

    def test_event_names_spender(self, approved):
        approved.transfer_from(BOB, ALICE, CAROL, tokens(10))
        (event,) = approved.events(topic="transfer")
        assert event.subject == ALICE
        assert event.payload["spender"] == BOB

    def test_exceeding_allowance(self, approved):
        from token_kernel.exceptions import InsufficientAllowanceError

        with pytest.raises(InsufficientAllowanceError) as exc_info:
            approved.transfer_from(BOB, ALICE, CAROL, tokens(101))
        assert exc_info.value.allowance == tokens(100)

    def test_expired_allowance(self, approved, clock):
        from token_kernel.exceptions import InsufficientAllowanceError

        clock.set_sequence(1_001)
        with pytest.raises(InsufficientAllowanceError):
            approved.transfer_from(BOB, ALICE, CAROL, tokens(1))

    def test_blacklisted_spender(self, approved):
        approved.blacklist(ADMIN, BOB)
        with pytest.raises(BlacklistedError):
            approved.transfer_from(BOB, ALICE, CAROL, tokens(1))

    def test_failed_compliance_restores_allowance(self, approved):
        approved.set_country(ADMIN, ALICE, "US")
        with pytest.raises(CountryNotAllowedError):
            approved.transfer_from(BOB, ALICE, CAROL, tokens(10))
        assert approved.allowance(ALICE, BOB) == tokens(100)

    def test_paused(self, approved):
        approved.pause(ADMIN)
        with pytest.raises(ContractPausedError):
            approved.transfer_from(BOB, ALICE, CAROL, tokens(1))
