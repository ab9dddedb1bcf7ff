"""
Mint, burn and supply accounting.

Verifies:
- Mint is admin-only, capped at max_supply and gated on recipient compliance
- Burn destroys only spendable funds
- sum(balances) == total_supply after every operation
"""

import pytest
from sqlalchemy import select

from token_kernel.domain.amounts import tokens
from token_kernel.domain.policy import TokenPolicy
from token_kernel.exceptions import (
    BlacklistedError,
    CountryNotAllowedError,
    InsufficientKycError,
    InsufficientSpendableError,
    InvalidAmountError,
    SupplyExceededError,
    UnauthorizedError,
)
from token_kernel.models.balance import AccountBalance
from tests.conftest import ADMIN, ALICE, BOB, CAROL, onboard


def _sum_balances(session) -> int:
    return sum(session.execute(select(AccountBalance.amount)).scalars())


@pytest.fixture
def initialized_ledger(initialized_ledger):
    """Initialized ledger with Alice and Bob able to receive mints."""
    onboard(initialized_ledger, ALICE)
    onboard(initialized_ledger, BOB)
    return initialized_ledger


class TestMint:
    def test_mint_credits_and_grows_supply(self, initialized_ledger):
        total = initialized_ledger.mint(ADMIN, ALICE, tokens(10))
        assert total == tokens(10)
        assert initialized_ledger.balance(ALICE) == tokens(10)
        assert initialized_ledger.total_supply() == tokens(10)

    def test_non_admin_cannot_mint(self, initialized_ledger):
        with pytest.raises(UnauthorizedError) as exc_info:
            initialized_ledger.mint(ALICE, ALICE, tokens(10))
        assert exc_info.value.operation == "mint"
        assert initialized_ledger.total_supply() == 0

    @pytest.mark.parametrize("amount", [0, -1, 1.5])
    def test_invalid_amount(self, initialized_ledger, amount):
        with pytest.raises(InvalidAmountError):
            initialized_ledger.mint(ADMIN, ALICE, amount)

    def test_cannot_mint_to_blacklisted(self, initialized_ledger):
        initialized_ledger.blacklist(ADMIN, ALICE)
        with pytest.raises(BlacklistedError):
            initialized_ledger.mint(ADMIN, ALICE, tokens(1))

    def test_cannot_mint_to_unverified(self, initialized_ledger):
        with pytest.raises(CountryNotAllowedError) as exc_info:
            initialized_ledger.mint(ADMIN, "GEVE", tokens(10))
        assert exc_info.value.address == "GEVE"
        assert initialized_ledger.balance("GEVE") == 0
        assert initialized_ledger.total_supply() == 0

    def test_cannot_mint_below_kyc_minimum(self, initialized_ledger):
        onboard(initialized_ledger, CAROL, kyc_level=1)
        with pytest.raises(InsufficientKycError):
            initialized_ledger.mint(ADMIN, CAROL, tokens(10))
        assert initialized_ledger.events(topic="mint") == []

    def test_mint_event(self, initialized_ledger):
        initialized_ledger.mint(ADMIN, ALICE, tokens(3))
        (event,) = initialized_ledger.events(topic="mint")
        assert event.subject == ALICE
        assert event.payload == {"to": ALICE, "amount": tokens(3), "total_supply": tokens(3)}


class TestSupplyCap:
    @pytest.fixture
    def policy(self):
        return TokenPolicy(max_supply=tokens(100))

    def test_mint_up_to_cap(self, initialized_ledger):
        initialized_ledger.mint(ADMIN, ALICE, tokens(100))
        assert initialized_ledger.total_supply() == initialized_ledger.max_supply()

    def test_mint_past_cap_rejected(self, initialized_ledger):
        initialized_ledger.mint(ADMIN, ALICE, tokens(99))
        with pytest.raises(SupplyExceededError) as exc_info:
            initialized_ledger.mint(ADMIN, BOB, tokens(2))
        assert exc_info.value.max_supply == tokens(100)
        assert initialized_ledger.total_supply() == tokens(99)
        assert initialized_ledger.balance(BOB) == 0

    def test_burn_frees_headroom(self, initialized_ledger):
        initialized_ledger.mint(ADMIN, ADMIN, tokens(100))
        initialized_ledger.burn(ADMIN, tokens(10))
        initialized_ledger.mint(ADMIN, ALICE, tokens(10))
        assert initialized_ledger.total_supply() == tokens(100)


class TestBurn:
    def test_burn_reduces_balance_and_supply(self, funded_ledger):
        before = funded_ledger.total_supply()
        total = funded_ledger.burn(ALICE, tokens(100))
        assert total == before - tokens(100)
        assert funded_ledger.balance(ALICE) == tokens(900)

    def test_burn_more_than_balance(self, funded_ledger):
        with pytest.raises(InsufficientSpendableError):
            funded_ledger.burn(ALICE, tokens(1_001))

    def test_cannot_burn_locked_tokens(self, funded_ledger):
        funded_ledger.create_vesting(ADMIN, ALICE, tokens(500), 0, 100, 1000)
        assert funded_ledger.balance(ALICE) == tokens(1_500)
        with pytest.raises(InsufficientSpendableError) as exc_info:
            funded_ledger.burn(ALICE, tokens(1_001))
        assert exc_info.value.available == tokens(1_000)

    def test_blacklisted_cannot_burn(self, funded_ledger):
        funded_ledger.blacklist(ADMIN, ALICE)
        with pytest.raises(BlacklistedError):
            funded_ledger.burn(ALICE, 1)

    def test_unverified_holder_can_burn(self, funded_ledger):
        """Burn screens only the blacklist; no counterparty receives tokens."""
        funded_ledger.force_transfer(ADMIN, ADMIN, CAROL, tokens(5))
        assert funded_ledger.compliance_record(CAROL) is None

        funded_ledger.burn(CAROL, tokens(5))
        assert funded_ledger.balance(CAROL) == 0


class TestConservation:
    def test_sum_of_balances_equals_supply(self, funded_ledger, session):
        funded_ledger.transfer(ALICE, BOB, tokens(10))
        funded_ledger.burn(BOB, tokens(5))
        funded_ledger.create_vesting(ADMIN, ALICE, tokens(50), 0, 0, 10)
        assert _sum_balances(session) == funded_ledger.total_supply()

    def test_circulating_excludes_locked(self, funded_ledger):
        total = funded_ledger.total_supply()
        funded_ledger.create_vesting(ADMIN, BOB, tokens(40), 0, 0, 10)
        stats = funded_ledger.supply_stats()
        assert stats.total_supply == total
        assert stats.locked_supply == tokens(40)
        assert stats.circulating_supply == total - tokens(40)
