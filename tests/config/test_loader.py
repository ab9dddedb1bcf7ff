"""
YAML policy loading.

Verifies:
- The packaged policy parses to the same values as the kernel defaults
- Whole-token amounts are scaled by 10**decimals
- Schema and consistency errors surface as KeyError / ValueError
- get_active_policy emits a config trace
"""

import pytest
import yaml

from token_config import DEFAULT_POLICY_PATH, get_active_policy
from token_config.loader import compute_checksum, load_policy, parse_token_policy
from token_kernel.domain.amounts import tokens
from token_kernel.domain.policy import DEFAULT_POLICY, TransferContext


def _packaged_data() -> dict:
    with open(DEFAULT_POLICY_PATH) as f:
        return yaml.safe_load(f)


def _write(tmp_path, data: dict):
    path = tmp_path / "policy.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestPackagedPolicy:
    def test_matches_kernel_defaults(self):
        policy = load_policy(DEFAULT_POLICY_PATH).policy
        assert policy.policy_id == "braza"
        assert policy.max_supply == DEFAULT_POLICY.max_supply
        assert policy.fees == DEFAULT_POLICY.fees
        assert policy.compliance == DEFAULT_POLICY.compliance
        assert policy.vesting == DEFAULT_POLICY.vesting
        assert policy.storage == DEFAULT_POLICY.storage

    def test_daily_caps_scaled(self):
        caps = load_policy(DEFAULT_POLICY_PATH).policy.compliance.daily_caps
        assert caps == (0, tokens(10_000), tokens(1_000_000), None)

    def test_context_rates(self):
        fees = load_policy(DEFAULT_POLICY_PATH).policy.fees
        assert fees.context_rate(TransferContext.EXCHANGE_TO_EXCHANGE) == 10

    def test_checksum_is_stable(self):
        first = load_policy(DEFAULT_POLICY_PATH).checksum
        second = load_policy(DEFAULT_POLICY_PATH).checksum
        assert first == second
        assert len(first) == 64


class TestOverrides:
    def test_custom_supply(self, tmp_path):
        data = _packaged_data()
        data["token"]["max_supply_tokens"] = 1_000
        data["token"]["initial_supply_tokens"] = 10
        policy = load_policy(_write(tmp_path, data)).policy
        assert policy.max_supply == tokens(1_000)
        assert policy.initial_supply == tokens(10)

    def test_checksum_changes_with_content(self, tmp_path):
        data = _packaged_data()
        data["compliance"]["risk_threshold"] = 40
        assert compute_checksum(data) != compute_checksum(_packaged_data())

    def test_country_codes_upper_cased(self, tmp_path):
        data = _packaged_data()
        data["compliance"]["allowed_countries"] = ["br", " pt "]
        policy = load_policy(_write(tmp_path, data)).policy
        assert policy.compliance.allowed_countries == ("BR", "PT")

    def test_recipient_min_kyc(self, tmp_path):
        data = _packaged_data()
        data["compliance"]["recipient_min_kyc"] = 1
        policy = load_policy(_write(tmp_path, data)).policy
        assert policy.compliance.recipient_min_kyc == 1

        del data["compliance"]["recipient_min_kyc"]
        assert parse_token_policy(data).compliance.recipient_min_kyc == 2


class TestErrors:
    def test_missing_section(self):
        data = _packaged_data()
        del data["fees"]
        with pytest.raises(KeyError):
            parse_token_policy(data)

    def test_unknown_context(self):
        data = _packaged_data()
        data["fees"]["context_rates"]["wire_transfer"] = 3
        with pytest.raises(ValueError, match="unknown transfer context"):
            parse_token_policy(data)

    def test_float_rejected(self):
        data = _packaged_data()
        data["fees"]["tiers"][0]["fee_bps"] = 5.5
        with pytest.raises(ValueError):
            parse_token_policy(data)

    def test_unquoted_norway(self, tmp_path):
        """YAML 1.1 reads a bare NO as False."""
        path = tmp_path / "policy.yaml"
        text = DEFAULT_POLICY_PATH.read_text().replace('["BR"]', "[BR, NO]")
        path.write_text(text)
        with pytest.raises(ValueError, match="quote country codes"):
            load_policy(path)

    def test_inconsistent_tiers(self):
        data = _packaged_data()
        data["fees"]["tiers"].reverse()
        with pytest.raises(ValueError):
            parse_token_policy(data)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_policy(tmp_path / "absent.yaml")


class TestActivePolicy:
    def test_emits_config_trace(self, captured_logs):
        policy = get_active_policy()

        assert policy.policy_id == "braza"
        traces = [r for r in captured_logs() if r["message"] == "TOKEN_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["logger"] == "token_kernel.config"
        assert traces[0]["policy_id"] == "braza"
        assert len(traces[0]["checksum"]) == 64

    def test_policy_drives_a_ledger(self, session, clock):
        from token_kernel.services.token_ledger import TokenLedger

        ledger = TokenLedger(session, clock, get_active_policy())
        ledger.initialize("GADMIN", "Braza Token", "BRZ")
        assert ledger.max_supply() == tokens(21_000_000)
