"""
Policy Loader (``token_config.loader``).

Responsibility
--------------
Loads a YAML policy file and parses it into the kernel's frozen
``TokenPolicy`` dataclasses.  Runtime callers go through
``token_config.get_active_policy()``; this module is the parsing layer
underneath it and is used directly by tests.

Architecture position
---------------------
**Config layer**.  Imports the kernel's policy dataclasses; the kernel
never imports this package.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required sections have no silent defaults.
* Whole-token amounts are scaled to bra with integer arithmetic only.
* ``compute_checksum`` is a deterministic SHA-256 over canonical JSON.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Inconsistent values  -> ``ValueError`` (from the loader or from the
  policy dataclasses' own validation).
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from token_kernel.domain.policy import (
    CompliancePolicy,
    FeePolicy,
    FeeTier,
    StoragePolicy,
    TokenPolicy,
    TransferContext,
    VestingPolicy,
)


@dataclass(frozen=True)
class LoadedPolicy:
    """A parsed policy together with its provenance."""

    policy: TokenPolicy
    checksum: str
    source: Path


def load_yaml_file(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _require_int(section: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
    return value


def _scale(section: str, key: str, value: Any, decimals: int) -> int:
    return _require_int(section, key, value) * 10**decimals


def parse_fee_policy(data: dict[str, Any]) -> FeePolicy:
    tiers = tuple(
        FeeTier(
            name=str(item["name"]),
            fee_bps=_require_int("fees.tiers", "fee_bps", item["fee_bps"]),
            max_holding_bps=(
                _require_int("fees.tiers", "max_holding_bps", item["max_holding_bps"])
                if item.get("max_holding_bps") is not None
                else None
            ),
            inclusive=bool(item.get("inclusive", False)),
        )
        for item in data["tiers"]
    )

    rates = []
    for name, rate in (data.get("context_rates") or {}).items():
        try:
            context = TransferContext(name)
        except ValueError as exc:
            raise ValueError(f"fees.context_rates: unknown transfer context {name!r}") from exc
        rates.append((context, _require_int("fees.context_rates", name, rate)))

    return FeePolicy(tiers=tiers, context_rates=tuple(rates))


def parse_compliance_policy(data: dict[str, Any], decimals: int) -> CompliancePolicy:
    countries = []
    for code in data.get("allowed_countries", []):
        # Unquoted NO / ON / YES load as booleans in YAML 1.1
        if not isinstance(code, str):
            raise ValueError(
                f"compliance.allowed_countries: {code!r} is not a string; quote country codes"
            )
        countries.append(code.strip().upper())

    caps = tuple(
        None if cap is None else _scale("compliance", "daily_caps_tokens", cap, decimals)
        for cap in data["daily_caps_tokens"]
    )

    return CompliancePolicy(
        allowed_countries=tuple(countries),
        risk_threshold=_require_int("compliance", "risk_threshold", data["risk_threshold"]),
        auto_blacklist_risk=_require_int(
            "compliance", "auto_blacklist_risk", data["auto_blacklist_risk"]
        ),
        max_risk_score=_require_int("compliance", "max_risk_score", data.get("max_risk_score", 100)),
        daily_caps=caps,
        window_ledgers=_require_int("compliance", "window_ledgers", data["window_ledgers"]),
        recipient_min_kyc=_require_int(
            "compliance", "recipient_min_kyc", data.get("recipient_min_kyc", 2)
        ),
    )


def parse_vesting_policy(data: dict[str, Any]) -> VestingPolicy:
    return VestingPolicy(
        max_schedules_per_account=_require_int(
            "vesting", "max_schedules_per_account", data["max_schedules_per_account"]
        ),
        max_schedules_global=_require_int(
            "vesting", "max_schedules_global", data["max_schedules_global"]
        ),
        min_vesting_amount=_require_int(
            "vesting", "min_vesting_amount", data.get("min_vesting_amount", 1)
        ),
    )


def parse_storage_policy(data: dict[str, Any]) -> StoragePolicy:
    return StoragePolicy(
        ttl_threshold=_require_int("storage", "ttl_threshold", data["ttl_threshold"]),
        ttl_extend_to=_require_int("storage", "ttl_extend_to", data["ttl_extend_to"]),
    )


def parse_token_policy(data: dict[str, Any]) -> TokenPolicy:
    """
    Build a TokenPolicy from a parsed YAML document.

    Raises:
        KeyError: if a required section or key is missing.
        ValueError: if a value is malformed or inconsistent.
    """
    token = data["token"]
    decimals = _require_int("token", "decimals", token["decimals"])
    return TokenPolicy(
        policy_id=str(data["policy_id"]),
        version=_require_int("", "version", data.get("version", 1)),
        decimals=decimals,
        max_supply=_scale("token", "max_supply_tokens", token["max_supply_tokens"], decimals),
        initial_supply=_scale(
            "token", "initial_supply_tokens", token.get("initial_supply_tokens", 0), decimals
        ),
        fees=parse_fee_policy(data["fees"]),
        compliance=parse_compliance_policy(data["compliance"], decimals),
        vesting=parse_vesting_policy(data["vesting"]),
        storage=parse_storage_policy(data["storage"]),
    )


def load_policy(path: Path) -> LoadedPolicy:
    """Load and parse the policy file at ``path``."""
    path = Path(path)
    data = load_yaml_file(path)
    return LoadedPolicy(
        policy=parse_token_policy(data),
        checksum=compute_checksum(data),
        source=path,
    )
