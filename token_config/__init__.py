"""
token_config -- single public entrypoint for token policy.

Responsibility:
    Provides the ONLY way to obtain a TokenPolicy at runtime through
    ``get_active_policy()``.  No other component reads policy files.

Architecture position:
    Configuration -- YAML-driven policy.  This package sits above
    ``token_kernel``; the kernel MUST NEVER import from ``token_config``.

Failure modes:
    - ``FileNotFoundError`` -- the policy file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema or consistency failures.

Audit relevance:
    Every successful ``get_active_policy()`` call emits a
    ``TOKEN_CONFIG_TRACE`` log entry with the policy id, version, checksum
    and source path, tying ledger behavior to the exact policy in force.
"""

from __future__ import annotations

import logging
from pathlib import Path

from token_config.loader import LoadedPolicy, compute_checksum, load_policy
from token_kernel.domain.policy import TokenPolicy

_logger = logging.getLogger("token_kernel.config")

DEFAULT_POLICY_PATH = Path(__file__).parent / "policies" / "braza.yaml"


def get_active_policy(path: Path | None = None) -> TokenPolicy:
    """
    The ONLY public policy entrypoint.

    Args:
        path: Override policy file.  Defaults to the packaged
            ``token_config/policies/braza.yaml``.

    Returns:
        The frozen TokenPolicy.
    """
    loaded = load_policy(path or DEFAULT_POLICY_PATH)
    policy = loaded.policy

    _logger.info(
        "TOKEN_CONFIG_TRACE",
        extra={
            "trace_type": "TOKEN_CONFIG_TRACE",
            "policy_id": policy.policy_id,
            "policy_version": policy.version,
            "checksum": loaded.checksum,
            "source": str(loaded.source),
            "fee_tier_count": len(policy.fees.tiers),
            "allowed_country_count": len(policy.compliance.allowed_countries),
        },
    )
    return policy


__all__ = [
    "DEFAULT_POLICY_PATH",
    "LoadedPolicy",
    "compute_checksum",
    "get_active_policy",
    "load_policy",
]
