"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``LedgerConfiguration``
    holding the kernel settings, the system policy definitions and the
    RBAC fallback matrix.

Architecture position:
    Configuration -- YAML-driven.  This package sits above
    ``ledger_kernel``.  The kernel MUST NEVER import from
    ``ledger_config``; bridges in this package translate the
    configuration into kernel-compatible inputs.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Deterministic loading: the same YAML always produces the same checksum.
    - System policy names are unique and priorities lie within 0..1000.

Failure modes:
    - ``FileNotFoundError`` -- the configuration directory lacks a required file.
    - ``ValueError`` -- malformed values or duplicate policy names.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry with the checksum and the policy and
    role counts, tying authorization decisions back to the configuration
    that governed them.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.loader import load_configuration
from ledger_config.schema import LedgerConfiguration

_logger = logging.getLogger("ledger_kernel.config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(config_dir: Path | None = None) -> LedgerConfiguration:
    """The ONLY public configuration entrypoint.

    This function does NOT cache; callers hold the returned configuration
    for as long as they need it.

    Args:
        config_dir: Override path to the configuration directory.
            Defaults to ledger_config/sets/.

    Raises:
        FileNotFoundError: If a required configuration file is missing.
        ValueError: If configuration validation fails.
    """
    config = load_configuration(Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR)

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "checksum": config.checksum,
            "rbac_version": config.rbac.version,
            "system_policy_count": len(config.system_policies),
            "role_count": len(config.rbac.roles),
            "functional_role_count": len(config.rbac.functional_roles),
        },
    )
    return config


__all__ = ["LedgerConfiguration", "get_active_config"]
