"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads the YAML files of a configuration directory and parses them into
the frozen dataclasses of ``ledger_config.schema``.  Runtime callers go
through ``ledger_config.get_active_config()``.

Architecture position
---------------------
**Config layer**.  No dependency on the kernel; kernel types are only
produced by ``ledger_config.bridges``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Required keys are never defaulted: a missing key raises ``KeyError``.
* ``compute_checksum`` is deterministic for identical input.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    LedgerConfiguration,
    LedgerSettings,
    RbacConfigDef,
    RoleDef,
    SystemPolicyDef,
)

SETTINGS_FILE = "settings.yaml"
SYSTEM_POLICIES_FILE = "system_policies.yaml"
RBAC_FILE = "rbac.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """Parse LedgerSettings; absent sections keep their defaults."""
    defaults = LedgerSettings()
    numbering = data.get("entry_numbering", {})
    accounts = data.get("accounts", {})

    width = numbering.get("width", defaults.entry_number_width)
    if not isinstance(width, int) or isinstance(width, bool) or width < 1:
        raise ValueError(f"entry_numbering.width must be a positive integer, got {width!r}")

    cycle_check = accounts.get("cycle_check", defaults.account_cycle_check)
    if cycle_check not in ("self", "ancestors"):
        raise ValueError(f"accounts.cycle_check must be 'self' or 'ancestors', got {cycle_check!r}")

    return LedgerSettings(
        entry_number_prefix=str(numbering.get("prefix", defaults.entry_number_prefix)),
        entry_number_width=width,
        account_cycle_check=cycle_check,
    )


def parse_system_policy(data: dict[str, Any]) -> SystemPolicyDef:
    """Parse a SystemPolicyDef.  Condition documents are kept as dicts."""
    priority = data["priority"]
    if not isinstance(priority, int) or isinstance(priority, bool):
        raise ValueError(f"Policy {data['name']!r}: priority must be an integer")
    if not 0 <= priority <= 1000:
        raise ValueError(f"Policy {data['name']!r}: priority {priority} outside 0..1000")
    return SystemPolicyDef(
        name=data["name"],
        description=data.get("description", ""),
        effect=data["effect"],
        priority=priority,
        subject=dict(data.get("subject") or {}),
        resource=dict(data.get("resource") or {}),
        action=dict(data["action"]),
        environment=dict(data["environment"]) if data.get("environment") else None,
    )


def parse_role(name: str, permissions: Any) -> RoleDef:
    if not isinstance(permissions, list):
        raise ValueError(f"Role {name!r}: permissions must be a list")
    return RoleDef(name=name, permissions=tuple(str(p) for p in permissions))


def parse_rbac(data: dict[str, Any]) -> RbacConfigDef:
    return RbacConfigDef(
        version=str(data["version"]),
        roles=tuple(
            parse_role(name, permissions)
            for name, permissions in (data.get("roles") or {}).items()
        ),
        functional_roles=tuple(
            parse_role(name, permissions)
            for name, permissions in (data.get("functional_roles") or {}).items()
        ),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_configuration(config_dir: Path) -> LedgerConfiguration:
    """
    Load settings, system policies and the RBAC matrix from ``config_dir``.

    ``settings.yaml`` is optional; the other two files are required.

    Raises:
        FileNotFoundError: a required file is missing.
        ValueError: duplicate system policy names or malformed values.
    """
    settings_path = config_dir / SETTINGS_FILE
    raw_settings = load_yaml_file(settings_path) if settings_path.exists() else {}
    raw_policies = load_yaml_file(config_dir / SYSTEM_POLICIES_FILE)
    raw_rbac = load_yaml_file(config_dir / RBAC_FILE)

    policies = tuple(parse_system_policy(item) for item in raw_policies.get("system_policies", []))
    names = [policy.name for policy in policies]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValueError(f"Duplicate system policy names: {', '.join(duplicates)}")

    return LedgerConfiguration(
        settings=parse_settings(raw_settings),
        system_policies=policies,
        rbac=parse_rbac(raw_rbac),
        checksum=compute_checksum(
            {"settings": raw_settings, "system_policies": raw_policies, "rbac": raw_rbac}
        ),
    )
