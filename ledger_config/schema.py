"""
Ledger configuration schema.

Frozen dataclasses the YAML files under ``ledger_config/sets/`` are parsed
into by the loader.  Condition documents of system policies stay as plain
dicts here; the bridges hand them to the kernel's condition parsers.

Key distinction:
  LedgerConfiguration = parsed source (human-authored YAML)
  bridges.*           = kernel inputs (SystemPolicySpec, PermissionMatrix,
                        EntryNumberFormat, CycleCheckMode)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerSettings:
    """Tunables of the kernel services."""

    entry_number_prefix: str = "JE"
    entry_number_width: int = 4
    # "self" or "ancestors"
    account_cycle_check: str = "self"


# ---------------------------------------------------------------------------
# System policies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SystemPolicyDef:
    """One system policy seeded into every new organization."""

    name: str
    description: str
    effect: str
    priority: int
    subject: dict[str, Any] = field(default_factory=dict)
    resource: dict[str, Any] = field(default_factory=dict)
    action: dict[str, Any] = field(default_factory=dict)
    environment: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# RBAC fallback matrix
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RoleDef:
    """Permissions (action patterns) granted by one role."""

    name: str
    permissions: tuple[str, ...]


@dataclass(frozen=True)
class RbacConfigDef:
    """Base-role and functional-role permissions used when an organization
    has no active policies."""

    version: str
    roles: tuple[RoleDef, ...] = ()
    functional_roles: tuple[RoleDef, ...] = ()


# ---------------------------------------------------------------------------
# Top-level configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfiguration:
    """Everything loaded from one configuration directory."""

    settings: LedgerSettings
    system_policies: tuple[SystemPolicyDef, ...]
    rbac: RbacConfigDef
    checksum: str = ""
