"""
RBAC permission matrix -- fallback when an organization has no policies.

Responsibility:
    Computes a member's effective permissions from their base role plus
    functional roles, and answers whether an action is granted.  Also maps
    an action's resource prefix onto the resource type the policy engine
    understands.

Architecture position:
    Kernel > Domain > Authorization -- pure, zero I/O.  The matrix itself
    is configuration (``ledger_config/sets/rbac.yaml``) bridged into a
    PermissionMatrix.

Invariants:
    - Permission entries use the same pattern syntax as action conditions
      (``*``, ``prefix:*``, exact).
    - check_rbac returns ``(allowed, reason)``; reason is empty when allowed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ledger_kernel.domain.authorization.action_matcher import (
    matches_action_patterns,
    resource_prefix,
)
from ledger_kernel.domain.values import FunctionalRole, MembershipRole

# action prefix -> policy resource type
RESOURCE_TYPE_MAP: dict[str, str] = {
    "organization": "organization",
    "company": "company",
    "account": "account",
    "journal_entry": "journal_entry",
    "fiscal_period": "fiscal_period",
    "consolidation_group": "consolidation_group",
    "report": "report",
    "exchange_rate": "report",
    "elimination": "consolidation_group",
    "audit_log": "organization",
}


def resource_type_for_action(action: str) -> str | None:
    """Policy resource type for ``action``, or None if it has no mapping."""
    return RESOURCE_TYPE_MAP.get(resource_prefix(action))


@dataclass(frozen=True)
class PermissionMatrix:
    role_permissions: Mapping[MembershipRole, frozenset[str]] = field(default_factory=dict)
    functional_role_permissions: Mapping[FunctionalRole, frozenset[str]] = field(default_factory=dict)


def compute_effective_permissions(
    matrix: PermissionMatrix,
    role: MembershipRole | None,
    functional_roles: Iterable[FunctionalRole] = (),
) -> frozenset[str]:
    permissions: set[str] = set()
    if role is not None:
        permissions |= matrix.role_permissions.get(role, frozenset())
    for functional_role in functional_roles:
        permissions |= matrix.functional_role_permissions.get(functional_role, frozenset())
    return frozenset(permissions)


def has_permission(permissions: Iterable[str], action: str) -> bool:
    return matches_action_patterns(permissions, action)


def check_rbac(
    matrix: PermissionMatrix,
    role: MembershipRole | None,
    functional_roles: Iterable[FunctionalRole],
    action: str,
) -> tuple[bool, str]:
    """Check ``action`` against the role permission matrix.

    Returns:
        (allowed, reason).  reason is empty when allowed.
    """
    permissions = compute_effective_permissions(matrix, role, functional_roles)
    if has_permission(permissions, action):
        return (True, "")
    role_name = role.value if role is not None else "none"
    return (False, f"Role '{role_name}' does not have permission for '{action}'")
