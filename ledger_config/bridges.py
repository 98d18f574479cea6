"""
Config → Kernel Bridges.

Functions that convert a LedgerConfiguration into kernel-compatible
inputs.  These live in ledger_config (the producer) because the kernel
must NEVER import ledger_config.

Usage:
    from ledger_config import get_active_config
    from ledger_config.bridges import build_permission_matrix, build_system_policy_specs

    config = get_active_config()
    authorization = AuthorizationService(session, permission_matrix=build_permission_matrix(config))
    organizations = OrganizationService(
        session, authorization=authorization,
        system_policies=build_system_policy_specs(config),
    )
"""

from __future__ import annotations

from ledger_config.schema import LedgerConfiguration, SystemPolicyDef
from ledger_kernel.domain.account_hierarchy import CycleCheckMode
from ledger_kernel.domain.authorization.conditions import (
    action_from_dict,
    environment_from_dict,
    resource_from_dict,
    subject_from_dict,
)
from ledger_kernel.domain.authorization.permission_matrix import PermissionMatrix
from ledger_kernel.domain.authorization.system_policies import SystemPolicySpec
from ledger_kernel.domain.values import FunctionalRole, MembershipRole, PolicyEffect
from ledger_kernel.services.sequence_service import EntryNumberFormat


def build_system_policy_spec(definition: SystemPolicyDef) -> SystemPolicySpec:
    """Parse one policy definition's condition documents into kernel conditions.

    Raises InvalidPolicyConditionError when a condition document is malformed.
    """
    return SystemPolicySpec(
        name=definition.name,
        description=definition.description,
        subject=subject_from_dict(definition.subject),
        resource=resource_from_dict(definition.resource),
        action=action_from_dict(definition.action),
        effect=PolicyEffect(definition.effect),
        priority=definition.priority,
        environment=(
            environment_from_dict(definition.environment)
            if definition.environment is not None
            else None
        ),
    )


def build_system_policy_specs(config: LedgerConfiguration) -> tuple[SystemPolicySpec, ...]:
    return tuple(build_system_policy_spec(item) for item in config.system_policies)


def build_permission_matrix(config: LedgerConfiguration) -> PermissionMatrix:
    """Build the RBAC fallback matrix.  Unknown role names raise ValueError."""
    return PermissionMatrix(
        role_permissions={
            MembershipRole(role.name): frozenset(role.permissions)
            for role in config.rbac.roles
        },
        functional_role_permissions={
            FunctionalRole(role.name): frozenset(role.permissions)
            for role in config.rbac.functional_roles
        },
    )


def build_entry_number_format(config: LedgerConfiguration) -> EntryNumberFormat:
    return EntryNumberFormat(
        prefix=config.settings.entry_number_prefix,
        width=config.settings.entry_number_width,
    )


def build_cycle_check_mode(config: LedgerConfiguration) -> CycleCheckMode:
    return CycleCheckMode(config.settings.account_cycle_check)
