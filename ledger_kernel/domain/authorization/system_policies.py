"""
System policies -- the protected baseline every organization carries.

Responsibility:
    The SystemPolicySpec shape seeded into each organization, the priority
    bands that separate system from user policies, and the predicates the
    policy service uses to guard them.

Architecture position:
    Kernel > Domain > Authorization -- pure, zero I/O.  The eight concrete
    definitions live in configuration and arrive here as SystemPolicySpec
    instances through ``ledger_config.bridges``.

Invariants enforced:
    - User policies use priority 0..899; 900..1000 is reserved.
    - An organization is considered seeded once it holds at least
      SYSTEM_POLICY_COUNT system policies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ledger_kernel.domain.authorization.conditions import (
    ActionCondition,
    EnvironmentCondition,
    ResourceCondition,
    SubjectCondition,
)
from ledger_kernel.domain.values import PolicyEffect
from ledger_kernel.exceptions import PolicyPriorityValidationError

MIN_USER_PRIORITY = 0
MAX_USER_PRIORITY = 899
MAX_SYSTEM_PRIORITY = 1000
SYSTEM_POLICY_COUNT = 8


@dataclass(frozen=True)
class SystemPolicySpec:
    """Definition of one system policy, independent of any organization."""

    name: str
    description: str
    subject: SubjectCondition
    resource: ResourceCondition
    action: ActionCondition
    effect: PolicyEffect
    priority: int
    environment: EnvironmentCondition | None = None


def validate_user_priority(priority: int) -> None:
    if not MIN_USER_PRIORITY <= priority <= MAX_USER_PRIORITY:
        raise PolicyPriorityValidationError(priority, MAX_USER_PRIORITY)


def has_system_policies(policies: Iterable) -> bool:
    return sum(1 for policy in policies if policy.is_system_policy) >= SYSTEM_POLICY_COUNT
