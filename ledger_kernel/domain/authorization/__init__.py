"""
Attribute-based authorization: policy conditions, matchers, the policy
engine, system policy definitions and the RBAC fallback matrix.
"""

from ledger_kernel.domain.authorization.conditions import (
    RESOURCE_TYPES,
    AccountNumberCondition,
    ActionCondition,
    EnvironmentCondition,
    ResourceAttributes,
    ResourceCondition,
    SubjectCondition,
    TimeRange,
)
from ledger_kernel.domain.authorization.context import (
    EnvironmentContext,
    PolicyEvaluationContext,
    ResourceContext,
    SubjectContext,
    create_environment_context,
    create_subject_context_from_membership,
)
from ledger_kernel.domain.authorization.engine import (
    PolicyDecision,
    PolicyMatchResult,
    evaluate_policies,
    evaluate_policy,
    find_matching_policies,
    would_deny,
)
from ledger_kernel.domain.authorization.permission_matrix import (
    PermissionMatrix,
    check_rbac,
    resource_type_for_action,
)
from ledger_kernel.domain.authorization.system_policies import (
    MAX_USER_PRIORITY,
    SystemPolicySpec,
    has_system_policies,
)

__all__ = [
    "RESOURCE_TYPES",
    "AccountNumberCondition",
    "ActionCondition",
    "EnvironmentCondition",
    "ResourceAttributes",
    "ResourceCondition",
    "SubjectCondition",
    "TimeRange",
    "EnvironmentContext",
    "PolicyEvaluationContext",
    "ResourceContext",
    "SubjectContext",
    "create_environment_context",
    "create_subject_context_from_membership",
    "PolicyDecision",
    "PolicyMatchResult",
    "evaluate_policies",
    "evaluate_policy",
    "find_matching_policies",
    "would_deny",
    "PermissionMatrix",
    "check_rbac",
    "resource_type_for_action",
    "MAX_USER_PRIORITY",
    "SystemPolicySpec",
    "has_system_policies",
]
