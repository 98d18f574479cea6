"""
Subject matcher.

All specified fields AND together; an unset field or an empty list
matches everyone.  Functional roles match on any overlap.
"""

from __future__ import annotations

from ledger_kernel.domain.authorization.conditions import SubjectCondition
from ledger_kernel.domain.authorization.context import SubjectContext


def subject_mismatch_reason(condition: SubjectCondition, subject: SubjectContext) -> str | None:
    """Return why ``subject`` fails ``condition``, or None if it matches."""
    if condition.roles:
        if subject.role is None or subject.role not in condition.roles:
            allowed = ", ".join(role.value for role in condition.roles)
            actual = subject.role.value if subject.role is not None else "none"
            return f"Role '{actual}' is not in allowed roles: [{allowed}]"

    if condition.functional_roles:
        if not subject.functional_roles.intersection(condition.functional_roles):
            required = ", ".join(role.value for role in condition.functional_roles)
            return f"User has none of the required functional roles: [{required}]"

    if condition.user_ids:
        if subject.user_id not in condition.user_ids:
            return f"User '{subject.user_id}' is not in allowed user list"

    if condition.is_platform_admin is not None:
        if subject.is_platform_admin != condition.is_platform_admin:
            if condition.is_platform_admin:
                return "Condition requires platform admin"
            return "Condition excludes platform admins"

    return None


def matches_subject_condition(condition: SubjectCondition, subject: SubjectContext) -> bool:
    return subject_mismatch_reason(condition, subject) is None
