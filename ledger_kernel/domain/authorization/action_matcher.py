"""
Action matcher.

Patterns are ``*`` (everything), ``prefix:*`` (every verb on one
resource) or an exact ``resource:verb``.  An empty pattern list matches
nothing.  The same pattern rules drive the RBAC permission matrix.
"""

from __future__ import annotations

from typing import Iterable

from ledger_kernel.domain.authorization.conditions import WILDCARD, ActionCondition


def resource_prefix(action: str) -> str:
    """``journal_entry:post`` -> ``journal_entry``."""
    return action.split(":", 1)[0]


def matches_action_pattern(pattern: str, action: str) -> bool:
    if pattern == WILDCARD:
        return True
    if pattern.endswith(":*"):
        return resource_prefix(pattern) == resource_prefix(action) and ":" in action
    return pattern == action


def matches_action_patterns(patterns: Iterable[str], action: str) -> bool:
    return any(matches_action_pattern(pattern, action) for pattern in patterns)


def action_mismatch_reason(condition: ActionCondition, action: str) -> str | None:
    if matches_action_patterns(condition.actions, action):
        return None
    return (
        f"Action '{action}' does not match condition actions: "
        f"[{', '.join(condition.actions)}]"
    )


def matches_action_condition(condition: ActionCondition, action: str) -> bool:
    return matches_action_patterns(condition.actions, action)
