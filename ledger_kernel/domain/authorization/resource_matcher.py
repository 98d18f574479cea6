"""
Resource matcher.

The resource type must equal the condition type unless the condition
type is ``*``.  Every attribute the condition specifies must be present
on the resource and match; a condition attribute the resource lacks is a
mismatch.  Empty attribute lists are ignored.
"""

from __future__ import annotations

from ledger_kernel.domain.authorization.conditions import (
    WILDCARD,
    AccountNumberCondition,
    ResourceCondition,
)
from ledger_kernel.domain.authorization.context import ResourceContext


def matches_resource_type(condition_type: str, resource_type: str) -> bool:
    return condition_type == WILDCARD or condition_type == resource_type


def matches_account_number(condition: AccountNumberCondition, account_number: int) -> bool:
    if condition.min is not None and condition.max is not None:
        if not condition.min <= account_number <= condition.max:
            return False
    if condition.values:
        if account_number not in condition.values:
            return False
    return True


def _joined(items) -> str:
    return ", ".join(getattr(item, "value", str(item)) for item in items)


def _flag_mismatch(
    name: str, required: bool | None, actual: bool | None, labels: tuple[str, str]
) -> str | None:
    if required is None:
        return None
    if actual is None:
        return f"Condition requires {name} but resource has none"
    if required != actual:
        yes, no = labels
        return (
            f"Resource is {yes if actual else no} but condition requires "
            f"{yes if required else no}"
        )
    return None


def resource_mismatch_reason(condition: ResourceCondition, resource: ResourceContext) -> str | None:
    """Return why ``resource`` fails ``condition``, or None if it matches."""
    if not matches_resource_type(condition.type, resource.type):
        return (
            f"Resource type '{resource.type}' does not match condition type "
            f"'{condition.type}'"
        )

    attrs = condition.attributes
    if attrs is None:
        return None

    if attrs.account_number is not None:
        if resource.account_number is None:
            return "Condition requires account number but resource has none"
        if not matches_account_number(attrs.account_number, resource.account_number):
            number = attrs.account_number
            if number.min is not None and not number.min <= resource.account_number <= number.max:
                return (
                    f"Account number {resource.account_number} is not in range "
                    f"[{number.min}, {number.max}]"
                )
            return (
                f"Account number {resource.account_number} is not in allowed list: "
                f"[{_joined(number.values)}]"
            )

    if attrs.account_type:
        if resource.account_type is None:
            return "Condition requires account type but resource has none"
        if resource.account_type not in attrs.account_type:
            return (
                f"Account type '{resource.account_type.value}' is not in allowed types: "
                f"[{_joined(attrs.account_type)}]"
            )

    reason = _flag_mismatch(
        "intercompany flag", attrs.is_intercompany, resource.is_intercompany,
        ("intercompany", "non-intercompany"),
    )
    if reason:
        return reason

    if attrs.entry_type:
        if resource.entry_type is None:
            return "Condition requires entry type but resource has none"
        if resource.entry_type not in attrs.entry_type:
            return (
                f"Entry type '{resource.entry_type.value}' is not in allowed types: "
                f"[{_joined(attrs.entry_type)}]"
            )

    reason = _flag_mismatch(
        "own entry flag", attrs.is_own_entry, resource.is_own_entry,
        ("own entry", "other's entry"),
    )
    if reason:
        return reason

    if attrs.period_status:
        if resource.period_status is None:
            return "Condition requires period status but resource has none"
        if resource.period_status not in attrs.period_status:
            return (
                f"Period status '{resource.period_status.value}' is not in allowed "
                f"statuses: [{_joined(attrs.period_status)}]"
            )

    return _flag_mismatch(
        "adjustment period flag", attrs.is_adjustment_period, resource.is_adjustment_period,
        ("adjustment period", "regular period"),
    )


def matches_resource_condition(condition: ResourceCondition, resource: ResourceContext) -> bool:
    return resource_mismatch_reason(condition, resource) is None
