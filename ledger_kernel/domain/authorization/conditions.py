"""
Policy conditions -- closed set of condition variants.

Responsibility:
    Typed, immutable representations of the four condition kinds an
    authorization policy carries (subject, resource, action, environment)
    and their conversion to and from the JSON documents stored on the
    policy row and in the system policy YAML.

Architecture position:
    Kernel > Domain > Authorization -- pure value objects, zero I/O.

Invariants enforced:
    - Parsing is strict: unknown keys, wrong types and unknown enum values
      raise InvalidPolicyConditionError instead of being ignored.
    - ``to_dict`` omits unset fields, so ``from_dict(to_dict(c)) == c``.

Failure modes:
    - InvalidPolicyConditionError(condition, reason).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping
from uuid import UUID

from ledger_kernel.domain.values import (
    AccountType,
    FiscalPeriodStatus,
    FunctionalRole,
    JournalEntryType,
    MembershipRole,
)
from ledger_kernel.exceptions import InvalidPolicyConditionError

RESOURCE_TYPES: tuple[str, ...] = (
    "organization",
    "company",
    "account",
    "journal_entry",
    "fiscal_period",
    "consolidation_group",
    "report",
)
WILDCARD = "*"

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


# =========================================================================
# Condition variants
# =========================================================================


@dataclass(frozen=True)
class SubjectCondition:
    """Who a policy applies to.  Every field left as None matches everyone."""

    roles: tuple[MembershipRole, ...] | None = None
    functional_roles: tuple[FunctionalRole, ...] | None = None
    user_ids: tuple[UUID, ...] | None = None
    is_platform_admin: bool | None = None


@dataclass(frozen=True)
class AccountNumberCondition:
    """Inclusive numeric range and/or explicit list of account numbers."""

    min: int | None = None
    max: int | None = None
    values: tuple[int, ...] | None = None


@dataclass(frozen=True)
class ResourceAttributes:
    account_number: AccountNumberCondition | None = None
    account_type: tuple[AccountType, ...] | None = None
    entry_type: tuple[JournalEntryType, ...] | None = None
    period_status: tuple[FiscalPeriodStatus, ...] | None = None
    is_intercompany: bool | None = None
    is_own_entry: bool | None = None
    is_adjustment_period: bool | None = None


@dataclass(frozen=True)
class ResourceCondition:
    """What a policy applies to: a resource type (or ``*``) plus attributes."""

    type: str = WILDCARD
    attributes: ResourceAttributes | None = None


@dataclass(frozen=True)
class ActionCondition:
    """Action patterns: ``*``, ``prefix:*`` or exact ``resource:verb``."""

    actions: tuple[str, ...] = ()


@dataclass(frozen=True)
class TimeRange:
    start: str
    end: str


@dataclass(frozen=True)
class EnvironmentCondition:
    """When and from where.  Days run 0 (Sunday) to 6 (Saturday)."""

    time_of_day: TimeRange | None = None
    days_of_week: tuple[int, ...] | None = None
    ip_allow_list: tuple[str, ...] | None = None
    ip_deny_list: tuple[str, ...] | None = None


# =========================================================================
# Parsing helpers
# =========================================================================


def _require_mapping(condition: str, data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise InvalidPolicyConditionError(condition, "expected a mapping")
    return data


def _reject_unknown(condition: str, data: Mapping[str, Any], allowed: set[str]) -> None:
    unknown = set(data) - allowed
    if unknown:
        raise InvalidPolicyConditionError(
            condition, f"unknown keys: {', '.join(sorted(unknown))}"
        )


def _enum_list(condition: str, key: str, raw: Any, enum_cls) -> tuple | None:
    if raw is None:
        return None
    if not isinstance(raw, (list, tuple)):
        raise InvalidPolicyConditionError(condition, f"{key} must be a list")
    try:
        return tuple(enum_cls(value) for value in raw)
    except ValueError as error:
        raise InvalidPolicyConditionError(condition, f"{key}: {error}") from None


def _optional_bool(condition: str, key: str, raw: Any) -> bool | None:
    if raw is None:
        return None
    if not isinstance(raw, bool):
        raise InvalidPolicyConditionError(condition, f"{key} must be a boolean")
    return raw


def _int_list(condition: str, key: str, raw: Any) -> tuple[int, ...] | None:
    if raw is None:
        return None
    if not isinstance(raw, (list, tuple)) or not all(
        isinstance(value, int) and not isinstance(value, bool) for value in raw
    ):
        raise InvalidPolicyConditionError(condition, f"{key} must be a list of integers")
    return tuple(raw)


def _str_list(condition: str, key: str, raw: Any) -> tuple[str, ...] | None:
    if raw is None:
        return None
    if not isinstance(raw, (list, tuple)) or not all(isinstance(v, str) for v in raw):
        raise InvalidPolicyConditionError(condition, f"{key} must be a list of strings")
    return tuple(raw)


def _values(items) -> list | None:
    if items is None:
        return None
    return [item.value if hasattr(item, "value") else item for item in items]


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


# =========================================================================
# Subject
# =========================================================================


def subject_from_dict(data: Any) -> SubjectCondition:
    data = _require_mapping("subject", data)
    _reject_unknown("subject", data, {"roles", "functional_roles", "user_ids", "is_platform_admin"})
    raw_ids = data.get("user_ids")
    parsed_ids = None
    if raw_ids is not None:
        if not isinstance(raw_ids, (list, tuple)):
            raise InvalidPolicyConditionError("subject", "user_ids must be a list")
        try:
            parsed_ids = tuple(
                value if isinstance(value, UUID) else UUID(str(value)) for value in raw_ids
            )
        except ValueError:
            raise InvalidPolicyConditionError("subject", "user_ids must be UUIDs") from None
    return SubjectCondition(
        roles=_enum_list("subject", "roles", data.get("roles"), MembershipRole),
        functional_roles=_enum_list(
            "subject", "functional_roles", data.get("functional_roles"), FunctionalRole
        ),
        user_ids=parsed_ids,
        is_platform_admin=_optional_bool("subject", "is_platform_admin", data.get("is_platform_admin")),
    )


def subject_to_dict(condition: SubjectCondition) -> dict[str, Any]:
    return _compact({
        "roles": _values(condition.roles),
        "functional_roles": _values(condition.functional_roles),
        "user_ids": [str(v) for v in condition.user_ids] if condition.user_ids is not None else None,
        "is_platform_admin": condition.is_platform_admin,
    })


# =========================================================================
# Resource
# =========================================================================


def _account_number_from_dict(data: Any) -> AccountNumberCondition:
    data = _require_mapping("resource", data)
    _reject_unknown("resource", data, {"min", "max", "in"})
    bounds = [data.get("min"), data.get("max")]
    for bound in bounds:
        if bound is not None and (not isinstance(bound, int) or isinstance(bound, bool)):
            raise InvalidPolicyConditionError("resource", "account_number bounds must be integers")
    if (bounds[0] is None) != (bounds[1] is None):
        raise InvalidPolicyConditionError("resource", "account_number needs both min and max")
    if bounds[0] is not None and bounds[0] > bounds[1]:
        raise InvalidPolicyConditionError("resource", "account_number min exceeds max")
    return AccountNumberCondition(
        min=bounds[0],
        max=bounds[1],
        values=_int_list("resource", "account_number.in", data.get("in")),
    )


def resource_from_dict(data: Any) -> ResourceCondition:
    data = _require_mapping("resource", data)
    _reject_unknown("resource", data, {"type", "attributes"})
    resource_type = data.get("type", WILDCARD)
    if resource_type != WILDCARD and resource_type not in RESOURCE_TYPES:
        raise InvalidPolicyConditionError("resource", f"unknown resource type '{resource_type}'")

    raw_attributes = data.get("attributes")
    attributes = None
    if raw_attributes is not None:
        raw_attributes = _require_mapping("resource", raw_attributes)
        _reject_unknown("resource", raw_attributes, {
            "account_number", "account_type", "entry_type", "period_status",
            "is_intercompany", "is_own_entry", "is_adjustment_period",
        })
        account_number = raw_attributes.get("account_number")
        attributes = ResourceAttributes(
            account_number=(
                _account_number_from_dict(account_number) if account_number is not None else None
            ),
            account_type=_enum_list(
                "resource", "account_type", raw_attributes.get("account_type"), AccountType
            ),
            entry_type=_enum_list(
                "resource", "entry_type", raw_attributes.get("entry_type"), JournalEntryType
            ),
            period_status=_enum_list(
                "resource", "period_status", raw_attributes.get("period_status"), FiscalPeriodStatus
            ),
            is_intercompany=_optional_bool(
                "resource", "is_intercompany", raw_attributes.get("is_intercompany")
            ),
            is_own_entry=_optional_bool("resource", "is_own_entry", raw_attributes.get("is_own_entry")),
            is_adjustment_period=_optional_bool(
                "resource", "is_adjustment_period", raw_attributes.get("is_adjustment_period")
            ),
        )
    return ResourceCondition(type=resource_type, attributes=attributes)


def resource_to_dict(condition: ResourceCondition) -> dict[str, Any]:
    result: dict[str, Any] = {"type": condition.type}
    attrs = condition.attributes
    if attrs is not None:
        account_number = None
        if attrs.account_number is not None:
            account_number = _compact({
                "min": attrs.account_number.min,
                "max": attrs.account_number.max,
                "in": list(attrs.account_number.values) if attrs.account_number.values is not None else None,
            })
        result["attributes"] = _compact({
            "account_number": account_number,
            "account_type": _values(attrs.account_type),
            "entry_type": _values(attrs.entry_type),
            "period_status": _values(attrs.period_status),
            "is_intercompany": attrs.is_intercompany,
            "is_own_entry": attrs.is_own_entry,
            "is_adjustment_period": attrs.is_adjustment_period,
        })
    return result


# =========================================================================
# Action
# =========================================================================


def action_from_dict(data: Any) -> ActionCondition:
    data = _require_mapping("action", data)
    _reject_unknown("action", data, {"actions"})
    actions = _str_list("action", "actions", data.get("actions", []))
    for action in actions:
        if action != WILDCARD and ":" not in action:
            raise InvalidPolicyConditionError(
                "action", f"'{action}' is not '*' or 'resource:verb'"
            )
    return ActionCondition(actions=actions)


def action_to_dict(condition: ActionCondition) -> dict[str, Any]:
    return {"actions": list(condition.actions)}


# =========================================================================
# Environment
# =========================================================================


def environment_from_dict(data: Any) -> EnvironmentCondition:
    data = _require_mapping("environment", data)
    _reject_unknown("environment", data, {"time_of_day", "days_of_week", "ip_allow_list", "ip_deny_list"})

    time_of_day = None
    raw_time = data.get("time_of_day")
    if raw_time is not None:
        raw_time = _require_mapping("environment", raw_time)
        _reject_unknown("environment", raw_time, {"start", "end"})
        start, end = raw_time.get("start"), raw_time.get("end")
        for value in (start, end):
            if not isinstance(value, str) or not _TIME_PATTERN.match(value):
                raise InvalidPolicyConditionError(
                    "environment", f"time_of_day bounds must be HH:MM, got {value!r}"
                )
        time_of_day = TimeRange(start=start, end=end)

    days = _int_list("environment", "days_of_week", data.get("days_of_week"))
    if days is not None and any(day < 0 or day > 6 for day in days):
        raise InvalidPolicyConditionError("environment", "days_of_week must be within 0..6")

    return EnvironmentCondition(
        time_of_day=time_of_day,
        days_of_week=days,
        ip_allow_list=_str_list("environment", "ip_allow_list", data.get("ip_allow_list")),
        ip_deny_list=_str_list("environment", "ip_deny_list", data.get("ip_deny_list")),
    )


def environment_to_dict(condition: EnvironmentCondition) -> dict[str, Any]:
    time_of_day = None
    if condition.time_of_day is not None:
        time_of_day = {"start": condition.time_of_day.start, "end": condition.time_of_day.end}
    return _compact({
        "time_of_day": time_of_day,
        "days_of_week": list(condition.days_of_week) if condition.days_of_week is not None else None,
        "ip_allow_list": list(condition.ip_allow_list) if condition.ip_allow_list is not None else None,
        "ip_deny_list": list(condition.ip_deny_list) if condition.ip_deny_list is not None else None,
    })
