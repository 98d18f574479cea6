"""
Environment matcher.

Time-of-day ranges are inclusive and may wrap midnight (22:00-06:00).
IPv4 patterns are CIDR blocks or single addresses; IPv6 patterns match
exactly.  A condition field the context lacks is a mismatch.
"""

from __future__ import annotations

import ipaddress

from ledger_kernel.domain.authorization.conditions import EnvironmentCondition, TimeRange
from ledger_kernel.domain.authorization.context import EnvironmentContext

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def parse_time_to_minutes(value: str) -> int:
    hours, _, minutes = value.partition(":")
    return int(hours or 0) * 60 + int(minutes or 0)


def matches_time_of_day(time_range: TimeRange, current_time: str) -> bool:
    start = parse_time_to_minutes(time_range.start)
    end = parse_time_to_minutes(time_range.end)
    current = parse_time_to_minutes(current_time)
    if start <= end:
        return start <= current <= end
    return current >= start or current <= end


def matches_ip_pattern(pattern: str, ip_address: str) -> bool:
    if ":" in pattern or ":" in ip_address:
        return pattern == ip_address
    try:
        network = ipaddress.IPv4Network(pattern, strict=False)
        address = ipaddress.IPv4Address(ip_address)
    except ValueError:
        return False
    return address in network


def _in_list(patterns: tuple[str, ...], ip_address: str) -> bool:
    return any(matches_ip_pattern(pattern, ip_address) for pattern in patterns)


def environment_mismatch_reason(
    condition: EnvironmentCondition, context: EnvironmentContext
) -> str | None:
    """Return why ``context`` fails ``condition``, or None if it matches."""
    if condition.time_of_day is not None:
        if context.current_time is None:
            return "Condition requires time of day but context has no time"
        if not matches_time_of_day(condition.time_of_day, context.current_time):
            return (
                f"Current time '{context.current_time}' is not within allowed range "
                f"{condition.time_of_day.start} to {condition.time_of_day.end}"
            )

    if condition.days_of_week:
        if context.current_day_of_week is None:
            return "Condition requires day of week but context has no day"
        if context.current_day_of_week not in condition.days_of_week:
            allowed = ", ".join(DAY_NAMES[day] for day in condition.days_of_week)
            return (
                f"Current day '{DAY_NAMES[context.current_day_of_week]}' is not in "
                f"allowed days: [{allowed}]"
            )

    if condition.ip_allow_list:
        if context.ip_address is None:
            return "Condition requires IP address but context has no IP"
        if not _in_list(condition.ip_allow_list, context.ip_address):
            return (
                f"IP address '{context.ip_address}' is not in allowed list: "
                f"[{', '.join(condition.ip_allow_list)}]"
            )

    if condition.ip_deny_list:
        if context.ip_address is None:
            return "Condition requires IP address but context has no IP"
        if _in_list(condition.ip_deny_list, context.ip_address):
            return (
                f"IP address '{context.ip_address}' is in deny list: "
                f"[{', '.join(condition.ip_deny_list)}]"
            )

    return None


def matches_environment_condition(
    condition: EnvironmentCondition, context: EnvironmentContext
) -> bool:
    return environment_mismatch_reason(condition, context) is None
