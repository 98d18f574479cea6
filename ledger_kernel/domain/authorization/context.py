"""
Evaluation contexts -- the facts a policy is matched against.

Subject, resource and environment contexts are built by the
authorization service from the caller's membership, the resource being
touched and the request environment.  All are frozen dataclasses with no
behaviour beyond construction helpers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from ledger_kernel.domain.dtos import MembershipInfo
from ledger_kernel.domain.values import (
    AccountType,
    FiscalPeriodStatus,
    FunctionalRole,
    JournalEntryType,
    MembershipRole,
)


@dataclass(frozen=True)
class SubjectContext:
    user_id: UUID
    organization_id: UUID
    role: MembershipRole | None
    functional_roles: frozenset[FunctionalRole] = field(default_factory=frozenset)
    is_platform_admin: bool = False


@dataclass(frozen=True)
class ResourceContext:
    """The resource an action targets.  Unknown attributes stay None."""

    type: str
    id: UUID | None = None
    account_number: int | None = None
    account_type: AccountType | None = None
    is_intercompany: bool | None = None
    entry_type: JournalEntryType | None = None
    is_own_entry: bool | None = None
    period_status: FiscalPeriodStatus | None = None
    is_adjustment_period: bool | None = None


@dataclass(frozen=True)
class EnvironmentContext:
    """Request environment.  ``current_time`` is ``HH:MM``; Sunday is day 0."""

    current_time: str | None = None
    current_day_of_week: int | None = None
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class PolicyEvaluationContext:
    subject: SubjectContext
    resource: ResourceContext
    action: str
    environment: EnvironmentContext | None = None


def create_subject_context_from_membership(
    membership: MembershipInfo, is_platform_admin: bool = False
) -> SubjectContext:
    return SubjectContext(
        user_id=membership.user_id,
        organization_id=membership.organization_id,
        role=membership.role,
        functional_roles=frozenset(membership.functional_roles),
        is_platform_admin=is_platform_admin,
    )


def create_environment_context(
    at: datetime,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> EnvironmentContext:
    """Build an environment context from a timestamp.

    ``datetime.weekday()`` counts Monday as 0; policies count Sunday as 0.
    """
    return EnvironmentContext(
        current_time=f"{at.hour:02d}:{at.minute:02d}",
        current_day_of_week=(at.weekday() + 1) % 7,
        ip_address=ip_address,
        user_agent=user_agent,
    )
