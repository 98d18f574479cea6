"""
Value objects and enumerations shared by the ledger domain.

Responsibility:
    Canonical status, type and role vocabularies for journal entries,
    fiscal periods, accounts, memberships and policies, plus the small
    immutable values (FiscalPeriodRef, Actor) passed between layers.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.  Models import the
    enums from here so that the stored strings and the domain vocabulary
    are one definition.

Invariants enforced:
    - FiscalPeriodRef.period_number is within 1..13 (12 months plus an
      optional adjustment period).
    - Enum values are the exact strings persisted and matched by policy
      conditions (e.g. ``periodStatus: [Locked]``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from ledger_kernel.exceptions import InvalidFiscalPeriodError


class JournalEntryStatus(str, Enum):
    """Journal entry lifecycle states."""

    DRAFT = "Draft"
    PENDING_APPROVAL = "PendingApproval"
    APPROVED = "Approved"
    POSTED = "Posted"
    REVERSED = "Reversed"


class JournalEntryType(str, Enum):
    """Kinds of journal entries."""

    STANDARD = "Standard"
    ADJUSTING = "Adjusting"
    CLOSING = "Closing"
    OPENING = "Opening"
    REVERSING = "Reversing"


class FiscalPeriodStatus(str, Enum):
    """Fiscal period lifecycle states. Only OPEN accepts postings."""

    FUTURE = "Future"
    OPEN = "Open"
    SOFT_CLOSE = "SoftClose"
    CLOSED = "Closed"
    LOCKED = "Locked"


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    EXPENSE = "Expense"


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "Debit"
    CREDIT = "Credit"


class MembershipRole(str, Enum):
    """Base role of a user within an organization."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class MembershipStatus(str, Enum):
    """Membership state. Only ACTIVE memberships authorize anything."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    REMOVED = "removed"


class FunctionalRole(str, Enum):
    """Functional roles layered on top of the base role."""

    CONTROLLER = "controller"
    FINANCE_MANAGER = "finance_manager"
    ACCOUNTANT = "accountant"
    PERIOD_ADMIN = "period_admin"
    CONSOLIDATION_MANAGER = "consolidation_manager"


class PolicyEffect(str, Enum):
    """Outcome a matching policy produces."""

    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True, order=True)
class FiscalPeriodRef:
    """Year + period-number address of a fiscal period."""

    fiscal_year: int
    period_number: int

    def __post_init__(self) -> None:
        if not 1 <= self.period_number <= 13:
            raise InvalidFiscalPeriodError(self.fiscal_year, self.period_number)

    def __str__(self) -> str:
        return f"FY{self.fiscal_year}-P{self.period_number:02d}"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a service operation.

    Passed explicitly to every mutating operation; there is no ambient
    "current user".
    """

    user_id: UUID
    is_platform_admin: bool = False
