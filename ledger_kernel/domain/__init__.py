"""
Pure domain layer.

Values, DTOs and the rule sets of the ledger (balance, journal lifecycle,
account hierarchy, fiscal period gate, fiscal calendar, authorization)
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time
- I/O
"""

from ledger_kernel.domain.balance import validate_balance
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    AccountInfo,
    AuditLogInfo,
    CompanyInfo,
    FiscalPeriodInfo,
    JournalEntryInfo,
    JournalLineInfo,
    LineDraft,
    LineSpec,
    MembershipInfo,
    OrganizationInfo,
    PolicyInfo,
    ReversalResult,
)
from ledger_kernel.domain.fiscal_calendar import compute_fiscal_period
from ledger_kernel.domain.values import (
    AccountType,
    Actor,
    FiscalPeriodRef,
    FiscalPeriodStatus,
    FunctionalRole,
    JournalEntryStatus,
    JournalEntryType,
    MembershipRole,
    MembershipStatus,
    NormalBalance,
    PolicyEffect,
)

__all__ = [
    "validate_balance",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "AccountInfo",
    "AuditLogInfo",
    "CompanyInfo",
    "FiscalPeriodInfo",
    "JournalEntryInfo",
    "JournalLineInfo",
    "LineDraft",
    "LineSpec",
    "MembershipInfo",
    "OrganizationInfo",
    "PolicyInfo",
    "ReversalResult",
    "compute_fiscal_period",
    "AccountType",
    "Actor",
    "FiscalPeriodRef",
    "FiscalPeriodStatus",
    "FunctionalRole",
    "JournalEntryStatus",
    "JournalEntryType",
    "MembershipRole",
    "MembershipStatus",
    "NormalBalance",
    "PolicyEffect",
]
