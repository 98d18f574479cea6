"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import Account
from ledger_kernel.models.audit import AuditLogEntry, AuthorizationDenial
from ledger_kernel.models.fiscal_period import FiscalPeriod
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.models.membership import OrganizationMembership
from ledger_kernel.models.organization import Company, Organization
from ledger_kernel.models.policy import AuthorizationPolicy
from ledger_kernel.models.sequence import SequenceCounter

__all__ = [
    "Account",
    "AuditLogEntry",
    "AuthorizationDenial",
    "AuthorizationPolicy",
    "Company",
    "FiscalPeriod",
    "JournalEntry",
    "JournalEntryLine",
    "Organization",
    "OrganizationMembership",
    "SequenceCounter",
]
