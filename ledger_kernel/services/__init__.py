"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.audit_service import AuditAction, AuditService
from ledger_kernel.services.authorization_service import (
    AuthorizationResult,
    AuthorizationService,
)
from ledger_kernel.services.base import UNSET, BaseService
from ledger_kernel.services.journal_entry_service import JournalEntryService
from ledger_kernel.services.organization_service import OrganizationService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.policy_service import PolicyService, PolicyTestResult
from ledger_kernel.services.sequence_service import EntryNumberFormat, SequenceService

__all__ = [
    "UNSET",
    "AccountService",
    "AuditAction",
    "AuditService",
    "AuthorizationResult",
    "AuthorizationService",
    "BaseService",
    "EntryNumberFormat",
    "JournalEntryService",
    "OrganizationService",
    "PeriodService",
    "PolicyService",
    "PolicyTestResult",
    "SequenceService",
]
