"""Read-only selectors returning DTOs."""

from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.audit_selector import AuditSelector
from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.company_selector import CompanySelector
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.membership_selector import MembershipSelector
from ledger_kernel.selectors.period_selector import PeriodSelector
from ledger_kernel.selectors.policy_selector import PolicySelector

__all__ = [
    "BaseSelector",
    "AccountSelector",
    "AuditSelector",
    "CompanySelector",
    "JournalSelector",
    "MembershipSelector",
    "PeriodSelector",
    "PolicySelector",
]
