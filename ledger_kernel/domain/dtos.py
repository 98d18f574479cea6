"""
Data Transfer Objects for the ledger kernel.

Responsibility:
    Immutable request and response shapes exchanged between services,
    selectors and the pure domain rules.  Services never hand ORM entities
    to their callers; they return these DTOs.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.

Invariants enforced:
    - All DTOs are frozen dataclasses.
    - Monetary fields are Decimal, never float.
    - LineSpec amounts are non-negative (InvalidAmountError otherwise).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from ledger_kernel.domain.values import (
    AccountType,
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
from ledger_kernel.exceptions import InvalidAmountError

_ZERO = Decimal("0")


def _coerce_amount(field_name: str, value: Any) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, float):
        raise InvalidAmountError(field_name, repr(value))
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise InvalidAmountError(field_name, str(value)) from None
    if not amount.is_finite() or amount < _ZERO:
        raise InvalidAmountError(field_name, str(value))
    return amount


# =========================================================================
# Journal entries
# =========================================================================


@dataclass(frozen=True)
class LineSpec:
    """One requested journal line, in natural (transaction) currency.

    ``line_number`` may be left as None, in which case lines are numbered
    1..N in submission order.
    """

    account_id: UUID
    currency: str
    debit_amount: Decimal | None = None
    credit_amount: Decimal | None = None
    exchange_rate: Decimal = Decimal("1")
    memo: str | None = None
    dimensions: dict[str, str] | None = None
    intercompany_partner_id: UUID | None = None
    line_number: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "debit_amount", _coerce_amount("debit_amount", self.debit_amount))
        object.__setattr__(self, "credit_amount", _coerce_amount("credit_amount", self.credit_amount))
        rate = _coerce_amount("exchange_rate", self.exchange_rate)
        if rate is None or rate == _ZERO:
            raise InvalidAmountError("exchange_rate", str(self.exchange_rate))
        object.__setattr__(self, "exchange_rate", rate)

    @classmethod
    def debit(cls, account_id: UUID, amount: Decimal | str, currency: str, **kwargs: Any) -> LineSpec:
        return cls(account_id=account_id, currency=currency, debit_amount=Decimal(str(amount)), **kwargs)

    @classmethod
    def credit(cls, account_id: UUID, amount: Decimal | str, currency: str, **kwargs: Any) -> LineSpec:
        return cls(account_id=account_id, currency=currency, credit_amount=Decimal(str(amount)), **kwargs)


@dataclass(frozen=True)
class LineDraft:
    """A numbered line with functional amounts computed, ready to persist."""

    line_number: int
    account_id: UUID
    currency: str
    debit_amount: Decimal | None
    credit_amount: Decimal | None
    functional_debit_amount: Decimal | None
    functional_credit_amount: Decimal | None
    exchange_rate: Decimal
    memo: str | None = None
    dimensions: dict[str, str] | None = None
    intercompany_partner_id: UUID | None = None


@dataclass(frozen=True)
class JournalLineInfo:
    """Persisted journal line."""

    id: UUID
    journal_entry_id: UUID
    line_number: int
    account_id: UUID
    currency: str
    debit_amount: Decimal | None
    credit_amount: Decimal | None
    functional_debit_amount: Decimal | None
    functional_credit_amount: Decimal | None
    exchange_rate: Decimal
    memo: str | None = None
    dimensions: dict[str, str] | None = None
    intercompany_partner_id: UUID | None = None
    matching_line_id: UUID | None = None


@dataclass(frozen=True)
class JournalEntryInfo:
    """Persisted journal entry with its lines ordered by line number."""

    id: UUID
    organization_id: UUID
    company_id: UUID
    entry_number: str
    description: str
    transaction_date: date
    fiscal_period: FiscalPeriodRef
    entry_type: JournalEntryType
    status: JournalEntryStatus
    is_multi_currency: bool
    is_reversing: bool
    created_by: UUID
    reference_number: str | None = None
    document_date: date | None = None
    posting_date: date | None = None
    source_module: str | None = None
    source_document_ref: str | None = None
    reversed_entry_id: UUID | None = None
    reversing_entry_id: UUID | None = None
    rejection_reason: str | None = None
    created_at: datetime | None = None
    posted_by: UUID | None = None
    posted_at: datetime | None = None
    lines: tuple[JournalLineInfo, ...] = ()

    @property
    def total_functional_debits(self) -> Decimal:
        return sum((line.functional_debit_amount or _ZERO for line in self.lines), _ZERO)

    @property
    def total_functional_credits(self) -> Decimal:
        return sum((line.functional_credit_amount or _ZERO for line in self.lines), _ZERO)

    @property
    def is_balanced(self) -> bool:
        return self.total_functional_debits == self.total_functional_credits


@dataclass(frozen=True)
class ReversalResult:
    """Outcome of reversing a posted entry."""

    original_entry: JournalEntryInfo
    reversal_entry: JournalEntryInfo


# =========================================================================
# Chart of accounts, periods, tenancy
# =========================================================================


@dataclass(frozen=True)
class AccountInfo:
    """Chart-of-accounts node."""

    id: UUID
    company_id: UUID
    account_number: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    hierarchy_level: int
    is_postable: bool
    is_active: bool
    account_category: str | None = None
    description: str | None = None
    parent_account_id: UUID | None = None
    is_intercompany: bool = False
    currency_restriction: str | None = None
    deactivated_at: datetime | None = None


@dataclass(frozen=True)
class FiscalPeriodInfo:
    """Fiscal period with its lifecycle status."""

    id: UUID
    company_id: UUID
    fiscal_year: int
    period_number: int
    start_date: date
    end_date: date
    status: FiscalPeriodStatus

    @property
    def ref(self) -> FiscalPeriodRef:
        return FiscalPeriodRef(self.fiscal_year, self.period_number)


@dataclass(frozen=True)
class OrganizationInfo:
    id: UUID
    name: str


@dataclass(frozen=True)
class CompanyInfo:
    id: UUID
    organization_id: UUID
    name: str
    functional_currency: str
    fiscal_year_end_month: int
    fiscal_year_end_day: int
    is_active: bool


@dataclass(frozen=True)
class MembershipInfo:
    """A user's role and functional roles within one organization."""

    id: UUID
    organization_id: UUID
    user_id: UUID
    role: MembershipRole
    status: MembershipStatus
    functional_roles: frozenset[FunctionalRole] = field(default_factory=frozenset)

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE

    def has_functional_role(self, role: FunctionalRole) -> bool:
        return role in self.functional_roles


# =========================================================================
# Policies and audit
# =========================================================================


@dataclass(frozen=True)
class PolicyInfo:
    """Stored authorization policy with parsed conditions.

    Conditions are typed in ``ledger_kernel.domain.authorization.conditions``;
    they are declared as ``Any`` here to keep this module free of the
    authorization package.
    """

    id: UUID
    organization_id: UUID
    name: str
    subject: Any
    resource: Any
    action: Any
    effect: PolicyEffect
    priority: int
    is_system_policy: bool
    is_active: bool
    description: str | None = None
    environment: Any = None
    created_by: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class AuditLogInfo:
    id: UUID
    organization_id: UUID
    entity_type: str
    entity_id: UUID
    action: str
    actor_id: UUID
    occurred_at: datetime
    entity_name: str | None = None
    changes: dict[str, Any] | None = None
