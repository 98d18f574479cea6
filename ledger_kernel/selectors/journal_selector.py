"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read-only access to journal entries and their lines.
    Converts ORM models to frozen DTOs.
Architecture position: Kernel > Selectors.  May import from models/,
    domain DTOs and selectors/base.py.

Invariants enforced:
    - Lines are returned ordered by line_number.
    - Entries are tenant-scoped when an organization id is supplied: an
      entry of another organization is reported as absent.

Failure modes:
    - Returns None or an empty list when nothing matches.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import JournalEntryInfo, JournalLineInfo
from ledger_kernel.domain.values import (
    FiscalPeriodRef,
    JournalEntryStatus,
    JournalEntryType,
)
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.selectors.base import BaseSelector


def line_to_info(line: JournalEntryLine) -> JournalLineInfo:
    return JournalLineInfo(
        id=line.id,
        journal_entry_id=line.journal_entry_id,
        line_number=line.line_number,
        account_id=line.account_id,
        currency=line.currency,
        debit_amount=line.debit_amount,
        credit_amount=line.credit_amount,
        functional_debit_amount=line.functional_debit_amount,
        functional_credit_amount=line.functional_credit_amount,
        exchange_rate=line.exchange_rate,
        memo=line.memo,
        dimensions=dict(line.dimensions) if line.dimensions else None,
        intercompany_partner_id=line.intercompany_partner_id,
        matching_line_id=line.matching_line_id,
    )


def entry_to_info(entry: JournalEntry) -> JournalEntryInfo:
    return JournalEntryInfo(
        id=entry.id,
        organization_id=entry.organization_id,
        company_id=entry.company_id,
        entry_number=entry.entry_number,
        description=entry.description,
        transaction_date=entry.transaction_date,
        fiscal_period=FiscalPeriodRef(entry.fiscal_year, entry.fiscal_period),
        entry_type=JournalEntryType(entry.entry_type),
        status=JournalEntryStatus(entry.status),
        is_multi_currency=entry.is_multi_currency,
        is_reversing=entry.is_reversing,
        created_by=entry.created_by_id,
        reference_number=entry.reference_number,
        document_date=entry.document_date,
        posting_date=entry.posting_date,
        source_module=entry.source_module,
        source_document_ref=entry.source_document_ref,
        reversed_entry_id=entry.reversed_entry_id,
        reversing_entry_id=entry.reversing_entry_id,
        rejection_reason=entry.rejection_reason,
        created_at=entry.created_at,
        posted_by=entry.posted_by_id,
        posted_at=entry.posted_at,
        lines=tuple(
            line_to_info(line) for line in sorted(entry.lines, key=lambda l: l.line_number)
        ),
    )


class JournalSelector(BaseSelector[JournalEntry]):
    """Journal entry queries."""

    def __init__(self, session: Session):
        super().__init__(session)

    def find_by_id(
        self, entry_id: UUID, organization_id: UUID | None = None
    ) -> JournalEntryInfo | None:
        entry = self.session.get(JournalEntry, entry_id)
        if entry is None:
            return None
        if organization_id is not None and entry.organization_id != organization_id:
            return None
        return entry_to_info(entry)

    def find_by_number(self, company_id: UUID, entry_number: str) -> JournalEntryInfo | None:
        entry = self.session.execute(
            select(JournalEntry).where(
                JournalEntry.company_id == company_id,
                JournalEntry.entry_number == entry_number,
            )
        ).scalar_one_or_none()
        return entry_to_info(entry) if entry is not None else None

    def list_entries(
        self,
        organization_id: UUID,
        company_id: UUID | None = None,
        status: JournalEntryStatus | None = None,
        fiscal_period: FiscalPeriodRef | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[JournalEntryInfo]:
        """Entries of an organization, newest transaction date first."""
        query = select(JournalEntry).where(JournalEntry.organization_id == organization_id)
        if company_id is not None:
            query = query.where(JournalEntry.company_id == company_id)
        if status is not None:
            query = query.where(JournalEntry.status == JournalEntryStatus(status).value)
        if fiscal_period is not None:
            query = query.where(
                JournalEntry.fiscal_year == fiscal_period.fiscal_year,
                JournalEntry.fiscal_period == fiscal_period.period_number,
            )
        query = (
            query.order_by(JournalEntry.transaction_date.desc(), JournalEntry.entry_number.desc())
            .limit(limit)
            .offset(offset)
        )
        return [entry_to_info(entry) for entry in self.session.execute(query).scalars().all()]
