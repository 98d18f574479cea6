"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines.
Architecture position: Kernel > Models.  May import from db/base.py, db/types.py
    and domain/values.py only.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - entry_number is unique within a company (uq_entry_company_number) and
      never reassigned.
    - line_number is unique within an entry (uq_line_entry_number).
    - Lines are deleted with their entry (cascade delete-orphan); only Draft
      entries are ever deleted (JournalEntryService).
    - reversed_entry_id / reversing_entry_id link an original and its
      reversal in both directions.

Failure modes:
    - IntegrityError on a duplicate entry or line number that slipped past
      the service checks.

Audit relevance:
    Entries and lines are the financial record.  Posted entries are never
    edited; corrections are made by reversal.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.values import (
    FiscalPeriodRef,
    JournalEntryStatus,
    JournalEntryType,
)


class JournalEntry(TrackedBase):
    """
    Journal entry header.

    ``created_by_id`` (TrackedBase) is the entry's creator; ``posted_by_id``
    and ``posted_at`` are set on posting, or at creation for reversals.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("company_id", "entry_number", name="uq_entry_company_number"),
        Index("idx_entry_company_status", "company_id", "status"),
        Index("idx_entry_company_period", "company_id", "fiscal_year", "fiscal_period"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("organizations.id"),
        nullable=False,
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("companies.id"),
        nullable=False,
    )

    entry_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    reference_number: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    description: Mapped[str] = mapped_column(
        String(1000),
        nullable=False,
    )

    transaction_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    document_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    fiscal_year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    fiscal_period: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    entry_type: Mapped[JournalEntryType] = mapped_column(
        String(20),
        default=JournalEntryType.STANDARD,
        nullable=False,
    )

    source_module: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    source_document_ref: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
    )

    is_multi_currency: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    status: Mapped[JournalEntryStatus] = mapped_column(
        String(20),
        default=JournalEntryStatus.DRAFT,
        nullable=False,
    )

    is_reversing: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # On a reversal: the entry it reverses
    reversed_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    # On a reversed original: its reversal
    reversing_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    rejection_reason: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
    )

    posting_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    posted_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.line_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number} status={self.status}>"

    @property
    def period_ref(self) -> FiscalPeriodRef:
        return FiscalPeriodRef(self.fiscal_year, self.fiscal_period)


class JournalEntryLine(TrackedBase):
    """
    One debit or credit line, in natural and functional currency.

    Natural amounts are in ``currency``; functional amounts are natural
    amounts times ``exchange_rate``.
    """

    __tablename__ = "journal_entry_lines"

    __table_args__ = (
        UniqueConstraint("journal_entry_id", "line_number", name="uq_line_entry_number"),
        Index("idx_line_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    debit_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9),
        nullable=True,
    )

    credit_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9),
        nullable=True,
    )

    exchange_rate: Mapped[Decimal] = mapped_column(
        Numeric(38, 18),
        default=Decimal("1"),
        nullable=False,
    )

    functional_debit_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9),
        nullable=True,
    )

    functional_credit_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9),
        nullable=True,
    )

    memo: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    # Dimensions (stored as JSON string map)
    dimensions: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
    )

    intercompany_partner_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    matching_line_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    entry: Mapped["JournalEntry"] = relationship(
        back_populates="lines",
    )

    def __repr__(self) -> str:
        side = "Dr" if self.debit_amount else "Cr"
        amount = self.debit_amount or self.credit_amount
        return f"<JournalEntryLine {self.line_number} {side} {amount} {self.currency}>"
