"""
Module: ledger_kernel.models.fiscal_period
Responsibility: ORM persistence for fiscal periods and their lifecycle
    status, which decides whether entries may be created or posted.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - One period per (company, fiscal_year, period_number)
      (uq_period_company_year_number).
    - Only OPEN periods accept entry creation and posting
      (domain/period_gate.py).
    - LOCKED is terminal (PERIOD_TRANSITIONS).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.values import FiscalPeriodRef, FiscalPeriodStatus


class FiscalPeriod(TrackedBase):
    """A numbered period within a company's fiscal year."""

    __tablename__ = "fiscal_periods"

    __table_args__ = (
        UniqueConstraint(
            "company_id", "fiscal_year", "period_number",
            name="uq_period_company_year_number",
        ),
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("companies.id"),
        nullable=False,
    )

    fiscal_year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # 1..12, 13 for an adjustment period
    period_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    start_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    end_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    status: Mapped[FiscalPeriodStatus] = mapped_column(
        String(20),
        default=FiscalPeriodStatus.FUTURE,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<FiscalPeriod FY{self.fiscal_year}-P{self.period_number}: {self.status}>"

    @property
    def ref(self) -> FiscalPeriodRef:
        return FiscalPeriodRef(self.fiscal_year, self.period_number)

    @property
    def is_open(self) -> bool:
        return FiscalPeriodStatus(self.status) == FiscalPeriodStatus.OPEN
