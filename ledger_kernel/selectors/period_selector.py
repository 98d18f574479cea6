"""
Module: ledger_kernel.selectors.period_selector
Responsibility: Read-only fiscal period lookups by (company, year, number).
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import FiscalPeriodInfo
from ledger_kernel.domain.values import FiscalPeriodRef, FiscalPeriodStatus
from ledger_kernel.models.fiscal_period import FiscalPeriod
from ledger_kernel.selectors.base import BaseSelector


def period_to_info(period: FiscalPeriod) -> FiscalPeriodInfo:
    return FiscalPeriodInfo(
        id=period.id,
        company_id=period.company_id,
        fiscal_year=period.fiscal_year,
        period_number=period.period_number,
        start_date=period.start_date,
        end_date=period.end_date,
        status=FiscalPeriodStatus(period.status),
    )


class PeriodSelector(BaseSelector[FiscalPeriod]):
    """Fiscal period lookups."""

    def __init__(self, session: Session):
        super().__init__(session)

    def _query(self, company_id: UUID, fiscal_period: FiscalPeriodRef):
        return select(FiscalPeriod).where(
            FiscalPeriod.company_id == company_id,
            FiscalPeriod.fiscal_year == fiscal_period.fiscal_year,
            FiscalPeriod.period_number == fiscal_period.period_number,
        )

    def find(self, company_id: UUID, fiscal_period: FiscalPeriodRef) -> FiscalPeriodInfo | None:
        period = self.session.execute(self._query(company_id, fiscal_period)).scalar_one_or_none()
        return period_to_info(period) if period is not None else None

    def get_period_status(
        self, company_id: UUID, fiscal_period: FiscalPeriodRef
    ) -> FiscalPeriodStatus | None:
        """Status of the period, or None if it does not exist."""
        period = self.find(company_id, fiscal_period)
        return period.status if period is not None else None

    def find_by_year(self, company_id: UUID, fiscal_year: int) -> list[FiscalPeriodInfo]:
        periods = self.session.execute(
            select(FiscalPeriod)
            .where(
                FiscalPeriod.company_id == company_id,
                FiscalPeriod.fiscal_year == fiscal_year,
            )
            .order_by(FiscalPeriod.period_number)
        ).scalars().all()
        return [period_to_info(period) for period in periods]
