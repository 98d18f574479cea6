"""
Fiscal calendar -- derive the fiscal period a date falls into.

Responsibility:
    Maps a transaction date onto (fiscal year, period number) for a company
    whose fiscal year ends on a given month/day.  Used when a journal entry
    is created without an explicit fiscal period.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - A fiscal year is named after the calendar year in which it ends
      (a June 30 year end makes July 1 2023 .. June 30 2024 FY2024).
    - Twelve monthly periods, numbered from 1 at the fiscal year start.
    - Year-end days beyond a month's length clamp to the last day
      (Feb 29/30/31 -> Feb 28 in non-leap years).
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta

from ledger_kernel.domain.values import FiscalPeriodRef


@dataclass(frozen=True)
class ComputedFiscalPeriod:
    """A fiscal period derived from a date and a fiscal year end."""

    fiscal_year: int
    period_number: int
    period_start: date
    period_end: date
    fiscal_year_start: date
    fiscal_year_end: date

    @property
    def ref(self) -> FiscalPeriodRef:
        return FiscalPeriodRef(self.fiscal_year, self.period_number)

    @property
    def period_name(self) -> str:
        return f"P{self.period_number}"


def _clamped_date(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def _add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    return _clamped_date(year, month, start.day)


def fiscal_year_bounds(
    fiscal_year: int, year_end_month: int = 12, year_end_day: int = 31
) -> tuple[date, date]:
    """Return (first day, last day) of a fiscal year."""
    end = _clamped_date(fiscal_year, year_end_month, year_end_day)
    previous_end = _clamped_date(fiscal_year - 1, year_end_month, year_end_day)
    return previous_end + timedelta(days=1), end


def compute_fiscal_period(
    on: date, year_end_month: int = 12, year_end_day: int = 31
) -> ComputedFiscalPeriod:
    """Compute the fiscal period containing ``on``.

    Preconditions: year_end_month is 1..12 and year_end_day is 1..31.
    Postconditions: period_start <= on <= period_end and 1 <= period_number <= 12.
    """
    if on <= _clamped_date(on.year, year_end_month, year_end_day):
        fiscal_year = on.year
    else:
        fiscal_year = on.year + 1

    fy_start, fy_end = fiscal_year_bounds(fiscal_year, year_end_month, year_end_day)

    months = (on.year - fy_start.year) * 12 + (on.month - fy_start.month)
    if on < _add_months(fy_start, months):
        months -= 1
    period_number = min(months + 1, 12)

    period_start = _add_months(fy_start, period_number - 1)
    if period_number == 12:
        period_end = fy_end
    else:
        period_end = _add_months(fy_start, period_number) - timedelta(days=1)

    return ComputedFiscalPeriod(
        fiscal_year=fiscal_year,
        period_number=period_number,
        period_start=period_start,
        period_end=period_end,
        fiscal_year_start=fy_start,
        fiscal_year_end=fy_end,
    )
