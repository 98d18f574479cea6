"""
Fiscal period gate -- status checks before entry creation and posting.

Responsibility:
    Decides whether a fiscal period accepts a new entry or a posting, and
    owns the fiscal period status transition table.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.  The caller supplies the
    period status it looked up (None when the period does not exist).

Invariants enforced:
    - Only OPEN accepts entry creation and posting.
    - LOCKED is terminal; CLOSED can be reopened or locked.

Failure modes:
    - PeriodNotFoundError when the period does not exist.
    - PeriodNotOpenError on creation, ClosedPeriodError on posting.
    - InvalidPeriodTransitionError for a move outside PERIOD_TRANSITIONS.
"""

from __future__ import annotations

from uuid import UUID

from ledger_kernel.domain.values import FiscalPeriodRef, FiscalPeriodStatus
from ledger_kernel.exceptions import (
    ClosedPeriodError,
    InvalidPeriodTransitionError,
    PeriodNotFoundError,
    PeriodNotOpenError,
)

PERIOD_TRANSITIONS: dict[FiscalPeriodStatus, frozenset[FiscalPeriodStatus]] = {
    FiscalPeriodStatus.FUTURE: frozenset({FiscalPeriodStatus.OPEN}),
    FiscalPeriodStatus.OPEN: frozenset({
        FiscalPeriodStatus.SOFT_CLOSE,
        FiscalPeriodStatus.CLOSED,
    }),
    FiscalPeriodStatus.SOFT_CLOSE: frozenset({
        FiscalPeriodStatus.OPEN,
        FiscalPeriodStatus.CLOSED,
    }),
    FiscalPeriodStatus.CLOSED: frozenset({
        FiscalPeriodStatus.OPEN,
        FiscalPeriodStatus.LOCKED,
    }),
    FiscalPeriodStatus.LOCKED: frozenset(),
}


def _existing_status(
    company_id: UUID, fiscal_period: FiscalPeriodRef, status: FiscalPeriodStatus | str | None
) -> FiscalPeriodStatus:
    if status is None:
        raise PeriodNotFoundError(str(company_id), str(fiscal_period))
    return FiscalPeriodStatus(status)


def require_open_period(
    company_id: UUID,
    fiscal_period: FiscalPeriodRef,
    status: FiscalPeriodStatus | str | None,
) -> None:
    """Gate for creating or re-dating an entry."""
    current = _existing_status(company_id, fiscal_period, status)
    if current != FiscalPeriodStatus.OPEN:
        raise PeriodNotOpenError(str(company_id), str(fiscal_period), current.value)


def require_open_for_posting(
    company_id: UUID,
    fiscal_period: FiscalPeriodRef,
    status: FiscalPeriodStatus | str | None,
) -> None:
    """Gate re-checked at post time; the period may have closed since approval."""
    current = _existing_status(company_id, fiscal_period, status)
    if current != FiscalPeriodStatus.OPEN:
        raise ClosedPeriodError(str(company_id), str(fiscal_period), current.value)


def validate_period_transition(
    fiscal_period: FiscalPeriodRef,
    current: FiscalPeriodStatus | str,
    target: FiscalPeriodStatus | str,
) -> FiscalPeriodStatus:
    current_status = FiscalPeriodStatus(current)
    target_status = FiscalPeriodStatus(target)
    if target_status not in PERIOD_TRANSITIONS[current_status]:
        raise InvalidPeriodTransitionError(
            str(fiscal_period), current_status.value, target_status.value
        )
    return target_status
