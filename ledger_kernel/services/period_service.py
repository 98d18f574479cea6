"""
PeriodService -- fiscal period creation and lifecycle.

Responsibility:
    Creates fiscal periods (one at a time or a whole fiscal year), moves
    them through Future -> Open -> SoftClose/Closed -> Locked, and answers
    the period-status lookup the journal entry lifecycle depends on.

Architecture position:
    Kernel > Services -- imperative shell.  The transition table and the
    open-period gate are pure (domain/period_gate.py); JournalEntryService
    reads statuses through PeriodSelector.

Invariants enforced:
    - One period per (company, fiscal year, period number).
    - New periods start as Future unless told otherwise.
    - Status changes follow PERIOD_TRANSITIONS; Locked is terminal.
    - A company of another organization is reported as not found.

Failure modes:
    - CompanyNotFoundError, PeriodAlreadyExistsError, PeriodNotFoundError,
      InvalidPeriodTransitionError, PermissionDeniedError.

Audit relevance:
    Period creation and every status change are written to the audit log
    and logged at INFO.
"""

from __future__ import annotations

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.authorization.context import ResourceContext
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import CompanyInfo, FiscalPeriodInfo
from ledger_kernel.domain.fiscal_calendar import compute_fiscal_period, fiscal_year_bounds
from ledger_kernel.domain.period_gate import validate_period_transition
from ledger_kernel.domain.values import Actor, FiscalPeriodRef, FiscalPeriodStatus
from ledger_kernel.exceptions import (
    CompanyNotFoundError,
    PeriodAlreadyExistsError,
    PeriodNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.fiscal_period import FiscalPeriod
from ledger_kernel.selectors.company_selector import CompanySelector
from ledger_kernel.selectors.period_selector import PeriodSelector, period_to_info
from ledger_kernel.services.audit_service import AuditService
from ledger_kernel.services.authorization_service import AuthorizationService
from ledger_kernel.services.base import BaseService

logger = get_logger("services.period")

ENTITY_TYPE = "fiscal_period"
ADJUSTMENT_PERIOD_NUMBER = 13


def _period_resource(ref: FiscalPeriodRef, status: FiscalPeriodStatus | None, period_id=None) -> ResourceContext:
    return ResourceContext(
        type="fiscal_period",
        id=period_id,
        period_status=status,
        is_adjustment_period=ref.period_number == ADJUSTMENT_PERIOD_NUMBER,
    )


class PeriodService(BaseService[FiscalPeriod]):
    """Fiscal period commands."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        authorization: AuthorizationService | None = None,
    ):
        super().__init__(session, clock)
        self._authorization = authorization or AuthorizationService(session, clock)
        self._companies = CompanySelector(session)
        self._periods = PeriodSelector(session)
        self._audit = AuditService(session, clock)

    def _require_company(self, company_id: UUID, organization_id: UUID) -> CompanyInfo:
        company = self._companies.find_by_id(company_id, organization_id)
        if company is None:
            raise CompanyNotFoundError(str(company_id))
        return company

    def _insert(
        self,
        company: CompanyInfo,
        ref: FiscalPeriodRef,
        start_date: date,
        end_date: date,
        status: FiscalPeriodStatus,
        actor: Actor,
    ) -> FiscalPeriod:
        if self._periods.find(company.id, ref) is not None:
            raise PeriodAlreadyExistsError(str(company.id), str(ref))
        if end_date < start_date:
            raise ValueError(f"Period {ref} ends ({end_date}) before it starts ({start_date})")

        period = FiscalPeriod(
            company_id=company.id,
            fiscal_year=ref.fiscal_year,
            period_number=ref.period_number,
            start_date=start_date,
            end_date=end_date,
            status=FiscalPeriodStatus(status).value,
            created_by_id=actor.user_id,
        )
        self.session.add(period)
        self.session.flush()
        self._audit.record_create(
            company.organization_id, ENTITY_TYPE, period.id, actor.user_id,
            entity_name=str(ref),
            changes={"status": period.status, "start_date": start_date, "end_date": end_date},
        )
        return period

    def create_period(
        self,
        company_id: UUID,
        organization_id: UUID,
        fiscal_period: FiscalPeriodRef,
        start_date: date,
        end_date: date,
        actor: Actor,
        status: FiscalPeriodStatus = FiscalPeriodStatus.FUTURE,
    ) -> FiscalPeriodInfo:
        """
        Create one fiscal period.

        Raises:
            PeriodAlreadyExistsError: the company already has this period.
        """
        company = self._require_company(company_id, organization_id)
        self._authorization.require_permission(
            company.organization_id, actor, "fiscal_period:manage",
            _period_resource(fiscal_period, None),
        )
        period = self._insert(company, fiscal_period, start_date, end_date, status, actor)
        logger.info(
            "period_created",
            extra={"fiscal_period": str(fiscal_period), "status": period.status},
        )
        return period_to_info(period)

    def create_fiscal_year(
        self,
        company_id: UUID,
        organization_id: UUID,
        fiscal_year: int,
        actor: Actor,
        status: FiscalPeriodStatus = FiscalPeriodStatus.FUTURE,
    ) -> list[FiscalPeriodInfo]:
        """Create the twelve monthly periods of a fiscal year, following the
        company's fiscal year end."""
        company = self._require_company(company_id, organization_id)
        self._authorization.require_permission(
            company.organization_id, actor, "fiscal_period:manage",
            ResourceContext(type="fiscal_period"),
        )

        year_start, _ = fiscal_year_bounds(
            fiscal_year, company.fiscal_year_end_month, company.fiscal_year_end_day
        )
        periods = []
        cursor = year_start
        for _ in range(12):
            computed = compute_fiscal_period(
                cursor, company.fiscal_year_end_month, company.fiscal_year_end_day
            )
            periods.append(
                self._insert(company, computed.ref, computed.period_start, computed.period_end, status, actor)
            )
            cursor = computed.period_end + timedelta(days=1)

        logger.info(
            "fiscal_year_created",
            extra={"fiscal_year": fiscal_year, "period_count": len(periods)},
        )
        return [period_to_info(period) for period in periods]

    def transition_period(
        self,
        company_id: UUID,
        organization_id: UUID,
        fiscal_period: FiscalPeriodRef,
        target_status: FiscalPeriodStatus,
        actor: Actor,
    ) -> FiscalPeriodInfo:
        """
        Move a period to ``target_status``.

        Raises:
            PeriodNotFoundError: no such period.
            InvalidPeriodTransitionError: move not in PERIOD_TRANSITIONS.
        """
        company = self._require_company(company_id, organization_id)
        period = self.session.execute(
            select(FiscalPeriod)
            .where(
                FiscalPeriod.company_id == company_id,
                FiscalPeriod.fiscal_year == fiscal_period.fiscal_year,
                FiscalPeriod.period_number == fiscal_period.period_number,
            )
            .with_for_update()
        ).scalar_one_or_none()
        if period is None:
            raise PeriodNotFoundError(str(company_id), str(fiscal_period))

        current = FiscalPeriodStatus(period.status)
        self._authorization.require_permission(
            company.organization_id, actor, "fiscal_period:manage",
            _period_resource(fiscal_period, current, period.id),
        )
        target = validate_period_transition(fiscal_period, current, target_status)

        period.status = target.value
        period.updated_by_id = actor.user_id
        self.session.flush()

        self._audit.record_status_change(
            company.organization_id, ENTITY_TYPE, period.id, actor.user_id,
            from_status=current, to_status=target, entity_name=str(fiscal_period),
        )
        logger.info(
            "period_status_changed",
            extra={
                "fiscal_period": str(fiscal_period),
                "from_status": current.value,
                "to_status": target.value,
            },
        )
        return period_to_info(period)

    def get_period_status(
        self, company_id: UUID, fiscal_period: FiscalPeriodRef
    ) -> FiscalPeriodStatus | None:
        return self._periods.get_period_status(company_id, fiscal_period)
