"""
Fiscal period service tests.
"""

from datetime import date

import pytest

from ledger_kernel.domain.values import (
    FiscalPeriodRef,
    FiscalPeriodStatus,
    FunctionalRole,
    MembershipRole,
)
from ledger_kernel.exceptions import (
    CompanyNotFoundError,
    InvalidPeriodTransitionError,
    PeriodAlreadyExistsError,
    PeriodNotFoundError,
    PermissionDeniedError,
)
from ledger_kernel.selectors.audit_selector import AuditSelector

JANUARY_2024 = FiscalPeriodRef(2024, 1)


@pytest.fixture
def move(ledger, period_service, owner):
    """Transition ``ledger``'s January period as its owner."""

    def _move(target: FiscalPeriodStatus, ref: FiscalPeriodRef = JANUARY_2024):
        return period_service.transition_period(
            ledger.company.id, ledger.organization_id, ref, target, owner
        )

    return _move


class TestCreatePeriods:

    def test_duplicate_period(self, ledger, period_service, owner):
        with pytest.raises(PeriodAlreadyExistsError):
            period_service.create_period(
                ledger.company.id, ledger.organization_id, JANUARY_2024,
                date(2024, 1, 1), date(2024, 1, 31), owner,
            )

    def test_end_before_start(self, ledger, period_service, owner):
        with pytest.raises(ValueError):
            period_service.create_period(
                ledger.company.id, ledger.organization_id, FiscalPeriodRef(2024, 2),
                date(2024, 2, 29), date(2024, 2, 1), owner,
            )

    def test_new_period_defaults_to_future(self, ledger, period_service, owner):
        period = period_service.create_period(
            ledger.company.id, ledger.organization_id, FiscalPeriodRef(2024, 2),
            date(2024, 2, 1), date(2024, 2, 29), owner,
        )
        assert period.status == FiscalPeriodStatus.FUTURE

    def test_adjustment_period_thirteen(self, ledger, period_service, owner):
        period = period_service.create_period(
            ledger.company.id, ledger.organization_id, FiscalPeriodRef(2024, 13),
            date(2024, 12, 31), date(2024, 12, 31), owner,
        )
        assert period.period_number == 13

    def test_fiscal_year_follows_company_year_end(self, ledger, organization_service, period_service, owner):
        company = organization_service.create_company(
            ledger.organization_id, "Acme AU", "AUD", owner,
            fiscal_year_end_month=6, fiscal_year_end_day=30,
        )
        periods = period_service.create_fiscal_year(company.id, ledger.organization_id, 2025, owner)

        assert len(periods) == 12
        assert (periods[0].start_date, periods[0].end_date) == (date(2024, 7, 1), date(2024, 7, 31))
        assert periods[-1].end_date == date(2025, 6, 30)
        assert [p.period_number for p in periods] == list(range(1, 13))
        assert all(p.status == FiscalPeriodStatus.FUTURE for p in periods)


class TestTransitions:

    def test_close_and_lock(self, session, ledger, period_service, move):
        move(FiscalPeriodStatus.SOFT_CLOSE)
        move(FiscalPeriodStatus.CLOSED)
        locked = move(FiscalPeriodStatus.LOCKED)

        assert locked.status == FiscalPeriodStatus.LOCKED
        assert period_service.get_period_status(ledger.company.id, JANUARY_2024) == FiscalPeriodStatus.LOCKED

        records = AuditSelector(session).find_for_entity("fiscal_period", ledger.period.id)
        transitions = {
            (r.changes["status"]["from"], r.changes["status"]["to"])
            for r in records
            if r.action == "status_change"
        }
        assert transitions == {("Open", "SoftClose"), ("SoftClose", "Closed"), ("Closed", "Locked")}

    def test_locked_cannot_reopen(self, move):
        move(FiscalPeriodStatus.CLOSED)
        move(FiscalPeriodStatus.LOCKED)

        with pytest.raises(InvalidPeriodTransitionError) as exc_info:
            move(FiscalPeriodStatus.OPEN)
        assert exc_info.value.from_status == "Locked"
        assert exc_info.value.to_status == "Open"

    def test_missing_period(self, move):
        with pytest.raises(PeriodNotFoundError):
            move(FiscalPeriodStatus.OPEN, FiscalPeriodRef(2030, 1))

    def test_unknown_period_status_is_none(self, ledger, period_service):
        assert period_service.get_period_status(ledger.company.id, FiscalPeriodRef(2030, 1)) is None


class TestPeriodAuthorization:

    def test_rbac_member_cannot_manage_periods(self, rbac_ledger, period_service, add_member):
        member = add_member(rbac_ledger.organization_id, MembershipRole.MEMBER)
        with pytest.raises(PermissionDeniedError):
            period_service.transition_period(
                rbac_ledger.company.id, rbac_ledger.organization_id, JANUARY_2024,
                FiscalPeriodStatus.CLOSED, member,
            )

    def test_rbac_period_admin_can_manage_periods(self, rbac_ledger, period_service, add_member):
        period_admin = add_member(
            rbac_ledger.organization_id, MembershipRole.MEMBER, (FunctionalRole.PERIOD_ADMIN,)
        )
        closed = period_service.transition_period(
            rbac_ledger.company.id, rbac_ledger.organization_id, JANUARY_2024,
            FiscalPeriodStatus.CLOSED, period_admin,
        )
        assert closed.status == FiscalPeriodStatus.CLOSED


class TestOrganizationScope:

    def test_company_of_other_organization_not_found(self, ledger, make_ledger, period_service, add_member):
        other = make_ledger()
        admin = add_member(other.organization_id, MembershipRole.ADMIN)

        with pytest.raises(CompanyNotFoundError):
            period_service.transition_period(
                ledger.company.id, other.organization_id, JANUARY_2024, FiscalPeriodStatus.CLOSED, admin
            )
        with pytest.raises(CompanyNotFoundError):
            period_service.create_fiscal_year(ledger.company.id, other.organization_id, 2025, admin)

        assert period_service.get_period_status(ledger.company.id, JANUARY_2024) == FiscalPeriodStatus.OPEN
