"""
Pytest fixtures for the ledger kernel test suite.

Provides:
- An in-memory SQLite database shared by the whole session, with per-test
  isolation through an outer transaction that is rolled back at teardown
- Services wired from the packaged configuration (system policies, RBAC
  matrix, entry numbering)
- Factories for organizations, companies, periods, accounts and entries

Environment Variables:
- DATABASE_URL: run against another database (e.g. PostgreSQL) instead of
  in-memory SQLite.
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import date
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy import event
from sqlalchemy.orm import Session

from ledger_config import get_active_config
from ledger_config.bridges import (
    build_cycle_check_mode,
    build_entry_number_format,
    build_permission_matrix,
    build_system_policy_specs,
)
from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.dtos import (
    AccountInfo,
    CompanyInfo,
    FiscalPeriodInfo,
    LineSpec,
    OrganizationInfo,
)
from ledger_kernel.domain.values import (
    AccountType,
    Actor,
    FiscalPeriodRef,
    FiscalPeriodStatus,
    FunctionalRole,
    MembershipRole,
    NormalBalance,
)
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.services import (
    AccountService,
    AuthorizationService,
    JournalEntryService,
    OrganizationService,
    PeriodService,
    PolicyService,
)

DEFAULT_DATABASE_URL = "sqlite://"

JANUARY_2024 = FiscalPeriodRef(2024, 1)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, journal_service):
            journal_service.create_entry(...)
            logs = captured_logs()
            assert any(r["message"] == "journal_entry_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Session-scoped DB infrastructure (create engine + tables ONCE per suite)
# =============================================================================


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture(scope="session")
def db_engine():
    """Single engine for the entire test session."""
    eng = init_engine_from_url(get_database_url(), echo=False)

    if eng.dialect.name == "sqlite":
        # pysqlite's own transaction handling breaks SAVEPOINT; take it over.
        @event.listens_for(eng, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(eng, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end."""
    drop_tables()
    create_tables()
    yield
    drop_tables()


@pytest.fixture
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection; any
    ``session.commit()`` inside a test only releases a savepoint.  At
    teardown the outer transaction is rolled back, undoing ALL data
    changes made during the test.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)

    yield sess

    sess.close()
    trans.rollback()
    conn.close()


# =============================================================================
# Configuration and services
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture(scope="session")
def ledger_config():
    return get_active_config()


@pytest.fixture
def authorization(session, clock, ledger_config) -> AuthorizationService:
    return AuthorizationService(
        session, clock, permission_matrix=build_permission_matrix(ledger_config)
    )


@pytest.fixture
def organization_service(session, clock, authorization, ledger_config) -> OrganizationService:
    return OrganizationService(
        session,
        clock,
        authorization=authorization,
        system_policies=build_system_policy_specs(ledger_config),
    )


@pytest.fixture
def account_service(session, clock, authorization, ledger_config) -> AccountService:
    return AccountService(
        session,
        clock,
        authorization=authorization,
        cycle_check=build_cycle_check_mode(ledger_config),
    )


@pytest.fixture
def period_service(session, clock, authorization) -> PeriodService:
    return PeriodService(session, clock, authorization=authorization)


@pytest.fixture
def journal_service(session, clock, authorization, ledger_config) -> JournalEntryService:
    return JournalEntryService(
        session,
        clock,
        authorization=authorization,
        entry_number_format=build_entry_number_format(ledger_config),
    )


@pytest.fixture
def policy_service(session, clock) -> PolicyService:
    return PolicyService(session, clock)


# =============================================================================
# Actors and ledger factories
# =============================================================================


@pytest.fixture
def owner() -> Actor:
    return Actor(user_id=uuid4())


@dataclass(frozen=True)
class Ledger:
    """One organization with a USD company, an open January 2024 period,
    a cash account and a revenue account."""

    organization: OrganizationInfo
    company: CompanyInfo
    period: FiscalPeriodInfo
    cash: AccountInfo
    revenue: AccountInfo

    @property
    def organization_id(self):
        return self.organization.id

    def balanced_lines(self, amount: str = "1000.00") -> list[LineSpec]:
        return [
            LineSpec.debit(self.cash.id, amount, "USD"),
            LineSpec.credit(self.revenue.id, amount, "USD"),
        ]


@pytest.fixture
def make_ledger(organization_service, account_service, period_service, owner):
    """Factory for a Ledger owned by ``owner``.

    ``seed_system_policies=False`` leaves the organization without
    policies, so the RBAC matrix decides.
    """

    def _make(
        seed_system_policies: bool = True,
        period_status: FiscalPeriodStatus = FiscalPeriodStatus.OPEN,
    ) -> Ledger:
        organization = organization_service.create_organization(
            "Acme Holdings", owner, seed_system_policies=seed_system_policies
        )
        company = organization_service.create_company(organization.id, "Acme US", "USD", owner)
        period = period_service.create_period(
            company.id, organization.id, JANUARY_2024, date(2024, 1, 1), date(2024, 1, 31), owner,
            status=period_status,
        )
        cash = account_service.create_account(
            company.id, organization.id, "1000", "Cash", AccountType.ASSET, NormalBalance.DEBIT, owner
        )
        revenue = account_service.create_account(
            company.id, organization.id, "4000", "Revenue", AccountType.REVENUE, NormalBalance.CREDIT, owner
        )
        return Ledger(organization, company, period, cash, revenue)

    return _make


@pytest.fixture
def ledger(make_ledger) -> Ledger:
    """Policy-governed ledger (system policies seeded)."""
    return make_ledger()


@pytest.fixture
def rbac_ledger(make_ledger) -> Ledger:
    """Ledger whose organization has no policies (RBAC matrix decides)."""
    return make_ledger(seed_system_policies=False)


@pytest.fixture
def add_member(organization_service, owner):
    """Add a member to an organization and return their Actor."""

    def _add(
        organization_id,
        role: MembershipRole = MembershipRole.MEMBER,
        functional_roles: tuple[FunctionalRole, ...] = (),
    ) -> Actor:
        actor = Actor(user_id=uuid4())
        organization_service.add_member(
            organization_id, actor.user_id, role, owner, functional_roles=functional_roles
        )
        return actor

    return _add


@pytest.fixture
def create_draft(journal_service, owner):
    """Create a balanced Draft entry dated 2024-01-15 in a ledger."""

    def _create(ledger: Ledger, actor: Actor | None = None, amount: str = "1000.00", **kwargs):
        return journal_service.create_entry(
            ledger.organization_id,
            ledger.company.id,
            actor or owner,
            kwargs.pop("description", "Cash sale"),
            kwargs.pop("transaction_date", date(2024, 1, 15)),
            kwargs.pop("lines", None) or ledger.balanced_lines(amount),
            **kwargs,
        )

    return _create


@pytest.fixture
def approved_entry(journal_service, create_draft, owner):
    """Take a ledger's new entry through submit and approve."""

    def _approve(ledger: Ledger, actor: Actor | None = None):
        actor = actor or owner
        entry = create_draft(ledger, actor)
        journal_service.submit_entry(entry.id, ledger.organization_id, actor)
        return journal_service.approve_entry(entry.id, ledger.organization_id, actor)

    return _approve


@pytest.fixture
def posted_entry(journal_service, approved_entry, owner):
    def _post(ledger: Ledger, actor: Actor | None = None):
        actor = actor or owner
        entry = approved_entry(ledger, actor)
        return journal_service.post_entry(entry.id, ledger.organization_id, actor)

    return _post
