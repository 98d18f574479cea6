"""
Journal entry service tests.

Covers:
- Full lifecycle: create, submit, approve, post, reverse
- Validation failures leave no entry and consume no entry number
- Posting into a period that closed after approval (RBAC and policy mode)
- Draft-only editing, rejection, deletion
- Audit trail and structured logs
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.domain.values import (
    FiscalPeriodRef,
    FiscalPeriodStatus,
    JournalEntryStatus,
    JournalEntryType,
    MembershipRole,
)
from ledger_kernel.exceptions import (
    AccountNotActiveError,
    AccountNotFoundError,
    ClosedPeriodError,
    EntryAlreadyReversedError,
    InvalidStatusTransitionError,
    JournalEntryNotFoundError,
    JournalEntryStatusConflictError,
    PeriodNotFoundError,
    PeriodNotOpenError,
    PermissionDeniedError,
    UnbalancedEntryError,
)
from ledger_kernel.selectors.audit_selector import AuditSelector
from ledger_kernel.services.sequence_service import SequenceService, entry_sequence_name

JANUARY_2024 = FiscalPeriodRef(2024, 1)


def _move_january(period_service, ledger, status, actor):
    return period_service.transition_period(
        ledger.company.id, ledger.organization_id, JANUARY_2024, status, actor
    )


# =========================================================================
# Lifecycle
# =========================================================================


class TestEntryLifecycle:

    def test_create_allocates_number_and_derives_period(self, ledger, create_draft):
        entry = create_draft(ledger)

        assert entry.entry_number == "JE-2024-0001"
        assert entry.status == JournalEntryStatus.DRAFT
        assert entry.fiscal_period == JANUARY_2024
        assert entry.entry_type == JournalEntryType.STANDARD
        assert not entry.is_multi_currency
        assert [line.line_number for line in entry.lines] == [1, 2]
        assert entry.lines[0].debit_amount == Decimal("1000.00")
        assert entry.lines[1].credit_amount == Decimal("1000.00")

    def test_numbers_are_sequential_per_company_and_year(self, ledger, create_draft):
        first = create_draft(ledger)
        second = create_draft(ledger)
        assert (first.entry_number, second.entry_number) == ("JE-2024-0001", "JE-2024-0002")

    def test_full_lifecycle(self, ledger, create_draft, journal_service, owner):
        org = ledger.organization_id
        entry = create_draft(ledger)

        submitted = journal_service.submit_entry(entry.id, org, owner)
        assert submitted.status == JournalEntryStatus.PENDING_APPROVAL

        approved = journal_service.approve_entry(entry.id, org, owner)
        assert approved.status == JournalEntryStatus.APPROVED

        posted = journal_service.post_entry(entry.id, org, owner)
        assert posted.status == JournalEntryStatus.POSTED
        assert posted.posting_date == date(2024, 1, 15)
        assert posted.posted_by == owner.user_id
        assert posted.posted_at is not None

        result = journal_service.reverse_entry(entry.id, org, owner, reversal_date=date(2024, 1, 31))
        reversal = result.reversal_entry
        original = result.original_entry

        assert reversal.entry_number == "JE-2024-0002"
        assert reversal.status == JournalEntryStatus.POSTED
        assert reversal.entry_type == JournalEntryType.REVERSING
        assert reversal.is_reversing
        assert reversal.reversed_entry_id == entry.id
        assert reversal.description == "Reversal of JE-2024-0001"
        assert reversal.fiscal_period == JANUARY_2024
        assert reversal.posting_date == date(2024, 1, 31)

        assert original.status == JournalEntryStatus.REVERSED
        assert original.reversing_entry_id == reversal.id

        cash_line = next(line for line in reversal.lines if line.account_id == ledger.cash.id)
        revenue_line = next(line for line in reversal.lines if line.account_id == ledger.revenue.id)
        assert cash_line.credit_amount == Decimal("1000.00")
        assert cash_line.debit_amount is None
        assert revenue_line.debit_amount == Decimal("1000.00")

    def test_explicit_posting_date(self, ledger, approved_entry, journal_service, owner):
        entry = approved_entry(ledger)
        posted = journal_service.post_entry(
            entry.id, ledger.organization_id, owner, posting_date=date(2024, 1, 20)
        )
        assert posted.posting_date == date(2024, 1, 20)

    def test_reject_returns_to_draft_with_reason(self, ledger, create_draft, journal_service, owner):
        org = ledger.organization_id
        entry = create_draft(ledger)
        journal_service.submit_entry(entry.id, org, owner)

        rejected = journal_service.reject_entry(entry.id, org, owner, reason="Wrong account")
        assert rejected.status == JournalEntryStatus.DRAFT
        assert rejected.rejection_reason == "Wrong account"

        resubmitted = journal_service.submit_entry(entry.id, org, owner)
        assert resubmitted.rejection_reason is None

    def test_posting_a_draft_is_rejected(self, ledger, create_draft, journal_service, owner):
        entry = create_draft(ledger)
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            journal_service.post_entry(entry.id, ledger.organization_id, owner)

        assert exc_info.value.current_status == "Draft"
        assert exc_info.value.required_status == "Approved"
        assert journal_service.get_entry(entry.id, ledger.organization_id, owner).status == JournalEntryStatus.DRAFT

    def test_reversing_twice_is_rejected(self, ledger, posted_entry, journal_service, owner):
        entry = posted_entry(ledger)
        first = journal_service.reverse_entry(entry.id, ledger.organization_id, owner, date(2024, 1, 31))

        with pytest.raises(EntryAlreadyReversedError) as exc_info:
            journal_service.reverse_entry(entry.id, ledger.organization_id, owner, date(2024, 1, 31))
        assert exc_info.value.code == "ALREADY_REVERSED"
        assert exc_info.value.reversing_entry_id == str(first.reversal_entry.id)

    def test_reversing_unposted_entry_is_rejected(self, ledger, approved_entry, journal_service, owner):
        entry = approved_entry(ledger)
        with pytest.raises(InvalidStatusTransitionError):
            journal_service.reverse_entry(entry.id, ledger.organization_id, owner, date(2024, 1, 31))

    def test_custom_reversal_description(self, ledger, posted_entry, journal_service, owner):
        entry = posted_entry(ledger)
        result = journal_service.reverse_entry(
            entry.id, ledger.organization_id, owner, date(2024, 1, 31), description="Duplicate invoice"
        )
        assert result.reversal_entry.description == "Duplicate invoice"


# =========================================================================
# Validation
# =========================================================================


class TestEntryValidation:

    def test_unbalanced_entry_leaves_nothing_behind(self, session, ledger, create_draft, journal_service, owner):
        lines = [
            LineSpec.debit(ledger.cash.id, "1000.00", "USD"),
            LineSpec.credit(ledger.revenue.id, "999.99", "USD"),
        ]
        with pytest.raises(UnbalancedEntryError) as exc_info:
            create_draft(ledger, lines=lines)

        assert exc_info.value.debits == "1000.00"
        assert exc_info.value.credits == "999.99"
        assert journal_service.list_entries(ledger.organization_id, owner) == []
        assert SequenceService(session).current_value(
            entry_sequence_name(ledger.company.id, 2024)
        ) is None

    def test_next_entry_after_failure_gets_first_number(self, ledger, create_draft):
        with pytest.raises(UnbalancedEntryError):
            create_draft(ledger, lines=[
                LineSpec.debit(ledger.cash.id, "10.00", "USD"),
                LineSpec.credit(ledger.revenue.id, "9.00", "USD"),
            ])
        assert create_draft(ledger).entry_number == "JE-2024-0001"

    def test_unknown_account(self, ledger, create_draft):
        with pytest.raises(AccountNotFoundError):
            create_draft(ledger, lines=[
                LineSpec.debit(uuid4(), "10.00", "USD"),
                LineSpec.credit(ledger.revenue.id, "10.00", "USD"),
            ])

    def test_inactive_account(self, ledger, create_draft, account_service, owner):
        account_service.deactivate_account(ledger.cash.id, ledger.organization_id, owner)
        with pytest.raises(AccountNotActiveError):
            create_draft(ledger)

    def test_missing_period(self, ledger, create_draft):
        with pytest.raises(PeriodNotFoundError):
            create_draft(ledger, transaction_date=date(2024, 3, 10))

    @pytest.mark.parametrize(
        "status", [FiscalPeriodStatus.FUTURE, FiscalPeriodStatus.CLOSED, FiscalPeriodStatus.LOCKED]
    )
    def test_period_must_be_open_for_creation(self, make_ledger, create_draft, status):
        rbac = make_ledger(seed_system_policies=False, period_status=status)
        with pytest.raises(PeriodNotOpenError):
            create_draft(rbac)

    def test_multi_currency_entry(self, ledger, create_draft):
        entry = create_draft(ledger, lines=[
            LineSpec(account_id=ledger.cash.id, currency="EUR", debit_amount=Decimal("100.00"),
                     exchange_rate=Decimal("1.10")),
            LineSpec.credit(ledger.revenue.id, "110.00", "USD"),
        ])
        assert entry.is_multi_currency
        assert entry.lines[0].functional_debit_amount == Decimal("110.00")


# =========================================================================
# Period closed after approval
# =========================================================================


class TestPostingIntoClosedPeriod:

    def test_rbac_mode_reports_closed_period(self, rbac_ledger, approved_entry, journal_service,
                                             period_service, owner):
        entry = approved_entry(rbac_ledger)
        _move_january(period_service, rbac_ledger, FiscalPeriodStatus.CLOSED, owner)

        with pytest.raises(ClosedPeriodError) as exc_info:
            journal_service.post_entry(entry.id, rbac_ledger.organization_id, owner)

        assert exc_info.value.code == "PERIOD_CLOSED"
        assert exc_info.value.fiscal_period == "FY2024-P01"
        unchanged = journal_service.get_entry(entry.id, rbac_ledger.organization_id, owner)
        assert unchanged.status == JournalEntryStatus.APPROVED
        assert unchanged.posted_at is None

    def test_policy_mode_denies_by_closed_period_policy(self, session, ledger, approved_entry,
                                                        journal_service, period_service, owner):
        entry = approved_entry(ledger)
        _move_january(period_service, ledger, FiscalPeriodStatus.CLOSED, owner)

        with pytest.raises(PermissionDeniedError) as exc_info:
            journal_service.post_entry(entry.id, ledger.organization_id, owner)

        assert exc_info.value.reason == "Denied by policy: Prevent Modifications to Closed Periods"
        assert exc_info.value.policy_id is not None

        denials = AuditSelector(session).find_denials(ledger.organization_id, owner.user_id)
        assert [(d.action, d.resource_type) for d in denials] == [("journal_entry:post", "journal_entry")]
        assert denials[0].resource_id == entry.id

    def test_reopened_period_accepts_posting(self, rbac_ledger, approved_entry, journal_service,
                                             period_service, owner):
        entry = approved_entry(rbac_ledger)
        _move_january(period_service, rbac_ledger, FiscalPeriodStatus.CLOSED, owner)
        _move_january(period_service, rbac_ledger, FiscalPeriodStatus.OPEN, owner)

        posted = journal_service.post_entry(entry.id, rbac_ledger.organization_id, owner)
        assert posted.status == JournalEntryStatus.POSTED


# =========================================================================
# Editing
# =========================================================================


class TestDraftEditing:

    def test_update_fields_and_lines(self, ledger, create_draft, journal_service, owner):
        entry = create_draft(ledger)
        updated = journal_service.update_entry(
            entry.id, ledger.organization_id, owner,
            description="Cash sale, corrected",
            lines=ledger.balanced_lines("250.00"),
        )
        assert updated.description == "Cash sale, corrected"
        assert len(updated.lines) == 2
        assert updated.lines[0].debit_amount == Decimal("250.00")

    def test_update_rejects_unbalanced_lines(self, ledger, create_draft, journal_service, owner):
        entry = create_draft(ledger)
        with pytest.raises(UnbalancedEntryError):
            journal_service.update_entry(
                entry.id, ledger.organization_id, owner,
                lines=[
                    LineSpec.debit(ledger.cash.id, "5.00", "USD"),
                    LineSpec.credit(ledger.revenue.id, "4.00", "USD"),
                ],
            )

    def test_update_to_missing_period(self, ledger, create_draft, journal_service, owner):
        entry = create_draft(ledger)
        with pytest.raises(PeriodNotFoundError):
            journal_service.update_entry(
                entry.id, ledger.organization_id, owner, fiscal_period=FiscalPeriodRef(2024, 2)
            )

    def test_move_authorized_against_target_period(self, session, ledger, create_draft, journal_service,
                                                   period_service, owner):
        period_service.create_period(
            ledger.company.id, ledger.organization_id, FiscalPeriodRef(2024, 2),
            date(2024, 2, 1), date(2024, 2, 29), owner, status=FiscalPeriodStatus.SOFT_CLOSE,
        )
        entry = create_draft(ledger)

        with pytest.raises(PermissionDeniedError) as exc_info:
            journal_service.update_entry(
                entry.id, ledger.organization_id, owner, fiscal_period=FiscalPeriodRef(2024, 2)
            )
        assert exc_info.value.reason == "Denied by policy: Restrict SoftClose Period Access"

        unchanged = journal_service.get_entry(entry.id, ledger.organization_id, owner)
        assert unchanged.fiscal_period == JANUARY_2024
        denials = AuditSelector(session).find_denials(ledger.organization_id, owner.user_id)
        assert [d.action for d in denials] == ["journal_entry:update"]

    def test_only_drafts_are_editable(self, ledger, approved_entry, journal_service, owner):
        entry = approved_entry(ledger)
        with pytest.raises(JournalEntryStatusConflictError) as exc_info:
            journal_service.update_entry(entry.id, ledger.organization_id, owner, description="late")
        assert exc_info.value.operation == "update"

        with pytest.raises(JournalEntryStatusConflictError):
            journal_service.delete_entry(entry.id, ledger.organization_id, owner)

    def test_delete_draft(self, ledger, create_draft, journal_service, owner):
        entry = create_draft(ledger)
        journal_service.delete_entry(entry.id, ledger.organization_id, owner)
        with pytest.raises(JournalEntryNotFoundError):
            journal_service.get_entry(entry.id, ledger.organization_id, owner)

    def test_entry_of_other_organization_not_found(self, ledger, make_ledger, create_draft,
                                                   journal_service, owner):
        other = make_ledger()
        entry = create_draft(ledger)
        with pytest.raises(JournalEntryNotFoundError):
            journal_service.get_entry(entry.id, other.organization_id, owner)


# =========================================================================
# Queries
# =========================================================================


class TestListEntries:

    def test_filter_by_status(self, ledger, create_draft, posted_entry, journal_service, owner):
        create_draft(ledger)
        posted = posted_entry(ledger)

        result = journal_service.list_entries(
            ledger.organization_id, owner, status=JournalEntryStatus.POSTED
        )
        assert [entry.id for entry in result] == [posted.id]

    def test_filter_by_company_and_period(self, ledger, create_draft, journal_service, owner):
        create_draft(ledger)
        create_draft(ledger)
        result = journal_service.list_entries(
            ledger.organization_id, owner, company_id=ledger.company.id, fiscal_period=JANUARY_2024
        )
        assert len(result) == 2
        assert journal_service.list_entries(
            ledger.organization_id, owner, fiscal_period=FiscalPeriodRef(2024, 2)
        ) == []

    def test_viewer_can_list(self, ledger, create_draft, journal_service, add_member):
        create_draft(ledger)
        viewer = add_member(ledger.organization_id, MembershipRole.VIEWER)
        assert len(journal_service.list_entries(ledger.organization_id, viewer)) == 1


# =========================================================================
# Audit and logging
# =========================================================================


class TestEntryAuditTrail:

    def test_lifecycle_is_audited(self, session, ledger, posted_entry):
        entry = posted_entry(ledger)
        records = AuditSelector(session).find_for_entity("journal_entry", entry.id)

        assert {record.action for record in records} == {"create", "status_change"}
        transitions = {
            (record.changes["status"]["from"], record.changes["status"]["to"])
            for record in records
            if record.action == "status_change"
        }
        assert transitions == {
            ("Draft", "PendingApproval"),
            ("PendingApproval", "Approved"),
            ("Approved", "Posted"),
        }
        assert all(record.entity_name == "JE-2024-0001" for record in records)

    def test_posting_is_logged(self, ledger, posted_entry, captured_logs):
        entry = posted_entry(ledger)
        posted = [r for r in captured_logs() if r["message"] == "journal_entry_posted"]

        assert len(posted) == 1
        assert posted[0]["entry_number"] == "JE-2024-0001"
        assert posted[0]["entry_id"] == str(entry.id)
        assert posted[0]["fiscal_period"] == "FY2024-P01"

    def test_blocked_post_is_logged(self, rbac_ledger, approved_entry, journal_service,
                                    period_service, owner, captured_logs):
        entry = approved_entry(rbac_ledger)
        _move_january(period_service, rbac_ledger, FiscalPeriodStatus.CLOSED, owner)
        with pytest.raises(ClosedPeriodError):
            journal_service.post_entry(entry.id, rbac_ledger.organization_id, owner)

        blocked = [r for r in captured_logs() if r["message"] == "journal_entry_post_blocked"]
        assert blocked[0]["level"] == "WARNING"
        assert blocked[0]["period_status"] == "Closed"
