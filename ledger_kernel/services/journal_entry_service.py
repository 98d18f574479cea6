"""
JournalEntryService -- the journal entry lifecycle.

Responsibility:
    Creates, edits, deletes and moves journal entries through
    Draft -> PendingApproval -> Approved -> Posted -> Reversed, generating
    the reversal entry when a posted entry is reversed.

Architecture position:
    Kernel > Services -- imperative shell.  Every operation runs
    authorization first (AuthorizationService), then the pure rule sets
    (domain/journal_lifecycle.py, domain/balance.py,
    domain/account_hierarchy.py, domain/period_gate.py), then writes in
    the caller's transaction.

Invariants enforced:
    - Functional debits equal functional credits on create and on every
      line replacement.
    - Lines reference existing, active, postable accounts of the entry's
      company, with distinct positive line numbers.
    - An entry is created only in an Open period and posted only while its
      period is still Open.
    - Entry numbers are allocated per (company, fiscal year) from a locked
      counter and never reassigned.
    - Only Draft entries are edited or deleted.
    - An entry is reversed at most once; the reversal is created Posted
      and both entries point at each other.

Failure modes:
    - JournalEntryNotFoundError, CompanyNotFoundError, EmptyEntryError,
      InvalidLineNumberError, DuplicateLineNumberError,
      AccountNotFoundError, AccountNotActiveError, AccountNotPostableError,
      UnbalancedEntryError, PeriodNotFoundError, PeriodNotOpenError,
      ClosedPeriodError, InvalidStatusTransitionError,
      JournalEntryStatusConflictError, EntryAlreadyReversedError,
      PermissionDeniedError, MembershipNotFoundError.

Audit relevance:
    Create, update, delete and every status change are written to the
    audit log; postings and reversals are logged at INFO with the entry
    number.  Posted entries are never edited: corrections are reversals.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.types import validate_currency
from ledger_kernel.domain.account_hierarchy import validate_postable_accounts
from ledger_kernel.domain.authorization.context import EnvironmentContext, ResourceContext
from ledger_kernel.domain.balance import sum_debits, validate_balance
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import (
    CompanyInfo,
    JournalEntryInfo,
    LineDraft,
    LineSpec,
    ReversalResult,
)
from ledger_kernel.domain.fiscal_calendar import compute_fiscal_period
from ledger_kernel.domain.journal_lifecycle import (
    LifecycleOperation,
    build_reversal_lines,
    distinct_account_ids,
    is_multi_currency,
    prepare_lines,
    require_editable,
    require_not_reversed,
    reversal_description,
    validate_transition,
)
from ledger_kernel.domain.period_gate import require_open_for_posting, require_open_period
from ledger_kernel.domain.values import (
    Actor,
    FiscalPeriodRef,
    FiscalPeriodStatus,
    JournalEntryStatus,
    JournalEntryType,
)
from ledger_kernel.exceptions import CompanyNotFoundError, JournalEntryNotFoundError, PeriodError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.journal import JournalEntry, JournalEntryLine
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.company_selector import CompanySelector
from ledger_kernel.selectors.journal_selector import JournalSelector, entry_to_info, line_to_info
from ledger_kernel.selectors.period_selector import PeriodSelector
from ledger_kernel.services.audit_service import AuditService
from ledger_kernel.services.authorization_service import AuthorizationService
from ledger_kernel.services.base import UNSET, BaseService
from ledger_kernel.services.sequence_service import EntryNumberFormat, SequenceService

logger = get_logger("services.journal_entry")

ENTITY_TYPE = "journal_entry"


class JournalEntryService(BaseService[JournalEntry]):
    """
    Journal entry commands and queries.

    Contract:
        Every operation takes the acting ``Actor`` and the organization the
        entry belongs to; entries of other organizations are not found.
        Returns frozen ``JournalEntryInfo`` DTOs.

    Non-goals:
        - Does NOT commit; the caller's unit of work does.
        - Does NOT compute balances or reports from posted lines.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        authorization: AuthorizationService | None = None,
        entry_number_format: EntryNumberFormat | None = None,
    ):
        super().__init__(session, clock)
        self._authorization = authorization or AuthorizationService(session, clock)
        self._number_format = entry_number_format or EntryNumberFormat()
        self._sequences = SequenceService(session)
        self._accounts = AccountSelector(session)
        self._companies = CompanySelector(session)
        self._periods = PeriodSelector(session)
        self._entries = JournalSelector(session)
        self._audit = AuditService(session, clock)

    # =====================================================================
    # Helpers
    # =====================================================================

    def _require_company(self, company_id: UUID, organization_id: UUID) -> CompanyInfo:
        company = self._companies.find_by_id(company_id, organization_id)
        if company is None:
            raise CompanyNotFoundError(str(company_id))
        return company

    def _load(self, entry_id: UUID, organization_id: UUID) -> JournalEntry:
        entry = self.session.get(JournalEntry, entry_id)
        if entry is None or entry.organization_id != organization_id:
            raise JournalEntryNotFoundError(str(entry_id))
        return entry

    def _period_status(self, company_id: UUID, ref: FiscalPeriodRef) -> FiscalPeriodStatus | None:
        return self._periods.get_period_status(company_id, ref)

    def _entry_resource(
        self,
        entry: JournalEntry,
        actor: Actor,
        period_status: FiscalPeriodStatus | None = None,
    ) -> ResourceContext:
        return ResourceContext(
            type="journal_entry",
            id=entry.id,
            entry_type=JournalEntryType(entry.entry_type),
            is_own_entry=entry.created_by_id == actor.user_id,
            period_status=period_status,
        )

    def _authorize(
        self,
        entry: JournalEntry,
        actor: Actor,
        action: str,
        environment: EnvironmentContext | None,
        with_period_status: bool = False,
        fiscal_period: FiscalPeriodRef | None = None,
    ) -> FiscalPeriodStatus | None:
        status = None
        if with_period_status:
            status = self._period_status(entry.company_id, fiscal_period or entry.period_ref)
        self._authorization.require_permission(
            entry.organization_id,
            actor,
            action,
            self._entry_resource(entry, actor, status),
            environment,
        )
        return status

    def _validated_lines(self, company: CompanyInfo, lines: Sequence[LineSpec]) -> tuple[LineDraft, ...]:
        """Line, account and balance rules, in that order."""
        drafts = prepare_lines(lines)
        for draft in drafts:
            validate_currency(draft.currency)
        account_ids = distinct_account_ids(drafts)
        validate_postable_accounts(company.id, account_ids, self._accounts.find_by_ids(account_ids))
        validate_balance(drafts, company.functional_currency)
        return drafts

    def _add_lines(self, entry: JournalEntry, drafts: Sequence[LineDraft], actor: Actor) -> None:
        for draft in drafts:
            entry.lines.append(
                JournalEntryLine(
                    line_number=draft.line_number,
                    account_id=draft.account_id,
                    currency=draft.currency,
                    debit_amount=draft.debit_amount,
                    credit_amount=draft.credit_amount,
                    functional_debit_amount=draft.functional_debit_amount,
                    functional_credit_amount=draft.functional_credit_amount,
                    exchange_rate=draft.exchange_rate,
                    memo=draft.memo,
                    dimensions=draft.dimensions,
                    intercompany_partner_id=draft.intercompany_partner_id,
                    created_by_id=actor.user_id,
                )
            )

    def _change_status(
        self,
        entry: JournalEntry,
        actor: Actor,
        operation: LifecycleOperation,
    ) -> tuple[JournalEntryStatus, JournalEntryStatus]:
        current = JournalEntryStatus(entry.status)
        target = validate_transition(entry.id, current, operation)
        entry.status = target.value
        entry.updated_by_id = actor.user_id
        return current, target

    def _record_status_change(
        self,
        entry: JournalEntry,
        actor: Actor,
        current: JournalEntryStatus,
        target: JournalEntryStatus,
        reason: str | None = None,
    ) -> None:
        self._audit.record_status_change(
            entry.organization_id, ENTITY_TYPE, entry.id, actor.user_id,
            from_status=current, to_status=target,
            entity_name=entry.entry_number, reason=reason,
        )
        logger.info(
            "journal_entry_status_changed",
            extra={
                "entry_id": str(entry.id),
                "entry_number": entry.entry_number,
                "from_status": current.value,
                "to_status": target.value,
            },
        )

    # =====================================================================
    # Create / update / delete
    # =====================================================================

    def create_entry(
        self,
        organization_id: UUID,
        company_id: UUID,
        actor: Actor,
        description: str,
        transaction_date: date,
        lines: Sequence[LineSpec],
        fiscal_period: FiscalPeriodRef | None = None,
        entry_type: JournalEntryType = JournalEntryType.STANDARD,
        reference_number: str | None = None,
        document_date: date | None = None,
        source_module: str | None = None,
        source_document_ref: str | None = None,
        environment: EnvironmentContext | None = None,
    ) -> JournalEntryInfo:
        """
        Create a Draft entry with a freshly allocated entry number.

        The fiscal period defaults to the one containing ``transaction_date``
        under the company's fiscal year end.

        Preconditions:
            - ``lines`` is non-empty and balanced in functional currency.
            - The fiscal period exists and is Open.
        """
        company = self._require_company(company_id, organization_id)
        if fiscal_period is None:
            fiscal_period = compute_fiscal_period(
                transaction_date, company.fiscal_year_end_month, company.fiscal_year_end_day
            ).ref
        period_status = self._period_status(company_id, fiscal_period)

        self._authorization.require_permission(
            organization_id,
            actor,
            "journal_entry:create",
            ResourceContext(
                type="journal_entry",
                entry_type=JournalEntryType(entry_type),
                is_own_entry=True,
                period_status=period_status,
            ),
            environment,
        )

        drafts = self._validated_lines(company, lines)
        require_open_period(company_id, fiscal_period, period_status)

        entry_number = self._sequences.next_entry_number(
            company_id, fiscal_period.fiscal_year, self._number_format
        )
        entry = JournalEntry(
            organization_id=organization_id,
            company_id=company_id,
            entry_number=entry_number,
            reference_number=reference_number,
            description=description,
            transaction_date=transaction_date,
            document_date=document_date,
            fiscal_year=fiscal_period.fiscal_year,
            fiscal_period=fiscal_period.period_number,
            entry_type=JournalEntryType(entry_type).value,
            source_module=source_module,
            source_document_ref=source_document_ref,
            is_multi_currency=is_multi_currency(drafts),
            status=JournalEntryStatus.DRAFT.value,
            is_reversing=False,
            created_by_id=actor.user_id,
        )
        self._add_lines(entry, drafts, actor)
        self.session.add(entry)
        self.session.flush()

        self._audit.record_create(
            organization_id, ENTITY_TYPE, entry.id, actor.user_id,
            entity_name=entry_number,
            changes={
                "fiscal_period": str(fiscal_period),
                "line_count": len(drafts),
                "total": sum_debits(drafts),
            },
        )
        with LogContext.bind(entry_id=entry.id, company_id=company_id):
            logger.info(
                "journal_entry_created",
                extra={
                    "entry_number": entry_number,
                    "fiscal_period": str(fiscal_period),
                    "line_count": len(drafts),
                    "is_multi_currency": entry.is_multi_currency,
                },
            )
        return entry_to_info(entry)

    def update_entry(
        self,
        entry_id: UUID,
        organization_id: UUID,
        actor: Actor,
        *,
        description: Any = UNSET,
        transaction_date: Any = UNSET,
        document_date: Any = UNSET,
        fiscal_period: Any = UNSET,
        reference_number: Any = UNSET,
        source_document_ref: Any = UNSET,
        lines: Any = UNSET,
        environment: EnvironmentContext | None = None,
    ) -> JournalEntryInfo:
        """
        Partially update a Draft entry.  Supplying ``lines`` replaces every
        line and re-runs line, account and balance validation.

        Raises:
            JournalEntryStatusConflictError: entry is not Draft.
            PeriodNotFoundError / PeriodNotOpenError: new fiscal period is
                missing or not Open.
        """
        entry = self._load(entry_id, organization_id)
        # A move to another period is authorized against the target period.
        self._authorize(
            entry, actor, "journal_entry:update", environment,
            with_period_status=True,
            fiscal_period=None if fiscal_period is UNSET else fiscal_period,
        )
        require_editable(entry.id, entry.status, "update")

        changes: dict[str, Any] = {}

        if fiscal_period is not UNSET and fiscal_period != entry.period_ref:
            require_open_period(
                entry.company_id, fiscal_period, self._period_status(entry.company_id, fiscal_period)
            )
            changes["fiscal_period"] = {"from": str(entry.period_ref), "to": str(fiscal_period)}
            entry.fiscal_year = fiscal_period.fiscal_year
            entry.fiscal_period = fiscal_period.period_number

        scalar_updates = {
            "description": description,
            "transaction_date": transaction_date,
            "document_date": document_date,
            "reference_number": reference_number,
            "source_document_ref": source_document_ref,
        }
        for field_name, value in scalar_updates.items():
            if value is UNSET:
                continue
            current = getattr(entry, field_name)
            if current != value:
                changes[field_name] = {"from": current, "to": value}
                setattr(entry, field_name, value)

        if lines is not UNSET:
            company = self._require_company(entry.company_id, organization_id)
            drafts = self._validated_lines(company, lines)
            previous_count = len(entry.lines)
            entry.lines.clear()
            # Old lines must be gone before new ones reuse their numbers.
            self.session.flush()
            self._add_lines(entry, drafts, actor)
            entry.is_multi_currency = is_multi_currency(drafts)
            changes["lines"] = {"from": previous_count, "to": len(drafts)}

        if changes:
            entry.updated_by_id = actor.user_id
            self.session.flush()
            self._audit.record_update(
                organization_id, ENTITY_TYPE, entry.id, actor.user_id, changes,
                entity_name=entry.entry_number,
            )
            logger.info(
                "journal_entry_updated",
                extra={"entry_id": str(entry.id), "fields": sorted(changes)},
            )
        return entry_to_info(entry)

    def delete_entry(
        self,
        entry_id: UUID,
        organization_id: UUID,
        actor: Actor,
        environment: EnvironmentContext | None = None,
    ) -> None:
        """Delete a Draft entry and its lines."""
        entry = self._load(entry_id, organization_id)
        self._authorize(entry, actor, "journal_entry:update", environment)
        require_editable(entry.id, entry.status, "delete")

        entry_number = entry.entry_number
        self.session.delete(entry)
        self.session.flush()

        self._audit.record_delete(
            organization_id, ENTITY_TYPE, entry_id, actor.user_id, entity_name=entry_number
        )
        logger.info(
            "journal_entry_deleted",
            extra={"entry_id": str(entry_id), "entry_number": entry_number},
        )

    # =====================================================================
    # Approval workflow
    # =====================================================================

    def submit_entry(
        self,
        entry_id: UUID,
        organization_id: UUID,
        actor: Actor,
        environment: EnvironmentContext | None = None,
    ) -> JournalEntryInfo:
        """Draft -> PendingApproval.  Clears a previous rejection reason."""
        entry = self._load(entry_id, organization_id)
        self._authorize(entry, actor, "journal_entry:update", environment)
        current, target = self._change_status(entry, actor, LifecycleOperation.SUBMIT)
        entry.rejection_reason = None
        self.session.flush()
        self._record_status_change(entry, actor, current, target)
        return entry_to_info(entry)

    def approve_entry(
        self,
        entry_id: UUID,
        organization_id: UUID,
        actor: Actor,
        environment: EnvironmentContext | None = None,
    ) -> JournalEntryInfo:
        """PendingApproval -> Approved."""
        entry = self._load(entry_id, organization_id)
        self._authorize(entry, actor, "journal_entry:post", environment)
        current, target = self._change_status(entry, actor, LifecycleOperation.APPROVE)
        self.session.flush()
        self._record_status_change(entry, actor, current, target)
        return entry_to_info(entry)

    def reject_entry(
        self,
        entry_id: UUID,
        organization_id: UUID,
        actor: Actor,
        reason: str | None = None,
        environment: EnvironmentContext | None = None,
    ) -> JournalEntryInfo:
        """PendingApproval -> Draft, recording the optional reason."""
        entry = self._load(entry_id, organization_id)
        self._authorize(entry, actor, "journal_entry:post", environment)
        current, target = self._change_status(entry, actor, LifecycleOperation.REJECT)
        entry.rejection_reason = reason
        self.session.flush()
        self._record_status_change(entry, actor, current, target, reason=reason)
        return entry_to_info(entry)

    # =====================================================================
    # Posting and reversal
    # =====================================================================

    def post_entry(
        self,
        entry_id: UUID,
        organization_id: UUID,
        actor: Actor,
        posting_date: date | None = None,
        environment: EnvironmentContext | None = None,
    ) -> JournalEntryInfo:
        """
        Approved -> Posted.  The period is re-checked: it may have closed
        since approval.

        Postconditions:
            - posting_date defaults to the transaction date; posted_by and
              posted_at are set from the actor and the clock.

        Raises:
            ClosedPeriodError: period is no longer Open; the entry stays
                Approved.
        """
        entry = self._load(entry_id, organization_id)
        period_status = self._authorize(
            entry, actor, "journal_entry:post", environment, with_period_status=True
        )
        target = validate_transition(entry.id, entry.status, LifecycleOperation.POST)
        try:
            require_open_for_posting(entry.company_id, entry.period_ref, period_status)
        except PeriodError:
            logger.warning(
                "journal_entry_post_blocked",
                extra={
                    "entry_id": str(entry.id),
                    "fiscal_period": str(entry.period_ref),
                    "period_status": period_status.value if period_status else None,
                },
            )
            raise

        current = JournalEntryStatus(entry.status)
        entry.status = target.value
        entry.posting_date = posting_date or entry.transaction_date
        entry.posted_by_id = actor.user_id
        entry.posted_at = self._clock.now()
        entry.updated_by_id = actor.user_id
        self.session.flush()

        self._record_status_change(entry, actor, current, target)
        with LogContext.bind(entry_id=entry.id, company_id=entry.company_id):
            logger.info(
                "journal_entry_posted",
                extra={
                    "entry_number": entry.entry_number,
                    "posting_date": entry.posting_date,
                    "fiscal_period": str(entry.period_ref),
                },
            )
        return entry_to_info(entry)

    def reverse_entry(
        self,
        entry_id: UUID,
        organization_id: UUID,
        actor: Actor,
        reversal_date: date,
        description: str | None = None,
        environment: EnvironmentContext | None = None,
    ) -> ReversalResult:
        """
        Posted -> Reversed, creating a Posted reversal entry in the same
        fiscal period with every line's debit and credit swapped.

        Raises:
            EntryAlreadyReversedError: the entry already has a reversal.
            InvalidStatusTransitionError: the entry is not Posted.
        """
        original = self._load(entry_id, organization_id)
        self._authorize(original, actor, "journal_entry:reverse", environment, with_period_status=True)
        require_not_reversed(original.id, original.reversing_entry_id)
        target = validate_transition(original.id, original.status, LifecycleOperation.REVERSE)

        reversal_lines = build_reversal_lines([line_to_info(line) for line in original.lines])
        entry_number = self._sequences.next_entry_number(
            original.company_id, original.fiscal_year, self._number_format
        )
        now = self._clock.now()
        reversal = JournalEntry(
            organization_id=original.organization_id,
            company_id=original.company_id,
            entry_number=entry_number,
            reference_number=original.reference_number,
            description=reversal_description(original.entry_number, original.id, description),
            transaction_date=reversal_date,
            document_date=None,
            fiscal_year=original.fiscal_year,
            fiscal_period=original.fiscal_period,
            entry_type=JournalEntryType.REVERSING.value,
            source_module=original.source_module,
            source_document_ref=original.source_document_ref,
            is_multi_currency=original.is_multi_currency,
            status=JournalEntryStatus.POSTED.value,
            is_reversing=True,
            reversed_entry_id=original.id,
            posting_date=reversal_date,
            posted_by_id=actor.user_id,
            posted_at=now,
            created_by_id=actor.user_id,
        )
        self._add_lines(reversal, reversal_lines, actor)
        self.session.add(reversal)
        self.session.flush()

        current = JournalEntryStatus(original.status)
        original.status = target.value
        original.reversing_entry_id = reversal.id
        original.updated_by_id = actor.user_id
        self.session.flush()

        self._audit.record_create(
            organization_id, ENTITY_TYPE, reversal.id, actor.user_id,
            entity_name=entry_number,
            changes={"reversed_entry_id": original.id, "line_count": len(reversal_lines)},
        )
        self._record_status_change(original, actor, current, target)
        with LogContext.bind(entry_id=original.id, company_id=original.company_id):
            logger.info(
                "journal_entry_reversed",
                extra={
                    "entry_number": original.entry_number,
                    "reversal_entry_id": str(reversal.id),
                    "reversal_entry_number": entry_number,
                    "reversal_date": reversal_date,
                },
            )
        return ReversalResult(
            original_entry=entry_to_info(original),
            reversal_entry=entry_to_info(reversal),
        )

    # =====================================================================
    # Queries
    # =====================================================================

    def get_entry(
        self,
        entry_id: UUID,
        organization_id: UUID,
        actor: Actor,
        environment: EnvironmentContext | None = None,
    ) -> JournalEntryInfo:
        entry = self._load(entry_id, organization_id)
        self._authorize(entry, actor, "journal_entry:read", environment)
        return entry_to_info(entry)

    def list_entries(
        self,
        organization_id: UUID,
        actor: Actor,
        company_id: UUID | None = None,
        status: JournalEntryStatus | None = None,
        fiscal_period: FiscalPeriodRef | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[JournalEntryInfo]:
        self._authorization.require_permission(
            organization_id, actor, "journal_entry:read", ResourceContext(type="journal_entry")
        )
        return self._entries.list_entries(
            organization_id,
            company_id=company_id,
            status=status,
            fiscal_period=fiscal_period,
            limit=limit,
            offset=offset,
        )
