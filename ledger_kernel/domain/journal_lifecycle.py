"""
Journal entry lifecycle (``ledger_kernel.domain.journal_lifecycle``).

Responsibility
--------------
The journal entry state machine and the pure line-set rules applied
around it: line numbering, functional amount conversion, multi-currency
detection and reversal line generation.

Architecture position
---------------------
**Kernel domain layer** -- pure functions and constants.  ZERO I/O.
Called by ``JournalEntryService`` before anything is written.

Invariants enforced
-------------------
* ``JOURNAL_ENTRY_TRANSITIONS`` is the only source of legal status moves.
  Reversed has no outgoing edges.
* Only Draft entries can be edited or deleted; other statuses are a
  conflict, not a transition error.
* Line numbers are distinct positive integers; unnumbered lines get
  1..N in submission order.
* A reversal line swaps natural and functional debit/credit and keeps
  account, currency, exchange rate, memo, dimensions and intercompany
  partner.  Reversal lines are renumbered from 1.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence
from uuid import UUID

from ledger_kernel.db.types import round_money
from ledger_kernel.domain.dtos import JournalLineInfo, LineDraft, LineSpec
from ledger_kernel.domain.values import JournalEntryStatus
from ledger_kernel.exceptions import (
    DuplicateLineNumberError,
    EmptyEntryError,
    EntryAlreadyReversedError,
    InvalidLineNumberError,
    InvalidStatusTransitionError,
    JournalEntryStatusConflictError,
)


# =========================================================================
# State machine
# =========================================================================


JOURNAL_ENTRY_TRANSITIONS: dict[JournalEntryStatus, frozenset[JournalEntryStatus]] = {
    JournalEntryStatus.DRAFT: frozenset({
        JournalEntryStatus.PENDING_APPROVAL,
    }),
    JournalEntryStatus.PENDING_APPROVAL: frozenset({
        JournalEntryStatus.APPROVED,
        JournalEntryStatus.DRAFT,
    }),
    JournalEntryStatus.APPROVED: frozenset({
        JournalEntryStatus.POSTED,
    }),
    JournalEntryStatus.POSTED: frozenset({
        JournalEntryStatus.REVERSED,
    }),
    JournalEntryStatus.REVERSED: frozenset(),
}

TERMINAL_ENTRY_STATUSES: frozenset[JournalEntryStatus] = frozenset({
    JournalEntryStatus.REVERSED,
})

EDITABLE_ENTRY_STATUSES: frozenset[JournalEntryStatus] = frozenset({
    JournalEntryStatus.DRAFT,
})


class LifecycleOperation(str, Enum):
    """Operations that move an entry through the state machine."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    POST = "post"
    REVERSE = "reverse"


OPERATION_TRANSITIONS: dict[LifecycleOperation, tuple[JournalEntryStatus, JournalEntryStatus]] = {
    LifecycleOperation.SUBMIT: (JournalEntryStatus.DRAFT, JournalEntryStatus.PENDING_APPROVAL),
    LifecycleOperation.APPROVE: (JournalEntryStatus.PENDING_APPROVAL, JournalEntryStatus.APPROVED),
    LifecycleOperation.REJECT: (JournalEntryStatus.PENDING_APPROVAL, JournalEntryStatus.DRAFT),
    LifecycleOperation.POST: (JournalEntryStatus.APPROVED, JournalEntryStatus.POSTED),
    LifecycleOperation.REVERSE: (JournalEntryStatus.POSTED, JournalEntryStatus.REVERSED),
}


def can_transition(current: JournalEntryStatus, target: JournalEntryStatus) -> bool:
    """True iff ``current -> target`` is in the transition table."""
    return target in JOURNAL_ENTRY_TRANSITIONS.get(current, frozenset())


def validate_transition(
    entry_id: UUID | str,
    current: JournalEntryStatus | str,
    operation: LifecycleOperation,
) -> JournalEntryStatus:
    """Return the status ``operation`` moves the entry to.

    Raises:
        InvalidStatusTransitionError: if the entry is not in the status the
            operation requires.
    """
    current_status = JournalEntryStatus(current)
    required, target = OPERATION_TRANSITIONS[operation]
    if current_status != required or not can_transition(current_status, target):
        raise InvalidStatusTransitionError(
            entry_id=str(entry_id),
            current_status=current_status.value,
            target_status=target.value,
            required_status=required.value,
            operation=operation.value,
        )
    return target


def require_editable(
    entry_id: UUID | str, current: JournalEntryStatus | str, operation: str
) -> None:
    """Raise JournalEntryStatusConflictError unless the entry is Draft."""
    current_status = JournalEntryStatus(current)
    if current_status not in EDITABLE_ENTRY_STATUSES:
        raise JournalEntryStatusConflictError(
            entry_id=str(entry_id),
            current_status=current_status.value,
            operation=operation,
        )


def require_not_reversed(entry_id: UUID | str, reversing_entry_id: UUID | None) -> None:
    if reversing_entry_id is not None:
        raise EntryAlreadyReversedError(str(entry_id), str(reversing_entry_id))


# =========================================================================
# Line rules
# =========================================================================


def _functional(amount, rate):
    if amount is None:
        return None
    if rate == 1:
        return amount
    return round_money(amount * rate)


def prepare_lines(specs: Sequence[LineSpec]) -> tuple[LineDraft, ...]:
    """Number the lines and compute functional amounts.

    Raises:
        EmptyEntryError: no lines.
        InvalidLineNumberError: an explicit line number below 1.
        DuplicateLineNumberError: two lines resolve to the same number.
    """
    if not specs:
        raise EmptyEntryError()

    seen: set[int] = set()
    drafts: list[LineDraft] = []
    for index, spec in enumerate(specs, start=1):
        number = spec.line_number if spec.line_number is not None else index
        if number < 1:
            raise InvalidLineNumberError(number)
        if number in seen:
            raise DuplicateLineNumberError(number)
        seen.add(number)
        drafts.append(
            LineDraft(
                line_number=number,
                account_id=spec.account_id,
                currency=spec.currency,
                debit_amount=spec.debit_amount,
                credit_amount=spec.credit_amount,
                functional_debit_amount=_functional(spec.debit_amount, spec.exchange_rate),
                functional_credit_amount=_functional(spec.credit_amount, spec.exchange_rate),
                exchange_rate=spec.exchange_rate,
                memo=spec.memo,
                dimensions=dict(spec.dimensions) if spec.dimensions else None,
                intercompany_partner_id=spec.intercompany_partner_id,
            )
        )
    return tuple(sorted(drafts, key=lambda d: d.line_number))


def is_multi_currency(lines: Sequence[LineDraft | JournalLineInfo]) -> bool:
    """True iff the lines span more than one distinct currency code."""
    return len({line.currency for line in lines}) > 1


def distinct_account_ids(lines: Sequence[LineDraft | LineSpec]) -> tuple[UUID, ...]:
    """Referenced account ids, first occurrence order."""
    return tuple(dict.fromkeys(line.account_id for line in lines))


def build_reversal_lines(lines: Sequence[JournalLineInfo]) -> tuple[LineDraft, ...]:
    """Mirror a posted entry's lines with debit and credit swapped."""
    ordered = sorted(lines, key=lambda line: line.line_number)
    return tuple(
        LineDraft(
            line_number=index,
            account_id=line.account_id,
            currency=line.currency,
            debit_amount=line.credit_amount,
            credit_amount=line.debit_amount,
            functional_debit_amount=line.functional_credit_amount,
            functional_credit_amount=line.functional_debit_amount,
            exchange_rate=line.exchange_rate,
            memo=line.memo,
            dimensions=dict(line.dimensions) if line.dimensions else None,
            intercompany_partner_id=line.intercompany_partner_id,
        )
        for index, line in enumerate(ordered, start=1)
    )


def reversal_description(entry_number: str | None, entry_id: UUID, explicit: str | None = None) -> str:
    if explicit:
        return explicit
    return f"Reversal of {entry_number or entry_id}"
