"""
Account hierarchy rules -- chart-of-accounts tree validation.

Responsibility:
    Parent/child validation, cycle prevention, hierarchy level computation
    and the active/postable gate applied to accounts referenced by journal
    lines.

Architecture position:
    Kernel > Domain -- pure functions over AccountInfo DTOs, zero I/O.
    The ancestor walk takes a lookup callable supplied by the service.

Invariants enforced:
    - A parent lives in the same company as its child.
    - hierarchy_level is parent.hierarchy_level + 1, or 1 for a root.
    - An account is never its own parent.  With CycleCheckMode.ANCESTORS
      it is also never an ancestor of its new parent.
    - An account with active direct children cannot be deactivated.
    - Journal lines only reference existing, active, postable accounts of
      the entry's company.

Failure modes:
    - ParentAccountNotFoundError, ParentAccountDifferentCompanyError,
      CircularAccountReferenceError, HasActiveChildAccountsError,
      AccountNotFoundError, AccountNotActiveError, AccountNotPostableError.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Iterable, Mapping
from uuid import UUID

from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.exceptions import (
    AccountNotActiveError,
    AccountNotFoundError,
    AccountNotPostableError,
    CircularAccountReferenceError,
    HasActiveChildAccountsError,
    ParentAccountDifferentCompanyError,
    ParentAccountNotFoundError,
)

ROOT_HIERARCHY_LEVEL = 1


class CycleCheckMode(str, Enum):
    """How far re-parenting looks for cycles."""

    SELF = "self"
    ANCESTORS = "ancestors"


def compute_hierarchy_level(parent: AccountInfo | None) -> int:
    if parent is None:
        return ROOT_HIERARCHY_LEVEL
    return parent.hierarchy_level + 1


def validate_parent(
    company_id: UUID,
    parent_account_id: UUID,
    parent: AccountInfo | None,
    account_id: UUID | None = None,
    cycle_check: CycleCheckMode = CycleCheckMode.SELF,
    get_account: Callable[[UUID], AccountInfo | None] | None = None,
) -> None:
    """Validate a proposed parent for a new or existing account.

    Args:
        company_id: Company of the account being created or updated.
        parent_account_id: Requested parent id.
        parent: The parent as loaded, or None if it does not exist.
        account_id: Id of the account being updated; None on create.
        cycle_check: SELF rejects only ``parent == account``; ANCESTORS
            also walks the parent chain.
        get_account: Lookup used by the ancestor walk.

    Raises:
        CircularAccountReferenceError, ParentAccountNotFoundError,
        ParentAccountDifferentCompanyError.
    """
    if account_id is not None and parent_account_id == account_id:
        raise CircularAccountReferenceError(str(account_id), str(parent_account_id))

    if parent is None:
        raise ParentAccountNotFoundError(str(parent_account_id))

    if parent.company_id != company_id:
        raise ParentAccountDifferentCompanyError(str(company_id), str(parent.company_id))

    if (
        account_id is not None
        and cycle_check == CycleCheckMode.ANCESTORS
        and get_account is not None
    ):
        _check_ancestors(account_id, parent, get_account)


def _check_ancestors(
    account_id: UUID,
    parent: AccountInfo,
    get_account: Callable[[UUID], AccountInfo | None],
) -> None:
    seen: set[UUID] = set()
    current: AccountInfo | None = parent
    while current is not None and current.parent_account_id is not None:
        if current.parent_account_id == account_id:
            raise CircularAccountReferenceError(str(account_id), str(parent.id))
        if current.id in seen:
            # Pre-existing loop not involving this account.
            break
        seen.add(current.id)
        current = get_account(current.parent_account_id)


def validate_deactivation(account_id: UUID, active_child_count: int) -> None:
    if active_child_count > 0:
        raise HasActiveChildAccountsError(str(account_id), active_child_count)


def validate_postable_accounts(
    company_id: UUID,
    account_ids: Iterable[UUID],
    accounts: Mapping[UUID, AccountInfo],
) -> None:
    """Check every referenced account exists in the company, is active and postable.

    Accounts of another company are reported as not found.
    """
    for account_id in account_ids:
        account = accounts.get(account_id)
        if account is None or account.company_id != company_id:
            raise AccountNotFoundError(str(account_id))
        if not account.is_active:
            raise AccountNotActiveError(str(account_id), account.account_number)
        if not account.is_postable:
            raise AccountNotPostableError(str(account_id), account.account_number)
