"""
Tests for chart-of-accounts hierarchy rules.
"""

from dataclasses import replace
from uuid import uuid4

import pytest

from ledger_kernel.domain.account_hierarchy import (
    CycleCheckMode,
    compute_hierarchy_level,
    validate_deactivation,
    validate_parent,
    validate_postable_accounts,
)
from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.domain.values import AccountType, NormalBalance
from ledger_kernel.exceptions import (
    AccountNotActiveError,
    AccountNotFoundError,
    AccountNotPostableError,
    CircularAccountReferenceError,
    HasActiveChildAccountsError,
    ParentAccountDifferentCompanyError,
    ParentAccountNotFoundError,
)

COMPANY = uuid4()
OTHER_COMPANY = uuid4()


def _account(number="1000", parent=None, company_id=COMPANY, **overrides):
    fields = dict(
        id=uuid4(),
        company_id=company_id,
        account_number=number,
        name=f"Account {number}",
        account_type=AccountType.ASSET,
        normal_balance=NormalBalance.DEBIT,
        hierarchy_level=compute_hierarchy_level(parent),
        is_postable=True,
        is_active=True,
        parent_account_id=parent.id if parent else None,
    )
    fields.update(overrides)
    return AccountInfo(**fields)


class TestHierarchyLevel:

    def test_root_is_level_one(self):
        assert compute_hierarchy_level(None) == 1

    def test_child_is_one_below_parent(self):
        root = _account("1000")
        child = _account("1100", parent=root)
        assert child.hierarchy_level == 2
        assert compute_hierarchy_level(child) == 3


class TestValidateParent:

    def test_valid_parent_on_create(self):
        parent = _account()
        validate_parent(COMPANY, parent.id, parent)

    def test_missing_parent(self):
        missing = uuid4()
        with pytest.raises(ParentAccountNotFoundError) as exc_info:
            validate_parent(COMPANY, missing, None)
        assert exc_info.value.code == "PARENT_ACCOUNT_NOT_FOUND"

    def test_parent_in_other_company(self):
        parent = _account(company_id=OTHER_COMPANY)
        with pytest.raises(ParentAccountDifferentCompanyError):
            validate_parent(COMPANY, parent.id, parent)

    def test_self_parent_rejected(self):
        account = _account()
        with pytest.raises(CircularAccountReferenceError) as exc_info:
            validate_parent(COMPANY, account.id, account, account_id=account.id)
        assert exc_info.value.code == "CIRCULAR_REFERENCE"

    def test_self_mode_does_not_walk_ancestors(self):
        account = _account("1000")
        child = _account("1100", parent=account)
        validate_parent(
            COMPANY, child.id, child, account_id=account.id,
            cycle_check=CycleCheckMode.SELF, get_account={child.id: child}.get,
        )

    def test_ancestors_mode_rejects_descendant_as_parent(self):
        account = _account("1000")
        child = _account("1100", parent=account)
        grandchild = _account("1110", parent=child)
        lookup = {a.id: a for a in (account, child, grandchild)}.get

        with pytest.raises(CircularAccountReferenceError):
            validate_parent(
                COMPANY, grandchild.id, grandchild, account_id=account.id,
                cycle_check=CycleCheckMode.ANCESTORS, get_account=lookup,
            )

    def test_ancestors_mode_accepts_unrelated_branch(self):
        account = _account("1000")
        other_root = _account("2000")
        other_child = _account("2100", parent=other_root)
        lookup = {a.id: a for a in (account, other_root, other_child)}.get

        validate_parent(
            COMPANY, other_child.id, other_child, account_id=account.id,
            cycle_check=CycleCheckMode.ANCESTORS, get_account=lookup,
        )


class TestDeactivation:

    def test_no_active_children(self):
        validate_deactivation(uuid4(), 0)

    def test_active_children_block_deactivation(self):
        with pytest.raises(HasActiveChildAccountsError) as exc_info:
            validate_deactivation(uuid4(), 2)
        assert exc_info.value.code == "HAS_ACTIVE_CHILDREN"
        assert exc_info.value.child_count == 2


class TestPostableAccounts:

    def test_active_postable_accounts_pass(self):
        cash = _account("1000")
        validate_postable_accounts(COMPANY, [cash.id], {cash.id: cash})

    def test_unknown_account(self):
        with pytest.raises(AccountNotFoundError):
            validate_postable_accounts(COMPANY, [uuid4()], {})

    def test_other_company_account_reported_as_not_found(self):
        foreign = _account(company_id=OTHER_COMPANY)
        with pytest.raises(AccountNotFoundError):
            validate_postable_accounts(COMPANY, [foreign.id], {foreign.id: foreign})

    def test_inactive_account(self):
        inactive = replace(_account(), is_active=False)
        with pytest.raises(AccountNotActiveError):
            validate_postable_accounts(COMPANY, [inactive.id], {inactive.id: inactive})

    def test_summary_account_not_postable(self):
        summary = _account(is_postable=False)
        with pytest.raises(AccountNotPostableError) as exc_info:
            validate_postable_accounts(COMPANY, [summary.id], {summary.id: summary})
        assert exc_info.value.code == "ACCOUNT_NOT_POSTABLE"
