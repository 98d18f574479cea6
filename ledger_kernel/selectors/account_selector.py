"""
Module: ledger_kernel.selectors.account_selector
Responsibility: Read-only chart-of-accounts lookups: by id, by ids, by
    number within a company, and direct children.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - find_by_ids returns a mapping keyed by id; missing ids are simply
      absent so the caller can report the first one.
"""

from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.domain.values import AccountType, NormalBalance
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.base import BaseSelector


def account_to_info(account: Account) -> AccountInfo:
    return AccountInfo(
        id=account.id,
        company_id=account.company_id,
        account_number=account.account_number,
        name=account.name,
        account_type=AccountType(account.account_type),
        normal_balance=NormalBalance(account.normal_balance),
        hierarchy_level=account.hierarchy_level,
        is_postable=account.is_postable,
        is_active=account.is_active,
        account_category=account.account_category,
        description=account.description,
        parent_account_id=account.parent_account_id,
        is_intercompany=account.is_intercompany,
        currency_restriction=account.currency_restriction,
        deactivated_at=account.deactivated_at,
    )


class AccountSelector(BaseSelector[Account]):
    """Chart-of-accounts lookups."""

    def __init__(self, session: Session):
        super().__init__(session)

    def find_by_id(self, account_id: UUID) -> AccountInfo | None:
        account = self.session.get(Account, account_id)
        return account_to_info(account) if account is not None else None

    def find_by_ids(self, account_ids: Iterable[UUID]) -> dict[UUID, AccountInfo]:
        ids = list(dict.fromkeys(account_ids))
        if not ids:
            return {}
        accounts = self.session.execute(
            select(Account).where(Account.id.in_(ids))
        ).scalars().all()
        return {account.id: account_to_info(account) for account in accounts}

    def find_by_number(self, company_id: UUID, account_number: str) -> AccountInfo | None:
        account = self.session.execute(
            select(Account).where(
                Account.company_id == company_id,
                Account.account_number == account_number,
            )
        ).scalar_one_or_none()
        return account_to_info(account) if account is not None else None

    def find_children(self, parent_account_id: UUID, active_only: bool = False) -> list[AccountInfo]:
        query = select(Account).where(Account.parent_account_id == parent_account_id)
        if active_only:
            query = query.where(Account.is_active.is_(True))
        accounts = self.session.execute(query.order_by(Account.account_number)).scalars().all()
        return [account_to_info(account) for account in accounts]

    def count_active_children(self, parent_account_id: UUID) -> int:
        return self.session.execute(
            select(func.count(Account.id)).where(
                Account.parent_account_id == parent_account_id,
                Account.is_active.is_(True),
            )
        ).scalar_one()

    def find_by_company(self, company_id: UUID) -> list[AccountInfo]:
        accounts = self.session.execute(
            select(Account)
            .where(Account.company_id == company_id)
            .order_by(Account.account_number)
        ).scalars().all()
        return [account_to_info(account) for account in accounts]
