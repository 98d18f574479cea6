"""
AccountService -- chart-of-accounts maintenance.

Responsibility:
    Creates, updates and deactivates accounts of a company, applying the
    hierarchy rules of domain/account_hierarchy.py.

Architecture position:
    Kernel > Services -- imperative shell.  Authorizes through
    AuthorizationService, validates with the pure hierarchy rules, writes
    the Account row and its audit record in the caller's transaction.

Invariants enforced:
    - Account numbers are unique within a company.
    - A parent exists, lives in the same company, and is never the account
      itself (nor, with CycleCheckMode.ANCESTORS, one of its descendants).
    - hierarchy_level = parent level + 1, recomputed on re-parenting.
    - Deactivation requires no active direct children and is one-way.
    - Accounts and companies of another organization are reported as not
      found before any authorization runs.

Failure modes:
    - CompanyNotFoundError, AccountNotFoundError,
      AccountNumberAlreadyExistsError, ParentAccountNotFoundError,
      ParentAccountDifferentCompanyError, CircularAccountReferenceError,
      HasActiveChildAccountsError, PermissionDeniedError.

Audit relevance:
    Create, update and deactivate are written to the audit log.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.types import validate_currency
from ledger_kernel.domain.account_hierarchy import (
    CycleCheckMode,
    compute_hierarchy_level,
    validate_deactivation,
    validate_parent,
)
from ledger_kernel.domain.authorization.context import ResourceContext
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import AccountInfo, CompanyInfo
from ledger_kernel.domain.values import AccountType, Actor, NormalBalance
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AccountNumberAlreadyExistsError,
    CompanyNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.account_selector import AccountSelector, account_to_info
from ledger_kernel.selectors.company_selector import CompanySelector
from ledger_kernel.services.audit_service import AuditService
from ledger_kernel.services.authorization_service import AuthorizationService
from ledger_kernel.services.base import UNSET, BaseService

logger = get_logger("services.account")

ENTITY_TYPE = "account"


def _account_resource(
    account_number: str,
    account_type: AccountType,
    is_intercompany: bool,
    account_id: UUID | None = None,
) -> ResourceContext:
    # Range conditions only apply to numeric account numbers.
    return ResourceContext(
        type="account",
        id=account_id,
        account_number=int(account_number) if account_number.isdigit() else None,
        account_type=AccountType(account_type),
        is_intercompany=is_intercompany,
    )


class AccountService(BaseService[Account]):
    """Chart-of-accounts commands."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        authorization: AuthorizationService | None = None,
        cycle_check: CycleCheckMode = CycleCheckMode.SELF,
    ):
        super().__init__(session, clock)
        self._authorization = authorization or AuthorizationService(session, clock)
        self._cycle_check = CycleCheckMode(cycle_check)
        self._accounts = AccountSelector(session)
        self._companies = CompanySelector(session)
        self._audit = AuditService(session, clock)

    def _require_company(self, company_id: UUID, organization_id: UUID) -> CompanyInfo:
        company = self._companies.find_by_id(company_id, organization_id)
        if company is None:
            raise CompanyNotFoundError(str(company_id))
        return company

    def _load(self, account_id: UUID, organization_id: UUID) -> tuple[Account, CompanyInfo]:
        account = self.session.get(Account, account_id)
        company = None
        if account is not None:
            company = self._companies.find_by_id(account.company_id, organization_id)
        if company is None:
            raise AccountNotFoundError(str(account_id))
        return account, company

    def create_account(
        self,
        company_id: UUID,
        organization_id: UUID,
        account_number: str,
        name: str,
        account_type: AccountType,
        normal_balance: NormalBalance,
        actor: Actor,
        parent_account_id: UUID | None = None,
        description: str | None = None,
        account_category: str | None = None,
        is_postable: bool = True,
        is_intercompany: bool = False,
        currency_restriction: str | None = None,
    ) -> AccountInfo:
        company = self._require_company(company_id, organization_id)
        self._authorization.require_permission(
            company.organization_id,
            actor,
            "account:create",
            _account_resource(account_number, account_type, is_intercompany),
        )

        if self._accounts.find_by_number(company_id, account_number) is not None:
            raise AccountNumberAlreadyExistsError(account_number, str(company_id))

        parent = None
        if parent_account_id is not None:
            parent = self._accounts.find_by_id(parent_account_id)
            validate_parent(company_id, parent_account_id, parent)

        account = Account(
            company_id=company_id,
            account_number=account_number,
            name=name,
            description=description,
            account_type=AccountType(account_type).value,
            account_category=account_category,
            normal_balance=NormalBalance(normal_balance).value,
            parent_account_id=parent_account_id,
            hierarchy_level=compute_hierarchy_level(parent),
            is_postable=is_postable,
            is_active=True,
            is_intercompany=is_intercompany,
            currency_restriction=(
                validate_currency(currency_restriction) if currency_restriction else None
            ),
            created_by_id=actor.user_id,
        )
        self.session.add(account)
        self.session.flush()

        self._audit.record_create(
            company.organization_id, ENTITY_TYPE, account.id, actor.user_id,
            entity_name=f"{account_number} {name}",
            changes={
                "account_type": account.account_type,
                "parent_account_id": parent_account_id,
                "hierarchy_level": account.hierarchy_level,
            },
        )
        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_number": account_number,
                "hierarchy_level": account.hierarchy_level,
            },
        )
        return account_to_info(account)

    def update_account(
        self,
        account_id: UUID,
        organization_id: UUID,
        actor: Actor,
        *,
        name: Any = UNSET,
        description: Any = UNSET,
        account_category: Any = UNSET,
        parent_account_id: Any = UNSET,
        is_postable: Any = UNSET,
        is_intercompany: Any = UNSET,
        currency_restriction: Any = UNSET,
    ) -> AccountInfo:
        """
        Partially update an account.  ``parent_account_id=None`` makes it a
        root account.

        Raises:
            CircularAccountReferenceError: re-parented to itself (or, in
                ancestors mode, to one of its descendants).
        """
        account, company = self._load(account_id, organization_id)
        self._authorization.require_permission(
            company.organization_id,
            actor,
            "account:update",
            _account_resource(
                account.account_number, account.account_type, account.is_intercompany, account.id
            ),
        )

        updates: dict[str, Any] = {}
        if parent_account_id is not UNSET and parent_account_id != account.parent_account_id:
            parent = None
            if parent_account_id is not None:
                parent = self._accounts.find_by_id(parent_account_id)
                validate_parent(
                    account.company_id,
                    parent_account_id,
                    parent,
                    account_id=account.id,
                    cycle_check=self._cycle_check,
                    get_account=self._accounts.find_by_id,
                )
            updates["parent_account_id"] = parent_account_id
            updates["hierarchy_level"] = compute_hierarchy_level(parent)
        if name is not UNSET:
            updates["name"] = name
        if description is not UNSET:
            updates["description"] = description
        if account_category is not UNSET:
            updates["account_category"] = account_category
        if is_postable is not UNSET:
            updates["is_postable"] = is_postable
        if is_intercompany is not UNSET:
            updates["is_intercompany"] = is_intercompany
        if currency_restriction is not UNSET:
            updates["currency_restriction"] = (
                validate_currency(currency_restriction) if currency_restriction else None
            )

        changes = {}
        for field_name, value in updates.items():
            current = getattr(account, field_name)
            if current != value:
                changes[field_name] = {"from": current, "to": value}
                setattr(account, field_name, value)

        if changes:
            account.updated_by_id = actor.user_id
            self.session.flush()
            self._audit.record_update(
                company.organization_id, ENTITY_TYPE, account.id, actor.user_id, changes,
                entity_name=f"{account.account_number} {account.name}",
            )
            logger.info(
                "account_updated",
                extra={"account_id": str(account.id), "fields": sorted(changes)},
            )
        return account_to_info(account)

    def deactivate_account(self, account_id: UUID, organization_id: UUID, actor: Actor) -> AccountInfo:
        """
        Deactivate an account.  Already inactive accounts are returned
        unchanged.

        Raises:
            HasActiveChildAccountsError: a direct child is still active.
        """
        account, company = self._load(account_id, organization_id)
        self._authorization.require_permission(
            company.organization_id,
            actor,
            "account:deactivate",
            _account_resource(
                account.account_number, account.account_type, account.is_intercompany, account.id
            ),
        )
        if not account.is_active:
            return account_to_info(account)

        validate_deactivation(account.id, self._accounts.count_active_children(account.id))

        account.is_active = False
        account.deactivated_at = self._clock.now()
        account.updated_by_id = actor.user_id
        self.session.flush()

        self._audit.record_status_change(
            company.organization_id, ENTITY_TYPE, account.id, actor.user_id,
            from_status="active", to_status="inactive",
            entity_name=f"{account.account_number} {account.name}",
        )
        logger.info(
            "account_deactivated",
            extra={"account_id": str(account.id), "account_number": account.account_number},
        )
        return account_to_info(account)

    def get_account(self, account_id: UUID, organization_id: UUID, actor: Actor) -> AccountInfo:
        account, company = self._load(account_id, organization_id)
        self._authorization.require_permission(
            company.organization_id,
            actor,
            "account:read",
            _account_resource(
                account.account_number, account.account_type, account.is_intercompany, account.id
            ),
        )
        return account_to_info(account)
