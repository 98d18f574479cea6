"""
OrganizationService -- tenants, companies and memberships.

Responsibility:
    Creates organizations (making the creator the owner and seeding the
    system policies), companies within them, and memberships.

Architecture position:
    Kernel > Services -- imperative shell.  Seeds policies through
    PolicyService and checks company/member administration through
    AuthorizationService.

Invariants enforced:
    - Every organization has at least one active owner: its creator.
    - Company functional currency is a valid ISO 4217 code.
    - One membership per (organization, user).

Failure modes:
    - OrganizationNotFoundError, InvalidCurrencyError,
      MembershipAlreadyExistsError, MembershipNotFoundError,
      PermissionDeniedError.
"""

from __future__ import annotations

from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import validate_currency
from ledger_kernel.domain.authorization.context import ResourceContext
from ledger_kernel.domain.authorization.system_policies import SystemPolicySpec
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import CompanyInfo, MembershipInfo, OrganizationInfo
from ledger_kernel.domain.values import (
    Actor,
    FunctionalRole,
    MembershipRole,
    MembershipStatus,
)
from ledger_kernel.exceptions import (
    MembershipAlreadyExistsError,
    MembershipNotFoundError,
    OrganizationNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.membership import FUNCTIONAL_ROLE_COLUMNS, OrganizationMembership
from ledger_kernel.models.organization import Company, Organization
from ledger_kernel.selectors.company_selector import company_to_info
from ledger_kernel.selectors.membership_selector import membership_to_info
from ledger_kernel.services.authorization_service import AuthorizationService
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.policy_service import PolicyService

logger = get_logger("services.organization")


class OrganizationService(BaseService[Organization]):
    """Tenant administration."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        authorization: AuthorizationService | None = None,
        system_policies: Sequence[SystemPolicySpec] = (),
    ):
        super().__init__(session, clock)
        self._authorization = authorization or AuthorizationService(session, clock)
        self._system_policies = tuple(system_policies)
        self._policies = PolicyService(session, clock)

    def _require_organization(self, organization_id: UUID) -> Organization:
        organization = self.session.get(Organization, organization_id)
        if organization is None:
            raise OrganizationNotFoundError(str(organization_id))
        return organization

    def _find_membership_row(self, organization_id: UUID, user_id: UUID) -> OrganizationMembership | None:
        return self.session.execute(
            select(OrganizationMembership).where(
                OrganizationMembership.organization_id == organization_id,
                OrganizationMembership.user_id == user_id,
            )
        ).scalar_one_or_none()

    def create_organization(
        self, name: str, actor: Actor, seed_system_policies: bool = True
    ) -> OrganizationInfo:
        """
        Create an organization owned by ``actor``.

        With ``seed_system_policies`` the organization is authorized by
        policies from the start; without it, by the RBAC matrix until
        policies are added.
        """
        organization = Organization(name=name, created_by_id=actor.user_id)
        self.session.add(organization)
        self.session.flush()

        self.session.add(
            OrganizationMembership(
                organization_id=organization.id,
                user_id=actor.user_id,
                role=MembershipRole.OWNER.value,
                status=MembershipStatus.ACTIVE.value,
                created_by_id=actor.user_id,
            )
        )
        self.session.flush()

        if seed_system_policies and self._system_policies:
            self._policies.seed_system_policies(organization.id, actor, self._system_policies)

        logger.info(
            "organization_created",
            extra={"organization_id": str(organization.id), "organization_name": name},
        )
        return OrganizationInfo(id=organization.id, name=organization.name)

    def create_company(
        self,
        organization_id: UUID,
        name: str,
        functional_currency: str,
        actor: Actor,
        fiscal_year_end_month: int = 12,
        fiscal_year_end_day: int = 31,
    ) -> CompanyInfo:
        self._require_organization(organization_id)
        self._authorization.require_permission(
            organization_id, actor, "company:create", ResourceContext(type="company")
        )
        company = Company(
            organization_id=organization_id,
            name=name,
            functional_currency=validate_currency(functional_currency),
            fiscal_year_end_month=fiscal_year_end_month,
            fiscal_year_end_day=fiscal_year_end_day,
            is_active=True,
            created_by_id=actor.user_id,
        )
        self.session.add(company)
        self.session.flush()
        logger.info(
            "company_created",
            extra={
                "company_id": str(company.id),
                "company_name": name,
                "functional_currency": company.functional_currency,
            },
        )
        return company_to_info(company)

    def add_member(
        self,
        organization_id: UUID,
        user_id: UUID,
        role: MembershipRole,
        actor: Actor,
        functional_roles: Iterable[FunctionalRole] = (),
    ) -> MembershipInfo:
        self._require_organization(organization_id)
        self._authorization.require_permission(
            organization_id, actor, "organization:manage_members", ResourceContext(type="organization")
        )
        if self._find_membership_row(organization_id, user_id) is not None:
            raise MembershipAlreadyExistsError(str(organization_id), str(user_id))

        membership = OrganizationMembership(
            organization_id=organization_id,
            user_id=user_id,
            role=MembershipRole(role).value,
            status=MembershipStatus.ACTIVE.value,
            created_by_id=actor.user_id,
        )
        for functional_role in functional_roles:
            setattr(membership, FUNCTIONAL_ROLE_COLUMNS[FunctionalRole(functional_role)], True)
        self.session.add(membership)
        self.session.flush()

        logger.info(
            "member_added",
            extra={
                "user_id": str(user_id),
                "role": membership.role,
                "functional_roles": sorted(r.value for r in membership.functional_roles),
            },
        )
        return membership_to_info(membership)

    def set_member_status(
        self,
        organization_id: UUID,
        user_id: UUID,
        status: MembershipStatus,
        actor: Actor,
    ) -> MembershipInfo:
        """Suspend, remove or reactivate a membership."""
        self._authorization.require_permission(
            organization_id, actor, "organization:manage_members", ResourceContext(type="organization")
        )
        membership = self._find_membership_row(organization_id, user_id)
        if membership is None:
            raise MembershipNotFoundError(str(organization_id), str(user_id))

        previous = membership.status
        membership.status = MembershipStatus(status).value
        membership.updated_by_id = actor.user_id
        self.session.flush()
        logger.info(
            "member_status_changed",
            extra={"user_id": str(user_id), "from_status": previous, "to_status": membership.status},
        )
        return membership_to_info(membership)
