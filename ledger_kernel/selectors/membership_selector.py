"""
Module: ledger_kernel.selectors.membership_selector
Responsibility: Resolves a user's active membership in an organization.
    Implements the MembershipProvider protocol consumed by
    AuthorizationService.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Only ACTIVE memberships resolve; suspended or removed memberships
      are reported as absent.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import MembershipInfo
from ledger_kernel.domain.values import MembershipRole, MembershipStatus
from ledger_kernel.models.membership import OrganizationMembership
from ledger_kernel.selectors.base import BaseSelector


def membership_to_info(membership: OrganizationMembership) -> MembershipInfo:
    return MembershipInfo(
        id=membership.id,
        organization_id=membership.organization_id,
        user_id=membership.user_id,
        role=MembershipRole(membership.role),
        status=MembershipStatus(membership.status),
        functional_roles=membership.functional_roles,
    )


class MembershipSelector(BaseSelector[OrganizationMembership]):
    """Membership lookups."""

    def __init__(self, session: Session):
        super().__init__(session)

    def find_membership(self, organization_id: UUID, user_id: UUID) -> MembershipInfo | None:
        """Active membership of ``user_id`` in ``organization_id``, if any."""
        membership = self.session.execute(
            select(OrganizationMembership).where(
                OrganizationMembership.organization_id == organization_id,
                OrganizationMembership.user_id == user_id,
                OrganizationMembership.status == MembershipStatus.ACTIVE.value,
            )
        ).scalar_one_or_none()
        return membership_to_info(membership) if membership is not None else None

    def find_by_organization(self, organization_id: UUID) -> list[MembershipInfo]:
        memberships = self.session.execute(
            select(OrganizationMembership).where(
                OrganizationMembership.organization_id == organization_id
            )
        ).scalars().all()
        return [membership_to_info(membership) for membership in memberships]
