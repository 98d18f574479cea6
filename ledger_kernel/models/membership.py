"""
Module: ledger_kernel.models.membership
Responsibility: ORM persistence for a user's membership in an organization:
    base role, functional-role flags and membership status.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - One membership per (organization, user) (uq_membership_org_user).
    - Only ACTIVE memberships authorize anything; the selector filters the
      others out.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.values import FunctionalRole, MembershipRole, MembershipStatus

# functional role -> boolean column on OrganizationMembership
FUNCTIONAL_ROLE_COLUMNS: dict[FunctionalRole, str] = {
    FunctionalRole.CONTROLLER: "is_controller",
    FunctionalRole.FINANCE_MANAGER: "is_finance_manager",
    FunctionalRole.ACCOUNTANT: "is_accountant",
    FunctionalRole.PERIOD_ADMIN: "is_period_admin",
    FunctionalRole.CONSOLIDATION_MANAGER: "is_consolidation_manager",
}


class OrganizationMembership(TrackedBase):
    """A user's role within one organization."""

    __tablename__ = "organization_memberships"

    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_membership_org_user"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("organizations.id"),
        nullable=False,
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    role: Mapped[MembershipRole] = mapped_column(
        String(20),
        nullable=False,
    )

    is_controller: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_finance_manager: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_accountant: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_period_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_consolidation_manager: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    status: Mapped[MembershipStatus] = mapped_column(
        String(20),
        default=MembershipStatus.ACTIVE,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<OrganizationMembership {self.user_id} {self.role}>"

    @property
    def functional_roles(self) -> frozenset[FunctionalRole]:
        return frozenset(
            role for role, column in FUNCTIONAL_ROLE_COLUMNS.items() if getattr(self, column)
        )
