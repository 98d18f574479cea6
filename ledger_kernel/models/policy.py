"""
Module: ledger_kernel.models.policy
Responsibility: ORM persistence for authorization policies.  Conditions are
    stored as JSON documents and parsed into the closed condition types of
    domain/authorization/conditions.py when read.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - is_system_policy rows are never updated or deleted (PolicyService).
    - User policies carry priority 0..899; 900..1000 is reserved.
"""

from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.values import PolicyEffect


class AuthorizationPolicy(TrackedBase):
    """Declarative allow/deny rule scoped to an organization."""

    __tablename__ = "authorization_policies"

    __table_args__ = (
        Index("idx_policy_organization_active", "organization_id", "is_active"),
    )

    organization_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("organizations.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
    )

    subject: Mapped[dict] = mapped_column(JSON, nullable=False)
    resource: Mapped[dict] = mapped_column(JSON, nullable=False)
    action: Mapped[dict] = mapped_column(JSON, nullable=False)
    environment: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    effect: Mapped[PolicyEffect] = mapped_column(
        String(10),
        nullable=False,
    )

    priority: Mapped[int] = mapped_column(
        Integer,
        default=500,
        nullable=False,
    )

    is_system_policy: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuthorizationPolicy {self.name} {self.effect}@{self.priority}>"
