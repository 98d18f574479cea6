"""
Module: ledger_kernel.models.organization
Responsibility: ORM persistence for tenants: the organization and the
    companies (legal entities) it owns.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - functional_currency is a 3-letter ISO 4217 code (validated by the
      organization service before insert).
    - fiscal_year_end_month/day default to December 31.

Audit relevance:
    Every tenant-scoped row (accounts, periods, entries, policies) hangs off
    a Company or an Organization.
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString


class Organization(TrackedBase):
    """Top-level tenant.  Owns memberships, policies and companies."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Organization {self.name}>"


class Company(TrackedBase):
    """Legal entity keeping its own books within an organization."""

    __tablename__ = "companies"

    __table_args__ = (
        Index("idx_company_organization", "organization_id"),
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

    functional_currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    fiscal_year_end_month: Mapped[int] = mapped_column(
        Integer,
        default=12,
        nullable=False,
    )

    fiscal_year_end_day: Mapped[int] = mapped_column(
        Integer,
        default=31,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Company {self.name} ({self.functional_currency})>"
