"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the chart of accounts.  Accounts form a
    parent-pointer tree per company.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - account_number is unique within a company (uq_account_company_number).
    - parent_account_id references an account of the same company
      (checked by AccountService via domain/account_hierarchy.py).
    - Deactivation is one-way: deactivated_at is set once and there is no
      reactivation path.

Failure modes:
    - IntegrityError on a duplicate account number that slipped past the
      service check.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.values import AccountType, NormalBalance


class Account(TrackedBase):
    """Chart-of-accounts node."""

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("company_id", "account_number", name="uq_account_company_number"),
        Index("idx_account_parent", "parent_account_id"),
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("companies.id"),
        nullable=False,
    )

    account_number: Mapped[str] = mapped_column(
        String(20),
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

    account_type: Mapped[AccountType] = mapped_column(
        String(20),
        nullable=False,
    )

    account_category: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    normal_balance: Mapped[NormalBalance] = mapped_column(
        String(10),
        nullable=False,
    )

    parent_account_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    hierarchy_level: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )

    # Summary accounts are not postable
    is_postable: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    is_intercompany: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    currency_restriction: Mapped[str | None] = mapped_column(
        String(3),
        nullable=True,
    )

    deactivated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Account {self.account_number}: {self.name}>"
