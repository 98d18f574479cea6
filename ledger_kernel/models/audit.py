"""
Module: ledger_kernel.models.audit
Responsibility: Append-only audit records: entity changes (AuditLogEntry)
    and denied permission checks (AuthorizationDenial).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Rows are inserted, never updated or deleted (AuditService and
      AuthorizationService only ever add).
    - occurred_at comes from the injected Clock.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, UUIDString


class AuditLogEntry(Base):
    """One create / update / status_change / delete of a tracked entity."""

    __tablename__ = "audit_log"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_organization", "organization_id", "occurred_at"),
    )

    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # journal_entry, account, policy, fiscal_period
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    entity_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # create, update, status_change, delete
    action: Mapped[str] = mapped_column(String(30), nullable=False)

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    changes: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLogEntry {self.entity_type}:{self.entity_id} {self.action}>"


class AuthorizationDenial(Base):
    """A permission check that was denied."""

    __tablename__ = "authorization_denials"

    __table_args__ = (
        Index("idx_denial_organization", "organization_id", "occurred_at"),
    )

    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    action: Mapped[str] = mapped_column(String(100), nullable=False)

    resource_type: Mapped[str] = mapped_column(String(50), nullable=False)

    resource_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    denial_reason: Mapped[str] = mapped_column(String(1000), nullable=False)

    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<AuthorizationDenial {self.user_id} {self.action}>"
