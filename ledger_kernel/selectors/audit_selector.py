"""
Module: ledger_kernel.selectors.audit_selector
Responsibility: Read-only access to the audit log and the authorization
    denial log.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import AuditLogInfo
from ledger_kernel.models.audit import AuditLogEntry, AuthorizationDenial
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AuthorizationDenialInfo:
    id: UUID
    organization_id: UUID
    user_id: UUID
    action: str
    resource_type: str
    denial_reason: str
    occurred_at: datetime
    resource_id: UUID | None = None
    ip_address: str | None = None
    user_agent: str | None = None


def audit_to_info(record: AuditLogEntry) -> AuditLogInfo:
    return AuditLogInfo(
        id=record.id,
        organization_id=record.organization_id,
        entity_type=record.entity_type,
        entity_id=record.entity_id,
        action=record.action,
        actor_id=record.actor_id,
        occurred_at=record.occurred_at,
        entity_name=record.entity_name,
        changes=record.changes,
    )


class AuditSelector(BaseSelector[AuditLogEntry]):
    """Audit and denial log queries, oldest first."""

    def __init__(self, session: Session):
        super().__init__(session)

    def find_for_entity(self, entity_type: str, entity_id: UUID) -> list[AuditLogInfo]:
        records = self.session.execute(
            select(AuditLogEntry)
            .where(
                AuditLogEntry.entity_type == entity_type,
                AuditLogEntry.entity_id == entity_id,
            )
            .order_by(AuditLogEntry.occurred_at, AuditLogEntry.id)
        ).scalars().all()
        return [audit_to_info(record) for record in records]

    def find_denials(
        self, organization_id: UUID, user_id: UUID | None = None
    ) -> list[AuthorizationDenialInfo]:
        query = select(AuthorizationDenial).where(
            AuthorizationDenial.organization_id == organization_id
        )
        if user_id is not None:
            query = query.where(AuthorizationDenial.user_id == user_id)
        denials = self.session.execute(query.order_by(AuthorizationDenial.occurred_at)).scalars().all()
        return [
            AuthorizationDenialInfo(
                id=denial.id,
                organization_id=denial.organization_id,
                user_id=denial.user_id,
                action=denial.action,
                resource_type=denial.resource_type,
                denial_reason=denial.denial_reason,
                occurred_at=denial.occurred_at,
                resource_id=denial.resource_id,
                ip_address=denial.ip_address,
                user_agent=denial.user_agent,
            )
            for denial in denials
        ]
