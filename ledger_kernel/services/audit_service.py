"""
AuditService -- append-only audit trail of entity changes.

Responsibility:
    Writes one AuditLogEntry per create, update, status change or delete of
    a journal entry, account, fiscal period or policy, in the same
    transaction as the change itself.

Architecture position:
    Kernel > Services -- imperative shell.  Called by every mutating
    service after its change has been flushed.

Invariants enforced:
    - Records are only ever added; nothing here updates or deletes.
    - occurred_at comes from the injected Clock.

Audit relevance:
    The audit log is what answers "who changed this, when, and from what"
    for the financial record.
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import UUID

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.audit import AuditLogEntry
from ledger_kernel.services.base import BaseService

logger = get_logger("services.audit")


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    STATUS_CHANGE = "status_change"
    DELETE = "delete"


def _plain(value: Any) -> Any:
    """JSON-safe form of a change value."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _plain(item) for key, item in value.items()}
    if value is None or isinstance(value, (bool, int, str)):
        return value
    return str(value)


class AuditService(BaseService[AuditLogEntry]):
    """Records audit log entries in the caller's transaction."""

    def record(
        self,
        organization_id: UUID,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        actor_id: UUID,
        entity_name: str | None = None,
        changes: dict[str, Any] | None = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            organization_id=organization_id,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            action=AuditAction(action).value,
            actor_id=actor_id,
            changes=_plain(changes) if changes else None,
            occurred_at=self._clock.now(),
        )
        self.session.add(entry)
        self.session.flush()
        logger.debug(
            "audit_recorded",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "audit_action": entry.action,
            },
        )
        return entry

    def record_create(self, organization_id, entity_type, entity_id, actor_id, entity_name=None, changes=None):
        return self.record(
            organization_id, entity_type, entity_id, AuditAction.CREATE,
            actor_id, entity_name, changes,
        )

    def record_update(self, organization_id, entity_type, entity_id, actor_id, changes, entity_name=None):
        """``changes`` maps field name to ``{"from": old, "to": new}``."""
        return self.record(
            organization_id, entity_type, entity_id, AuditAction.UPDATE,
            actor_id, entity_name, changes,
        )

    def record_status_change(
        self,
        organization_id: UUID,
        entity_type: str,
        entity_id: UUID,
        actor_id: UUID,
        from_status: Any,
        to_status: Any,
        entity_name: str | None = None,
        reason: str | None = None,
    ) -> AuditLogEntry:
        changes: dict[str, Any] = {"status": {"from": from_status, "to": to_status}}
        if reason:
            changes["reason"] = reason
        return self.record(
            organization_id, entity_type, entity_id, AuditAction.STATUS_CHANGE,
            actor_id, entity_name, changes,
        )

    def record_delete(self, organization_id, entity_type, entity_id, actor_id, entity_name=None):
        return self.record(
            organization_id, entity_type, entity_id, AuditAction.DELETE,
            actor_id, entity_name,
        )
