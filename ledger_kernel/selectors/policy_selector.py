"""
Module: ledger_kernel.selectors.policy_selector
Responsibility: Read-only authorization policy lookups.  Parses the stored
    JSON condition documents into typed conditions.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Lookups by id are organization-scoped: a policy of another
      organization is reported as absent.
    - Results are ordered by priority, highest first.

Failure modes:
    - InvalidPolicyConditionError if a stored condition document is
      malformed.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.authorization.conditions import (
    action_from_dict,
    environment_from_dict,
    resource_from_dict,
    subject_from_dict,
)
from ledger_kernel.domain.dtos import PolicyInfo
from ledger_kernel.domain.values import PolicyEffect
from ledger_kernel.models.policy import AuthorizationPolicy
from ledger_kernel.selectors.base import BaseSelector


def policy_to_info(policy: AuthorizationPolicy) -> PolicyInfo:
    return PolicyInfo(
        id=policy.id,
        organization_id=policy.organization_id,
        name=policy.name,
        description=policy.description,
        subject=subject_from_dict(policy.subject),
        resource=resource_from_dict(policy.resource),
        action=action_from_dict(policy.action),
        environment=(
            environment_from_dict(policy.environment) if policy.environment is not None else None
        ),
        effect=PolicyEffect(policy.effect),
        priority=policy.priority,
        is_system_policy=policy.is_system_policy,
        is_active=policy.is_active,
        created_by=policy.created_by_id,
        created_at=policy.created_at,
        updated_at=policy.updated_at,
    )


class PolicySelector(BaseSelector[AuthorizationPolicy]):
    """Authorization policy lookups."""

    def __init__(self, session: Session):
        super().__init__(session)

    def find_by_organization(self, organization_id: UUID) -> list[PolicyInfo]:
        policies = self.session.execute(
            select(AuthorizationPolicy)
            .where(AuthorizationPolicy.organization_id == organization_id)
            .order_by(AuthorizationPolicy.priority.desc(), AuthorizationPolicy.name)
        ).scalars().all()
        return [policy_to_info(policy) for policy in policies]

    def find_active_by_organization(self, organization_id: UUID) -> list[PolicyInfo]:
        policies = self.session.execute(
            select(AuthorizationPolicy)
            .where(
                AuthorizationPolicy.organization_id == organization_id,
                AuthorizationPolicy.is_active.is_(True),
            )
            .order_by(AuthorizationPolicy.priority.desc(), AuthorizationPolicy.name)
        ).scalars().all()
        return [policy_to_info(policy) for policy in policies]

    def find_by_id(self, organization_id: UUID, policy_id: UUID) -> PolicyInfo | None:
        policy = self.session.get(AuthorizationPolicy, policy_id)
        if policy is None or policy.organization_id != organization_id:
            return None
        return policy_to_info(policy)
