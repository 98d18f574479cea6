"""
AuthorizationService -- permission checks for every mutating operation.

Responsibility:
    Resolves the actor's membership, builds the subject context and decides
    allow/deny for an action: through the organization's active policies
    when it has any, otherwise through the role permission matrix (RBAC
    fallback).  Denials are recorded and raised as PermissionDeniedError.

Architecture position:
    Kernel > Services -- imperative shell around the pure policy engine
    (domain/authorization/engine.py) and RBAC matrix
    (domain/authorization/permission_matrix.py).  Called first by every
    other service operation.

Invariants enforced:
    - Only active memberships authorize; a non-member is rejected with
      MembershipNotFoundError unless flagged platform admin.
    - A policy-mode decision is exactly ``evaluate_policies``: deny
      policies first, then allow policies, default deny.
    - Actions whose resource prefix has no policy resource type are
      decided by the RBAC matrix even in policy mode.

Failure modes:
    - MembershipNotFoundError: actor is not an active member.
    - PermissionDeniedError: decision was deny (carries the deciding
      policy id when a deny policy matched).

Audit relevance:
    Every denial is written to ``authorization_denials`` in the caller's
    session and logged at WARNING.  A caller that rolls its unit of work
    back on PermissionDeniedError discards that row with it; callers that
    must keep it commit on denial.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.authorization.context import (
    EnvironmentContext,
    PolicyEvaluationContext,
    ResourceContext,
    SubjectContext,
    create_subject_context_from_membership,
)
from ledger_kernel.domain.authorization.engine import evaluate_policies
from ledger_kernel.domain.authorization.permission_matrix import (
    PermissionMatrix,
    check_rbac,
    resource_type_for_action,
)
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import MembershipInfo
from ledger_kernel.domain.protocols import MembershipProvider, PolicySource
from ledger_kernel.domain.values import Actor
from ledger_kernel.exceptions import MembershipNotFoundError, PermissionDeniedError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.audit import AuthorizationDenial
from ledger_kernel.selectors.membership_selector import MembershipSelector
from ledger_kernel.selectors.policy_selector import PolicySelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.authorization")

PLATFORM_ADMIN_RBAC_REASON = "Platform administrator"


@dataclass(frozen=True)
class AuthorizationResult:
    allowed: bool
    action: str
    resource_type: str
    reason: str
    policy_id: UUID | None = None
    used_rbac: bool = False
    membership: MembershipInfo | None = None


class AuthorizationService(BaseService[AuthorizationDenial]):
    """
    Decides whether an actor may perform an action in an organization.

    Contract:
        ``check_permission`` returns a result and never raises on deny;
        ``require_permission`` records the denial and raises.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        permission_matrix: PermissionMatrix | None = None,
        membership_provider: MembershipProvider | None = None,
        policy_source: PolicySource | None = None,
    ):
        super().__init__(session, clock)
        self._matrix = permission_matrix or PermissionMatrix()
        self._memberships = membership_provider or MembershipSelector(session)
        self._policies = policy_source or PolicySelector(session)

    def _subject(self, organization_id: UUID, actor: Actor) -> tuple[SubjectContext, MembershipInfo | None]:
        membership = self._memberships.find_membership(organization_id, actor.user_id)
        if membership is None:
            if not actor.is_platform_admin:
                raise MembershipNotFoundError(str(organization_id), str(actor.user_id))
            return (
                SubjectContext(
                    user_id=actor.user_id,
                    organization_id=organization_id,
                    role=None,
                    is_platform_admin=True,
                ),
                None,
            )
        return create_subject_context_from_membership(membership, actor.is_platform_admin), membership

    def _rbac(
        self, subject: SubjectContext, membership: MembershipInfo | None, action: str, resource_type: str
    ) -> AuthorizationResult:
        if subject.is_platform_admin:
            allowed, reason = True, PLATFORM_ADMIN_RBAC_REASON
        else:
            allowed, reason = check_rbac(self._matrix, subject.role, subject.functional_roles, action)
        return AuthorizationResult(
            allowed=allowed,
            action=action,
            resource_type=resource_type,
            reason=reason,
            used_rbac=True,
            membership=membership,
        )

    def check_permission(
        self,
        organization_id: UUID,
        actor: Actor,
        action: str,
        resource: ResourceContext | None = None,
        environment: EnvironmentContext | None = None,
    ) -> AuthorizationResult:
        """Decide ``action`` for ``actor`` without raising on deny."""
        subject, membership = self._subject(organization_id, actor)
        resource_type = resource.type if resource is not None else resource_type_for_action(action)

        policies = self._policies.find_active_by_organization(organization_id)
        if not policies or resource_type is None:
            return self._rbac(subject, membership, action, resource_type or "unknown")

        context = PolicyEvaluationContext(
            subject=subject,
            resource=resource if resource is not None else ResourceContext(type=resource_type),
            action=action,
            environment=environment,
        )
        decision = evaluate_policies(policies, context)
        return AuthorizationResult(
            allowed=decision.is_allowed,
            action=action,
            resource_type=resource_type,
            reason=decision.reason,
            policy_id=decision.deciding_policy_id,
            membership=membership,
        )

    def require_permission(
        self,
        organization_id: UUID,
        actor: Actor,
        action: str,
        resource: ResourceContext | None = None,
        environment: EnvironmentContext | None = None,
    ) -> AuthorizationResult:
        """
        Decide ``action`` and raise on deny.

        Raises:
            MembershipNotFoundError: Actor has no active membership.
            PermissionDeniedError: The decision was deny.
        """
        result = self.check_permission(organization_id, actor, action, resource, environment)
        if result.allowed:
            return result

        self._record_denial(organization_id, actor, result, resource, environment)
        # Only a matched deny policy is reported; default denies carry no policy id.
        raise PermissionDeniedError(
            action,
            result.resource_type,
            result.reason,
            str(result.policy_id) if result.policy_id is not None else None,
        )

    def check_permissions(
        self, organization_id: UUID, actor: Actor, actions: Iterable[str]
    ) -> dict[str, bool]:
        """Batch check without resource attributes; never raises on deny."""
        return {
            action: self.check_permission(organization_id, actor, action).allowed
            for action in actions
        }

    def _record_denial(
        self,
        organization_id: UUID,
        actor: Actor,
        result: AuthorizationResult,
        resource: ResourceContext | None,
        environment: EnvironmentContext | None,
    ) -> None:
        denial = AuthorizationDenial(
            organization_id=organization_id,
            user_id=actor.user_id,
            action=result.action,
            resource_type=result.resource_type,
            resource_id=resource.id if resource is not None else None,
            denial_reason=result.reason,
            ip_address=environment.ip_address if environment is not None else None,
            user_agent=environment.user_agent if environment is not None else None,
            occurred_at=self._clock.now(),
        )
        self.session.add(denial)
        self.session.flush()
        logger.warning(
            "permission_denied",
            extra={
                "organization_id": str(organization_id),
                "user_id": str(actor.user_id),
                "action": result.action,
                "resource_type": result.resource_type,
                "reason": result.reason,
                "used_rbac": result.used_rbac,
            },
        )
