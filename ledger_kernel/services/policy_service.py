"""
PolicyService -- administration of an organization's authorization policies.

Responsibility:
    Lists, creates, updates and deletes user policies, seeds the system
    policies of a new organization, and dry-runs the policy engine for a
    target user (``test_policy``).

Architecture position:
    Kernel > Services -- imperative shell.  Condition documents are parsed
    and serialized through domain/authorization/conditions.py; the engine
    itself is pure (domain/authorization/engine.py).

Invariants enforced:
    - Only owners, admins and platform admins administer policies.
    - User policies use priority 0..899; 900..1000 is reserved for system
      policies.
    - System policies are never updated or deleted.
    - Policies are organization-scoped: an id from another organization is
      reported as not found.

Failure modes:
    - MembershipNotFoundError / PermissionDeniedError: actor may not
      administer policies.
    - PolicyNotFoundError, PolicyPriorityValidationError,
      SystemPolicyCannotBeModifiedError, InvalidResourceTypeError,
      InvalidPolicyConditionError.

Audit relevance:
    Policy create, update and delete are written to the audit log with the
    serialized conditions.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.authorization.conditions import (
    RESOURCE_TYPES,
    ActionCondition,
    EnvironmentCondition,
    ResourceCondition,
    SubjectCondition,
    action_from_dict,
    action_to_dict,
    environment_from_dict,
    environment_to_dict,
    resource_from_dict,
    resource_to_dict,
    subject_from_dict,
    subject_to_dict,
)
from ledger_kernel.domain.authorization.context import (
    PolicyEvaluationContext,
    ResourceContext,
    create_subject_context_from_membership,
)
from ledger_kernel.domain.authorization.engine import evaluate_policies
from ledger_kernel.domain.authorization.system_policies import (
    SystemPolicySpec,
    has_system_policies,
    validate_user_priority,
)
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import PolicyInfo
from ledger_kernel.domain.protocols import MembershipProvider
from ledger_kernel.domain.values import Actor, MembershipRole, PolicyEffect
from ledger_kernel.exceptions import (
    InvalidResourceTypeError,
    MembershipNotFoundError,
    PermissionDeniedError,
    PolicyNotFoundError,
    SystemPolicyCannotBeModifiedError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.policy import AuthorizationPolicy
from ledger_kernel.selectors.membership_selector import MembershipSelector
from ledger_kernel.selectors.policy_selector import PolicySelector, policy_to_info
from ledger_kernel.services.audit_service import AuditService
from ledger_kernel.services.base import UNSET, BaseService

logger = get_logger("services.policy")

ENTITY_TYPE = "policy"
MANAGE_POLICIES_ACTION = "policy:manage"
_POLICY_ADMIN_ROLES = frozenset({MembershipRole.OWNER, MembershipRole.ADMIN})


@dataclass(frozen=True)
class PolicyTestResult:
    decision: PolicyEffect
    reason: str
    matched_policies: tuple[PolicyInfo, ...]


def _condition(value: Any, parser: Callable[[Any], Any], expected: type) -> Any:
    """Accept a typed condition or its dict form."""
    return value if isinstance(value, expected) else parser(value)


class PolicyService(BaseService[AuthorizationPolicy]):
    """Policy administration for one session."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        membership_provider: MembershipProvider | None = None,
    ):
        super().__init__(session, clock)
        self._memberships = membership_provider or MembershipSelector(session)
        self._selector = PolicySelector(session)
        self._audit = AuditService(session, clock)

    # =====================================================================
    # Guards
    # =====================================================================

    def _require_policy_admin(self, organization_id: UUID, actor: Actor) -> None:
        if actor.is_platform_admin:
            return
        membership = self._memberships.find_membership(organization_id, actor.user_id)
        if membership is None:
            raise MembershipNotFoundError(str(organization_id), str(actor.user_id))
        if membership.role not in _POLICY_ADMIN_ROLES:
            logger.warning(
                "policy_admin_denied",
                extra={"user_id": str(actor.user_id), "role": membership.role.value},
            )
            raise PermissionDeniedError(
                MANAGE_POLICIES_ACTION,
                "organization",
                "Only organization owners and admins can manage policies",
            )

    def _load(self, organization_id: UUID, policy_id: UUID) -> AuthorizationPolicy:
        policy = self.session.get(AuthorizationPolicy, policy_id)
        if policy is None or policy.organization_id != organization_id:
            raise PolicyNotFoundError(str(policy_id))
        return policy

    # =====================================================================
    # Queries
    # =====================================================================

    def list_policies(self, organization_id: UUID, actor: Actor) -> list[PolicyInfo]:
        self._require_policy_admin(organization_id, actor)
        return self._selector.find_by_organization(organization_id)

    def get_policy(self, organization_id: UUID, policy_id: UUID, actor: Actor) -> PolicyInfo:
        self._require_policy_admin(organization_id, actor)
        return policy_to_info(self._load(organization_id, policy_id))

    def has_system_policies(self, organization_id: UUID) -> bool:
        return has_system_policies(self._selector.find_by_organization(organization_id))

    # =====================================================================
    # Commands
    # =====================================================================

    def create_policy(
        self,
        organization_id: UUID,
        actor: Actor,
        name: str,
        subject: SubjectCondition | Mapping[str, Any],
        resource: ResourceCondition | Mapping[str, Any],
        action: ActionCondition | Mapping[str, Any],
        effect: PolicyEffect,
        priority: int = 500,
        description: str | None = None,
        environment: EnvironmentCondition | Mapping[str, Any] | None = None,
        is_active: bool = True,
    ) -> PolicyInfo:
        """
        Create a user policy.

        Raises:
            PolicyPriorityValidationError: priority outside 0..899.
            InvalidPolicyConditionError: a condition document is malformed.
        """
        self._require_policy_admin(organization_id, actor)
        validate_user_priority(priority)

        policy = AuthorizationPolicy(
            organization_id=organization_id,
            name=name,
            description=description,
            subject=subject_to_dict(_condition(subject, subject_from_dict, SubjectCondition)),
            resource=resource_to_dict(_condition(resource, resource_from_dict, ResourceCondition)),
            action=action_to_dict(_condition(action, action_from_dict, ActionCondition)),
            environment=(
                environment_to_dict(_condition(environment, environment_from_dict, EnvironmentCondition))
                if environment is not None
                else None
            ),
            effect=PolicyEffect(effect).value,
            priority=priority,
            is_system_policy=False,
            is_active=is_active,
            created_by_id=actor.user_id,
        )
        self.session.add(policy)
        self.session.flush()

        self._audit.record_create(
            organization_id, ENTITY_TYPE, policy.id, actor.user_id,
            entity_name=name,
            changes={
                "effect": policy.effect,
                "priority": priority,
                "subject": policy.subject,
                "resource": policy.resource,
                "action": policy.action,
                "environment": policy.environment,
            },
        )
        logger.info(
            "policy_created",
            extra={"policy_id": str(policy.id), "policy_name": name, "priority": priority},
        )
        return policy_to_info(policy)

    def update_policy(
        self,
        organization_id: UUID,
        policy_id: UUID,
        actor: Actor,
        *,
        name: Any = UNSET,
        description: Any = UNSET,
        subject: Any = UNSET,
        resource: Any = UNSET,
        action: Any = UNSET,
        environment: Any = UNSET,
        effect: Any = UNSET,
        priority: Any = UNSET,
        is_active: Any = UNSET,
    ) -> PolicyInfo:
        """
        Partially update a user policy.  Omitted fields are unchanged;
        ``environment=None`` removes the environment condition.

        Raises:
            PolicyNotFoundError, SystemPolicyCannotBeModifiedError,
            PolicyPriorityValidationError.
        """
        self._require_policy_admin(organization_id, actor)
        policy = self._load(organization_id, policy_id)
        if policy.is_system_policy:
            raise SystemPolicyCannotBeModifiedError(str(policy.id), policy.name, "modified")
        if priority is not UNSET:
            validate_user_priority(priority)

        updates: dict[str, Any] = {}
        if name is not UNSET:
            updates["name"] = name
        if description is not UNSET:
            updates["description"] = description
        if subject is not UNSET:
            updates["subject"] = subject_to_dict(_condition(subject, subject_from_dict, SubjectCondition))
        if resource is not UNSET:
            updates["resource"] = resource_to_dict(
                _condition(resource, resource_from_dict, ResourceCondition)
            )
        if action is not UNSET:
            updates["action"] = action_to_dict(_condition(action, action_from_dict, ActionCondition))
        if environment is not UNSET:
            updates["environment"] = (
                environment_to_dict(_condition(environment, environment_from_dict, EnvironmentCondition))
                if environment is not None
                else None
            )
        if effect is not UNSET:
            updates["effect"] = PolicyEffect(effect).value
        if priority is not UNSET:
            updates["priority"] = priority
        if is_active is not UNSET:
            updates["is_active"] = is_active

        changes = {}
        for field_name, value in updates.items():
            current = getattr(policy, field_name)
            if current != value:
                changes[field_name] = {"from": current, "to": value}
                setattr(policy, field_name, value)

        if changes:
            policy.updated_by_id = actor.user_id
            self.session.flush()
            self._audit.record_update(
                organization_id, ENTITY_TYPE, policy.id, actor.user_id, changes,
                entity_name=policy.name,
            )
            logger.info(
                "policy_updated",
                extra={"policy_id": str(policy.id), "fields": sorted(changes)},
            )
        return policy_to_info(policy)

    def delete_policy(self, organization_id: UUID, policy_id: UUID, actor: Actor) -> None:
        self._require_policy_admin(organization_id, actor)
        policy = self._load(organization_id, policy_id)
        if policy.is_system_policy:
            raise SystemPolicyCannotBeModifiedError(str(policy.id), policy.name, "deleted")

        name = policy.name
        self.session.delete(policy)
        self.session.flush()
        self._audit.record_delete(organization_id, ENTITY_TYPE, policy_id, actor.user_id, entity_name=name)
        logger.info("policy_deleted", extra={"policy_id": str(policy_id), "policy_name": name})

    def seed_system_policies(
        self,
        organization_id: UUID,
        actor: Actor,
        specs: Sequence[SystemPolicySpec],
    ) -> list[PolicyInfo]:
        """
        Insert the system policies of an organization.

        Idempotent per policy name: system policies already present are
        left untouched.
        """
        self._require_policy_admin(organization_id, actor)
        existing = {
            policy.name
            for policy in self._selector.find_by_organization(organization_id)
            if policy.is_system_policy
        }

        created = []
        for spec in specs:
            if spec.name in existing:
                continue
            policy = AuthorizationPolicy(
                organization_id=organization_id,
                name=spec.name,
                description=spec.description,
                subject=subject_to_dict(spec.subject),
                resource=resource_to_dict(spec.resource),
                action=action_to_dict(spec.action),
                environment=environment_to_dict(spec.environment) if spec.environment is not None else None,
                effect=PolicyEffect(spec.effect).value,
                priority=spec.priority,
                is_system_policy=True,
                is_active=True,
                created_by_id=actor.user_id,
            )
            self.session.add(policy)
            created.append(policy)
        self.session.flush()

        logger.info(
            "system_policies_seeded",
            extra={"seeded_count": len(created), "skipped_count": len(existing)},
        )
        return [policy_to_info(policy) for policy in created]

    # =====================================================================
    # Dry run
    # =====================================================================

    def test_policy(
        self,
        organization_id: UUID,
        actor: Actor,
        user_id: UUID,
        action: str,
        resource_type: str,
        resource_id: UUID | None = None,
    ) -> PolicyTestResult:
        """
        Evaluate the organization's active policies for ``user_id`` without
        enforcing anything.

        Raises:
            InvalidResourceTypeError: unknown ``resource_type``.
            MembershipNotFoundError: ``user_id`` is not an active member.
        """
        self._require_policy_admin(organization_id, actor)
        if resource_type not in RESOURCE_TYPES:
            raise InvalidResourceTypeError(resource_type, RESOURCE_TYPES)

        membership = self._memberships.find_membership(organization_id, user_id)
        if membership is None:
            raise MembershipNotFoundError(str(organization_id), str(user_id))

        context = PolicyEvaluationContext(
            subject=create_subject_context_from_membership(membership),
            resource=ResourceContext(type=resource_type, id=resource_id),
            action=action,
        )
        decision = evaluate_policies(self._selector.find_active_by_organization(organization_id), context)
        return PolicyTestResult(
            decision=decision.decision,
            reason=decision.reason,
            matched_policies=tuple(decision.matched_policies),
        )
