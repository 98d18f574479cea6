"""
Policy engine -- declarative authorization decisions.

Responsibility:
    Evaluates an organization's policies against a PolicyEvaluationContext
    and returns an allow/deny PolicyDecision naming the policy that decided.

Architecture position:
    Kernel > Domain > Authorization -- pure functions, zero I/O.  Called by
    AuthorizationService (decisions) and PolicyService (dry-run tests).

Invariants enforced:
    - Only active policies take part; none at all is a default deny.
    - Policies are ordered by priority, highest first, deny before allow at
      equal priority.
    - Deny policies are evaluated before allow policies: any matching deny
      wins regardless of the priority of matching allows.
    - No matching allow is a default deny.
    - Each condition kind is matched through the single _DISPATCH table.
    - A policy with an environment condition never matches a context
      without an environment.

Failure modes:
    - InvalidPolicyConditionError for a condition object of unknown type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol, Sequence
from uuid import UUID

from ledger_kernel.domain.authorization.action_matcher import action_mismatch_reason
from ledger_kernel.domain.authorization.conditions import (
    ActionCondition,
    EnvironmentCondition,
    ResourceCondition,
    SubjectCondition,
)
from ledger_kernel.domain.authorization.context import PolicyEvaluationContext
from ledger_kernel.domain.authorization.environment_matcher import environment_mismatch_reason
from ledger_kernel.domain.authorization.resource_matcher import resource_mismatch_reason
from ledger_kernel.domain.authorization.subject_matcher import subject_mismatch_reason
from ledger_kernel.domain.values import PolicyEffect
from ledger_kernel.exceptions import InvalidPolicyConditionError

NO_ACTIVE_POLICIES = "No active policies found - default deny"
NO_MATCHING_ALLOW = "No matching allow policy found - default deny"
MISSING_ENVIRONMENT = "Policy has environment conditions but no environment context provided"


class EvaluablePolicy(Protocol):
    """Shape the engine needs; PolicyInfo satisfies it."""

    id: UUID
    name: str
    effect: PolicyEffect
    priority: int
    is_active: bool
    subject: SubjectCondition
    resource: ResourceCondition
    action: ActionCondition
    environment: EnvironmentCondition | None


@dataclass(frozen=True)
class PolicyMatchResult:
    policy: EvaluablePolicy
    matched: bool
    mismatch_reason: str | None = None


@dataclass(frozen=True)
class PolicyDecision:
    decision: PolicyEffect
    matched_policies: tuple[EvaluablePolicy, ...]
    reason: str
    denied_by_policy: bool
    default_deny: bool

    @property
    def is_allowed(self) -> bool:
        return self.decision == PolicyEffect.ALLOW

    @property
    def deciding_policy_id(self) -> UUID | None:
        if not self.matched_policies:
            return None
        return self.matched_policies[0].id


_DISPATCH: dict[type, tuple[Callable[[PolicyEvaluationContext], Any], Callable[[Any, Any], str | None]]] = {
    SubjectCondition: (lambda ctx: ctx.subject, subject_mismatch_reason),
    ResourceCondition: (lambda ctx: ctx.resource, resource_mismatch_reason),
    ActionCondition: (lambda ctx: ctx.action, action_mismatch_reason),
    EnvironmentCondition: (lambda ctx: ctx.environment, environment_mismatch_reason),
}


def condition_mismatch_reason(condition: Any, context: PolicyEvaluationContext) -> str | None:
    """Match one condition of any kind against the matching part of ``context``."""
    try:
        fact_of, reason_of = _DISPATCH[type(condition)]
    except KeyError:
        raise InvalidPolicyConditionError(
            type(condition).__name__, "unsupported condition type"
        ) from None
    fact = fact_of(context)
    if fact is None:
        return MISSING_ENVIRONMENT
    return reason_of(condition, fact)


def evaluate_policy(policy: EvaluablePolicy, context: PolicyEvaluationContext) -> PolicyMatchResult:
    """Match a single policy, reporting the first failing condition."""
    conditions = [policy.subject, policy.resource, policy.action]
    if policy.environment is not None:
        conditions.append(policy.environment)

    for condition in conditions:
        reason = condition_mismatch_reason(condition, context)
        if reason is not None:
            return PolicyMatchResult(policy=policy, matched=False, mismatch_reason=reason)
    return PolicyMatchResult(policy=policy, matched=True)


def _active(policies: Iterable[EvaluablePolicy]) -> list[EvaluablePolicy]:
    return [policy for policy in policies if policy.is_active]


def sort_policies_by_priority(policies: Iterable[EvaluablePolicy]) -> list[EvaluablePolicy]:
    return sorted(
        policies,
        key=lambda p: (-p.priority, 0 if PolicyEffect(p.effect) == PolicyEffect.DENY else 1),
    )


def evaluate_policies(
    policies: Sequence[EvaluablePolicy], context: PolicyEvaluationContext
) -> PolicyDecision:
    """Decide allow/deny for ``context``.

    Postconditions:
        - decision is ALLOW iff no active deny policy matches and at least
          one active allow policy matches.
        - matched_policies holds the deciding policy, or is empty on a
          default deny.
    """
    active = _active(policies)
    if not active:
        return PolicyDecision(
            decision=PolicyEffect.DENY,
            matched_policies=(),
            reason=NO_ACTIVE_POLICIES,
            denied_by_policy=False,
            default_deny=True,
        )

    ordered = sort_policies_by_priority(active)
    deny = [p for p in ordered if PolicyEffect(p.effect) == PolicyEffect.DENY]
    allow = [p for p in ordered if PolicyEffect(p.effect) == PolicyEffect.ALLOW]

    for policy in deny:
        if evaluate_policy(policy, context).matched:
            return PolicyDecision(
                decision=PolicyEffect.DENY,
                matched_policies=(policy,),
                reason=f"Denied by policy: {policy.name}",
                denied_by_policy=True,
                default_deny=False,
            )

    for policy in allow:
        if evaluate_policy(policy, context).matched:
            return PolicyDecision(
                decision=PolicyEffect.ALLOW,
                matched_policies=(policy,),
                reason=f"Allowed by policy: {policy.name}",
                denied_by_policy=False,
                default_deny=False,
            )

    return PolicyDecision(
        decision=PolicyEffect.DENY,
        matched_policies=(),
        reason=NO_MATCHING_ALLOW,
        denied_by_policy=False,
        default_deny=True,
    )


def would_deny(policies: Sequence[EvaluablePolicy], context: PolicyEvaluationContext) -> bool:
    """True iff some active deny policy matches ``context``."""
    return any(
        evaluate_policy(policy, context).matched
        for policy in _active(policies)
        if PolicyEffect(policy.effect) == PolicyEffect.DENY
    )


def find_matching_policies(
    policies: Sequence[EvaluablePolicy], context: PolicyEvaluationContext
) -> list[PolicyMatchResult]:
    """Every active policy matching ``context``, in input order."""
    results = []
    for policy in _active(policies):
        result = evaluate_policy(policy, context)
        if result.matched:
            results.append(result)
    return results
