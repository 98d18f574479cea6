"""
Tests for the policy engine and the RBAC fallback matrix.

Covers:
- Default deny with no policies or no matching allow
- Deny-before-allow regardless of priority
- Packaged system policies against realistic contexts
- Environment-conditioned policies without an environment context
- RBAC effective permissions from base plus functional roles
"""

from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest

from ledger_config import get_active_config
from ledger_config.bridges import build_permission_matrix, build_system_policy_specs
from ledger_kernel.domain.authorization.conditions import (
    ActionCondition,
    EnvironmentCondition,
    ResourceCondition,
    SubjectCondition,
)
from ledger_kernel.domain.authorization.context import (
    EnvironmentContext,
    PolicyEvaluationContext,
    ResourceContext,
    SubjectContext,
)
from ledger_kernel.domain.authorization.engine import (
    MISSING_ENVIRONMENT,
    NO_ACTIVE_POLICIES,
    NO_MATCHING_ALLOW,
    evaluate_policies,
    evaluate_policy,
    find_matching_policies,
    sort_policies_by_priority,
    would_deny,
)
from ledger_kernel.domain.authorization.permission_matrix import (
    check_rbac,
    compute_effective_permissions,
    resource_type_for_action,
)
from ledger_kernel.domain.authorization.system_policies import (
    MAX_USER_PRIORITY,
    validate_user_priority,
)
from ledger_kernel.domain.values import (
    FiscalPeriodStatus,
    FunctionalRole,
    MembershipRole,
    PolicyEffect,
)
from ledger_kernel.exceptions import PolicyPriorityValidationError

ORG = uuid4()


@dataclass(frozen=True)
class _Policy:
    name: str
    effect: PolicyEffect
    priority: int
    subject: SubjectCondition = SubjectCondition()
    resource: ResourceCondition = ResourceCondition()
    action: ActionCondition = ActionCondition(actions=("*",))
    environment: EnvironmentCondition | None = None
    is_active: bool = True
    id: UUID = None

    def __post_init__(self):
        if self.id is None:
            object.__setattr__(self, "id", uuid4())


def _context(
    action="journal_entry:post",
    role=MembershipRole.MEMBER,
    functional_roles=(),
    is_platform_admin=False,
    period_status=None,
    environment=None,
):
    resource_type = action.split(":", 1)[0]
    return PolicyEvaluationContext(
        subject=SubjectContext(
            user_id=uuid4(),
            organization_id=ORG,
            role=role,
            functional_roles=frozenset(functional_roles),
            is_platform_admin=is_platform_admin,
        ),
        resource=ResourceContext(type=resource_type, period_status=period_status),
        action=action,
        environment=environment,
    )


@pytest.fixture(scope="module")
def system_policies():
    config = get_active_config()
    return [
        _Policy(
            name=spec.name,
            effect=spec.effect,
            priority=spec.priority,
            subject=spec.subject,
            resource=spec.resource,
            action=spec.action,
            environment=spec.environment,
        )
        for spec in build_system_policy_specs(config)
    ]


@pytest.fixture(scope="module")
def matrix():
    return build_permission_matrix(get_active_config())


# =========================================================================
# Engine mechanics
# =========================================================================


class TestEvaluatePolicies:

    def test_no_policies_is_default_deny(self):
        decision = evaluate_policies([], _context())
        assert decision.decision == PolicyEffect.DENY
        assert decision.default_deny
        assert decision.reason == NO_ACTIVE_POLICIES
        assert decision.deciding_policy_id is None

    def test_inactive_policies_ignored(self):
        policy = _Policy("Allow all", PolicyEffect.ALLOW, 10, is_active=False)
        assert evaluate_policies([policy], _context()).reason == NO_ACTIVE_POLICIES

    def test_no_matching_allow(self):
        policy = _Policy(
            "Owners only", PolicyEffect.ALLOW, 10,
            subject=SubjectCondition(roles=(MembershipRole.OWNER,)),
        )
        decision = evaluate_policies([policy], _context(role=MembershipRole.MEMBER))
        assert not decision.is_allowed
        assert decision.reason == NO_MATCHING_ALLOW

    def test_matching_allow(self):
        policy = _Policy("Allow all", PolicyEffect.ALLOW, 10)
        decision = evaluate_policies([policy], _context())
        assert decision.is_allowed
        assert decision.reason == "Allowed by policy: Allow all"
        assert decision.deciding_policy_id == policy.id

    def test_low_priority_deny_beats_high_priority_allow(self):
        allow = _Policy("Allow all", PolicyEffect.ALLOW, 800)
        deny = _Policy("Block posting", PolicyEffect.DENY, 5,
                       action=ActionCondition(actions=("journal_entry:post",)))
        decision = evaluate_policies([allow, deny], _context())
        assert decision.denied_by_policy
        assert decision.reason == "Denied by policy: Block posting"
        assert decision.deciding_policy_id == deny.id
        assert would_deny([allow, deny], _context())

    def test_highest_priority_allow_decides(self):
        low = _Policy("Low", PolicyEffect.ALLOW, 10)
        high = _Policy("High", PolicyEffect.ALLOW, 20)
        assert evaluate_policies([low, high], _context()).matched_policies == (high,)

    def test_sort_puts_deny_first_at_equal_priority(self):
        allow = _Policy("Allow", PolicyEffect.ALLOW, 50)
        deny = _Policy("Deny", PolicyEffect.DENY, 50)
        assert sort_policies_by_priority([allow, deny]) == [deny, allow]

    def test_environment_policy_needs_environment_context(self):
        policy = _Policy(
            "Weekdays", PolicyEffect.ALLOW, 10,
            environment=EnvironmentCondition(days_of_week=(1, 2, 3, 4, 5)),
        )
        result = evaluate_policy(policy, _context())
        assert not result.matched
        assert result.mismatch_reason == MISSING_ENVIRONMENT

        weekday = EnvironmentContext(current_time="10:00", current_day_of_week=2)
        assert evaluate_policy(policy, _context(environment=weekday)).matched

    def test_find_matching_policies_keeps_input_order(self):
        a = _Policy("A", PolicyEffect.ALLOW, 1)
        b = _Policy("B", PolicyEffect.DENY, 99)
        c = _Policy("C", PolicyEffect.ALLOW, 50, action=ActionCondition(actions=("account:read",)))
        matched = find_matching_policies([a, b, c], _context())
        assert [result.policy.name for result in matched] == ["A", "B"]


# =========================================================================
# Packaged system policies
# =========================================================================


class TestSystemPolicies:

    def test_owner_allowed_in_open_period(self, system_policies):
        decision = evaluate_policies(
            system_policies,
            _context(role=MembershipRole.OWNER, period_status=FiscalPeriodStatus.OPEN),
        )
        assert decision.reason == "Allowed by policy: Organization Owner Full Access"

    def test_owner_denied_in_closed_period(self, system_policies):
        decision = evaluate_policies(
            system_policies,
            _context(role=MembershipRole.OWNER, period_status=FiscalPeriodStatus.CLOSED),
        )
        assert decision.reason == "Denied by policy: Prevent Modifications to Closed Periods"

    def test_owner_denied_in_locked_period(self, system_policies):
        decision = evaluate_policies(
            system_policies,
            _context(role=MembershipRole.OWNER, period_status=FiscalPeriodStatus.LOCKED),
        )
        assert decision.denied_by_policy
        assert "Locked" in decision.reason

    def test_soft_close_deny_applies_to_controllers(self, system_policies):
        decision = evaluate_policies(
            system_policies,
            _context(
                role=MembershipRole.ADMIN,
                functional_roles={FunctionalRole.CONTROLLER},
                period_status=FiscalPeriodStatus.SOFT_CLOSE,
            ),
        )
        assert decision.denied_by_policy

    def test_platform_admin_without_membership(self, system_policies):
        decision = evaluate_policies(
            system_policies,
            _context(role=None, is_platform_admin=True, period_status=FiscalPeriodStatus.OPEN),
        )
        assert decision.reason == "Allowed by policy: Platform Admin Full Access"

    def test_viewer_reads_but_does_not_post(self, system_policies):
        assert evaluate_policies(
            system_policies, _context("journal_entry:read", role=MembershipRole.VIEWER)
        ).is_allowed
        assert not evaluate_policies(
            system_policies,
            _context(role=MembershipRole.VIEWER, period_status=FiscalPeriodStatus.OPEN),
        ).is_allowed

    def test_member_has_no_allow_policy(self, system_policies):
        decision = evaluate_policies(
            system_policies,
            _context("journal_entry:create", period_status=FiscalPeriodStatus.OPEN),
        )
        assert decision.default_deny


# =========================================================================
# RBAC fallback
# =========================================================================


class TestPermissionMatrix:

    def test_owner_has_everything(self, matrix):
        assert check_rbac(matrix, MembershipRole.OWNER, (), "organization:manage_members") == (True, "")

    def test_member_creates_but_cannot_post(self, matrix):
        assert check_rbac(matrix, MembershipRole.MEMBER, (), "journal_entry:create")[0]
        allowed, reason = check_rbac(matrix, MembershipRole.MEMBER, (), "journal_entry:post")
        assert not allowed
        assert reason == "Role 'member' does not have permission for 'journal_entry:post'"

    def test_functional_role_adds_permissions(self, matrix):
        permissions = compute_effective_permissions(
            matrix, MembershipRole.MEMBER, (FunctionalRole.CONTROLLER,)
        )
        assert "journal_entry:post" in permissions
        assert check_rbac(matrix, MembershipRole.MEMBER, (FunctionalRole.CONTROLLER,), "journal_entry:post")[0]

    def test_admin_wildcards(self, matrix):
        assert check_rbac(matrix, MembershipRole.ADMIN, (), "fiscal_period:manage")[0]
        assert not check_rbac(matrix, MembershipRole.ADMIN, (), "organization:delete")[0]

    def test_viewer_read_only(self, matrix):
        assert check_rbac(matrix, MembershipRole.VIEWER, (), "account:read")[0]
        assert not check_rbac(matrix, MembershipRole.VIEWER, (), "account:create")[0]

    def test_no_role(self, matrix):
        allowed, reason = check_rbac(matrix, None, (), "account:read")
        assert not allowed
        assert "'none'" in reason

    @pytest.mark.parametrize(
        "action, resource_type",
        [
            ("journal_entry:post", "journal_entry"),
            ("exchange_rate:read", "report"),
            ("elimination:create", "consolidation_group"),
            ("audit_log:read", "organization"),
            ("invoice:create", None),
        ],
    )
    def test_resource_type_mapping(self, action, resource_type):
        assert resource_type_for_action(action) == resource_type


class TestUserPriority:

    @pytest.mark.parametrize("priority", [0, 450, MAX_USER_PRIORITY])
    def test_user_band(self, priority):
        validate_user_priority(priority)

    @pytest.mark.parametrize("priority", [-1, 900, 1000])
    def test_reserved_band(self, priority):
        with pytest.raises(PolicyPriorityValidationError) as exc_info:
            validate_user_priority(priority)
        assert exc_info.value.max_allowed == 899
