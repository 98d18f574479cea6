"""
Ports the domain expects from the outside world.

AuthorizationService depends on these protocols rather than on concrete
selectors, so callers can resolve memberships from another source (an
identity provider, a cache) without touching the service.
"""

from __future__ import annotations

from typing import Protocol, Sequence
from uuid import UUID

from ledger_kernel.domain.dtos import MembershipInfo, PolicyInfo


class MembershipProvider(Protocol):
    def find_membership(self, organization_id: UUID, user_id: UUID) -> MembershipInfo | None:
        """Active membership of the user, or None."""
        ...


class PolicySource(Protocol):
    def find_active_by_organization(self, organization_id: UUID) -> Sequence[PolicyInfo]:
        ...
