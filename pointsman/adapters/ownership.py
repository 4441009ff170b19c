"""Reference AccessGuard: actors may only touch what they own."""

from __future__ import annotations

import logging

from pointsman.protocols.access import Role

logger = logging.getLogger(__name__)


class OwnershipAccessGuard:
    """
    Adapter: ownership-based AccessGuard.

    - admin/system: always allowed
    - business: allowed when the target business is the actor
    - customer: allowed when the target customer is the actor

    Operations pass only the targets whose owner may perform them, so a
    customer cannot award points to themselves (award names no customer
    target) while both parties can read a card.
    """

    PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.SYSTEM})

    def can_act(
        self,
        actor_id: str,
        actor_role: str,
        target_customer_id: str | None = None,
        target_business_id: str | None = None,
    ) -> bool:
        if actor_role in self.PRIVILEGED_ROLES:
            return True
        if actor_role == Role.BUSINESS:
            return target_business_id is not None and target_business_id == actor_id
        if actor_role == Role.CUSTOMER:
            return target_customer_id is not None and target_customer_id == actor_id
        logger.debug("OwnershipAccessGuard: unknown role %r", actor_role)
        return False


class AllowAllAccessGuard:
    """Adapter for trusted internal callers (tasks, scripts, tests)."""

    def can_act(self, actor_id, actor_role, target_customer_id=None, target_business_id=None) -> bool:
        return True
