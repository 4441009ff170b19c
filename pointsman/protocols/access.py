"""Access guard protocol.

Role decisions live outside the ledger. The surrounding application hands
Pointsman an authenticated Actor and a guard that answers allow/deny.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


class Role:
    """Well-known actor roles."""

    CUSTOMER = "customer"
    BUSINESS = "business"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """Already-authenticated caller."""

    id: str
    role: str


@runtime_checkable
class AccessGuard(Protocol):
    """
    Protocol for authorization decisions.

    Configuration in settings.py:
        POINTSMAN = {
            "ACCESS_GUARD": "myproject.auth.LoyaltyAccessGuard",
        }
    """

    def can_act(
        self,
        actor_id: str,
        actor_role: str,
        target_customer_id: str | None = None,
        target_business_id: str | None = None,
    ) -> bool:
        """
        Return True if the actor may operate on the target.

        Args:
            actor_id: Authenticated actor id
            actor_role: Actor role (customer, business, admin, system)
            target_customer_id: Customer the operation touches, if any
            target_business_id: Business the operation touches, if any
        """
        ...
