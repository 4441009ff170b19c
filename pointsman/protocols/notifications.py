"""Notification dispatch protocol."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable


class EventKind:
    POINTS_AWARDED = "points_awarded"
    POINTS_REDEEMED = "points_redeemed"
    INVITATION_CREATED = "invitation_created"
    ENROLLMENT_ACCEPTED = "enrollment_accepted"
    ENROLLMENT_REJECTED = "enrollment_rejected"
    CARD_DEACTIVATED = "card_deactivated"


@dataclass(frozen=True)
class LedgerEvent:
    """A committed ledger or workflow change, ready for delivery."""

    kind: str
    customer_id: str
    business_id: str
    actor_id: str
    occurred_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class NotificationBackend(Protocol):
    """
    Protocol for delivering ledger events (push, email, in-app inbox).

    Publishing is fire-and-forget: Pointsman calls publish() after commit
    and logs any exception raised here without touching the ledger.

    Configuration in settings.py:
        POINTSMAN = {
            "NOTIFICATION_BACKEND": "myproject.notifications.InboxBackend",
        }
    """

    def publish(self, event: LedgerEvent) -> None:
        """Hand the event over for delivery."""
        ...
