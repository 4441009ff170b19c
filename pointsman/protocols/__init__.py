"""Pointsman protocols."""

from pointsman.protocols.access import (
    AccessGuard,
    Actor,
    Role,
)
from pointsman.protocols.notifications import (
    EventKind,
    LedgerEvent,
    NotificationBackend,
)

__all__ = [
    # Access
    "AccessGuard",
    "Actor",
    "Role",
    # Notifications
    "EventKind",
    "LedgerEvent",
    "NotificationBackend",
]
