"""
Pointsman configuration.

Usage in settings.py:
    POINTSMAN = {
        "ACCESS_GUARD": "pointsman.adapters.ownership.OwnershipAccessGuard",
        "NOTIFICATION_BACKEND": "pointsman.adapters.signals.SignalNotificationBackend",
        "MAX_AWARD_POINTS": 10000,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class PointsmanSettings:
    """Pointsman configuration settings."""

    # Collaborators (dotted paths, instantiated without arguments)
    ACCESS_GUARD: str = "pointsman.adapters.ownership.OwnershipAccessGuard"
    NOTIFICATION_BACKEND: str = "pointsman.adapters.signals.SignalNotificationBackend"

    # Largest single award
    MAX_AWARD_POINTS: int = 10000

    # History pagination
    HISTORY_PAGE_SIZE: int = 50
    HISTORY_MAX_PAGE_SIZE: int = 200

    # Card numbers look like PM-3F9A1C02B7
    CARD_NUMBER_PREFIX: str = "PM"

    # Auto-enroll resolves a PENDING invitation for the same program
    AUTO_ENROLL_ACCEPTS_PENDING: bool = True

    # Database alias used by the default LedgerStore
    DATABASE_ALIAS: str = "default"


def get_pointsman_settings() -> PointsmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "POINTSMAN", {})
    return PointsmanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_pointsman_settings(), name)


pointsman_settings = _LazySettings()
