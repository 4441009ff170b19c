"""Pointsman models.

Ownership:
- LedgerService writes LoyaltyCard balance columns and PointTransaction rows
- EnrollmentService writes EnrollmentInvitation state and card creation/status
"""

from pointsman.models.program import LoyaltyProgram
from pointsman.models.card import CardStatus, LoyaltyCard, LoyaltyTier
from pointsman.models.transaction import Direction, PointTransaction
from pointsman.models.invitation import EnrollmentInvitation, InvitationState
from pointsman.models.activity import ActivityKind, ActivityRecord

__all__ = [
    "LoyaltyProgram",
    # Cards
    "LoyaltyCard",
    "CardStatus",
    "LoyaltyTier",
    # Ledger
    "PointTransaction",
    "Direction",
    # Enrollment workflow
    "EnrollmentInvitation",
    "InvitationState",
    # Audit trail
    "ActivityRecord",
    "ActivityKind",
]
