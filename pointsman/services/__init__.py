"""Pointsman services.

- ledger: LedgerService (award, redeem, balance, history)
- enrollment: EnrollmentService (invite, respond, auto-enroll, deactivate)

Use pointsman.service.PointsService as the entry point; it applies the
access checks these services assume were already made.
"""

from pointsman.services import enrollment
from pointsman.services import ledger

__all__ = ["enrollment", "ledger"]
