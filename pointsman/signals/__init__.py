"""
Pointsman signals: public event API.

Emitted by pointsman.adapters.signals.SignalNotificationBackend after the
originating database transaction commits. Every receiver gets ``event``
(a LedgerEvent) plus the event payload as keyword arguments.

- points_awarded: card_id, points, balance, transaction_id
- points_redeemed: card_id, points, balance, transaction_id
- invitation_created: invitation_id, program_id
- enrollment_accepted: invitation_id, card_id
- enrollment_rejected: invitation_id
- card_deactivated: card_id
"""

from django.dispatch import Signal

# Ledger signals (sender=SignalNotificationBackend)
points_awarded = Signal()
points_redeemed = Signal()

# Enrollment signals
invitation_created = Signal()
enrollment_accepted = Signal()
enrollment_rejected = Signal()
card_deactivated = Signal()
