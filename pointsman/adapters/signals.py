"""NotificationBackend that re-emits ledger events as Django signals."""

from __future__ import annotations

import logging

from pointsman import signals
from pointsman.protocols.notifications import EventKind, LedgerEvent

logger = logging.getLogger(__name__)


_SIGNALS = {
    EventKind.POINTS_AWARDED: signals.points_awarded,
    EventKind.POINTS_REDEEMED: signals.points_redeemed,
    EventKind.INVITATION_CREATED: signals.invitation_created,
    EventKind.ENROLLMENT_ACCEPTED: signals.enrollment_accepted,
    EventKind.ENROLLMENT_REJECTED: signals.enrollment_rejected,
    EventKind.CARD_DEACTIVATED: signals.card_deactivated,
}


class SignalNotificationBackend:
    """
    Adapter: delivery is whatever receivers are connected to the signals.

    Receivers run through send_robust(), so one failing receiver neither
    stops the others nor reaches the ledger.
    """

    def publish(self, event: LedgerEvent) -> None:
        signal = _SIGNALS.get(event.kind)
        if signal is None:
            logger.warning("SignalNotificationBackend: no signal for %s", event.kind)
            return

        responses = signal.send_robust(sender=self.__class__, event=event, **event.payload)
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    "Receiver %r failed for %s event: %s",
                    receiver,
                    event.kind,
                    response,
                )
