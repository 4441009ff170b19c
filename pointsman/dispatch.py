"""Event publishing: best-effort, after commit."""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING

from django.utils import timezone
from django.utils.module_loading import import_string

from pointsman.conf import pointsman_settings
from pointsman.protocols.notifications import LedgerEvent, NotificationBackend

if TYPE_CHECKING:
    from pointsman.store import LedgerStore

logger = logging.getLogger(__name__)


def get_notification_backend() -> NotificationBackend:
    """Instantiate the configured NotificationBackend."""
    backend_class = import_string(pointsman_settings.NOTIFICATION_BACKEND)
    return backend_class()


class EventPublisher:
    """
    Queues LedgerEvents for delivery once the current transaction commits.

    Delivery never happens inside the atomic unit that produced the event:
    rolled-back work publishes nothing, and a failing backend is logged
    without affecting the committed ledger write.
    """

    def __init__(self, backend: NotificationBackend, store: LedgerStore):
        self.backend = backend
        self.store = store

    def publish(
        self,
        kind: str,
        customer_id: str,
        business_id: str,
        actor_id: str = "",
        **payload,
    ) -> LedgerEvent:
        event = LedgerEvent(
            kind=kind,
            customer_id=customer_id,
            business_id=business_id,
            actor_id=actor_id,
            occurred_at=timezone.now(),
            payload=payload,
        )
        self.store.on_commit(partial(self._deliver, event))
        return event

    def _deliver(self, event: LedgerEvent) -> None:
        try:
            self.backend.publish(event)
        except Exception:
            logger.exception(
                "Notification delivery failed for %s (customer=%s business=%s)",
                event.kind,
                event.customer_id,
                event.business_id,
            )
