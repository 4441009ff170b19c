"""
Pointsman public API.

Every operation takes the already-authenticated Actor first:

LEDGER:
    PointsService.award(actor, business_id, customer_id, program_id, amount)
    PointsService.redeem(actor, business_id, customer_id, program_id, amount, reason)
    PointsService.get_balance(actor, ref)
    PointsService.get_history(actor, ref, offset, limit)

ENROLLMENT:
    PointsService.invite(actor, business_id, customer_id, program_id)
    PointsService.respond(actor, invitation_id, customer_id, accept)
    PointsService.pending_invitations(actor, customer_id)
    PointsService.deactivate(actor, ref)

Order of checks: Gates (input shape) -> AccessGuard -> services.
"""

from __future__ import annotations

import logging
from uuid import UUID

from django.utils.module_loading import import_string

from pointsman.conf import pointsman_settings
from pointsman.dispatch import EventPublisher, get_notification_backend
from pointsman.exceptions import PointsmanError
from pointsman.gates import Gates
from pointsman.models import EnrollmentInvitation, LoyaltyCard
from pointsman.protocols.access import AccessGuard, Actor
from pointsman.protocols.notifications import NotificationBackend
from pointsman.services.enrollment import EnrollmentResult, EnrollmentService
from pointsman.services.ledger import Balance, HistoryPage, LedgerResult, LedgerService
from pointsman.store import AccountRef, CardRef, LedgerStore

logger = logging.getLogger(__name__)


def get_access_guard() -> AccessGuard:
    """Instantiate the configured AccessGuard."""
    guard_class = import_string(pointsman_settings.ACCESS_GUARD)
    return guard_class()


class PointsService:
    """
    Facade wiring the AccessGuard, the Gates and both services.

    Collaborators default to the configured ones:

        service = PointsService()
        service = PointsService(store=LedgerStore("ledger"), guard=MyGuard())
    """

    def __init__(
        self,
        store: LedgerStore | None = None,
        guard: AccessGuard | None = None,
        notifier: NotificationBackend | None = None,
    ):
        self.store = store or LedgerStore()
        self.guard = guard or get_access_guard()
        self.publisher = EventPublisher(notifier or get_notification_backend(), self.store)
        self.enrollment = EnrollmentService(self.store, self.publisher)
        self.ledger = LedgerService(self.store, self.enrollment, self.publisher)

    # ======================================================================
    # Ledger
    # ======================================================================

    def award(
        self,
        actor: Actor,
        business_id: str,
        customer_id: str,
        program_id: int,
        amount: int,
        source_reference: str | None = None,
        description: str = "",
    ) -> LedgerResult:
        """Award points (auto-enrolls when the program allows it)."""
        ref = self._account_ref(business_id, customer_id, program_id)
        Gates.amount_positive(amount, maximum=pointsman_settings.MAX_AWARD_POINTS)
        self._authorize(actor, target_business_id=ref.business_id)
        return self.ledger.award(
            ref,
            amount,
            actor_id=actor.id,
            source_reference=source_reference,
            description=description,
        )

    def redeem(
        self,
        actor: Actor,
        business_id: str,
        customer_id: str,
        program_id: int,
        amount: int,
        reason: str,
        source_reference: str | None = None,
    ) -> LedgerResult:
        """Redeem points; fails INSUFFICIENT_BALANCE without side effects."""
        ref = self._account_ref(business_id, customer_id, program_id)
        Gates.amount_positive(amount)
        self._authorize(actor, ref.customer_id, ref.business_id)
        return self.ledger.redeem(
            ref,
            amount,
            reason,
            actor_id=actor.id,
            source_reference=source_reference,
        )

    def get_balance(self, actor: Actor, ref: CardRef) -> Balance:
        card = self._authorized_card(actor, ref)
        return self.ledger.get_balance(card)

    def get_history(
        self,
        actor: Actor,
        ref: CardRef,
        offset: int = 0,
        limit: int | None = None,
        direction: str | None = None,
    ) -> HistoryPage:
        card = self._authorized_card(actor, ref)
        return self.ledger.get_history(card, offset=offset, limit=limit, direction=direction)

    # ======================================================================
    # Enrollment
    # ======================================================================

    def invite(
        self,
        actor: Actor,
        business_id: str,
        customer_id: str,
        program_id: int,
    ) -> UUID:
        """Invite a customer. Returns the invitation id."""
        ref = self._account_ref(business_id, customer_id, program_id)
        self._authorize(actor, target_business_id=ref.business_id)
        invitation = self.enrollment.invite(
            ref.business_id,
            ref.customer_id,
            ref.program_id,
            invited_by=actor.id,
        )
        return invitation.pk

    def respond(
        self,
        actor: Actor,
        invitation_id,
        customer_id: str,
        accept: bool,
    ) -> EnrollmentResult:
        """Accept or reject an invitation. Only the invitee may respond."""
        Gates.identifier("customer_id", customer_id)
        self._authorize(actor, target_customer_id=customer_id)
        return self.enrollment.respond(invitation_id, customer_id, bool(accept))

    def pending_invitations(self, actor: Actor, customer_id: str) -> list[EnrollmentInvitation]:
        Gates.identifier("customer_id", customer_id)
        self._authorize(actor, target_customer_id=customer_id)
        return self.enrollment.pending_invitations(customer_id)

    def deactivate(self, actor: Actor, ref: CardRef) -> None:
        """Deactivate a card (business or admin). Idempotent."""
        card = self._find_card(ref)
        self._authorize(actor, target_business_id=card.business_id)
        self.enrollment.deactivate(card, actor_id=actor.id)

    # ======================================================================
    # Internals
    # ======================================================================

    @staticmethod
    def _account_ref(business_id: str, customer_id: str, program_id) -> AccountRef:
        Gates.identifier("business_id", business_id)
        Gates.identifier("customer_id", customer_id)
        return AccountRef(customer_id, business_id, Gates.program_identifier(program_id))

    def _find_card(self, ref: CardRef) -> LoyaltyCard:
        if isinstance(ref, AccountRef):
            ref = self._account_ref(ref.business_id, ref.customer_id, ref.program_id)
        with self.store.guarded():
            return self.store.get_card(ref)

    def _authorized_card(self, actor: Actor, ref: CardRef) -> LoyaltyCard:
        """Card readable by both its customer and its business."""
        card = self._find_card(ref)
        self._authorize(actor, card.customer_id, card.business_id)
        return card

    def _authorize(
        self,
        actor: Actor,
        target_customer_id: str | None = None,
        target_business_id: str | None = None,
    ) -> None:
        try:
            Gates.actor_authorized(
                self.guard,
                actor,
                target_customer_id=target_customer_id,
                target_business_id=target_business_id,
            )
        except PointsmanError:
            logger.warning(
                "Denied %s %s on customer=%s business=%s",
                actor.role,
                actor.id,
                target_customer_id,
                target_business_id,
            )
            raise
