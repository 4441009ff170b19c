"""Enrollment workflow: invitations, acceptance and auto-enroll.

State machine:
    NONE -> PENDING -> ACCEPTED | REJECTED    (invite / respond)
    NONE -> ACTIVE card                       (ensure_card, auto-enroll)

EnrollmentService is the only writer of invitation state and of card
creation/status. Balance columns belong to LedgerService.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from django.db import IntegrityError

from pointsman.conf import pointsman_settings
from pointsman.dispatch import EventPublisher
from pointsman.exceptions import PointsmanError
from pointsman.models import (
    ActivityKind,
    CardStatus,
    EnrollmentInvitation,
    InvitationState,
    LoyaltyCard,
    LoyaltyProgram,
)
from pointsman.protocols.notifications import EventKind
from pointsman.store import AccountRef, CardRef, LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnrollmentResult:
    """Outcome of respond()."""

    invitation_id: UUID
    state: str
    card_id: UUID | None = None
    card_created: bool = False


class EnrollmentService:
    """
    Enrollment workflow over an injected LedgerStore.

    Every mutation runs inside store.atomic(); events go out through the
    EventPublisher after commit.
    """

    def __init__(self, store: LedgerStore, publisher: EventPublisher):
        self.store = store
        self.publisher = publisher

    # ======================================================================
    # Invitation handshake
    # ======================================================================

    def invite(
        self,
        business_id: str,
        customer_id: str,
        program_id: int,
        invited_by: str = "",
    ) -> EnrollmentInvitation:
        """
        Invite a customer to a business's program.

        Args:
            business_id: Business issuing the invitation
            customer_id: Invited customer
            program_id: Program the customer would join
            invited_by: Actor id recorded on the invitation

        Returns:
            The PENDING EnrollmentInvitation

        Raises:
            PointsmanError: NOT_FOUND (program not owned by business),
                ACCOUNT_UNAVAILABLE (program inactive), ALREADY_ENROLLED,
                DUPLICATE_PENDING
        """
        with self.store.guarded(), self.store.atomic():
            program = self._get_program(program_id, business_id)
            if not program.is_active:
                raise PointsmanError("ACCOUNT_UNAVAILABLE", message="Program is inactive", program_id=program.pk)

            card = self.store.find_card(AccountRef(customer_id, business_id, program.pk))
            if card is not None and card.is_active:
                raise PointsmanError("ALREADY_ENROLLED", card_id=str(card.uuid))

            if self.store.find_pending_invitation(customer_id, program) is not None:
                raise PointsmanError("DUPLICATE_PENDING", customer_id=customer_id, program_id=program.pk)

            try:
                with self.store.atomic():
                    invitation = self.store.insert_invitation(program, customer_id, business_id, invited_by)
            except IntegrityError:
                # A concurrent invite won the partial unique index
                raise PointsmanError("DUPLICATE_PENDING", customer_id=customer_id, program_id=program.pk)

            self.store.record_activity(
                ActivityKind.INVITATION_CREATED,
                customer_id,
                business_id,
                title=f"Invited to {program.name}",
                invitation=invitation,
                actor_id=invited_by,
                metadata={"program_id": program.pk},
            )
            self.publisher.publish(
                EventKind.INVITATION_CREATED,
                customer_id,
                business_id,
                actor_id=invited_by,
                invitation_id=str(invitation.pk),
                program_id=program.pk,
                program_name=program.name,
            )

        logger.info("Invitation %s created: %s -> program %s", invitation.pk, customer_id, program.pk)
        return invitation

    def respond(
        self,
        invitation_id,
        customer_id: str,
        accept: bool,
    ) -> EnrollmentResult:
        """
        Resolve a PENDING invitation, exactly once.

        Accepting creates the card (balance 0) or reactivates an existing
        one. Rejecting creates nothing.

        Raises:
            PointsmanError: NOT_FOUND, FORBIDDEN (not the invitee),
                ALREADY_RESOLVED
        """
        target_state = InvitationState.ACCEPTED if accept else InvitationState.REJECTED

        with self.store.guarded(), self.store.atomic():
            invitation = self.store.get_invitation(invitation_id, for_update=True)
            if invitation.customer_id != customer_id:
                raise PointsmanError(
                    "FORBIDDEN",
                    message="Invitation belongs to another customer",
                    invitation_id=str(invitation.pk),
                )

            if not self.store.resolve_invitation(invitation, target_state):
                invitation = self.store.get_invitation(invitation.pk)
                raise PointsmanError(
                    "ALREADY_RESOLVED",
                    invitation_id=str(invitation.pk),
                    state=invitation.state,
                )

            card = None
            created = False
            if accept:
                card, created = self._activate_card(
                    invitation.program,
                    invitation.customer_id,
                    invitation.business_id,
                    actor_id=customer_id,
                )
                self._record_accepted(invitation, card, actor_id=customer_id)
            else:
                self.store.record_activity(
                    ActivityKind.ENROLLMENT_REJECTED,
                    invitation.customer_id,
                    invitation.business_id,
                    title=f"Declined {invitation.program.name}",
                    invitation=invitation,
                    actor_id=customer_id,
                )
                self.publisher.publish(
                    EventKind.ENROLLMENT_REJECTED,
                    invitation.customer_id,
                    invitation.business_id,
                    actor_id=customer_id,
                    invitation_id=str(invitation.pk),
                    program_id=invitation.program_id,
                )

        logger.info("Invitation %s %s by %s", invitation.pk, target_state, customer_id)
        return EnrollmentResult(
            invitation_id=invitation.pk,
            state=invitation.state,
            card_id=card.uuid if card else None,
            card_created=created,
        )

    def pending_invitations(self, customer_id: str) -> list[EnrollmentInvitation]:
        """PENDING invitations addressed to a customer (newest first)."""
        with self.store.guarded():
            return self.store.pending_invitations(customer_id)

    # ======================================================================
    # Cards
    # ======================================================================

    def ensure_card(
        self,
        business_id: str,
        customer_id: str,
        program_id: int,
        actor_id: str = "",
    ) -> LoyaltyCard:
        """
        Return the customer's ACTIVE card, auto-enrolling if there is none.

        Used by LedgerService.award: a business awarding points directly has
        already consented, so no invitation step is needed. Duplicate-insert
        races resolve to the winner's row.

        Raises:
            PointsmanError: ACCOUNT_UNAVAILABLE (unknown/inactive program,
                auto-enroll disabled, or card deactivated)
        """
        ref = AccountRef(customer_id, business_id, program_id)

        with self.store.guarded(), self.store.atomic():
            card = self.store.find_card(ref)
            if card is not None:
                return self._require_active(card)

            program = self.store.find_program(program_id, business_id)
            if program is None or not program.is_active:
                raise PointsmanError(
                    "ACCOUNT_UNAVAILABLE",
                    message="Program is not available",
                    program_id=program_id,
                )
            if not program.auto_enroll:
                raise PointsmanError(
                    "ACCOUNT_UNAVAILABLE",
                    message="Customer is not enrolled and the program requires an invitation",
                    program_id=program_id,
                )

            pending = None
            if pointsman_settings.AUTO_ENROLL_ACCEPTS_PENDING:
                # Invitation before card: respond locks in the same order.
                pending = self.store.find_pending_invitation(customer_id, program, for_update=True)

            try:
                with self.store.atomic():
                    card = self.store.insert_card(program, customer_id, business_id)
            except IntegrityError:
                card = self.store.find_card(ref)
                if card is None:
                    raise
                logger.info("Auto-enroll race on %s: reusing card %s", ref, card.card_number)
                return self._require_active(card)

            self.store.record_activity(
                ActivityKind.CARD_CREATED,
                customer_id,
                business_id,
                title=f"Joined {program.name}",
                card=card,
                actor_id=actor_id,
                metadata={"program_id": program.pk, "auto_enrolled": True},
            )
            if pending is not None:
                self._accept_pending(pending, card, actor_id)

        logger.info("Auto-enrolled %s in program %s (card %s)", customer_id, program_id, card.card_number)
        return card

    def deactivate(self, ref: CardRef, actor_id: str = "") -> LoyaltyCard:
        """
        Deactivate a card. Idempotent; cards are never deleted.

        Raises:
            PointsmanError: NOT_FOUND
        """
        with self.store.guarded(), self.store.atomic():
            card = self.store.get_card(ref, for_update=True)
            if not self.store.set_card_status(card, CardStatus.INACTIVE):
                return card

            self.store.record_activity(
                ActivityKind.CARD_DEACTIVATED,
                card.customer_id,
                card.business_id,
                title=f"Card {card.card_number} deactivated",
                card=card,
                actor_id=actor_id,
            )
            self.publisher.publish(
                EventKind.CARD_DEACTIVATED,
                card.customer_id,
                card.business_id,
                actor_id=actor_id,
                card_id=str(card.uuid),
            )

        logger.info("Card %s deactivated by %s", card.card_number, actor_id or "-")
        return card

    # ======================================================================
    # Internals
    # ======================================================================

    def _get_program(self, program_id: int, business_id: str) -> LoyaltyProgram:
        program = self.store.find_program(program_id, business_id)
        if program is None:
            raise PointsmanError(
                "NOT_FOUND",
                message="Program not found",
                program_id=program_id,
                business_id=business_id,
            )
        return program

    @staticmethod
    def _require_active(card: LoyaltyCard) -> LoyaltyCard:
        if not card.is_active:
            raise PointsmanError(
                "ACCOUNT_UNAVAILABLE",
                message="Loyalty card is deactivated",
                card_id=str(card.uuid),
            )
        return card

    def _activate_card(
        self,
        program: LoyaltyProgram,
        customer_id: str,
        business_id: str,
        actor_id: str,
    ) -> tuple[LoyaltyCard, bool]:
        """Create the card, or reactivate it keeping its ledger. MUST run inside atomic()."""
        ref = AccountRef(customer_id, business_id, program.pk)
        card = self.store.find_card(ref, for_update=True)
        if card is not None:
            self.store.set_card_status(card, CardStatus.ACTIVE)
            return card, False

        try:
            with self.store.atomic():
                card = self.store.insert_card(program, customer_id, business_id)
        except IntegrityError:
            card = self.store.find_card(ref, for_update=True)
            if card is None:
                raise
            self.store.set_card_status(card, CardStatus.ACTIVE)
            return card, False

        self.store.record_activity(
            ActivityKind.CARD_CREATED,
            customer_id,
            business_id,
            title=f"Joined {program.name}",
            card=card,
            actor_id=actor_id,
            metadata={"program_id": program.pk, "auto_enrolled": False},
        )
        return card, True

    def _accept_pending(self, invitation: EnrollmentInvitation, card: LoyaltyCard, actor_id: str) -> None:
        """Resolve a locked PENDING invitation made redundant by auto-enroll."""
        if not self.store.resolve_invitation(invitation, InvitationState.ACCEPTED):
            return
        logger.info("Invitation %s accepted by auto-enroll of card %s", invitation.pk, card.card_number)
        self._record_accepted(invitation, card, actor_id=actor_id, auto_enrolled=True)

    def _record_accepted(
        self,
        invitation: EnrollmentInvitation,
        card: LoyaltyCard,
        actor_id: str,
        auto_enrolled: bool = False,
    ) -> None:
        self.store.record_activity(
            ActivityKind.ENROLLMENT_ACCEPTED,
            invitation.customer_id,
            invitation.business_id,
            title=f"Enrolled in {invitation.program.name}",
            card=card,
            invitation=invitation,
            actor_id=actor_id,
            metadata={"auto_enrolled": auto_enrolled},
        )
        self.publisher.publish(
            EventKind.ENROLLMENT_ACCEPTED,
            invitation.customer_id,
            invitation.business_id,
            actor_id=actor_id,
            invitation_id=str(invitation.pk),
            card_id=str(card.uuid),
            program_id=invitation.program_id,
            auto_enrolled=auto_enrolled,
        )
