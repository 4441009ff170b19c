"""
Ledger store: every database access of the ledger goes through here.

A LedgerStore is bound to one database alias and is passed explicitly to
LedgerService and EnrollmentService. All queries are ORM queries; caller
values are never formatted into SQL.

Balance writes are single conditional UPDATEs built from F() expressions:

    UPDATE card SET points_balance = points_balance - :amount, ...
     WHERE id = :id AND status = 'active' AND points_balance >= :amount

The affected-row count tells the caller whether the mutation happened.
"""

from __future__ import annotations

import logging
import uuid as uuid_lib
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Union

from django.db import InterfaceError, OperationalError, transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from pointsman.conf import pointsman_settings
from pointsman.exceptions import PointsmanError
from pointsman.models import (
    ActivityRecord,
    CardStatus,
    EnrollmentInvitation,
    InvitationState,
    LoyaltyCard,
    LoyaltyProgram,
    PointTransaction,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountRef:
    """Natural key of a loyalty card."""

    customer_id: str
    business_id: str
    program_id: int


CardRef = Union[AccountRef, uuid_lib.UUID, str, LoyaltyCard]


def parse_uuid(value, field: str = "id") -> uuid_lib.UUID:
    """Parse a UUID or raise INVALID_IDENTIFIER."""
    if isinstance(value, uuid_lib.UUID):
        return value
    try:
        return uuid_lib.UUID(str(value))
    except (TypeError, ValueError):
        raise PointsmanError("INVALID_IDENTIFIER", field=field, value=str(value))


class LedgerStore:
    """Database handle for cards, transactions, invitations and activity."""

    def __init__(self, using: str | None = None):
        self.using = using or pointsman_settings.DATABASE_ALIAS

    # ======================================================================
    # Transaction scope
    # ======================================================================

    def atomic(self):
        return transaction.atomic(using=self.using)

    def on_commit(self, func) -> None:
        """Run func after the outermost transaction commits (now if none)."""
        transaction.on_commit(func, using=self.using)

    @contextmanager
    def guarded(self):
        """Translate connection-level failures into STORE_UNAVAILABLE."""
        try:
            yield self
        except (OperationalError, InterfaceError) as exc:
            logger.error("Ledger store unavailable (%s): %s", self.using, exc)
            raise PointsmanError("STORE_UNAVAILABLE", reason=str(exc)) from exc

    # ======================================================================
    # Programs
    # ======================================================================

    def find_program(self, program_id: int, business_id: str | None = None) -> LoyaltyProgram | None:
        qs = LoyaltyProgram.objects.using(self.using).filter(pk=program_id)
        if business_id is not None:
            qs = qs.filter(business_id=business_id)
        return qs.first()

    # ======================================================================
    # Cards
    # ======================================================================

    def _cards(self) -> QuerySet:
        return LoyaltyCard.objects.using(self.using).select_related("program")

    def find_card(self, ref: CardRef, for_update: bool = False) -> LoyaltyCard | None:
        """
        Look a card up by natural key, uuid, or instance.

        for_update=True takes a row lock; MUST be called inside atomic().
        """
        qs = self._cards()
        if for_update:
            qs = qs.select_for_update(of=("self",))

        if isinstance(ref, LoyaltyCard):
            return qs.filter(pk=ref.pk).first()
        if isinstance(ref, AccountRef):
            return qs.filter(
                customer_id=ref.customer_id,
                business_id=ref.business_id,
                program_id=ref.program_id,
            ).first()
        return qs.filter(uuid=parse_uuid(ref, "card_id")).first()

    def get_card(self, ref: CardRef, for_update: bool = False) -> LoyaltyCard:
        card = self.find_card(ref, for_update=for_update)
        if card is None:
            raise PointsmanError("NOT_FOUND", message="Loyalty card not found", ref=str(ref))
        return card

    def insert_card(self, program: LoyaltyProgram, customer_id: str, business_id: str) -> LoyaltyCard:
        """Insert an ACTIVE card with zero balance. Raises IntegrityError on duplicates."""
        card = LoyaltyCard(
            program=program,
            customer_id=customer_id,
            business_id=business_id,
            status=CardStatus.ACTIVE,
        )
        card.save(using=self.using, force_insert=True)
        return card

    def set_card_status(self, card: LoyaltyCard, status: str) -> bool:
        """Conditional status flip. Returns False if the card already had it."""
        updated = (
            LoyaltyCard.objects.using(self.using)
            .filter(pk=card.pk)
            .exclude(status=status)
            .update(status=status, updated_at=timezone.now())
        )
        if updated:
            card.status = status
        return bool(updated)

    def apply_earn(self, card: LoyaltyCard, amount: int) -> bool:
        updated = (
            LoyaltyCard.objects.using(self.using)
            .filter(pk=card.pk, status=CardStatus.ACTIVE)
            .update(
                points_balance=F("points_balance") + amount,
                total_earned=F("total_earned") + amount,
                updated_at=timezone.now(),
            )
        )
        return updated == 1

    def apply_redeem(self, card: LoyaltyCard, amount: int) -> bool:
        updated = (
            LoyaltyCard.objects.using(self.using)
            .filter(pk=card.pk, status=CardStatus.ACTIVE, points_balance__gte=amount)
            .update(
                points_balance=F("points_balance") - amount,
                total_redeemed=F("total_redeemed") + amount,
                updated_at=timezone.now(),
            )
        )
        return updated == 1

    def set_tier(self, card: LoyaltyCard, tier: str) -> None:
        LoyaltyCard.objects.using(self.using).filter(pk=card.pk).update(tier=tier)
        card.tier = tier

    def refresh(self, card: LoyaltyCard) -> LoyaltyCard:
        card.refresh_from_db(
            using=self.using,
            fields=["status", "points_balance", "total_earned", "total_redeemed", "tier", "updated_at"],
        )
        return card

    # ======================================================================
    # Transactions
    # ======================================================================

    def find_transaction(self, card: LoyaltyCard, source_reference: str) -> PointTransaction | None:
        return (
            PointTransaction.objects.using(self.using)
            .filter(card_id=card.pk, source_reference=source_reference)
            .first()
        )

    def insert_transaction(
        self,
        card: LoyaltyCard,
        direction: str,
        amount: int,
        balance_after: int,
        description: str = "",
        source_reference: str | None = None,
        actor_id: str = "",
        expires_at: datetime | None = None,
    ) -> PointTransaction:
        """Append a ledger row. Raises IntegrityError on a reused source_reference."""
        return PointTransaction.objects.using(self.using).create(
            card=card,
            direction=direction,
            amount=amount,
            balance_after=balance_after,
            description=description,
            source_reference=source_reference,
            actor_id=actor_id,
            expires_at=expires_at,
        )

    def transactions_for(self, card: LoyaltyCard, direction: str | None = None) -> QuerySet:
        qs = PointTransaction.objects.using(self.using).filter(card_id=card.pk)
        if direction:
            qs = qs.filter(direction=direction)
        return qs.order_by("-created_at", "-id")

    # ======================================================================
    # Invitations
    # ======================================================================

    def _invitations(self) -> QuerySet:
        return EnrollmentInvitation.objects.using(self.using).select_related("program")

    def get_invitation(self, invitation_id, for_update: bool = False) -> EnrollmentInvitation:
        qs = self._invitations()
        if for_update:
            qs = qs.select_for_update(of=("self",))
        invitation = qs.filter(pk=parse_uuid(invitation_id, "invitation_id")).first()
        if invitation is None:
            raise PointsmanError(
                "NOT_FOUND",
                message="Invitation not found",
                invitation_id=str(invitation_id),
            )
        return invitation

    def find_pending_invitation(
        self,
        customer_id: str,
        program: LoyaltyProgram,
        for_update: bool = False,
    ) -> EnrollmentInvitation | None:
        qs = self._invitations()
        if for_update:
            qs = qs.select_for_update(of=("self",))
        return qs.filter(
            customer_id=customer_id,
            program=program,
            state=InvitationState.PENDING,
        ).first()

    def pending_invitations(self, customer_id: str) -> list[EnrollmentInvitation]:
        return list(
            self._invitations().filter(
                customer_id=customer_id,
                state=InvitationState.PENDING,
            )
        )

    def insert_invitation(
        self,
        program: LoyaltyProgram,
        customer_id: str,
        business_id: str,
        invited_by: str = "",
    ) -> EnrollmentInvitation:
        """Insert a PENDING invitation. Raises IntegrityError if one is already pending."""
        return EnrollmentInvitation.objects.using(self.using).create(
            program=program,
            customer_id=customer_id,
            business_id=business_id,
            invited_by=invited_by,
        )

    def resolve_invitation(self, invitation: EnrollmentInvitation, state: str) -> bool:
        """PENDING -> state as one conditional UPDATE. False if already resolved."""
        now = timezone.now()
        updated = (
            EnrollmentInvitation.objects.using(self.using)
            .filter(pk=invitation.pk, state=InvitationState.PENDING)
            .update(state=state, resolved_at=now)
        )
        if updated:
            invitation.state = state
            invitation.resolved_at = now
        return bool(updated)

    # ======================================================================
    # Activity
    # ======================================================================

    def record_activity(
        self,
        kind: str,
        customer_id: str,
        business_id: str,
        title: str,
        card: LoyaltyCard | None = None,
        invitation: EnrollmentInvitation | None = None,
        points: int = 0,
        description: str = "",
        reference: str = "",
        actor_id: str = "",
        metadata: dict | None = None,
    ) -> ActivityRecord:
        return ActivityRecord.objects.using(self.using).create(
            kind=kind,
            customer_id=customer_id,
            business_id=business_id,
            title=title,
            card=card,
            invitation=invitation,
            points=points,
            description=description,
            reference=reference or "",
            actor_id=actor_id,
            metadata=metadata or {},
        )


__all__ = ["AccountRef", "CardRef", "LedgerStore", "parse_uuid"]
