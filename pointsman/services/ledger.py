"""Ledger service: the only writer of card balances.

award/redeem are one atomic unit each:

    lock card row -> idempotency check -> conditional F() update
    -> insert PointTransaction -> insert ActivityRecord -> queue event

A retried call with the same source_reference returns the recorded result.
If two identical calls race past the idempotency check, the unique
(card, source_reference) index rejects the loser, its unit rolls back,
and it replays the winner's row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from uuid import UUID

from django.db import IntegrityError
from django.utils import timezone

from pointsman.conf import pointsman_settings
from pointsman.dispatch import EventPublisher
from pointsman.exceptions import PointsmanError
from pointsman.gates import Gates
from pointsman.models import (
    ActivityKind,
    Direction,
    LoyaltyCard,
    LoyaltyTier,
    PointTransaction,
)
from pointsman.protocols.notifications import EventKind
from pointsman.services.enrollment import EnrollmentService
from pointsman.store import AccountRef, CardRef, LedgerStore

logger = logging.getLogger(__name__)


# Tier thresholds (total earned)
_TIER_THRESHOLDS = [
    (5000, LoyaltyTier.PLATINUM),
    (2000, LoyaltyTier.GOLD),
    (500, LoyaltyTier.SILVER),
    (0, LoyaltyTier.BRONZE),
]


def tier_for(total_earned: int) -> str:
    for threshold, tier in _TIER_THRESHOLDS:
        if total_earned >= threshold:
            return tier
    return LoyaltyTier.BRONZE


@dataclass(frozen=True)
class LedgerResult:
    """Outcome of award/redeem."""

    card_id: UUID
    new_balance: int
    transaction_id: int
    replayed: bool = False


@dataclass(frozen=True)
class Balance:
    points_balance: int
    total_earned: int
    total_redeemed: int


@dataclass(frozen=True)
class HistoryPage:
    """One page of a card's ledger, most recent first."""

    items: list[PointTransaction] = field(default_factory=list)
    offset: int = 0
    limit: int = 0
    next_offset: int | None = None

    @property
    def has_more(self) -> bool:
        return self.next_offset is not None


class LedgerService:
    """
    Balance mutator over an injected LedgerStore.

    award/redeem never read a balance, compute in Python and write it back:
    the card row is locked for the whole unit and the write itself is a
    conditional UPDATE whose row count decides success.
    """

    def __init__(
        self,
        store: LedgerStore,
        enrollment: EnrollmentService,
        publisher: EventPublisher,
    ):
        self.store = store
        self.enrollment = enrollment
        self.publisher = publisher

    # ======================================================================
    # Mutations
    # ======================================================================

    def award(
        self,
        ref: CardRef,
        amount: int,
        actor_id: str = "",
        source_reference: str | None = None,
        description: str = "",
    ) -> LedgerResult:
        """
        Award points, auto-enrolling the customer when ref is an AccountRef.

        Args:
            ref: AccountRef (auto-enroll allowed) or card uuid
            amount: Points to add (1..MAX_AWARD_POINTS)
            actor_id: Who triggered the award
            source_reference: Idempotency key (ex: order:123)
            description: Reason shown in history

        Returns:
            LedgerResult (replayed=True for a repeated source_reference)

        Raises:
            PointsmanError: INVALID_AMOUNT, ACCOUNT_UNAVAILABLE,
                IDEMPOTENCY_CONFLICT (source_reference used for another operation)
        """
        Gates.amount_positive(amount, maximum=pointsman_settings.MAX_AWARD_POINTS)
        source_reference = source_reference or None

        with self.store.guarded():
            try:
                with self.store.atomic():
                    card = self.store.find_card(ref, for_update=True)
                    if card is None:
                        card = self._enroll_for_award(ref, actor_id)

                    if source_reference:
                        existing = self.store.find_transaction(card, source_reference)
                        if existing is not None:
                            return self._replay(card, existing, Direction.EARN, amount)

                    self._require_program_active(card)
                    if not self.store.apply_earn(card, amount):
                        raise PointsmanError(
                            "ACCOUNT_UNAVAILABLE",
                            message="Loyalty card is deactivated",
                            card_id=str(card.uuid),
                        )
                    self.store.refresh(card)

                    tx = self.store.insert_transaction(
                        card,
                        Direction.EARN,
                        amount,
                        balance_after=card.points_balance,
                        description=description,
                        source_reference=source_reference,
                        actor_id=actor_id,
                        expires_at=self._expiry_for(card),
                    )
                    self.store.record_activity(
                        ActivityKind.POINTS_AWARDED,
                        card.customer_id,
                        card.business_id,
                        title=f"+{amount} points",
                        card=card,
                        points=amount,
                        description=description,
                        reference=source_reference or "",
                        actor_id=actor_id,
                        metadata={"balance": card.points_balance},
                    )
                    self._update_tier(card)
                    self.publisher.publish(
                        EventKind.POINTS_AWARDED,
                        card.customer_id,
                        card.business_id,
                        actor_id=actor_id,
                        card_id=str(card.uuid),
                        program_id=card.program_id,
                        points=amount,
                        balance=card.points_balance,
                        transaction_id=tx.pk,
                        description=description,
                    )
            except IntegrityError:
                replay = self._replay_after_conflict(ref, source_reference, Direction.EARN, amount)
                if replay is None:
                    raise
                return replay

        logger.info(
            "Awarded %s pts to card %s (balance=%s, ref=%s)",
            amount,
            card.card_number,
            card.points_balance,
            source_reference or "-",
        )
        return LedgerResult(card.uuid, card.points_balance, tx.pk)

    def redeem(
        self,
        ref: CardRef,
        amount: int,
        reason: str,
        actor_id: str = "",
        source_reference: str | None = None,
    ) -> LedgerResult:
        """
        Redeem points. All or nothing: no partial redemption.

        Args:
            ref: AccountRef or card uuid (no auto-enroll)
            amount: Points to take
            reason: What was redeemed
            actor_id: Who triggered the redemption
            source_reference: Optional idempotency key (ex: reward:42)

        Raises:
            PointsmanError: INVALID_AMOUNT, INSUFFICIENT_BALANCE,
                ACCOUNT_UNAVAILABLE, IDEMPOTENCY_CONFLICT
        """
        Gates.amount_positive(amount)
        source_reference = source_reference or None

        with self.store.guarded():
            try:
                with self.store.atomic():
                    card = self.store.find_card(ref, for_update=True)
                    if card is None:
                        raise PointsmanError(
                            "ACCOUNT_UNAVAILABLE",
                            message="Customer is not enrolled",
                            ref=str(ref),
                        )

                    if source_reference:
                        existing = self.store.find_transaction(card, source_reference)
                        if existing is not None:
                            return self._replay(card, existing, Direction.REDEEM, amount)

                    self._require_program_active(card)
                    if not self.store.apply_redeem(card, amount):
                        self.store.refresh(card)
                        if not card.is_active:
                            raise PointsmanError(
                                "ACCOUNT_UNAVAILABLE",
                                message="Loyalty card is deactivated",
                                card_id=str(card.uuid),
                            )
                        logger.warning(
                            "Redeem rejected on card %s: requested %s, available %s",
                            card.card_number,
                            amount,
                            card.points_balance,
                        )
                        raise PointsmanError(
                            "INSUFFICIENT_BALANCE",
                            available=card.points_balance,
                            requested=amount,
                        )
                    self.store.refresh(card)

                    tx = self.store.insert_transaction(
                        card,
                        Direction.REDEEM,
                        amount,
                        balance_after=card.points_balance,
                        description=reason,
                        source_reference=source_reference,
                        actor_id=actor_id,
                    )
                    self.store.record_activity(
                        ActivityKind.POINTS_REDEEMED,
                        card.customer_id,
                        card.business_id,
                        title=f"-{amount} points",
                        card=card,
                        points=-amount,
                        description=reason,
                        reference=source_reference or "",
                        actor_id=actor_id,
                        metadata={"balance": card.points_balance},
                    )
                    self.publisher.publish(
                        EventKind.POINTS_REDEEMED,
                        card.customer_id,
                        card.business_id,
                        actor_id=actor_id,
                        card_id=str(card.uuid),
                        program_id=card.program_id,
                        points=amount,
                        balance=card.points_balance,
                        transaction_id=tx.pk,
                        description=reason,
                    )
            except IntegrityError:
                replay = self._replay_after_conflict(ref, source_reference, Direction.REDEEM, amount)
                if replay is None:
                    raise
                return replay

        logger.info(
            "Redeemed %s pts from card %s (balance=%s)",
            amount,
            card.card_number,
            card.points_balance,
        )
        return LedgerResult(card.uuid, card.points_balance, tx.pk)

    # ======================================================================
    # Reads
    # ======================================================================

    def get_balance(self, ref: CardRef) -> Balance:
        """Current committed balance. Raises NOT_FOUND."""
        with self.store.guarded():
            card = self.store.get_card(ref)
        return Balance(card.points_balance, card.total_earned, card.total_redeemed)

    def get_history(
        self,
        ref: CardRef,
        offset: int = 0,
        limit: int | None = None,
        direction: str | None = None,
    ) -> HistoryPage:
        """
        A page of the card's ledger, most recent first.

        Restart from ``page.next_offset``; it is None on the last page.

        Raises:
            PointsmanError: NOT_FOUND, INVALID_IDENTIFIER (bad page bounds
                or direction)
        """
        if limit is None:
            limit = pointsman_settings.HISTORY_PAGE_SIZE
        Gates.page_bounds(offset, limit, pointsman_settings.HISTORY_MAX_PAGE_SIZE)
        if direction is not None and direction not in Direction.values:
            raise PointsmanError("INVALID_IDENTIFIER", field="direction", value=repr(direction))

        with self.store.guarded():
            card = self.store.get_card(ref)
            rows = list(self.store.transactions_for(card, direction)[offset : offset + limit + 1])

        has_more = len(rows) > limit
        return HistoryPage(
            items=rows[:limit],
            offset=offset,
            limit=limit,
            next_offset=offset + limit if has_more else None,
        )

    # ======================================================================
    # Internals
    # ======================================================================

    def _enroll_for_award(self, ref: CardRef, actor_id: str) -> LoyaltyCard:
        """Locked, freshly enrolled card for a customer with none. MUST run inside atomic()."""
        if not isinstance(ref, AccountRef):
            raise PointsmanError("ACCOUNT_UNAVAILABLE", message="Loyalty card not found", ref=str(ref))
        card = self.enrollment.ensure_card(ref.business_id, ref.customer_id, ref.program_id, actor_id)
        return self.store.get_card(card, for_update=True)

    @staticmethod
    def _require_program_active(card: LoyaltyCard) -> None:
        if not card.program.is_active:
            raise PointsmanError(
                "ACCOUNT_UNAVAILABLE",
                message="Program is inactive",
                program_id=card.program_id,
            )

    @staticmethod
    def _expiry_for(card: LoyaltyCard):
        days = card.program.points_expiry_days
        if not days:
            return None
        return timezone.now() + timedelta(days=days)

    def _replay(
        self,
        card: LoyaltyCard,
        existing: PointTransaction,
        direction: str,
        amount: int,
    ) -> LedgerResult:
        if existing.direction != direction or existing.amount != amount:
            logger.warning(
                "source_reference %r on card %s reused for %s %s (recorded %s %s)",
                existing.source_reference,
                card.card_number,
                direction,
                amount,
                existing.direction,
                existing.amount,
            )
            raise PointsmanError(
                "IDEMPOTENCY_CONFLICT",
                source_reference=existing.source_reference,
                recorded_direction=existing.direction,
                recorded_amount=existing.amount,
                requested_direction=direction,
                requested_amount=amount,
            )
        logger.info("Replayed %s on card %s", existing.source_reference, card.card_number)
        return LedgerResult(card.uuid, existing.balance_after, existing.pk, replayed=True)

    def _replay_after_conflict(
        self,
        ref: CardRef,
        source_reference: str | None,
        direction: str,
        amount: int,
    ) -> LedgerResult | None:
        """After a unique-index conflict, return the winner's result if there is one."""
        if not source_reference:
            return None
        card = self.store.find_card(ref)
        if card is None:
            return None
        existing = self.store.find_transaction(card, source_reference)
        if existing is None:
            return None
        return self._replay(card, existing, direction, amount)

    def _update_tier(self, card: LoyaltyCard) -> None:
        """Upgrade tier from total_earned (tiers never go down)."""
        tier = tier_for(card.total_earned)
        if tier != card.tier:
            self.store.set_tier(card, tier)
