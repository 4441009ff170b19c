"""Tests for Pointsman models and database constraints."""

import pytest
from django.db import IntegrityError, transaction

from pointsman.models import (
    CardStatus,
    Direction,
    EnrollmentInvitation,
    InvitationState,
    LoyaltyCard,
    LoyaltyTier,
    PointTransaction,
)


pytestmark = pytest.mark.django_db


@pytest.fixture
def card(program):
    return LoyaltyCard.objects.create(
        program=program,
        customer_id="cust-1",
        business_id="biz-1",
    )


class TestLoyaltyCard:
    """Tests for LoyaltyCard."""

    def test_defaults(self, card):
        assert card.status == CardStatus.ACTIVE
        assert card.is_active
        assert card.points_balance == 0
        assert card.total_earned == 0
        assert card.total_redeemed == 0
        assert card.tier == LoyaltyTier.BRONZE
        assert card.uuid is not None

    def test_card_number_generated(self, card):
        assert card.card_number.startswith("PM-")
        assert len(card.card_number) == len("PM-") + 10

    def test_card_number_prefix_setting(self, program, settings):
        settings.POINTSMAN = {"CARD_NUMBER_PREFIX": "CC"}
        card = LoyaltyCard.objects.create(program=program, customer_id="cust-9", business_id="biz-1")
        assert card.card_number.startswith("CC-")

    def test_one_card_per_customer_business_program(self, card, program):
        with pytest.raises(IntegrityError), transaction.atomic():
            LoyaltyCard.objects.create(program=program, customer_id="cust-1", business_id="biz-1")

    def test_same_customer_other_program(self, card, other_program):
        other = LoyaltyCard.objects.create(
            program=other_program,
            customer_id="cust-1",
            business_id="biz-2",
        )
        assert other.pk != card.pk

    def test_negative_balance_rejected(self, program):
        with pytest.raises(IntegrityError), transaction.atomic():
            LoyaltyCard.objects.create(
                program=program,
                customer_id="cust-1",
                business_id="biz-1",
                points_balance=-10,
                total_earned=0,
                total_redeemed=10,
            )

    def test_balance_must_match_totals(self, program):
        with pytest.raises(IntegrityError), transaction.atomic():
            LoyaltyCard.objects.create(
                program=program,
                customer_id="cust-1",
                business_id="biz-1",
                points_balance=50,
                total_earned=40,
                total_redeemed=0,
            )

    def test_consistent_totals_accepted(self, program):
        card = LoyaltyCard.objects.create(
            program=program,
            customer_id="cust-1",
            business_id="biz-1",
            points_balance=30,
            total_earned=100,
            total_redeemed=70,
        )
        assert card.pk is not None

    def test_str(self, card):
        assert str(card) == f"{card.card_number}: 0pts | cust-1"


class TestPointTransaction:
    """Tests for PointTransaction."""

    def test_signed_amount(self, card):
        earn = PointTransaction.objects.create(card=card, direction=Direction.EARN, amount=100, balance_after=100)
        redeem = PointTransaction.objects.create(card=card, direction=Direction.REDEEM, amount=30, balance_after=70)
        assert earn.signed_amount == 100
        assert redeem.signed_amount == -30

    def test_str(self, card):
        tx = PointTransaction(card=card, direction=Direction.REDEEM, amount=30, description="Mug")
        assert "-30" in str(tx)
        assert "Mug" in str(tx)

    def test_amount_must_be_positive(self, card):
        with pytest.raises(IntegrityError), transaction.atomic():
            PointTransaction.objects.create(card=card, direction=Direction.EARN, amount=0, balance_after=0)

    def test_source_reference_unique_per_card(self, card):
        PointTransaction.objects.create(
            card=card,
            direction=Direction.EARN,
            amount=10,
            balance_after=10,
            source_reference="order:1",
        )
        with pytest.raises(IntegrityError), transaction.atomic():
            PointTransaction.objects.create(
                card=card,
                direction=Direction.EARN,
                amount=10,
                balance_after=20,
                source_reference="order:1",
            )

    def test_null_source_reference_not_unique(self, card):
        PointTransaction.objects.create(card=card, direction=Direction.EARN, amount=10, balance_after=10)
        PointTransaction.objects.create(card=card, direction=Direction.EARN, amount=10, balance_after=20)
        assert card.transactions.count() == 2

    def test_same_source_reference_on_other_card(self, card, program):
        other = LoyaltyCard.objects.create(program=program, customer_id="cust-2", business_id="biz-1")
        for target in (card, other):
            PointTransaction.objects.create(
                card=target,
                direction=Direction.EARN,
                amount=10,
                balance_after=10,
                source_reference="order:1",
            )
        assert PointTransaction.objects.filter(source_reference="order:1").count() == 2


class TestEnrollmentInvitation:
    """Tests for EnrollmentInvitation."""

    def test_defaults(self, program):
        invitation = EnrollmentInvitation.objects.create(
            program=program,
            customer_id="cust-1",
            business_id="biz-1",
        )
        assert invitation.state == InvitationState.PENDING
        assert invitation.is_pending
        assert invitation.resolved_at is None

    def test_one_pending_per_customer_program(self, program):
        EnrollmentInvitation.objects.create(program=program, customer_id="cust-1", business_id="biz-1")
        with pytest.raises(IntegrityError), transaction.atomic():
            EnrollmentInvitation.objects.create(program=program, customer_id="cust-1", business_id="biz-1")

    def test_resolved_invitations_do_not_block(self, program):
        EnrollmentInvitation.objects.create(
            program=program,
            customer_id="cust-1",
            business_id="biz-1",
            state=InvitationState.REJECTED,
        )
        pending = EnrollmentInvitation.objects.create(
            program=program,
            customer_id="cust-1",
            business_id="biz-1",
        )
        assert pending.is_pending
