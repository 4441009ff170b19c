"""LoyaltyCard model (the account holding a customer's points).

Balance columns:
    points_balance == total_earned - total_redeemed, and points_balance >= 0.

    Both rules are database CHECK constraints. Only LedgerService writes the
    balance columns, always through conditional F() updates under a row lock.
"""

import secrets
import uuid as uuid_lib

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _


class CardStatus(models.TextChoices):
    ACTIVE = "active", _("Active")
    INACTIVE = "inactive", _("Inactive")


class LoyaltyTier(models.TextChoices):
    """Card tiers, derived from total_earned."""

    BRONZE = "bronze", _("Bronze")
    SILVER = "silver", _("Silver")
    GOLD = "gold", _("Gold")
    PLATINUM = "platinum", _("Platinum")


def generate_card_number(prefix: str) -> str:
    return f"{prefix}-{secrets.token_hex(5).upper()}"


class LoyaltyCard(models.Model):
    """
    One customer's membership in one business program.

    Identity is the (customer_id, business_id, program) triple. The uuid is
    the surrogate handed to callers. Cards are never deleted, only
    deactivated.
    """

    uuid = models.UUIDField(default=uuid_lib.uuid4, editable=False, unique=True)
    card_number = models.CharField(_("card number"), max_length=32, unique=True)

    customer_id = models.CharField(_("customer"), max_length=64, db_index=True)
    business_id = models.CharField(_("business"), max_length=64, db_index=True)
    program = models.ForeignKey(
        "pointsman.LoyaltyProgram",
        on_delete=models.PROTECT,
        related_name="cards",
        verbose_name=_("program"),
    )

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=CardStatus.choices,
        default=CardStatus.ACTIVE,
        db_index=True,
    )

    points_balance = models.IntegerField(
        _("points balance"),
        default=0,
        help_text=_("Points available for redemption"),
    )
    total_earned = models.IntegerField(
        _("total earned"),
        default=0,
        help_text=_("Lifetime earned points (never decreases)"),
    )
    total_redeemed = models.IntegerField(
        _("total redeemed"),
        default=0,
        help_text=_("Lifetime redeemed points (never decreases)"),
    )

    tier = models.CharField(
        _("tier"),
        max_length=20,
        choices=LoyaltyTier.choices,
        default=LoyaltyTier.BRONZE,
    )

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("loyalty card")
        verbose_name_plural = _("loyalty cards")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer_id", "business_id", "program"],
                name="pointsman_unique_card_per_program",
            ),
            models.CheckConstraint(
                condition=Q(points_balance__gte=0),
                name="pointsman_card_balance_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(total_earned__gte=0) & Q(total_redeemed__gte=0),
                name="pointsman_card_totals_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(points_balance=F("total_earned") - F("total_redeemed")),
                name="pointsman_card_balance_matches_totals",
            ),
        ]

    def __str__(self):
        return f"{self.card_number}: {self.points_balance}pts | {self.customer_id}"

    @property
    def is_active(self) -> bool:
        return self.status == CardStatus.ACTIVE

    def save(self, *args, **kwargs):
        if not self.card_number:
            from pointsman.conf import pointsman_settings

            self.card_number = generate_card_number(pointsman_settings.CARD_NUMBER_PREFIX)
        super().save(*args, **kwargs)
