"""PointTransaction model: the append-only ledger."""

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class Direction(models.TextChoices):
    EARN = "earn", _("Earn")
    REDEEM = "redeem", _("Redeem")


class PointTransaction(models.Model):
    """
    Immutable record of a balance change.

    Rows are written once by LedgerService and never updated or deleted.
    Corrections are new offsetting rows. ``amount`` is always positive; the
    sign comes from ``direction``.
    """

    card = models.ForeignKey(
        "pointsman.LoyaltyCard",
        on_delete=models.PROTECT,
        related_name="transactions",
        verbose_name=_("card"),
    )

    direction = models.CharField(
        _("direction"),
        max_length=10,
        choices=Direction.choices,
    )
    amount = models.IntegerField(_("amount"))
    balance_after = models.IntegerField(
        _("balance after"),
        help_text=_("Card balance right after this transaction"),
    )

    description = models.CharField(_("description"), max_length=200, blank=True)
    source_reference = models.CharField(
        _("source reference"),
        max_length=100,
        null=True,
        blank=True,
        help_text=_("Idempotency key supplied by the caller (ex: order:123)"),
    )
    expires_at = models.DateTimeField(
        _("expires at"),
        null=True,
        blank=True,
        help_text=_("Expiry metadata for earned points"),
    )

    actor_id = models.CharField(_("actor"), max_length=64, blank=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _("point transaction")
        verbose_name_plural = _("point transactions")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["card", "-created_at"], name="pointsman_tx_card_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["card", "source_reference"],
                condition=Q(source_reference__isnull=False),
                name="pointsman_unique_source_reference_per_card",
            ),
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="pointsman_transaction_amount_positive",
            ),
        ]

    def __str__(self):
        sign = "+" if self.direction == Direction.EARN else "-"
        return f"{sign}{self.amount}pts: {self.description}"

    @property
    def signed_amount(self) -> int:
        return self.amount if self.direction == Direction.EARN else -self.amount
