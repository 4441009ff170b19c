"""ActivityRecord model: human-readable audit trail."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class ActivityKind(models.TextChoices):
    POINTS_AWARDED = "points_awarded", _("Points awarded")
    POINTS_REDEEMED = "points_redeemed", _("Points redeemed")
    INVITATION_CREATED = "invitation_created", _("Invitation created")
    ENROLLMENT_ACCEPTED = "enrollment_accepted", _("Enrollment accepted")
    ENROLLMENT_REJECTED = "enrollment_rejected", _("Enrollment rejected")
    CARD_CREATED = "card_created", _("Card created")
    CARD_DEACTIVATED = "card_deactivated", _("Card deactivated")


class ActivityRecord(models.Model):
    """
    Denormalized entry mirroring a transaction or workflow event.

    Written in the same atomic unit as the change it describes. Consumed by
    dashboards and notification adapters; never used to compute balances.
    """

    customer_id = models.CharField(_("customer"), max_length=64, db_index=True)
    business_id = models.CharField(_("business"), max_length=64, db_index=True)
    card = models.ForeignKey(
        "pointsman.LoyaltyCard",
        on_delete=models.PROTECT,
        related_name="activity",
        null=True,
        blank=True,
        verbose_name=_("card"),
    )
    invitation = models.ForeignKey(
        "pointsman.EnrollmentInvitation",
        on_delete=models.PROTECT,
        related_name="activity",
        null=True,
        blank=True,
        verbose_name=_("invitation"),
    )

    kind = models.CharField(
        _("kind"),
        max_length=30,
        choices=ActivityKind.choices,
        db_index=True,
    )
    title = models.CharField(_("title"), max_length=200)
    description = models.TextField(_("description"), blank=True)
    points = models.IntegerField(
        _("points"),
        default=0,
        help_text=_("Positive for earn, negative for redeem"),
    )
    reference = models.CharField(_("reference"), max_length=100, blank=True)
    metadata = models.JSONField(_("metadata"), default=dict, blank=True)

    actor_id = models.CharField(_("actor"), max_length=64, blank=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = _("activity record")
        verbose_name_plural = _("activity records")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["customer_id", "-created_at"], name="pointsman_act_customer_idx"),
            models.Index(fields=["business_id", "-created_at"], name="pointsman_act_business_idx"),
        ]

    def __str__(self):
        return f"[{self.kind}] {self.title}"
