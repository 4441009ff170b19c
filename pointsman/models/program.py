"""LoyaltyProgram model."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class LoyaltyProgram(models.Model):
    """
    A business's point-earning program.

    Programs are managed by the surrounding application. The ledger only
    reads them to decide whether cards may be created or mutated.
    """

    business_id = models.CharField(_("business"), max_length=64, db_index=True)
    name = models.CharField(_("name"), max_length=200)
    description = models.TextField(_("description"), blank=True)

    is_active = models.BooleanField(_("active"), default=True)
    auto_enroll = models.BooleanField(
        _("auto-enroll"),
        default=True,
        help_text=_("Create a card implicitly when the business first awards points"),
    )
    points_expiry_days = models.PositiveIntegerField(
        _("points expiry (days)"),
        null=True,
        blank=True,
        help_text=_("Stamped on earned points as metadata; empty = never"),
    )

    # Audit
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("loyalty program")
        verbose_name_plural = _("loyalty programs")
        ordering = ["business_id", "name"]

    def __str__(self):
        return f"{self.name} ({self.business_id})"
