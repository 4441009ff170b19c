"""EnrollmentInvitation model: business invites, customer resolves."""

import uuid

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class InvitationState(models.TextChoices):
    PENDING = "pending", _("Pending")
    ACCEPTED = "accepted", _("Accepted")
    REJECTED = "rejected", _("Rejected")


class EnrollmentInvitation(models.Model):
    """
    Approval handshake that creates a loyalty card.

    Rules:
    - PENDING -> ACCEPTED | REJECTED, terminal
    - At most one PENDING row per (customer_id, program)
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    customer_id = models.CharField(_("customer"), max_length=64, db_index=True)
    business_id = models.CharField(_("business"), max_length=64, db_index=True)
    program = models.ForeignKey(
        "pointsman.LoyaltyProgram",
        on_delete=models.PROTECT,
        related_name="invitations",
        verbose_name=_("program"),
    )

    state = models.CharField(
        _("state"),
        max_length=20,
        choices=InvitationState.choices,
        default=InvitationState.PENDING,
        db_index=True,
    )

    invited_by = models.CharField(_("invited by"), max_length=64, blank=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    resolved_at = models.DateTimeField(_("resolved at"), null=True, blank=True)

    class Meta:
        verbose_name = _("enrollment invitation")
        verbose_name_plural = _("enrollment invitations")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer_id", "program"],
                condition=Q(state="pending"),
                name="pointsman_one_pending_invitation",
            ),
        ]

    def __str__(self):
        return f"{self.customer_id} -> {self.program_id}: {self.state}"

    @property
    def is_pending(self) -> bool:
        return self.state == InvitationState.PENDING
