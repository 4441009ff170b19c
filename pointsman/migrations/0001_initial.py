# Initial schema for the points ledger and enrollment workflow

import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LoyaltyProgram",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("business_id", models.CharField(db_index=True, max_length=64, verbose_name="business")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
                (
                    "auto_enroll",
                    models.BooleanField(
                        default=True,
                        help_text="Create a card implicitly when the business first awards points",
                        verbose_name="auto-enroll",
                    ),
                ),
                (
                    "points_expiry_days",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Stamped on earned points as metadata; empty = never",
                        null=True,
                        verbose_name="points expiry (days)",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "loyalty program",
                "verbose_name_plural": "loyalty programs",
                "ordering": ["business_id", "name"],
            },
        ),
        migrations.CreateModel(
            name="LoyaltyCard",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("card_number", models.CharField(max_length=32, unique=True, verbose_name="card number")),
                ("customer_id", models.CharField(db_index=True, max_length=64, verbose_name="customer")),
                ("business_id", models.CharField(db_index=True, max_length=64, verbose_name="business")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("inactive", "Inactive")],
                        db_index=True,
                        default="active",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                (
                    "points_balance",
                    models.IntegerField(
                        default=0,
                        help_text="Points available for redemption",
                        verbose_name="points balance",
                    ),
                ),
                (
                    "total_earned",
                    models.IntegerField(
                        default=0,
                        help_text="Lifetime earned points (never decreases)",
                        verbose_name="total earned",
                    ),
                ),
                (
                    "total_redeemed",
                    models.IntegerField(
                        default=0,
                        help_text="Lifetime redeemed points (never decreases)",
                        verbose_name="total redeemed",
                    ),
                ),
                (
                    "tier",
                    models.CharField(
                        choices=[
                            ("bronze", "Bronze"),
                            ("silver", "Silver"),
                            ("gold", "Gold"),
                            ("platinum", "Platinum"),
                        ],
                        default="bronze",
                        max_length=20,
                        verbose_name="tier",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "program",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="cards",
                        to="pointsman.loyaltyprogram",
                        verbose_name="program",
                    ),
                ),
            ],
            options={
                "verbose_name": "loyalty card",
                "verbose_name_plural": "loyalty cards",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("customer_id", "business_id", "program"),
                        name="pointsman_unique_card_per_program",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("points_balance__gte", 0)),
                        name="pointsman_card_balance_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_earned__gte", 0), ("total_redeemed__gte", 0)),
                        name="pointsman_card_totals_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("points_balance", models.F("total_earned") - models.F("total_redeemed"))
                        ),
                        name="pointsman_card_balance_matches_totals",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="EnrollmentInvitation",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("customer_id", models.CharField(db_index=True, max_length=64, verbose_name="customer")),
                ("business_id", models.CharField(db_index=True, max_length=64, verbose_name="business")),
                (
                    "state",
                    models.CharField(
                        choices=[("pending", "Pending"), ("accepted", "Accepted"), ("rejected", "Rejected")],
                        db_index=True,
                        default="pending",
                        max_length=20,
                        verbose_name="state",
                    ),
                ),
                ("invited_by", models.CharField(blank=True, max_length=64, verbose_name="invited by")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("resolved_at", models.DateTimeField(blank=True, null=True, verbose_name="resolved at")),
                (
                    "program",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invitations",
                        to="pointsman.loyaltyprogram",
                        verbose_name="program",
                    ),
                ),
            ],
            options={
                "verbose_name": "enrollment invitation",
                "verbose_name_plural": "enrollment invitations",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("state", "pending")),
                        fields=("customer_id", "program"),
                        name="pointsman_one_pending_invitation",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PointTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "direction",
                    models.CharField(
                        choices=[("earn", "Earn"), ("redeem", "Redeem")],
                        max_length=10,
                        verbose_name="direction",
                    ),
                ),
                ("amount", models.IntegerField(verbose_name="amount")),
                (
                    "balance_after",
                    models.IntegerField(
                        help_text="Card balance right after this transaction",
                        verbose_name="balance after",
                    ),
                ),
                ("description", models.CharField(blank=True, max_length=200, verbose_name="description")),
                (
                    "source_reference",
                    models.CharField(
                        blank=True,
                        help_text="Idempotency key supplied by the caller (ex: order:123)",
                        max_length=100,
                        null=True,
                        verbose_name="source reference",
                    ),
                ),
                (
                    "expires_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Expiry metadata for earned points",
                        null=True,
                        verbose_name="expires at",
                    ),
                ),
                ("actor_id", models.CharField(blank=True, max_length=64, verbose_name="actor")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                (
                    "card",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="pointsman.loyaltycard",
                        verbose_name="card",
                    ),
                ),
            ],
            options={
                "verbose_name": "point transaction",
                "verbose_name_plural": "point transactions",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["card", "-created_at"], name="pointsman_tx_card_created_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("source_reference__isnull", False)),
                        fields=("card", "source_reference"),
                        name="pointsman_unique_source_reference_per_card",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="pointsman_transaction_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ActivityRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_id", models.CharField(db_index=True, max_length=64, verbose_name="customer")),
                ("business_id", models.CharField(db_index=True, max_length=64, verbose_name="business")),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("points_awarded", "Points awarded"),
                            ("points_redeemed", "Points redeemed"),
                            ("invitation_created", "Invitation created"),
                            ("enrollment_accepted", "Enrollment accepted"),
                            ("enrollment_rejected", "Enrollment rejected"),
                            ("card_created", "Card created"),
                            ("card_deactivated", "Card deactivated"),
                        ],
                        db_index=True,
                        max_length=30,
                        verbose_name="kind",
                    ),
                ),
                ("title", models.CharField(max_length=200, verbose_name="title")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                (
                    "points",
                    models.IntegerField(
                        default=0,
                        help_text="Positive for earn, negative for redeem",
                        verbose_name="points",
                    ),
                ),
                ("reference", models.CharField(blank=True, max_length=100, verbose_name="reference")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="metadata")),
                ("actor_id", models.CharField(blank=True, max_length=64, verbose_name="actor")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                (
                    "card",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="activity",
                        to="pointsman.loyaltycard",
                        verbose_name="card",
                    ),
                ),
                (
                    "invitation",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="activity",
                        to="pointsman.enrollmentinvitation",
                        verbose_name="invitation",
                    ),
                ),
            ],
            options={
                "verbose_name": "activity record",
                "verbose_name_plural": "activity records",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["customer_id", "-created_at"], name="pointsman_act_customer_idx"),
                    models.Index(fields=["business_id", "-created_at"], name="pointsman_act_business_idx"),
                ],
            },
        ),
    ]
