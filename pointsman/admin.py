"""Pointsman admin.

Balances, ledger rows, invitations and activity are read-only here: they
change only through PointsService so the ledger invariants hold.
"""

from django.contrib import admin
from django.utils.html import format_html

from pointsman.models import (
    ActivityRecord,
    EnrollmentInvitation,
    LoyaltyCard,
    LoyaltyProgram,
    PointTransaction,
)


class ReadOnlyAdminMixin:
    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# Program Admin
# ===========================================


@admin.register(LoyaltyProgram)
class LoyaltyProgramAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "business_id",
        "auto_enroll",
        "points_expiry_days",
        "is_active",
        "card_count",
    ]
    list_filter = ["is_active", "auto_enroll"]
    search_fields = ["name", "business_id"]
    list_editable = ["is_active"]
    readonly_fields = ["created_at", "updated_at"]

    def has_delete_permission(self, request, obj=None):
        return False

    def card_count(self, obj):
        return obj.cards.count()

    card_count.short_description = "Cards"


# ===========================================
# Card Admin
# ===========================================


class PointTransactionInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = PointTransaction
    extra = 0
    fields = ["created_at", "direction", "amount", "balance_after", "description", "source_reference"]
    readonly_fields = fields
    ordering = ["-created_at", "-id"]
    max_num = 0


@admin.register(LoyaltyCard)
class LoyaltyCardAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "card_number",
        "customer_id",
        "business_id",
        "program",
        "points_balance",
        "total_earned",
        "total_redeemed",
        "tier_badge",
        "status",
    ]
    list_filter = ["status", "tier", "program"]
    search_fields = ["card_number", "customer_id", "business_id", "uuid"]
    list_select_related = ["program"]
    inlines = [PointTransactionInline]

    def tier_badge(self, obj):
        colors = {
            "bronze": "#cd7f32",
            "silver": "#c0c0c0",
            "gold": "#ffd700",
            "platinum": "#e5e4e2",
        }
        color = colors.get(obj.tier, "#6c757d")
        text_color = "#fff" if obj.tier == "bronze" else "#000"
        return format_html(
            '<span style="background:{}; color:{}; padding:2px 8px; '
            'border-radius:3px; font-size:11px;">{}</span>',
            color,
            text_color,
            obj.get_tier_display(),
        )

    tier_badge.short_description = "Tier"


# ===========================================
# Ledger Admin
# ===========================================


@admin.register(PointTransaction)
class PointTransactionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "created_at",
        "card_number",
        "points_display",
        "balance_after",
        "description",
        "source_reference",
        "actor_id",
    ]
    list_filter = ["direction"]
    search_fields = ["card__card_number", "card__customer_id", "description", "source_reference"]
    list_select_related = ["card"]
    date_hierarchy = "created_at"

    def card_number(self, obj):
        return obj.card.card_number

    card_number.short_description = "Card"

    def points_display(self, obj):
        if obj.signed_amount > 0:
            return format_html('<span style="color:green">+{}</span>', obj.signed_amount)
        return format_html('<span style="color:red">{}</span>', obj.signed_amount)

    points_display.short_description = "Points"


# ===========================================
# Enrollment Admin
# ===========================================


@admin.register(EnrollmentInvitation)
class EnrollmentInvitationAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["customer_id", "business_id", "program", "state", "invited_by", "created_at", "resolved_at"]
    list_filter = ["state", "program"]
    search_fields = ["customer_id", "business_id", "id"]
    list_select_related = ["program"]


@admin.register(ActivityRecord)
class ActivityRecordAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["created_at", "kind", "customer_id", "business_id", "title", "points"]
    list_filter = ["kind"]
    search_fields = ["customer_id", "business_id", "title", "reference"]
    date_hierarchy = "created_at"
