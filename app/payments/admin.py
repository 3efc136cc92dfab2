"""
Payment admin configuration.

Payments are money-tracking records: the admin is read-only and has no
delete path. Status only changes through the orchestrator.
"""

from django.contrib import admin

from payments.models import Payment, WebhookEvent


class ReadOnlyAdmin(admin.ModelAdmin):
    """Admin that lists and shows records but never writes them."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdmin):
    """
    Admin configuration for Payment.

    Degraded payments (recorded succeeded while the provider was
    unreachable) can be filtered with is_degraded.
    """

    list_display = [
        "id",
        "owner",
        "amount",
        "currency",
        "method",
        "status",
        "is_degraded",
        "provider_reference",
        "created_at",
    ]
    list_filter = ["status", "method", "is_degraded", "created_at"]
    search_fields = ["id", "provider_reference", "owner__email"]
    list_select_related = ["owner"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "owner", "amount", "currency", "method")}),
        (
            "Status",
            {
                "fields": (
                    "status",
                    "provider_reference",
                    "is_degraded",
                    "failure_reason",
                    "completed_at",
                ),
            },
        ),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(WebhookEvent)
class WebhookEventAdmin(ReadOnlyAdmin):
    """Visibility into Stripe webhook processing status."""

    list_display = [
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (None, {"fields": ("id", "stripe_event_id", "event_type", "status")}),
        ("Processing", {"fields": ("processed_at", "retry_count")}),
        ("Error Info", {"fields": ("error_message",), "classes": ("collapse",)}),
        ("Payload", {"fields": ("payload",), "classes": ("collapse",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )
