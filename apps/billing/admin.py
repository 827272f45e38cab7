# ==========================================
# apps/billing/admin.py
# ==========================================

from django.contrib import admin, messages
from apps.billing.models import Plan, Subscription, WebhookEvent
from apps.billing.services import reprocess_event


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    """Admin interface for Plans."""

    list_display = ['name', 'product_name', 'variant_id', 'price', 'interval', 'is_provisional', 'sort']
    list_filter = ['is_provisional', 'interval']
    search_fields = ['name', 'product_name', 'variant_id']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['sort', 'variant_id']


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    """Admin interface for Subscriptions. Rows are written by webhooks only."""

    list_display = ['external_id', 'user', 'plan', 'status', 'is_paused', 'renews_at', 'ends_at']
    list_filter = ['status', 'is_paused', 'created_at']
    search_fields = ['external_id', 'email', 'user__email']
    readonly_fields = [field.name for field in Subscription._meta.fields]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('user', 'plan')

    def has_add_permission(self, request):
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """Admin interface for stored webhook deliveries."""

    list_display = ['event_name', 'created_at', 'processed', 'has_error']
    list_filter = ['event_name', 'processed', 'created_at']
    search_fields = ['event_name', 'processing_error']
    readonly_fields = ['id', 'event_name', 'body', 'processed', 'processing_error', 'created_at']
    date_hierarchy = 'created_at'
    ordering = ['-created_at']
    actions = ['reprocess_events']

    def has_add_permission(self, request):
        return False

    def has_error(self, obj):
        return obj.processing_error is not None
    has_error.boolean = True
    has_error.short_description = 'Error'

    def reprocess_events(self, request, queryset):
        succeeded = 0
        failed = 0
        for event in queryset:
            ok, _ = reprocess_event(event)
            if ok:
                succeeded += 1
            else:
                failed += 1

        if succeeded:
            self.message_user(request, f'{succeeded} event(s) reprocessed.')
        if failed:
            self.message_user(request, f'{failed} event(s) failed again.', level=messages.WARNING)
    reprocess_events.short_description = 'Reprocess selected events'
