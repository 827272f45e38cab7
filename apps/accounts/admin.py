# ==========================================
# apps/accounts/admin.py
# ==========================================

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html
from .models import User, SubscriptionTier


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Provides user management including:
    - User listing with subscription tier and status
    - Filtering by tier, billing status and activity
    - Search by email, display name and billing ids
    - GDPR-compliant anonymization

    Subscription fields are read-only here; they are a projection owned
    by the billing webhook processing.
    """

    list_display = [
        'email',
        'display_name',
        'is_active_badge',
        'is_staff_badge',
        'tier_badge',
        'subscription_status',
        'created_at',
        'last_login',
    ]

    list_filter = [
        'is_active',
        'is_staff',
        'is_superuser',
        'subscription_tier',
        'subscription_status',
        'is_paused',
        'created_at',
    ]

    search_fields = [
        'email',
        'display_name',
        'billing_customer_id',
        'billing_subscription_id',
    ]

    ordering = ['-created_at']
    date_hierarchy = 'created_at'

    # Remove username field references from BaseUserAdmin
    fieldsets = (
        ('Basic Information', {
            'fields': ('email', 'display_name', 'password')
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        ('Subscription', {
            'fields': (
                'subscription_tier',
                'subscription_status',
                'is_paused',
                'billing_customer_id',
                'billing_subscription_id',
                'current_period_end',
            ),
            'description': 'Maintained by billing webhooks. Edit the subscription, not these fields.',
        }),
        ('Preferences', {
            'fields': ('preferences',),
            'classes': ('collapse',),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'last_login'),
            'classes': ('collapse',),
        }),
        ('GDPR', {
            'fields': ('gdpr_deleted_at',),
            'classes': ('collapse',),
            'description': 'GDPR compliance fields. Use anonymize action for data deletion requests.',
        }),
    )

    add_fieldsets = (
        ('Create User', {
            'classes': ('wide',),
            'fields': ('email', 'display_name', 'password1', 'password2'),
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser'),
        }),
    )

    readonly_fields = [
        'created_at',
        'last_login',
        'gdpr_deleted_at',
        'subscription_tier',
        'subscription_status',
        'is_paused',
        'billing_customer_id',
        'billing_subscription_id',
        'current_period_end',
    ]

    filter_horizontal = ['groups', 'user_permissions']

    def is_active_badge(self, obj):
        """Display active status as colored badge."""
        if obj.is_active:
            return format_html(
                '<span style="background: #6B8E5E; color: white; padding: 3px 8px; '
                'border-radius: 10px; font-size: 11px;">Active</span>'
            )
        return format_html(
            '<span style="background: #B85C5C; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">Inactive</span>'
        )
    is_active_badge.short_description = 'Status'
    is_active_badge.admin_order_field = 'is_active'

    def is_staff_badge(self, obj):
        if obj.is_staff:
            return format_html(
                '<span style="background: #A47449; color: white; padding: 3px 8px; '
                'border-radius: 10px; font-size: 11px;">Staff</span>'
            )
        return format_html(
            '<span style="background: #ccc; color: #666; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">User</span>'
        )
    is_staff_badge.short_description = 'Role'
    is_staff_badge.admin_order_field = 'is_staff'

    def tier_badge(self, obj):
        """Show effective entitlement, which may differ from the stored tier."""
        if obj.has_pro_access():
            return format_html(
                '<span style="background: #4A6FA5; color: white; padding: 3px 8px; '
                'border-radius: 10px; font-size: 11px;">Pro</span>'
            )
        return format_html(
            '<span style="background: #ccc; color: #666; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            SubscriptionTier(obj.subscription_tier).label
        )
    tier_badge.short_description = 'Tier'
    tier_badge.admin_order_field = 'subscription_tier'

    actions = [
        'activate_users',
        'deactivate_users',
        'anonymize_users',
    ]

    @admin.action(description='Activate selected users')
    def activate_users(self, request, queryset):
        count = queryset.update(is_active=True)
        self.message_user(request, f'Activated {count} user(s).')

    @admin.action(description='Deactivate selected users')
    def deactivate_users(self, request, queryset):
        """Deactivate selected users (excludes superusers)."""
        safe_queryset = queryset.filter(is_superuser=False)
        count = safe_queryset.update(is_active=False)
        skipped = queryset.count() - count
        msg = f'Deactivated {count} user(s).'
        if skipped:
            msg += f' Skipped {skipped} superuser(s).'
        self.message_user(request, msg)

    @admin.action(description='GDPR: Anonymize selected users (IRREVERSIBLE)')
    def anonymize_users(self, request, queryset):
        """
        GDPR-compliant anonymization of selected users.

        WARNING: This action is IRREVERSIBLE and will:
        - Replace email with anonymized placeholder
        - Deactivate account and set unusable password
        - Reset the subscription projection
        - Delete the user's stored subscriptions
        """
        safe_queryset = queryset.filter(is_superuser=False, is_staff=False)
        count = 0
        for user in safe_queryset:
            user.anonymize()
            count += 1

        skipped = queryset.count() - count
        msg = f'Anonymized {count} user(s).'
        if skipped:
            msg += f' Skipped {skipped} staff/superuser(s).'
        self.message_user(request, msg)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.prefetch_related('groups')
