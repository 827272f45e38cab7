# ==========================================
# apps/expenses/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from .models import Expense, ExpenseSplit, ExpenseItem, ItemAssignment, Settlement, SplitMethod


class ExpenseSplitInline(admin.TabularInline):
    """Splits are created by ExpenseService and shown read-only."""
    model = ExpenseSplit
    extra = 0
    fields = ['user', 'amount']
    readonly_fields = ['user', 'amount']

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class ExpenseItemInline(admin.TabularInline):
    model = ExpenseItem
    extra = 0
    fields = ['position', 'name', 'price', 'quantity', 'is_shared_cost']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    """
    Admin interface for Expenses.

    Expenses are immutable: amount and split method are read-only because
    changing them here would break the sum of the splits.
    """

    list_display = [
        'description',
        'group',
        'paid_by',
        'amount',
        'split_method_badge',
        'date',
        'created_at',
    ]
    list_filter = ['split_method', 'date', 'created_at']
    search_fields = ['description', 'group__name', 'paid_by__email', 'category']
    readonly_fields = ['group', 'amount', 'paid_by', 'created_by', 'split_method', 'created_at']
    inlines = [ExpenseItemInline, ExpenseSplitInline]
    date_hierarchy = 'date'
    ordering = ['-date', '-created_at']

    def split_method_badge(self, obj):
        colors = {
            SplitMethod.EQUAL: '#6B8E5E',
            SplitMethod.CUSTOM: '#A47449',
            SplitMethod.BY_ITEM: '#4A6FA5',
        }
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            colors.get(obj.split_method, '#ccc'), obj.get_split_method_display()
        )
    split_method_badge.short_description = 'Split'
    split_method_badge.admin_order_field = 'split_method'

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('group', 'paid_by')


@admin.register(ItemAssignment)
class ItemAssignmentAdmin(admin.ModelAdmin):
    list_display = ['item', 'user', 'share_percentage']
    search_fields = ['item__name', 'user__email']
    readonly_fields = ['item', 'user', 'share_percentage']


@admin.register(Settlement)
class SettlementAdmin(admin.ModelAdmin):
    list_display = ['group', 'payer', 'payee', 'amount', 'date', 'created_at']
    list_filter = ['date']
    search_fields = ['group__name', 'payer__email', 'payee__email']
    date_hierarchy = 'date'
    ordering = ['-date', '-created_at']

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('group', 'payer', 'payee')
