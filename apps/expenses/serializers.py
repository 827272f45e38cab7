from rest_framework import serializers
from .models import (
    Expense,
    ExpenseSplit,
    ExpenseItem,
    ItemAssignment,
    Settlement,
    SplitMethod,
)
from apps.accounts.serializers import UserMinimalSerializer


# =============================================================================
# Input Serializers
# =============================================================================

class ExpenseFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for expense filtering.

    Query Parameters:
        group (UUID): Filter by group ID
        date_from (date): Expenses from this date
        date_to (date): Expenses up to this date
    """

    group = serializers.UUIDField(required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        date_from = attrs.get('date_from')
        date_to = attrs.get('date_to')

        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({
                'date_to': 'End date must be after start date'
            })

        return attrs


class CustomSplitInputSerializer(serializers.Serializer):
    user_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)


class ItemInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    quantity = serializers.IntegerField(default=1, min_value=1, max_value=10000)
    is_shared_cost = serializers.BooleanField(default=False)
    assigned_to = serializers.ListField(
        child=serializers.UUIDField(),
        required=False,
        default=list
    )


class SplitInputSerializer(serializers.Serializer):
    """
    Split description shared by the preview and create endpoints.

    Range and consistency checks (positive amounts, assigned items, group
    membership) are left to the allocation engine so both endpoints report
    the same errors.
    """

    group = serializers.UUIDField()
    split_method = serializers.ChoiceField(choices=SplitMethod.choices)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)
    split_between = serializers.ListField(
        child=serializers.UUIDField(),
        required=False,
        default=list
    )
    custom_splits = CustomSplitInputSerializer(many=True, required=False)
    items = ItemInputSerializer(many=True, required=False)

    def validate(self, attrs):
        method = attrs['split_method']
        if method == SplitMethod.EQUAL and 'amount' not in attrs:
            raise serializers.ValidationError({'amount': 'Amount is required for equal splits.'})
        if method == SplitMethod.CUSTOM and not attrs.get('custom_splits'):
            raise serializers.ValidationError({'custom_splits': 'Custom splits are required.'})
        if method == SplitMethod.BY_ITEM and not attrs.get('items'):
            raise serializers.ValidationError({'items': 'Items are required for itemized splits.'})
        return attrs


class ExpenseCreateSerializer(SplitInputSerializer):
    description = serializers.CharField(max_length=255)
    paid_by = serializers.UUIDField(required=False)
    category = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    receipt_url = serializers.URLField(max_length=500, required=False, allow_blank=True, default='')
    date = serializers.DateField(required=False)


class SettlementCreateSerializer(serializers.Serializer):
    group = serializers.UUIDField()
    payee = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    date = serializers.DateField(required=False)


# =============================================================================
# Output Serializers
# =============================================================================

class SplitShareSerializer(serializers.Serializer):
    """A computed share, as returned by the preview endpoint."""

    user_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)


class SplitPreviewSerializer(serializers.Serializer):
    total = serializers.DecimalField(max_digits=10, decimal_places=2)
    splits = SplitShareSerializer(many=True)


class ExpenseSplitSerializer(serializers.ModelSerializer):

    user = UserMinimalSerializer(read_only=True)

    class Meta:
        model = ExpenseSplit
        fields = ['id', 'user', 'amount']
        read_only_fields = fields


class ItemAssignmentSerializer(serializers.ModelSerializer):

    class Meta:
        model = ItemAssignment
        fields = ['user', 'share_percentage']
        read_only_fields = fields


class ExpenseItemSerializer(serializers.ModelSerializer):

    assignments = ItemAssignmentSerializer(many=True, read_only=True)

    class Meta:
        model = ExpenseItem
        fields = ['id', 'name', 'price', 'quantity', 'is_shared_cost', 'assignments']
        read_only_fields = fields


class ExpenseSerializer(serializers.ModelSerializer):
    """Full expense with splits and items."""

    paid_by = UserMinimalSerializer(read_only=True)
    splits = ExpenseSplitSerializer(many=True, read_only=True)
    items = ExpenseItemSerializer(many=True, read_only=True)

    class Meta:
        model = Expense
        fields = [
            'id',
            'group',
            'description',
            'amount',
            'paid_by',
            'split_method',
            'category',
            'receipt_url',
            'date',
            'splits',
            'items',
            'created_at',
        ]
        read_only_fields = fields


class ExpenseListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    paid_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Expense
        fields = [
            'id',
            'group',
            'description',
            'amount',
            'paid_by',
            'split_method',
            'category',
            'date',
            'created_at',
        ]
        read_only_fields = fields


class SettlementSerializer(serializers.ModelSerializer):

    payer = UserMinimalSerializer(read_only=True)
    payee = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Settlement
        fields = ['id', 'group', 'payer', 'payee', 'amount', 'date', 'created_at']
        read_only_fields = fields


class BalanceSerializer(serializers.Serializer):
    user = UserMinimalSerializer()
    paid = serializers.DecimalField(max_digits=12, decimal_places=2)
    owed = serializers.DecimalField(max_digits=12, decimal_places=2)
    settled_out = serializers.DecimalField(max_digits=12, decimal_places=2)
    settled_in = serializers.DecimalField(max_digits=12, decimal_places=2)
    balance = serializers.DecimalField(max_digits=12, decimal_places=2)
