from rest_framework import serializers
from .models import Plan, Subscription


class PlanSerializer(serializers.ModelSerializer):

    class Meta:
        model = Plan
        fields = [
            'id',
            'product_id',
            'product_name',
            'variant_id',
            'name',
            'description',
            'price',
            'is_usage_based',
            'interval',
            'interval_count',
            'trial_interval',
            'trial_interval_count',
            'sort',
        ]
        read_only_fields = fields


class SubscriptionSerializer(serializers.ModelSerializer):

    plan = PlanSerializer(read_only=True)

    class Meta:
        model = Subscription
        fields = [
            'external_id',
            'status',
            'status_formatted',
            'renews_at',
            'ends_at',
            'trial_ends_at',
            'price',
            'is_paused',
            'plan',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class EntitlementSerializer(serializers.Serializer):
    """Current user's tier as stored, plus the read-time Pro decision."""

    subscription_tier = serializers.CharField()
    subscription_status = serializers.CharField()
    is_paused = serializers.BooleanField()
    current_period_end = serializers.DateTimeField(allow_null=True)
    is_pro = serializers.BooleanField()
    subscription = SubscriptionSerializer(allow_null=True)


class WebhookAckSerializer(serializers.Serializer):
    message = serializers.CharField()
    event_id = serializers.UUIDField()
