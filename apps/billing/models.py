from django.db import models
from django.conf import settings
import uuid


class SubscriptionStatus(models.TextChoices):
    ON_TRIAL = 'on_trial', 'On trial'
    ACTIVE = 'active', 'Active'
    PAUSED = 'paused', 'Paused'
    PAST_DUE = 'past_due', 'Past due'
    UNPAID = 'unpaid', 'Unpaid'
    CANCELLED = 'cancelled', 'Cancelled'
    EXPIRED = 'expired', 'Expired'


class Plan(models.Model):
    """
    A purchasable variant from the billing provider's catalog.

    Rows are normally written by the sync_plans command. A webhook for a
    variant that was never synced creates a provisional plan (price "0")
    which the next sync overwrites.
    """

    product_id = models.BigIntegerField()
    product_name = models.CharField(max_length=255, blank=True)
    variant_id = models.BigIntegerField(unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(null=True, blank=True)

    # Provider price in minor units, kept as the provider sends it
    price = models.CharField(max_length=32)
    is_usage_based = models.BooleanField(default=False)
    interval = models.CharField(max_length=16, null=True, blank=True)
    interval_count = models.PositiveIntegerField(null=True, blank=True)
    trial_interval = models.CharField(max_length=16, null=True, blank=True)
    trial_interval_count = models.PositiveIntegerField(null=True, blank=True)
    sort = models.IntegerField(null=True, blank=True)
    is_provisional = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'plans'
        ordering = ['sort', 'variant_id']

    def __str__(self):
        return f"{self.product_name} / {self.name}"


class Subscription(models.Model):
    """Local mirror of a provider subscription, keyed by its external id."""

    external_id = models.CharField(max_length=64, unique=True)
    order_id = models.BigIntegerField(null=True, blank=True)
    customer_id = models.BigIntegerField(null=True, blank=True)
    name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=SubscriptionStatus.choices)
    status_formatted = models.CharField(max_length=50, blank=True)
    renews_at = models.DateTimeField(null=True, blank=True)
    ends_at = models.DateTimeField(null=True, blank=True)
    trial_ends_at = models.DateTimeField(null=True, blank=True)
    price = models.CharField(max_length=32, default='0')
    is_usage_based = models.BooleanField(default=False)
    is_paused = models.BooleanField(default=False)
    subscription_item_id = models.BigIntegerField(null=True, blank=True)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='subscriptions'
    )
    plan = models.ForeignKey(
        Plan,
        on_delete=models.PROTECT,
        related_name='subscriptions'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'subscriptions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', '-created_at'], name='subscriptions_user_idx'),
            models.Index(fields=['status'], name='subscriptions_status_idx'),
        ]

    def __str__(self):
        return f"{self.external_id} ({self.status})"


class WebhookEvent(models.Model):
    """
    Raw webhook delivery, stored before it is applied.

    The body is never modified after insert. ``processed`` is set once an
    attempt has been made; ``processing_error`` holds the failure message
    of the last attempt, or NULL when it succeeded.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event_name = models.CharField(max_length=64)
    body = models.JSONField()
    processed = models.BooleanField(default=False)
    processing_error = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'webhook_events'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['processed', 'created_at'], name='webhook_events_processed_idx'),
        ]

    def __str__(self):
        return f"{self.event_name} @ {self.created_at}"

    @property
    def failed(self):
        return self.processed and self.processing_error is not None

    def mark_processed(self, error=None):
        """Record the outcome of a processing attempt."""
        self.processed = True
        self.processing_error = error
        self.save(update_fields=['processed', 'processing_error'])
