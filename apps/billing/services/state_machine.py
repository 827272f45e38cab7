"""
Subscription state machine.

Applies a provider subscription event to the local Subscription mirror and
to the subscription fields on the User row.

Every handled event upserts the subscription by its external id, so
replayed deliveries are idempotent and an out-of-order pause, cancel or
expire that arrives before ``subscription_created`` still leaves a row.

User rows are written with a single UPDATE and never read back and saved,
so two deliveries for the same user cannot overwrite each other's fields.

Tier transitions::

    subscription_created              -> pro
    subscription_updated / _resumed   -> pro if status is active or on_trial, else free
    subscription_paused               -> unchanged (status paused)
    subscription_cancelled            -> unchanged until the period ends
    subscription_expired              -> free
"""

import logging
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from apps.accounts.models import SubscriptionTier, User
from apps.billing.exceptions import UserNotFoundError, WebhookPayloadError
from apps.billing.models import Subscription, SubscriptionStatus
from .plan_catalog import get_or_create_provisional_plan

logger = logging.getLogger(__name__)

PRO_STATUSES = {SubscriptionStatus.ACTIVE, SubscriptionStatus.ON_TRIAL}


def _parse_timestamp(value, field):
    if value in (None, ''):
        return None
    try:
        parsed = parse_datetime(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise WebhookPayloadError(f"Invalid {field}: {value!r}")
    return parsed


def _resolve_user(meta):
    custom_data = meta.get('custom_data') or {}
    user_id = custom_data.get('user_id') if isinstance(custom_data, dict) else None
    if not user_id:
        raise WebhookPayloadError("No user_id found in webhook custom_data")

    try:
        user_id = UUID(str(user_id))
    except ValueError:
        raise WebhookPayloadError(f"Invalid user_id: {user_id!r}")

    try:
        return User.objects.get(id=user_id)
    except User.DoesNotExist:
        raise UserNotFoundError(f"User not found: {user_id}")


def _subscription_fields(attributes):
    """Map provider subscription attributes onto Subscription columns."""
    item = attributes.get('first_subscription_item') or {}
    price_id = item.get('price_id')

    return {
        'order_id': attributes.get('order_id'),
        'customer_id': attributes.get('customer_id'),
        'name': attributes.get('user_name') or '',
        'email': attributes.get('user_email') or '',
        'status': attributes.get('status'),
        'status_formatted': attributes.get('status_formatted') or '',
        'renews_at': _parse_timestamp(attributes.get('renews_at'), 'renews_at'),
        'ends_at': _parse_timestamp(attributes.get('ends_at'), 'ends_at'),
        'trial_ends_at': _parse_timestamp(attributes.get('trial_ends_at'), 'trial_ends_at'),
        'price': str(price_id) if price_id is not None else '0',
        'is_usage_based': bool(item.get('is_usage_based', False)),
        'is_paused': attributes.get('pause') is not None,
        'subscription_item_id': item.get('id'),
    }


def _upsert_subscription(*, external_id, user, plan, fields):
    """INSERT ... ON CONFLICT (external_id) DO UPDATE, then return the row."""
    if fields['status'] not in SubscriptionStatus.values:
        raise WebhookPayloadError(f"Unknown subscription status: {fields['status']!r}")

    Subscription.objects.bulk_create(
        [Subscription(external_id=external_id, user=user, plan=plan, **fields)],
        update_conflicts=True,
        unique_fields=['external_id'],
        update_fields=[*fields, 'user', 'plan', 'updated_at'],
    )
    return Subscription.objects.get(external_id=external_id)


def _update_user(user, **changes):
    User.objects.filter(id=user.id).update(**changes)


def _on_created(*, user, external_id, attributes, fields, plan):
    subscription = _upsert_subscription(
        external_id=external_id, user=user, plan=plan, fields=fields
    )
    customer_id = attributes.get('customer_id')
    _update_user(
        user,
        subscription_tier=SubscriptionTier.PRO,
        subscription_status=fields['status'],
        billing_customer_id=str(customer_id) if customer_id is not None else None,
        billing_subscription_id=external_id,
        current_period_end=fields['renews_at'],
        is_paused=False,
    )
    return subscription


def _on_updated(*, user, external_id, attributes, fields, plan):
    subscription = _upsert_subscription(
        external_id=external_id, user=user, plan=plan, fields=fields
    )
    status = fields['status']
    period_end = fields['ends_at'] if status == SubscriptionStatus.CANCELLED else fields['renews_at']
    _update_user(
        user,
        subscription_tier=SubscriptionTier.PRO if status in PRO_STATUSES else SubscriptionTier.FREE,
        subscription_status=status,
        current_period_end=period_end,
        is_paused=fields['is_paused'],
    )
    return subscription


def _on_paused(*, user, external_id, attributes, fields, plan):
    fields.update(status=SubscriptionStatus.PAUSED, is_paused=True)
    subscription = _upsert_subscription(
        external_id=external_id, user=user, plan=plan, fields=fields
    )
    _update_user(user, subscription_status=SubscriptionStatus.PAUSED, is_paused=True)
    return subscription


def _on_cancelled(*, user, external_id, attributes, fields, plan):
    # Tier stays pro; access ends when current_period_end passes
    fields.update(status=SubscriptionStatus.CANCELLED)
    subscription = _upsert_subscription(
        external_id=external_id, user=user, plan=plan, fields=fields
    )
    _update_user(
        user,
        subscription_status=SubscriptionStatus.CANCELLED,
        current_period_end=fields['ends_at'],
    )
    return subscription


def _on_expired(*, user, external_id, attributes, fields, plan):
    fields.update(
        status=SubscriptionStatus.EXPIRED,
        ends_at=fields['ends_at'] or timezone.now(),
        is_paused=False,
    )
    subscription = _upsert_subscription(
        external_id=external_id, user=user, plan=plan, fields=fields
    )
    _update_user(
        user,
        subscription_tier=SubscriptionTier.FREE,
        subscription_status=SubscriptionStatus.EXPIRED,
        billing_subscription_id=None,
        is_paused=False,
    )
    return subscription


HANDLERS = {
    'subscription_created': _on_created,
    'subscription_updated': _on_updated,
    'subscription_resumed': _on_updated,
    'subscription_paused': _on_paused,
    'subscription_cancelled': _on_cancelled,
    'subscription_expired': _on_expired,
}


@transaction.atomic
def apply_event(payload: dict):
    """
    Apply a webhook payload to the subscription state.

    Args:
        payload: Parsed webhook body.

    Returns:
        The upserted Subscription, or None for event names that are not
        subscription events.

    Raises:
        WebhookPayloadError: If required fields are missing or malformed.
        UserNotFoundError: If ``meta.custom_data.user_id`` matches no user.
    """
    if not isinstance(payload, dict):
        raise WebhookPayloadError("Webhook body must be a JSON object")

    meta = payload.get('meta')
    if not isinstance(meta, dict):
        meta = {}
    event_name = meta.get('event_name')
    handler = HANDLERS.get(event_name) if isinstance(event_name, str) else None
    if handler is None:
        logger.info("Unhandled webhook event type: %s", event_name)
        return None

    user = _resolve_user(meta)

    data = payload.get('data')
    if not isinstance(data, dict):
        raise WebhookPayloadError("No data found in webhook body")
    external_id = data.get('id')
    if not external_id:
        raise WebhookPayloadError("No subscription id found in webhook data")
    attributes = data.get('attributes') or {}

    plan = get_or_create_provisional_plan(attributes)

    subscription = handler(
        user=user,
        external_id=str(external_id),
        attributes=attributes,
        fields=_subscription_fields(attributes),
        plan=plan,
    )
    logger.info(
        "Applied %s to subscription %s for user %s (status %s)",
        event_name, subscription.external_id, user.id, subscription.status
    )
    return subscription
