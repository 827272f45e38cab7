"""Services for billing business logic."""

from apps.billing.exceptions import (
    BillingServiceError,
    WebhookSignatureError,
    WebhookPayloadError,
    UserNotFoundError,
)
from .plan_catalog import get_or_create_provisional_plan, sync_plans
from .state_machine import apply_event
from .webhook_processing import (
    handle_webhook,
    parse_payload,
    record_event,
    process_event,
    reprocess_event,
    reprocess_failed_events,
)

__all__ = [
    # Exceptions
    'BillingServiceError',
    'WebhookSignatureError',
    'WebhookPayloadError',
    'UserNotFoundError',
    # Plans
    'get_or_create_provisional_plan',
    'sync_plans',
    # Subscriptions
    'apply_event',
    # Webhooks
    'handle_webhook',
    'parse_payload',
    'record_event',
    'process_event',
    'reprocess_event',
    'reprocess_failed_events',
]
