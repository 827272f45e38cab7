"""
Webhook processing service.

A delivery goes through four steps::

    verify signature -> parse JSON -> record event -> apply event

Nothing is stored when verification or parsing fails. Once the event is
recorded, processing failures are written to the event row instead of
being raised, so the provider always gets a 200 and stops retrying; failed
events are replayed later with reprocess_failed_events().
"""

import json
import logging
from datetime import timedelta

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from apps.billing.exceptions import WebhookPayloadError
from apps.billing.models import WebhookEvent
from apps.billing.signatures import verify_signature
from .state_machine import apply_event

logger = logging.getLogger(__name__)

# Unprocessed events younger than this may still be in flight
UNPROCESSED_GRACE = timedelta(minutes=5)


def parse_payload(raw_body: bytes) -> dict:
    """
    Decode a webhook body.

    Raises:
        WebhookPayloadError: If the body is not JSON or not a JSON object.
    """
    try:
        payload = json.loads(raw_body)
    except ValueError:
        raise WebhookPayloadError("Malformed JSON body")

    if not isinstance(payload, dict):
        raise WebhookPayloadError("Webhook body must be a JSON object")
    return payload


def record_event(payload: dict) -> WebhookEvent:
    """Store a delivery before it is applied."""
    meta = payload.get('meta')
    event_name = meta.get('event_name') if isinstance(meta, dict) else None

    event = WebhookEvent.objects.create(
        event_name=str(event_name or '')[:64],
        body=payload,
    )
    logger.info("Received webhook event %s (%s)", event.event_name, event.id)
    return event


def process_event(event: WebhookEvent) -> bool:
    """
    Apply a stored event and record the outcome on it.

    Never raises: any error is logged and saved to ``processing_error``.

    Returns:
        True if the event was applied.
    """
    try:
        apply_event(event.body)
    except Exception as e:
        logger.exception("Error processing webhook event %s", event.id)
        event.mark_processed(error=str(e) or e.__class__.__name__)
        return False

    event.mark_processed()
    return True


def handle_webhook(*, raw_body: bytes, signature: str) -> WebhookEvent:
    """
    Verify, record and apply one webhook delivery.

    Args:
        raw_body: The request body exactly as received.
        signature: Hex HMAC-SHA256 from the signature header.

    Returns:
        The stored WebhookEvent. Check ``processing_error`` for the outcome.

    Raises:
        WebhookSignatureError: If the signature is missing or invalid.
        WebhookPayloadError: If the body is not a JSON object.
    """
    verify_signature(raw_body, signature, settings.BILLING_WEBHOOK_SECRET)
    payload = parse_payload(raw_body)

    event = record_event(payload)
    process_event(event)
    return event


def reprocess_event(event: WebhookEvent):
    """
    Re-apply a stored event.

    Clears ``processing_error`` on success, otherwise stores
    ``"Reprocess failed: <message>"``.

    Returns:
        tuple: ``(succeeded, error_message_or_None)``
    """
    try:
        apply_event(event.body)
    except Exception as e:
        message = f"Reprocess failed: {e}"
        logger.warning("Reprocessing webhook event %s failed: %s", event.id, e)
        event.mark_processed(error=message)
        return False, message

    event.mark_processed()
    logger.info("Reprocessed webhook event %s (%s)", event.id, event.event_name)
    return True, None


def reprocess_failed_events(*, dry_run: bool = False, include_unprocessed: bool = False) -> dict:
    """
    Replay every event whose last processing attempt failed.

    With ``include_unprocessed``, events that were recorded but never
    marked processed (the worker died while applying them) are replayed
    too, once they are older than UNPROCESSED_GRACE so deliveries still
    in flight are left alone.

    Args:
        dry_run: List the failed events without re-applying them.
        include_unprocessed: Also replay stale unprocessed events.

    Returns:
        dict: ``{'total', 'succeeded', 'failed', 'events'}`` where
        ``events`` holds one ``{'id', 'event_name', 'succeeded', 'error'}``
        entry per event.
    """
    selection = Q(processed=True, processing_error__isnull=False)
    if include_unprocessed:
        selection |= Q(processed=False, created_at__lte=timezone.now() - UNPROCESSED_GRACE)

    events = list(WebhookEvent.objects.filter(selection).order_by('created_at'))

    report = {'total': len(events), 'succeeded': 0, 'failed': 0, 'events': []}

    for event in events:
        if dry_run:
            report['events'].append({
                'id': event.id,
                'event_name': event.event_name,
                'succeeded': None,
                'error': event.processing_error,
            })
            continue

        succeeded, error = reprocess_event(event)
        report['succeeded' if succeeded else 'failed'] += 1
        report['events'].append({
            'id': event.id,
            'event_name': event.event_name,
            'succeeded': succeeded,
            'error': error,
        })

    logger.info(
        "Reprocessed %s webhook events: %s succeeded, %s failed",
        report['total'], report['succeeded'], report['failed']
    )
    return report
