import json
import pytest
from uuid import uuid4
from datetime import timedelta
from unittest.mock import patch
from django.utils import timezone
from django.urls import reverse
from rest_framework import status
from apps.accounts.models import User
from apps.billing.models import Plan, Subscription, WebhookEvent
from apps.billing.services import reprocess_failed_events


# =============================================================================
# Webhook Endpoint Tests
# =============================================================================

@pytest.mark.django_db
class TestWebhookEndpoint:
    """Tests for POST /api/billing/webhook/"""

    def test_valid_webhook_applies_event(self, post_webhook, make_payload, user):
        response = post_webhook(make_payload('subscription_created'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['message'] == 'Webhook received'
        event = WebhookEvent.objects.get(id=response.data['event_id'])
        assert event.event_name == 'subscription_created'
        assert event.processed is True
        assert event.processing_error is None
        user.refresh_from_db()
        assert user.subscription_tier == 'pro'

    def test_invalid_signature_rejected(self, post_webhook, make_payload):
        response = post_webhook(make_payload(), signature='0' * 64)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert WebhookEvent.objects.count() == 0
        assert Subscription.objects.count() == 0

    def test_missing_signature_rejected(self, post_webhook, make_payload):
        response = post_webhook(make_payload(), signature='')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert WebhookEvent.objects.count() == 0

    def test_unconfigured_secret_rejects(self, post_webhook, make_payload, settings):
        settings.BILLING_WEBHOOK_SECRET = ''

        response = post_webhook(make_payload())

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert WebhookEvent.objects.count() == 0

    def test_malformed_json_rejected(self, post_webhook):
        response = post_webhook(None, raw=b'{"meta": ')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert WebhookEvent.objects.count() == 0

    def test_non_object_body_rejected(self, post_webhook):
        response = post_webhook(None, raw=b'[1, 2, 3]')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert WebhookEvent.objects.count() == 0

    def test_signature_checked_on_raw_bytes(self, post_webhook, make_payload, user):
        """Key order and whitespace in the body are part of what is signed."""
        body = json.dumps(make_payload(), indent=2, sort_keys=True).encode('utf-8')

        response = post_webhook(None, raw=body)

        assert response.status_code == status.HTTP_200_OK

    def test_unknown_user_recorded_and_acknowledged(self, post_webhook, make_payload):
        response = post_webhook(make_payload(user_id=uuid4()))

        assert response.status_code == status.HTTP_200_OK
        event = WebhookEvent.objects.get()
        assert event.processed is True
        assert 'User not found' in event.processing_error
        assert Subscription.objects.count() == 0

    def test_unhandled_event_acknowledged(self, post_webhook, make_payload):
        response = post_webhook(make_payload('order_created'))

        assert response.status_code == status.HTTP_200_OK
        event = WebhookEvent.objects.get()
        assert event.processed is True
        assert event.processing_error is None

    def test_unexpected_error_recorded(self, post_webhook, make_payload, user):
        with patch(
            'apps.billing.services.webhook_processing.apply_event',
            side_effect=RuntimeError('database is on fire')
        ):
            response = post_webhook(make_payload())

        assert response.status_code == status.HTTP_200_OK
        assert WebhookEvent.objects.get().processing_error == 'database is on fire'

    def test_get_not_allowed(self, api_client):
        response = api_client.get(reverse('billing:webhook'))

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED


# =============================================================================
# Reprocessing Tests
# =============================================================================

@pytest.mark.django_db
class TestReprocessFailedEvents:

    def test_failed_event_fixed_by_reprocess(self, post_webhook, make_payload):
        missing_id = uuid4()
        post_webhook(make_payload(user_id=missing_id))
        assert WebhookEvent.objects.get().processing_error is not None

        User.objects.create_user(id=missing_id, email='late@example.com', password='TestPass123!')
        report = reprocess_failed_events()

        assert report['total'] == 1
        assert report['succeeded'] == 1
        assert report['failed'] == 0
        event = WebhookEvent.objects.get()
        assert event.processing_error is None
        assert User.objects.get(id=missing_id).subscription_tier == 'pro'

    def test_still_failing_event_is_marked(self, post_webhook, make_payload):
        post_webhook(make_payload(user_id=uuid4()))

        report = reprocess_failed_events()

        assert report['failed'] == 1
        assert WebhookEvent.objects.get().processing_error.startswith('Reprocess failed: ')

    def test_dry_run_changes_nothing(self, post_webhook, make_payload):
        missing_id = uuid4()
        post_webhook(make_payload(user_id=missing_id))
        original_error = WebhookEvent.objects.get().processing_error
        User.objects.create_user(id=missing_id, email='late@example.com', password='TestPass123!')

        report = reprocess_failed_events(dry_run=True)

        assert report['total'] == 1
        assert report['events'][0]['error'] == original_error
        assert WebhookEvent.objects.get().processing_error == original_error
        assert Subscription.objects.count() == 0

    def test_successful_events_are_not_replayed(self, post_webhook, make_payload, user):
        post_webhook(make_payload())

        report = reprocess_failed_events()

        assert report['total'] == 0


# =============================================================================
# Plans and Subscription Endpoint Tests
# =============================================================================

@pytest.mark.django_db
class TestPlanList:
    """Tests for GET /api/billing/plans/"""

    def test_list_plans_without_auth(self, api_client):
        Plan.objects.create(product_id=1, variant_id=11, name='Monthly', price='499', sort=1)
        Plan.objects.create(product_id=1, variant_id=12, name='Yearly', price='4990', sort=2)
        Plan.objects.create(product_id=1, variant_id=13, name='Ghost', price='0', is_provisional=True)

        response = api_client.get(reverse('billing:plan-list'))

        assert response.status_code == status.HTTP_200_OK
        assert [plan['name'] for plan in response.data] == ['Monthly', 'Yearly']


@pytest.mark.django_db
class TestCurrentSubscription:
    """Tests for GET /api/billing/subscription/"""

    def test_free_user(self, authenticated_client):
        response = authenticated_client.get(reverse('billing:current-subscription'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['subscription_tier'] == 'free'
        assert response.data['is_pro'] is False
        assert response.data['subscription'] is None

    def test_subscribed_user(self, authenticated_client, post_webhook, make_payload):
        post_webhook(make_payload('subscription_created'))

        response = authenticated_client.get(reverse('billing:current-subscription'))

        assert response.data['subscription_tier'] == 'pro'
        assert response.data['is_pro'] is True
        assert response.data['subscription']['external_id'] == 'sub_1'
        assert response.data['subscription']['plan']['variant_id'] == 100

    def test_requires_auth(self, api_client):
        response = api_client.get(reverse('billing:current-subscription'))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestReprocessUnprocessedEvents:
    """Events recorded but never finished, e.g. the worker died mid-apply."""

    def _stranded_event(self, payload, age):
        event = WebhookEvent.objects.create(
            event_name=payload['meta']['event_name'],
            body=payload,
        )
        WebhookEvent.objects.filter(id=event.id).update(created_at=timezone.now() - age)
        return event

    def test_stale_unprocessed_event_is_applied(self, make_payload, user):
        event = self._stranded_event(make_payload('subscription_created'), timedelta(hours=1))

        report = reprocess_failed_events(include_unprocessed=True)

        assert report['total'] == 1
        assert report['succeeded'] == 1
        event.refresh_from_db()
        assert event.processed is True
        assert event.processing_error is None
        user.refresh_from_db()
        assert user.subscription_tier == 'pro'

    def test_unprocessed_skipped_by_default(self, make_payload, user):
        self._stranded_event(make_payload('subscription_created'), timedelta(hours=1))

        report = reprocess_failed_events()

        assert report['total'] == 0
        assert WebhookEvent.objects.get().processed is False

    def test_recent_unprocessed_event_left_alone(self, make_payload, user):
        self._stranded_event(make_payload('subscription_created'), timedelta(seconds=10))

        report = reprocess_failed_events(include_unprocessed=True)

        assert report['total'] == 0
        assert Subscription.objects.count() == 0
