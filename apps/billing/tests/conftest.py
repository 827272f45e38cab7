import json
import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from django.urls import reverse
from apps.accounts.models import User
from apps.billing.signatures import compute_signature


WEBHOOK_SECRET = 'test-webhook-secret'


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user(db):
    return User.objects.create_user(
        email='subscriber@example.com',
        password='TestPass123!',
        display_name='Subscriber'
    )


@pytest.fixture
def authenticated_client(api_client, user):
    refresh = RefreshToken.for_user(user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def make_payload(user):
    """Build a provider webhook body for ``user``."""

    def _make(event_name='subscription_created', subscription_id='sub_1', user_id=None, **attributes):
        attrs = {
            'store_id': 1,
            'customer_id': 501,
            'order_id': 9001,
            'product_id': 10,
            'variant_id': 100,
            'product_name': 'Tabsplit Pro',
            'variant_name': 'Monthly',
            'user_name': 'Subscriber',
            'user_email': 'subscriber@example.com',
            'status': 'active',
            'status_formatted': 'Active',
            'pause': None,
            'cancelled': False,
            'trial_ends_at': None,
            'renews_at': '2030-02-01T00:00:00.000000Z',
            'ends_at': None,
            'first_subscription_item': {
                'id': 7001,
                'subscription_id': 1,
                'price_id': 3001,
                'quantity': 1,
                'is_usage_based': False,
            },
        }
        attrs.update(attributes)
        return {
            'meta': {
                'event_name': event_name,
                'custom_data': {'user_id': str(user_id or user.id)},
            },
            'data': {
                'type': 'subscriptions',
                'id': subscription_id,
                'attributes': attrs,
            },
        }

    return _make


@pytest.fixture
def post_webhook(api_client):
    """POST a body to the webhook endpoint, signed unless told otherwise."""

    def _post(payload, signature=None, raw=None):
        body = raw if raw is not None else json.dumps(payload).encode('utf-8')
        if signature is None:
            signature = compute_signature(body, WEBHOOK_SECRET)
        return api_client.post(
            reverse('billing:webhook'),
            data=body,
            content_type='application/json',
            HTTP_X_SIGNATURE=signature,
        )

    return _post
