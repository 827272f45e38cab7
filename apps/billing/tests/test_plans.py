import json
import pytest
from datetime import timedelta
from io import StringIO
from uuid import uuid4
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone
from apps.billing.models import Plan, WebhookEvent
from apps.billing.services import sync_plans


PRODUCTS = [
    {'type': 'products', 'id': '10', 'attributes': {'name': 'Tabsplit Pro', 'description': 'Unlimited groups'}},
]

VARIANTS = [
    {
        'type': 'variants',
        'id': '100',
        'attributes': {
            'product_id': 10, 'name': 'Monthly', 'description': None, 'price': 499,
            'is_subscription': True, 'interval': 'month', 'interval_count': 1,
            'trial_interval': 'day', 'trial_interval_count': 7, 'sort': 1, 'status': 'published',
        },
    },
    {
        'type': 'variants',
        'id': '101',
        'attributes': {
            'product_id': 10, 'name': 'Yearly', 'description': 'Two months free', 'price': 4990,
            'interval': 'year', 'interval_count': 1, 'sort': 2, 'status': 'published',
        },
    },
    {
        'type': 'variants',
        'id': '102',
        'attributes': {'product_id': 10, 'name': 'Lifetime', 'price': 9900, 'status': 'draft'},
    },
    {
        'type': 'variants',
        'id': '200',
        'attributes': {'product_id': 99, 'name': 'Orphan', 'price': 100, 'status': 'published'},
    },
]


@pytest.mark.django_db
class TestSyncPlans:

    def test_sync_creates_plans(self):
        plans = sync_plans(products=PRODUCTS, variants=VARIANTS)

        assert [plan.variant_id for plan in plans] == [100, 101]
        monthly = Plan.objects.get(variant_id=100)
        assert monthly.price == '499'
        assert monthly.product_name == 'Tabsplit Pro'
        assert monthly.description == 'Unlimited groups'
        assert monthly.trial_interval_count == 7
        assert Plan.objects.get(variant_id=101).description == 'Two months free'

    def test_draft_and_orphan_variants_skipped(self):
        sync_plans(products=PRODUCTS, variants=VARIANTS)

        assert not Plan.objects.filter(variant_id__in=[102, 200]).exists()

    def test_sync_replaces_provisional_plan(self):
        Plan.objects.create(product_id=10, variant_id=100, name='Monthly', price='0', is_provisional=True)

        sync_plans(products=PRODUCTS, variants=VARIANTS)

        plan = Plan.objects.get(variant_id=100)
        assert plan.price == '499'
        assert plan.is_provisional is False
        assert Plan.objects.filter(variant_id=100).count() == 1

    def test_sync_is_repeatable(self):
        sync_plans(products=PRODUCTS, variants=VARIANTS)
        sync_plans(products=PRODUCTS, variants=VARIANTS)

        assert Plan.objects.count() == 2

    def test_dry_run_writes_nothing(self):
        plans = sync_plans(products=PRODUCTS, variants=VARIANTS, dry_run=True)

        assert len(plans) == 2
        assert Plan.objects.count() == 0


@pytest.mark.django_db
class TestSyncPlansCommand:

    @pytest.fixture
    def catalog_file(self, tmp_path):
        path = tmp_path / 'catalog.json'
        path.write_text(json.dumps({'products': PRODUCTS, 'variants': VARIANTS}))
        return path

    def test_command_syncs(self, catalog_file):
        out = StringIO()

        call_command('sync_plans', file=str(catalog_file), stdout=out)

        assert Plan.objects.count() == 2
        assert 'Synced 2 plan(s)' in out.getvalue()

    def test_command_dry_run(self, catalog_file):
        out = StringIO()

        call_command('sync_plans', file=str(catalog_file), dry_run=True, stdout=out)

        assert Plan.objects.count() == 0
        assert 'dry-run' in out.getvalue()

    def test_command_missing_file(self, tmp_path):
        with pytest.raises(CommandError):
            call_command('sync_plans', file=str(tmp_path / 'missing.json'))

    def test_command_invalid_json(self, tmp_path):
        path = tmp_path / 'broken.json'
        path.write_text('{not json')

        with pytest.raises(CommandError):
            call_command('sync_plans', file=str(path))


@pytest.mark.django_db
class TestReprocessWebhooksCommand:

    def test_nothing_to_do(self):
        out = StringIO()

        call_command('reprocess_webhooks', stdout=out)

        assert 'No failed webhook events' in out.getvalue()

    def test_reprocess_reports_failures(self, make_payload):
        WebhookEvent.objects.create(
            event_name='subscription_created',
            body=make_payload(user_id=uuid4()),
            processed=True,
            processing_error='User not found',
        )
        out = StringIO()

        call_command('reprocess_webhooks', stdout=out)

        assert 'Succeeded: 0, failed: 1' in out.getvalue()
        assert WebhookEvent.objects.get().processing_error.startswith('Reprocess failed')

    def test_dry_run(self, make_payload):
        WebhookEvent.objects.create(
            event_name='subscription_created',
            body=make_payload(user_id=uuid4()),
            processed=True,
            processing_error='User not found',
        )
        out = StringIO()

        call_command('reprocess_webhooks', dry_run=True, stdout=out)

        assert 'dry-run' in out.getvalue()
        assert WebhookEvent.objects.get().processing_error == 'User not found'

    def test_include_unprocessed_flag(self, make_payload, user):
        event = WebhookEvent.objects.create(
            event_name='subscription_created',
            body=make_payload('subscription_created'),
        )
        WebhookEvent.objects.filter(id=event.id).update(
            created_at=timezone.now() - timedelta(hours=1)
        )
        out = StringIO()

        call_command('reprocess_webhooks', include_unprocessed=True, stdout=out)

        assert 'Succeeded: 1, failed: 0' in out.getvalue()
        event.refresh_from_db()
        assert event.processed is True
