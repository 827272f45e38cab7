"""
Management command to sync the plan table from an exported provider catalog.

The file is a JSON object with ``products`` and ``variants`` lists in the
provider's JSON:API shape, e.g. the ``data`` arrays of the list-products
and list-variants endpoints saved side by side.

Usage:
    python manage.py sync_plans --file catalog.json
    python manage.py sync_plans --file catalog.json --dry-run
"""

import json

from django.core.management.base import BaseCommand, CommandError
from apps.billing.services import sync_plans


class Command(BaseCommand):
    help = 'Upsert plans from a provider catalog export'

    def add_arguments(self, parser):
        parser.add_argument(
            '--file',
            required=True,
            help='Path to the catalog JSON file',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be synced without making changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        try:
            with open(options['file'], encoding='utf-8') as fh:
                catalog = json.load(fh)
        except OSError as e:
            raise CommandError(f'Cannot read {options["file"]}: {e}')
        except ValueError as e:
            raise CommandError(f'Invalid JSON in {options["file"]}: {e}')

        if not isinstance(catalog, dict):
            raise CommandError('Catalog must be a JSON object with products and variants')

        products = catalog.get('products') or []
        variants = catalog.get('variants') or []
        self.stdout.write(f'Found {len(products)} product(s) and {len(variants)} variant(s)\n')

        try:
            plans = sync_plans(products=products, variants=variants, dry_run=dry_run)
        except (KeyError, TypeError, ValueError) as e:
            raise CommandError(f'Malformed catalog entry: {e!r}')

        for plan in plans:
            self.stdout.write(
                f'  - {plan.name} (variant {plan.variant_id}) | {plan.price} / {plan.interval or "one-time"}'
            )

        if dry_run:
            self.stdout.write(
                self.style.WARNING('\n--dry-run mode: No changes made.')
            )
            return

        self.stdout.write(
            self.style.SUCCESS(f'\n✓ Synced {len(plans)} plan(s)!')
        )
