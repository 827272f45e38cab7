"""
Management command to replay webhook events that failed to apply.

Typical causes are a webhook that arrived before the user existed or a
bug fixed since the delivery. Events are re-applied from their stored
body; successful ones have their error cleared.

Usage:
    python manage.py reprocess_webhooks
    python manage.py reprocess_webhooks --dry-run
    python manage.py reprocess_webhooks --include-unprocessed
"""

from django.core.management.base import BaseCommand
from apps.billing.services import reprocess_failed_events


class Command(BaseCommand):
    help = 'Re-apply webhook events whose processing failed'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List failed events without re-applying them',
        )
        parser.add_argument(
            '--include-unprocessed',
            action='store_true',
            help='Also replay events that were recorded but never finished processing',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        report = reprocess_failed_events(
            dry_run=dry_run,
            include_unprocessed=options['include_unprocessed'],
        )

        if report['total'] == 0:
            self.stdout.write(
                self.style.SUCCESS('No failed webhook events. All good!')
            )
            return

        self.stdout.write(f'\nFound {report["total"]} failed event(s):\n')

        for entry in report['events']:
            if entry['succeeded'] is None:
                self.stdout.write(f'  - {entry["id"]} | {entry["event_name"]} | {entry["error"]}')
            elif entry['succeeded']:
                self.stdout.write(self.style.SUCCESS(f'  ✓ {entry["id"]} | {entry["event_name"]}'))
            else:
                self.stdout.write(self.style.ERROR(
                    f'  ✗ {entry["id"]} | {entry["event_name"]} | {entry["error"]}'
                ))

        if dry_run:
            self.stdout.write(
                self.style.WARNING('\n--dry-run mode: No changes made.')
            )
            return

        self.stdout.write(
            f'\nSucceeded: {report["succeeded"]}, failed: {report["failed"]}'
        )
