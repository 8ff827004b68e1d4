"""
Management command for the daily expiration sweep.

Posts the 5-day and final expiration notices and expires every Split past
its expiration date. Scheduled daily at 00:00 UTC.

Usage:
    python manage.py run_expiration_sweep
    python manage.py run_expiration_sweep --dry-run
    python manage.py run_expiration_sweep --notices-only
"""

import uuid

from django.core.management.base import BaseCommand

from apps.splits.services.expiration import run_expiration_sweep
from config.logging import add_context, clear_context


class Command(BaseCommand):
    help = 'Send expiration notices and expire Splits past their expiration date'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be done without making changes',
        )
        passes = parser.add_mutually_exclusive_group()
        passes.add_argument(
            '--notices-only',
            action='store_true',
            help='Only post expiration notices',
        )
        passes.add_argument(
            '--expire-only',
            action='store_true',
            help='Only expire Splits past their expiration date',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        add_context(job='expiration_sweep', run_id=uuid.uuid4().hex[:12])
        try:
            report = run_expiration_sweep(
                dry_run=dry_run,
                notices=not options['expire_only'],
                expire=not options['notices_only'],
            )
        finally:
            clear_context()

        summary = report.as_dict()
        self.stdout.write(
            f"5-day notices: {summary['five_day_notices']} | "
            f"final notices: {summary['final_notices']} | "
            f"expired: {summary['expired']} | "
            f"skipped: {summary['skipped']}"
        )

        for failure in report.failures:
            self.stdout.write(
                self.style.WARNING(f"  - {failure['split_id']} ({failure['step']}): {failure['error']}")
            )

        if dry_run:
            self.stdout.write(self.style.WARNING('--dry-run mode: No changes made.'))
        elif report.ok:
            self.stdout.write(self.style.SUCCESS('Expiration sweep finished.'))
        else:
            self.stdout.write(
                self.style.WARNING(f"Expiration sweep finished with {summary['failures']} failure(s).")
            )
