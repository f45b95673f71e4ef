"""
Management command to load the default dropdown options
"""
from django.core.management.base import BaseCommand, CommandError
from django.db import DatabaseError, transaction

from backend.core.cache_utils import suspend_cache_signals
from backend.dropdowns.cache_signals import invalidate_dropdowns_cache
from backend.dropdowns.models import DropdownOption
from backend.dropdowns.seed_data import DEFAULT_DROPDOWN_OPTIONS


class Command(BaseCommand):
    help = "Adds the default dropdown options (colors, patterns, units, sizes) to the database"

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Delete all existing dropdown options before adding the defaults',
        )

    def handle(self, *args, **options):
        clear = options['clear']

        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("ADDING DROPDOWN OPTIONS"))
        self.stdout.write(self.style.SUCCESS("=" * 80))

        created_count = 0
        skipped_count = 0

        try:
            with suspend_cache_signals(), transaction.atomic():
                if clear:
                    self.stdout.write(self.style.WARNING("Clearing all existing dropdown options..."))
                    deleted, _ = DropdownOption.objects.all().delete()
                    self.stdout.write(self.style.SUCCESS(f"Deleted {deleted} dropdown options."))

                for category, value, display_order in DEFAULT_DROPDOWN_OPTIONS:
                    option, created = DropdownOption.objects.get_or_create(
                        category=category,
                        value=value,
                        defaults={'display_order': display_order, 'is_active': True},
                    )
                    if created:
                        created_count += 1
                        self.stdout.write(f"  ✓ Created: {category} / {value}")
                    else:
                        skipped_count += 1
                        self.stdout.write(self.style.WARNING(f"  - Skipped (already exists): {category} / {value}"))
        except DatabaseError as e:
            raise CommandError(f"Failed to seed dropdown options: {e}")

        invalidate_dropdowns_cache()

        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("SUMMARY"))
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(f"Created: {created_count}")
        self.stdout.write(f"Skipped: {skipped_count}")
        self.stdout.write(f"Total in database: {DropdownOption.objects.count()}")

        grouped = {}
        for category, value in DropdownOption.objects.order_by('category', 'display_order').values_list('category', 'value'):
            grouped.setdefault(category, []).append(value)
        for category, values in grouped.items():
            preview = ', '.join(values[:3]) + ('...' if len(values) > 3 else '')
            self.stdout.write(f"   {category}: {len(values)} options ({preview})")
