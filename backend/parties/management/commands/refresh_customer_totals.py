from django.core.management.base import BaseCommand
from django.db import transaction

from backend.parties.models import Customer


class Command(BaseCommand):
    help = 'Recalculates customer order counts, order value and outstanding amounts from their orders'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Perform a dry run without saving changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        customers = Customer.objects.all().order_by('id')
        self.stdout.write(f"Refreshing order totals for {customers.count()} customers...")

        changed = 0
        with transaction.atomic():
            for customer in customers:
                before = (customer.total_orders, customer.total_value, customer.outstanding_amount)
                customer.refresh_order_totals(save=not dry_run)
                after = (customer.total_orders, customer.total_value, customer.outstanding_amount)

                if before != after:
                    changed += 1
                    self.stdout.write(self.style.SUCCESS(
                        f"  - {customer.name} (ID: {customer.id}): orders {before[0]} -> {after[0]}, "
                        f"value {before[1]} -> {after[1]}, outstanding {before[2]} -> {after[2]}"
                    ))

            if dry_run:
                self.stdout.write(self.style.WARNING(f"\nDry run complete. {changed} customers would change."))
                transaction.set_rollback(True)
            else:
                self.stdout.write(self.style.SUCCESS(f"\nRefresh complete. {changed} customers updated."))
