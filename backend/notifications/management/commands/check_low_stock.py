from django.core.management.base import BaseCommand

from backend.notifications.services import check_low_stock


class Command(BaseCommand):
    help = 'Create low stock notifications for materials below their minimum threshold'

    def handle(self, *args, **options):
        created = check_low_stock()
        for notification in created:
            self.stdout.write(f"  {notification.priority.upper():7} {notification.title}")
        self.stdout.write(self.style.SUCCESS(f"Low stock check complete. {len(created)} notifications created."))
