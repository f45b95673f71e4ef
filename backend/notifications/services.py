"""
Creating notifications from the other apps.
"""
import logging

from .models import Notification

logger = logging.getLogger(__name__)


def notify(title, message, notification_type='info', priority='medium', module='activity', related_id=None,
           related_data=None, created_by=None):
    """Create an unread notification"""
    if created_by is not None and not created_by.is_authenticated:
        created_by = None
    notification = Notification.objects.create(
        title=title[:200],
        message=message,
        notification_type=notification_type,
        priority=priority,
        module=module,
        related_id=str(related_id) if related_id is not None else '',
        related_data=related_data or {},
        created_by=created_by,
    )
    logger.debug(f"Notification created: {notification}")
    return notification


def check_low_stock(materials=None):
    """
    Create a low_stock notification for every low or out-of-stock material.

    A material that already has an unread low_stock notification is skipped.
    Returns the notifications created.
    """
    from backend.materials.models import RawMaterial

    if materials is None:
        materials = RawMaterial.objects.filter(status__in=['low-stock', 'out-of-stock'])

    created = []
    for material in materials:
        if material.status not in ('low-stock', 'out-of-stock'):
            continue
        already_notified = Notification.objects.filter(
            notification_type='low_stock', related_id=str(material.id), status='unread'
        ).exists()
        if already_notified:
            continue

        out_of_stock = material.status == 'out-of-stock'
        created.append(notify(
            title=f"{'Out of stock' if out_of_stock else 'Low stock'}: {material.name}",
            message=(
                f"{material.name} has {material.current_stock.normalize():f} {material.unit} left "
                f"(minimum {material.min_threshold.normalize():f} {material.unit})."
            ),
            notification_type='low_stock',
            priority='urgent' if out_of_stock else 'high',
            module='materials',
            related_id=material.id,
            related_data={
                'material_name': material.name,
                'current_stock': str(material.current_stock),
                'min_threshold': str(material.min_threshold),
                'unit': material.unit,
                'supplier': material.supplier_name,
            },
        ))

    if created:
        logger.info(f"Created {len(created)} low stock notifications")
    return created
