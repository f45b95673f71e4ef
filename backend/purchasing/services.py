"""
Purchase order status changes and stock receipt.
"""
import logging

from django.db import transaction
from django.utils import timezone

from backend.materials.models import RawMaterial
from backend.materials.services import adjust_stock
from backend.notifications.services import check_low_stock, notify
from .models import PurchaseOrder

logger = logging.getLogger(__name__)


class PurchaseOrderError(Exception):
    pass


def _material_for_item(item, supplier):
    """The linked material, or one matched or created from the line's description"""
    if item.raw_material_id:
        return item.raw_material

    material = RawMaterial.objects.filter(name__iexact=item.material_name, supplier=supplier).first()
    if material is None:
        material = RawMaterial.objects.create(
            name=item.material_name,
            material_type=item.material_type,
            category=item.category or 'General',
            unit=item.unit,
            cost_per_unit=item.unit_price,
            supplier=supplier,
            supplier_name=supplier.name,
        )
        logger.info(f"Created raw material {material.name} from purchase order line {item.id}")
    item.raw_material = material
    item.save(update_fields=['raw_material'])
    return material


def receive_stock(purchase_order, user=None):
    """
    Add every line of a delivered purchase order to stock.

    Runs once per purchase order; returns the stock movements created.
    """
    with transaction.atomic():
        locked = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
        if locked.stock_received:
            return []

        movements = []
        materials = []
        for item in locked.items.select_related('raw_material'):
            material = _material_for_item(item, locked.supplier)
            movements.append(adjust_stock(
                material, item.quantity, 'in', 'purchase', user=user, reference=locked.order_number,
                notes=f"Received from {locked.supplier.name}", check_notifications=False,
            ))
            material.cost_per_unit = item.unit_price
            material.save(update_fields=['cost_per_unit', 'updated_at'])
            materials.append(material)

        locked.stock_received = True
        locked.save(update_fields=['stock_received', 'updated_at'])

    purchase_order.stock_received = True
    check_low_stock(materials)
    logger.info(f"Stock received for {locked.order_number}: {len(movements)} lines")
    return movements


def change_status(purchase_order, new_status, user=None):
    """Move a purchase order along its status flow; returns the old status"""
    old_status = purchase_order.status
    if not purchase_order.can_transition_to(new_status):
        raise PurchaseOrderError(f"Cannot change status from {old_status} to {new_status}")

    with transaction.atomic():
        purchase_order.status = new_status
        update_fields = ['status', 'updated_at']
        if new_status == 'delivered':
            purchase_order.actual_delivery = timezone.localdate()
            update_fields.append('actual_delivery')
        purchase_order.save(update_fields=update_fields)
        if new_status == 'delivered':
            receive_stock(purchase_order, user=user)

    if new_status == 'delivered':
        notify(
            title=f"Purchase order delivered: {purchase_order.order_number}",
            message=f"Stock from {purchase_order.supplier.name} has been added to inventory.",
            notification_type='success',
            module='materials',
            related_id=purchase_order.id,
            related_data={'order_number': purchase_order.order_number,
                          'total_amount': str(purchase_order.total_amount)},
            created_by=user,
        )

    logger.info(f"Purchase order {purchase_order.order_number}: {old_status} -> {new_status}")
    return old_status
