"""
Stock changes for raw materials.

All stock changes go through adjust_stock so that every change leaves a
movement record and the low-stock check runs.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from .models import MaterialStockMovement, RawMaterial

logger = logging.getLogger(__name__)


class InsufficientStock(Exception):
    """Raised when removing more stock than is available"""

    def __init__(self, material, requested, available):
        self.material = material
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {material.name}: requested {requested} {material.unit}, "
            f"available {available} {material.unit}"
        )


def to_decimal(value, default=Decimal('0')):
    if value is None or value == '':
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid number: {value}")


def adjust_stock(material, quantity, movement_type, reason, user=None, reference='', notes='',
                 check_notifications=True):
    """
    Add ('in') or remove ('out') quantity from a material.

    Returns the movement record. Raises InsufficientStock when an 'out'
    movement exceeds the current stock.
    """
    quantity = to_decimal(quantity)
    if quantity <= 0:
        raise ValueError("Quantity must be greater than 0")
    if movement_type not in ('in', 'out'):
        raise ValueError(f"Invalid movement type '{movement_type}'")

    with transaction.atomic():
        locked = RawMaterial.objects.select_for_update().get(pk=material.pk)
        if movement_type == 'out':
            if quantity > locked.current_stock:
                raise InsufficientStock(locked, quantity, locked.current_stock)
            locked.current_stock -= quantity
        else:
            locked.current_stock += quantity
            if reason == 'purchase':
                locked.last_restocked = timezone.now()

        locked.save(update_fields=['current_stock', 'last_restocked', 'updated_at'])
        movement = MaterialStockMovement.objects.create(
            material=locked,
            movement_type=movement_type,
            quantity=quantity,
            reason=reason,
            reference=reference or '',
            notes=notes or '',
            stock_after=locked.current_stock,
            created_by=user if user is not None and user.is_authenticated else None,
        )

    # Keep the caller's instance in step with the database
    material.current_stock = locked.current_stock
    material.status = locked.status
    material.last_restocked = locked.last_restocked

    logger.info(f"Stock {movement_type} {quantity} {locked.unit} for {locked.name} ({reason}); now {locked.current_stock}")

    if check_notifications:
        from backend.notifications.services import check_low_stock
        check_low_stock([locked])
    return movement


def record_opening_stock(material, user=None):
    """Movement for the stock a material was created with"""
    if material.current_stock and material.current_stock > 0:
        return MaterialStockMovement.objects.create(
            material=material,
            movement_type='in',
            quantity=material.current_stock,
            reason='adjustment',
            notes='Opening stock',
            stock_after=material.current_stock,
            created_by=user if user is not None and user.is_authenticated else None,
        )
    return None
