"""
Production batch workflow.

A batch moves through its stages in order: planning, machine, wastage and
individual_products. Stock leaves the store when planning completes and
finished pieces are created when the last stage completes.
"""
import logging
from decimal import ROUND_CEILING, Decimal

from django.db import transaction
from django.utils import timezone

from backend.catalog.recipes import calculate_recipe_requirements
from backend.catalog.services import create_individual_products, set_individual_status
from backend.materials.services import InsufficientStock, adjust_stock
from backend.notifications.services import check_low_stock, notify
from .models import MaterialConsumption, ProductionBatch, ProductionStage

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')
FINISHED_STATUSES = ('available', 'quality_check')


class ProductionError(Exception):
    pass


def _user(user):
    return user if user is not None and user.is_authenticated else None


def prefill_consumption(batch):
    """Planned consumption lines from the product recipe, if it has one"""
    from backend.catalog.models import Recipe

    recipe = Recipe.objects.filter(product=batch.product).first()
    if recipe is None:
        return []

    requirements = calculate_recipe_requirements(recipe, batch.planned_quantity)
    lines = []
    for line in requirements['materials']:
        if line['required_quantity'] <= 0:
            continue
        is_raw = line['material_type'] == 'raw_material'
        lines.append(MaterialConsumption.objects.create(
            batch=batch,
            material_type=line['material_type'],
            raw_material_id=line['material_id'] if is_raw else None,
            product_id=None if is_raw else line['material_id'],
            quantity=line['required_quantity'],
            unit=line['unit'],
            cost=line['total_cost'],
        ))
    return lines


def create_batch(data, user=None):
    """Create a batch with its four stages and recipe-based consumption"""
    with transaction.atomic():
        batch = ProductionBatch.objects.create(created_by=_user(user), **data)
        ProductionStage.objects.bulk_create([
            ProductionStage(batch=batch, stage=stage, sequence=index)
            for index, stage in enumerate(ProductionStage.STAGE_ORDER, start=1)
        ])
        consumptions = prefill_consumption(batch)

    logger.info(f"Production batch {batch.batch_number} created for {batch.product.name} "
                f"({batch.planned_quantity} planned, {len(consumptions)} materials)")
    return batch


def get_stage(batch, stage_name):
    if stage_name not in ProductionStage.STAGE_ORDER:
        raise ProductionError(f"Unknown stage '{stage_name}'")
    return batch.stages.get(stage=stage_name)


def _previous_stage(batch, stage):
    index = ProductionStage.STAGE_ORDER.index(stage.stage)
    if index == 0:
        return None
    return batch.stages.get(stage=ProductionStage.STAGE_ORDER[index - 1])


def _lock_batch(batch):
    """Lock the batch row and reload the instance from it. Call inside a transaction."""
    list(ProductionBatch.objects.select_for_update().filter(pk=batch.pk).values_list('pk', flat=True))
    batch.refresh_from_db()
    return batch


def _ensure_open(batch):
    if batch.is_closed:
        raise ProductionError(f"Batch {batch.batch_number} is {batch.status}")


def start_stage(batch, stage_name, user=None, machine=None, notes=''):
    with transaction.atomic():
        _ensure_open(_lock_batch(batch))

        stage = get_stage(batch, stage_name)
        if stage.status != 'not_started':
            raise ProductionError(f"Stage {stage_name} is already {stage.status.replace('_', ' ')}")
        previous = _previous_stage(batch, stage)
        if previous is not None and previous.status != 'completed':
            raise ProductionError(f"Stage {previous.stage} must be completed before {stage_name}")

        stage.status = 'in_progress'
        stage.started_at = timezone.now()
        stage.started_by = _user(user)
        if machine is not None:
            stage.machine = machine
        if notes:
            stage.notes = notes
        stage.save()

        if previous is None:
            batch.status = 'in_progress'
            if batch.start_date is None:
                batch.start_date = timezone.localdate()
            batch.save(update_fields=['status', 'start_date', 'updated_at'])

    logger.info(f"Batch {batch.batch_number}: stage {stage_name} started")
    return stage


def _deduct_product(consumption, reference):
    product = consumption.product
    count = int(consumption.quantity.to_integral_value(rounding=ROUND_CEILING))
    if product.individual_stock_tracking:
        pieces = list(product.individual_products.filter(status='available').order_by('id')[:count])
        if len(pieces) < count:
            raise InsufficientStock(product, count, len(pieces))
        set_individual_status(pieces, 'in_production')
    else:
        if count > product.base_quantity:
            raise InsufficientStock(product, count, product.base_quantity)
        product.base_quantity -= count
        product.save()
    logger.info(f"{reference}: used {consumption.quantity} of product {product.name}")


def deduct_consumption(batch, user=None):
    """
    Take every pending consumption line out of stock.

    All or nothing: a shortfall on any line raises ProductionError and
    nothing is deducted.
    """
    try:
        with transaction.atomic():
            pending = list(batch.consumptions.filter(deducted=False).select_related('raw_material', 'product'))
            for consumption in pending:
                if consumption.material_type == 'raw_material':
                    quantity = consumption.quantity.quantize(CENTS, rounding=ROUND_CEILING)
                    adjust_stock(
                        consumption.raw_material, quantity, 'out', 'production', user=user,
                        reference=batch.batch_number, notes='Production consumption',
                        check_notifications=False,
                    )
                else:
                    _deduct_product(consumption, batch.batch_number)
                consumption.deducted = True
                consumption.deducted_at = timezone.now()
                consumption.save(update_fields=['deducted', 'deducted_at'])
    except InsufficientStock as e:
        raise ProductionError(str(e))

    raw_materials = [c.raw_material for c in pending if c.raw_material_id]
    if raw_materials:
        check_low_stock(raw_materials)
    return pending


def complete_stage(batch, stage_name, user=None, notes='', actual_quantity=None,
                   individual_status='available', individual_fields=None):
    with transaction.atomic():
        _ensure_open(_lock_batch(batch))

        stage = get_stage(batch, stage_name)
        if stage.status != 'in_progress':
            raise ProductionError(f"Stage {stage_name} has not been started")

        if stage_name == 'planning':
            deduct_consumption(batch, user=user)
            batch.status = 'in_production'
            batch.save(update_fields=['status', 'updated_at'])
        elif stage_name == 'individual_products':
            _finish_batch(batch, user, actual_quantity, individual_status, individual_fields or {})

        stage.status = 'completed'
        stage.completed_at = timezone.now()
        stage.completed_by = _user(user)
        if notes:
            stage.notes = notes
        stage.save()

    logger.info(f"Batch {batch.batch_number}: stage {stage_name} completed")
    return stage


def _finish_batch(batch, user, actual_quantity, individual_status, individual_fields):
    if individual_status not in FINISHED_STATUSES:
        raise ProductionError(f"Finished pieces must be one of {', '.join(FINISHED_STATUSES)}")
    quantity = batch.planned_quantity if actual_quantity is None else int(actual_quantity)
    if quantity < 0:
        raise ProductionError("Actual quantity cannot be negative")

    product = batch.product
    if quantity > 0:
        if product.individual_stock_tracking:
            create_individual_products(product, quantity, batch=batch, status=individual_status,
                                       completion_date=timezone.localdate(), **individual_fields)
        else:
            product.base_quantity += quantity
            product.save()

    batch.actual_quantity = quantity
    batch.status = 'completed'
    batch.completion_date = timezone.localdate()
    batch.save(update_fields=['actual_quantity', 'status', 'completion_date', 'updated_at'])

    notify(
        title=f"Production completed: {batch.batch_number}",
        message=f"{quantity} x {product.name} produced in batch {batch.batch_number}.",
        notification_type='success',
        module='production',
        related_id=batch.id,
        related_data={'batch_number': batch.batch_number, 'product_id': product.id, 'quantity': quantity},
        created_by=user,
    )


def cancel_batch(batch, user=None, reason=''):
    with transaction.atomic():
        _lock_batch(batch)
        if batch.status == 'completed':
            raise ProductionError("A completed batch cannot be cancelled")
        if batch.status == 'cancelled':
            raise ProductionError("Batch is already cancelled")

        batch.status = 'cancelled'
        batch.cancelled_at = timezone.now()
        batch.cancelled_by = _user(user)
        batch.cancellation_reason = reason or ''
        batch.save(update_fields=['status', 'cancelled_at', 'cancelled_by', 'cancellation_reason', 'updated_at'])
    logger.info(f"Batch {batch.batch_number} cancelled: {reason}")
    return batch


def return_waste(wastage, user=None):
    """Put raw-material waste back into stock, once"""
    if wastage.status != 'generated':
        raise ProductionError(f"Waste is already {wastage.status}")
    if wastage.raw_material_id is None:
        raise ProductionError("Only raw material waste can be returned to stock")

    with transaction.atomic():
        adjust_stock(
            wastage.raw_material, wastage.quantity, 'in', 'waste_return', user=user,
            reference=wastage.batch.batch_number, notes=f"Returned {wastage.get_waste_type_display()}",
        )
        wastage.status = 'returned'
        wastage.returned_at = timezone.now()
        wastage.save(update_fields=['status', 'returned_at'])
    return wastage
