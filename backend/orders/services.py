"""
Order workflow: pricing the lines, reserving individual products, status
changes and payments.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from backend.catalog.models import IndividualProduct
from backend.catalog.services import set_individual_status
from backend.materials.services import InsufficientStock, adjust_stock
from .models import Order, OrderItem, OrderPayment
from .pricing import calculate_item_price, get_default_gst_rate, product_dimensions

logger = logging.getLogger(__name__)


class OrderError(Exception):
    """Business-rule violation on an order (returned as 400)"""


def price_item(data):
    """Fill the computed money fields of an item dict"""
    product = data.get('product')
    dimensions = product_dimensions(product) if data.get('product_type') == 'product' and product else None
    if data.get('gst_rate') is None:
        data['gst_rate'] = get_default_gst_rate()

    result = calculate_item_price(
        data['unit_price'], data['quantity'], data.get('pricing_unit', 'unit'), dimensions,
        data['gst_rate'], data.get('gst_included', True),
    )
    if not result['is_valid']:
        raise OrderError(result['error'])
    data['subtotal'] = result['subtotal']
    data['gst_amount'] = result['gst_amount']
    data['total_price'] = result['total_price']
    return data


def _reserve_individuals(order, item, individual_ids):
    if not individual_ids:
        return
    if item.product_type != 'product' or item.product is None:
        raise OrderError('Individual products can only be selected for product lines')
    if len(individual_ids) > item.quantity:
        raise OrderError(f'Selected {len(individual_ids)} pieces of "{item.product_name}" but quantity is '
                         f'{item.quantity.normalize()}')

    pieces = list(IndividualProduct.objects.select_for_update().filter(id__in=individual_ids)
                  .select_related('product'))
    if len(pieces) != len(set(individual_ids)):
        raise OrderError('One or more selected individual products do not exist')
    for piece in pieces:
        if piece.product_id != item.product_id:
            raise OrderError(f'{piece.serial_number} is not a piece of "{item.product_name}"')
        if piece.status != 'available':
            raise OrderError(f'{piece.serial_number} is not available ({piece.get_status_display()})')

    item.individual_products.set(pieces)
    set_individual_status(pieces, 'reserved')


def release_individual_products(order):
    pieces = list(IndividualProduct.objects.filter(order_items__order=order, status='reserved')
                  .select_related('product'))
    if pieces:
        set_individual_status(pieces, 'available')


def write_items(order, items):
    """Replace the order's items and recompute its totals"""
    release_individual_products(order)
    order.items.all().delete()
    for data in items:
        data = dict(data)
        individual_ids = data.pop('individual_product_ids', None) or []
        if not data.get('product_name'):
            source = data.get('product') if data.get('product_type') == 'product' else data.get('raw_material')
            data['product_name'] = source.name if source else ''
        if not data.get('unit'):
            if data.get('product_type') == 'product' and data.get('product'):
                data['unit'] = data['product'].unit
            elif data.get('raw_material'):
                data['unit'] = data['raw_material'].unit
        item = OrderItem.objects.create(order=order, **price_item(data))
        _reserve_individuals(order, item, individual_ids)
    order.recalculate_totals()


def create_order(data, items, user=None):
    with transaction.atomic():
        order = Order(created_by=user, **data)
        order.save()
        write_items(order, items)
        order.customer.refresh_order_totals()
    logger.info(f"Order {order.order_number} created with {len(items)} items, total {order.total_amount}")

    from backend.notifications.services import notify
    notify(
        title='New order',
        message=f'Order {order.order_number} for {order.customer_name} ({order.total_amount})',
        notification_type='order_alert',
        module='orders',
        related_id=order.id,
        related_data={'order_number': order.order_number, 'status': order.status},
        created_by=user,
    )
    return order


def update_order(order, data, items=None):
    if items is not None and not order.is_editable:
        raise OrderError('Items can only be changed while the order is pending')

    with transaction.atomic():
        customer_changed = 'customer' in data and data['customer'].pk != order.customer_id
        previous_customer = order.customer
        for attr, value in data.items():
            setattr(order, attr, value)
        if customer_changed:
            order.customer_name = order.customer.name
            order.customer_email = order.customer.email or ''
            order.customer_phone = order.customer.phone or ''
        order.save()
        if items is not None:
            write_items(order, items)
        else:
            order.recalculate_totals()
        if order.paid_amount > order.total_amount:
            raise OrderError('Order total cannot be less than the amount already paid')

        order.customer.refresh_order_totals()
        if customer_changed:
            previous_customer.refresh_order_totals()
    return order


def _deduct_raw_materials(order, user):
    for item in order.items.filter(product_type='raw_material').select_related('raw_material'):
        if item.raw_material is None:
            continue
        adjust_stock(item.raw_material, item.quantity, 'out', 'adjustment', user=user,
                     reference=order.order_number, notes='Order dispatch')


def change_status(order, new_status, user=None):
    """Move an order to new_status, applying the stock side effects"""
    if new_status == order.status:
        raise OrderError(f'Order is already {order.get_status_display().lower()}')
    if not order.can_transition_to(new_status):
        raise OrderError(f"Cannot change order status from '{order.status}' to '{new_status}'")

    old_status = order.status
    with transaction.atomic():
        order.status = new_status
        timestamp_field = Order.STATUS_TIMESTAMPS.get(new_status)
        if timestamp_field:
            setattr(order, timestamp_field, timezone.now())
        order.save()

        if new_status == 'dispatched':
            pieces = list(IndividualProduct.objects.filter(order_items__order=order, status='reserved')
                          .select_related('product'))
            set_individual_status(pieces, 'sold')
            try:
                _deduct_raw_materials(order, user)
            except InsufficientStock as e:
                raise OrderError(str(e))
        elif new_status == 'cancelled':
            release_individual_products(order)

        order.customer.refresh_order_totals()

    logger.info(f"Order {order.order_number} status changed {old_status} -> {new_status}")
    from backend.notifications.services import notify
    notify(
        title='Order status changed',
        message=f'Order {order.order_number} is now {order.get_status_display()}',
        notification_type='order_alert',
        priority='high' if new_status == 'cancelled' else 'medium',
        module='orders',
        related_id=order.id,
        related_data={'order_number': order.order_number, 'from': old_status, 'to': new_status},
        created_by=user,
    )
    return old_status


def record_payment(order, amount, payment_method='cash', reference='', notes='', user=None):
    amount = Decimal(amount)
    if order.status == 'cancelled':
        raise OrderError('Cannot record a payment on a cancelled order')
    if amount <= 0:
        raise OrderError('Payment amount must be greater than 0')
    if amount > order.outstanding_amount:
        raise OrderError(f'Payment amount cannot exceed the outstanding amount ({order.outstanding_amount})')

    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order.pk)
        payment = OrderPayment.objects.create(
            order=order, amount=amount, payment_method=payment_method, reference=reference, notes=notes,
            created_by=user,
        )
        order.paid_amount += amount
        order.save()
        order.customer.refresh_order_totals()
    return order, payment
