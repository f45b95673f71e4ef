"""
Stock-affecting operations on products and their individual pieces.
"""
import logging

from django.db import transaction
from django.utils import timezone

from .models import IndividualProduct
from .utils import generate_individual_qr_code, generate_serial_number, get_max_number_for_prefix, \
    get_prefix_for_product

logger = logging.getLogger(__name__)

INDIVIDUAL_FIELDS = (
    'final_length', 'final_width', 'final_weight', 'quality_grade', 'inspector', 'location', 'notes',
    'production_date', 'completion_date',
)


class UntrackedProductError(Exception):
    def __init__(self, product):
        self.product = product
        super().__init__(f'"{product.name}" does not track individual products')


def create_individual_products(product, count, batch=None, status='available', **fields):
    """
    Create count individual products with sequential serial numbers and
    refresh the product's stock.

    Extra keyword arguments (final dimensions, quality grade, ...) are copied
    onto every piece.
    """
    if not product.individual_stock_tracking:
        raise UntrackedProductError(product)
    if count < 1:
        raise ValueError("Count must be at least 1")

    values = {name: value for name, value in fields.items() if name in INDIVIDUAL_FIELDS and value is not None}
    values.setdefault('production_date', timezone.localdate())

    with transaction.atomic():
        next_number = get_max_number_for_prefix(get_prefix_for_product(product)) + 1
        created = []
        for _ in range(count):
            serial = generate_serial_number(product, start_number=next_number)
            next_number = int(serial.split('-', 1)[1]) + 1
            created.append(IndividualProduct.objects.create(
                product=product,
                batch=batch,
                status=status,
                qr_code=generate_individual_qr_code(),
                serial_number=serial,
                **values,
            ))
        product.refresh_stock()

    logger.info(f"Created {count} individual products for {product.name} (stock now {product.current_stock})")
    return created


def set_individual_status(individual_products, status, sold_date=None):
    """Move pieces to a new status and refresh stock of every product touched"""
    products = {}
    for individual in individual_products:
        individual.status = status
        update_fields = ['status', 'updated_at']
        if status == 'sold':
            individual.sold_date = sold_date or timezone.localdate()
            update_fields.append('sold_date')
        elif individual.sold_date is not None:
            individual.sold_date = None
            update_fields.append('sold_date')
        individual.save(update_fields=update_fields)
        products[individual.product_id] = individual.product

    for product in products.values():
        product.refresh_stock()
    return list(products.values())
