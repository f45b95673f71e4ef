"""
Utility functions for catalog codes: product QR codes and serial numbers
"""
import re
import uuid

from django.utils import timezone


def _unique_code(prefix, exists):
    timestamp = timezone.now().strftime('%Y%m%d')
    code = f"{prefix}-{timestamp}-{str(uuid.uuid4())[:8].upper()}"
    while exists(code):
        code = f"{prefix}-{timestamp}-{str(uuid.uuid4())[:8].upper()}"
    return code


def generate_product_qr_code():
    """Unique product code, e.g. PRD-20240115-1A2B3C4D"""
    from .models import Product
    return _unique_code('PRD', lambda code: Product.objects.filter(qr_code=code).exists())


def generate_individual_qr_code():
    """Unique code for one physical piece, e.g. IND-20240115-1A2B3C4D"""
    from .models import IndividualProduct
    return _unique_code('IND', lambda code: IndividualProduct.objects.filter(qr_code=code).exists())


def get_prefix_for_product(product):
    """3-letter prefix from the category, falling back to the product name"""
    for source in (product.category, product.name):
        letters = re.sub(r'[^A-Za-z]', '', source or '').upper()
        if len(letters) >= 3:
            return letters[:3]
    return 'UNK'


def get_max_number_for_prefix(prefix):
    """Highest serial number already used for a prefix"""
    from .models import IndividualProduct

    max_number = 0
    serials = IndividualProduct.objects.filter(serial_number__startswith=f'{prefix}-').values_list(
        'serial_number', flat=True
    )
    for serial in serials:
        try:
            max_number = max(max_number, int(serial.split('-', 1)[1]))
        except (ValueError, IndexError):
            continue
    return max_number


def format_serial(prefix, number):
    # 4 digits up to 9999, then 5
    return f"{prefix}-{number:04d}" if number <= 9999 else f"{prefix}-{number:05d}"


def generate_serial_number(product, start_number=None):
    """
    Next serial number for a product, e.g. CAR-0042.

    Pass start_number when generating several in a loop to avoid a query per
    serial.
    """
    from .models import IndividualProduct

    prefix = get_prefix_for_product(product)
    number = start_number if start_number is not None else get_max_number_for_prefix(prefix) + 1
    serial = format_serial(prefix, number)
    while IndividualProduct.objects.filter(serial_number=serial).exists():
        number += 1
        serial = format_serial(prefix, number)
    return serial
