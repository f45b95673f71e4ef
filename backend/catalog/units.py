"""
Dimension conversions and SQM (square meter) calculations for products.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

SQM_TO_SQFT = Decimal('10.7639')

# unit alias -> meters per unit
METERS_PER_UNIT = {
    'mm': Decimal('0.001'),
    'millimeter': Decimal('0.001'),
    'millimeters': Decimal('0.001'),
    'cm': Decimal('0.01'),
    'centimeter': Decimal('0.01'),
    'centimeters': Decimal('0.01'),
    'm': Decimal('1'),
    'meter': Decimal('1'),
    'meters': Decimal('1'),
    'metre': Decimal('1'),
    'metres': Decimal('1'),
    'ft': Decimal('0.3048'),
    'feet': Decimal('0.3048'),
    'foot': Decimal('0.3048'),
    'in': Decimal('0.0254'),
    'inch': Decimal('0.0254'),
    'inches': Decimal('0.0254'),
    'yd': Decimal('0.9144'),
    'yard': Decimal('0.9144'),
    'yards': Decimal('0.9144'),
}

# unit alias -> (multiplier, divisor) to feet
FEET_CONVERSIONS = {
    'mm': (Decimal('1'), Decimal('304.8')),
    'cm': (Decimal('1'), Decimal('30.48')),
    'm': (Decimal('3.28084'), Decimal('1')),
    'in': (Decimal('1'), Decimal('12')),
    'yd': (Decimal('3'), Decimal('1')),
    'ft': (Decimal('1'), Decimal('1')),
}
FEET_ALIASES = {
    'millimeter': 'mm', 'millimeters': 'mm',
    'centimeter': 'cm', 'centimeters': 'cm',
    'meter': 'm', 'meters': 'm', 'metre': 'm', 'metres': 'm',
    'inch': 'in', 'inches': 'in',
    'yard': 'yd', 'yards': 'yd',
    'feet': 'ft', 'foot': 'ft',
}


def to_decimal(value):
    """Parse a number, treating missing or unparsable values as 0"""
    if value is None or value == '':
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal('0')


def normalize_unit(unit):
    return (unit or '').strip().lower()


def convert_to_meters(value, unit):
    """Convert a length to meters; unknown units are returned unchanged."""
    value = to_decimal(value)
    factor = METERS_PER_UNIT.get(normalize_unit(unit))
    if factor is None:
        return value
    return value * factor


def convert_to_feet(value, unit):
    """Convert a length to feet; unknown units are returned unchanged."""
    value = to_decimal(value)
    unit = normalize_unit(unit)
    unit = FEET_ALIASES.get(unit, unit)
    conversion = FEET_CONVERSIONS.get(unit)
    if conversion is None:
        return value
    multiplier, divisor = conversion
    return value * multiplier / divisor


def calculate_sqm(length, width, length_unit='m', width_unit='m'):
    """Area in square meters, 0 when a dimension is missing or not positive"""
    length = to_decimal(length)
    width = to_decimal(width)
    if length <= 0 or width <= 0:
        return Decimal('0')
    return convert_to_meters(length, length_unit) * convert_to_meters(width, width_unit)


def sqm_to_square_feet(sqm):
    return to_decimal(sqm) * SQM_TO_SQFT


def _fixed(value, places=4):
    return str(to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))


def format_sqm_with_square_feet(sqm):
    """
    >>> format_sqm_with_square_feet(Decimal('1.5'))
    '1.5000 sqm (16.1459 sqft)'
    """
    return f"{_fixed(sqm)} sqm ({_fixed(sqm_to_square_feet(sqm))} sqft)"


def product_sqm(product):
    """SQM of one unit of a product (anything with length/width and their units)"""
    return calculate_sqm(product.length, product.width, product.length_unit, product.width_unit)


def calculate_product_ratio(source_product, target_product):
    """
    Units of source_product needed for 1 SQM of target_product.

    Both products need dimension units; the ratio is 1 / source SQM.
    """
    units = (source_product.length_unit, source_product.width_unit,
             target_product.length_unit, target_product.width_unit)
    if not all(units):
        return Decimal('0')
    source_sqm = product_sqm(source_product)
    if source_sqm <= 0:
        return Decimal('0')
    return Decimal('1') / source_sqm


def calculate_stock_status(current_stock, min_stock_level, status=None):
    """Product stock status; inactive and discontinued are kept as they are."""
    if status in ('inactive', 'discontinued'):
        return status
    current_stock = current_stock or 0
    if current_stock <= 0:
        return 'out-of-stock'
    if current_stock < (min_stock_level or 0):
        return 'low-stock'
    return 'in-stock'


def format_stock_rolls(quantity):
    return f"{quantity} {'roll' if quantity == 1 else 'rolls'}"
