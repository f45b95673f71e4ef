"""
Order line pricing: unit conversion by pricing unit and GST calculation.

Dimensions are passed as a dict with any of length, width, length_unit,
width_unit, weight and gsm.
"""
import re
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings

from backend.catalog.units import calculate_sqm, convert_to_feet, to_decimal

PRICING_UNITS = [
    # unit, label, category
    ('unit', 'Per Product', 'count'),
    ('sqft', 'Per Square Foot', 'area'),
    ('sqm', 'Per Square Meter', 'area'),
    ('kg', 'Per Kilogram', 'weight'),
    ('gsm', 'Per GSM', 'textile'),
]
PRICING_UNIT_CHOICES = [(unit, label) for unit, label, _ in PRICING_UNITS]
UNIT_CATEGORIES = {unit: category for unit, _, category in PRICING_UNITS}

MONEY_PLACES = Decimal('0.01')
VALUE_PLACES = Decimal('0.0001')


def _money(value):
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _dims(dimensions):
    return dimensions or {}


def get_gsm(dimensions):
    """GSM from the gsm key, else the digits of weight (e.g. '450 gsm')"""
    dimensions = _dims(dimensions)
    gsm = to_decimal(dimensions.get('gsm'))
    if gsm > 0:
        return gsm
    weight = dimensions.get('weight')
    if weight in (None, ''):
        return Decimal('0')
    return to_decimal(re.sub(r'[^\d.-]', '', str(weight)))


def has_area(dimensions):
    dimensions = _dims(dimensions)
    return to_decimal(dimensions.get('length')) > 0 and to_decimal(dimensions.get('width')) > 0


def sqm_per_unit(dimensions):
    dimensions = _dims(dimensions)
    return calculate_sqm(dimensions.get('length'), dimensions.get('width'),
                         dimensions.get('length_unit') or 'm', dimensions.get('width_unit') or 'm')


def sqft_per_unit(dimensions):
    dimensions = _dims(dimensions)
    if not has_area(dimensions):
        return Decimal('0')
    length = convert_to_feet(dimensions.get('length'), dimensions.get('length_unit') or 'm')
    width = convert_to_feet(dimensions.get('width'), dimensions.get('width_unit') or 'm')
    return length * width


def calculate_unit_value(dimensions, pricing_unit):
    """How many pricing units one product represents (e.g. its SQM)"""
    if pricing_unit == 'sqm':
        return sqm_per_unit(dimensions)
    if pricing_unit == 'sqft':
        return sqft_per_unit(dimensions)
    if pricing_unit == 'gsm':
        gsm = get_gsm(dimensions)
        return gsm * sqm_per_unit(dimensions) if has_area(dimensions) else gsm
    if pricing_unit == 'kg':
        gsm = get_gsm(dimensions)
        if has_area(dimensions) and gsm > 0:
            return gsm * sqm_per_unit(dimensions) / Decimal('1000')
        return to_decimal(_dims(dimensions).get('weight'))
    return Decimal('1')


def calculate_total_price(unit_price, quantity, pricing_unit='unit', dimensions=None):
    """
    Base amount for quantity products priced per pricing_unit.

    Area and weight units fall back to unit_price x quantity when the
    dimensions needed for the conversion are missing.
    """
    unit_price = to_decimal(unit_price)
    quantity = to_decimal(quantity)
    simple = unit_price * quantity

    if pricing_unit in ('sqm', 'sqft'):
        if not has_area(dimensions):
            return simple
        return unit_price * calculate_unit_value(dimensions, pricing_unit) * quantity
    if pricing_unit == 'gsm':
        if get_gsm(dimensions) <= 0:
            return simple
        return unit_price * calculate_unit_value(dimensions, 'gsm') * quantity
    if pricing_unit == 'kg':
        if has_area(dimensions) and get_gsm(dimensions) > 0:
            return unit_price * calculate_unit_value(dimensions, 'kg') * quantity
        return simple
    return simple


def get_default_gst_rate():
    from backend.core.utils import get_setting
    return to_decimal(get_setting('default_gst_rate', settings.DEFAULT_GST_RATE))


def calculate_gst(base_amount, gst_rate=None, gst_included=True):
    """
    Split base_amount into subtotal and GST.

    When GST is included the tax is backed out of the amount
    (base x rate / (100 + rate)); otherwise it is added on top.
    """
    base_amount = to_decimal(base_amount)
    rate = get_default_gst_rate() if gst_rate is None else to_decimal(gst_rate)

    if gst_included:
        denominator = Decimal('100') + rate
        gst_amount = base_amount * rate / denominator if denominator != 0 else Decimal('0')
        subtotal = base_amount - gst_amount
        total = base_amount
    else:
        gst_amount = base_amount * rate / Decimal('100')
        subtotal = base_amount
        total = base_amount + gst_amount

    return {
        'gst_rate': rate,
        'subtotal': _money(subtotal),
        'gst_amount': _money(gst_amount),
        'total': _money(total),
    }


def calculate_item_price(unit_price, quantity, pricing_unit='unit', dimensions=None, gst_rate=None,
                         gst_included=True):
    """Price one order line, including GST"""
    unit_price = to_decimal(unit_price)
    quantity = to_decimal(quantity)
    pricing_unit = pricing_unit or 'unit'

    error = ''
    if unit_price <= 0:
        error = 'Please enter a price'
    elif quantity <= 0:
        error = 'Please enter a quantity'

    base_amount = calculate_total_price(unit_price, quantity, pricing_unit, dimensions)
    gst = calculate_gst(base_amount, gst_rate, gst_included)
    unit_value = calculate_unit_value(dimensions, pricing_unit)

    return {
        'unit_price': unit_price,
        'quantity': quantity,
        'pricing_unit': pricing_unit,
        'unit_value': unit_value.quantize(VALUE_PLACES, rounding=ROUND_HALF_UP),
        'total_value': (unit_value * quantity).quantize(VALUE_PLACES, rounding=ROUND_HALF_UP),
        'sqm_per_unit': sqm_per_unit(dimensions).quantize(VALUE_PLACES, rounding=ROUND_HALF_UP),
        'base_amount': _money(base_amount),
        'gst_rate': gst['gst_rate'],
        'gst_included': gst_included,
        'subtotal': gst['subtotal'],
        'gst_amount': gst['gst_amount'],
        'total_price': gst['total'],
        'is_valid': not error,
        'error': error,
    }


def calculate_order_total(items):
    """Sum of total_price over item dicts accepted by calculate_item_price"""
    total = Decimal('0')
    for item in items:
        total += calculate_item_price(
            item.get('unit_price'),
            item.get('quantity'),
            item.get('pricing_unit', 'unit'),
            item.get('dimensions'),
            item.get('gst_rate'),
            item.get('gst_included', True),
        )['total_price']
    return total


def format_unit_label(unit, quantity=1):
    """
    >>> format_unit_label('unit', 2)
    'products'
    """
    if unit == 'unit':
        return 'product' if quantity == 1 else 'products'
    return unit


def validate_dimensions_for_unit(dimensions, pricing_unit):
    """Whether the dimensions support pricing by pricing_unit"""
    dimensions = _dims(dimensions)
    category = UNIT_CATEGORIES.get(pricing_unit)
    if category is None:
        return False
    if category == 'count':
        return True
    if category in ('area', 'weight'):
        return has_area(dimensions) and bool(dimensions.get('weight') or dimensions.get('gsm'))
    return get_gsm(dimensions) > 0


def get_available_pricing_units(dimensions):
    return [unit for unit, _, _ in PRICING_UNITS if validate_dimensions_for_unit(dimensions, unit)]


def get_suggested_pricing_unit(dimensions):
    dimensions = _dims(dimensions)
    if to_decimal(dimensions.get('gsm')) > 0:
        return 'gsm'
    if has_area(dimensions):
        return 'sqm'
    if dimensions.get('weight'):
        return 'kg'
    return 'sqm'


def product_dimensions(product):
    """Dimension dict for a catalog product"""
    return {
        'length': product.length,
        'width': product.width,
        'length_unit': product.length_unit,
        'width_unit': product.width_unit,
        'weight': product.weight,
    }
