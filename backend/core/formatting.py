"""
Indian locale formatting helpers.

Amounts are grouped the Indian way (1,23,45,678) and large values are
abbreviated to lakhs (Lac) and crores (Cr). Dates render as DD/MM/YYYY in the
configured local time zone.
"""
import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

CRORE = 10000000
LAKH = 100000


def _to_number(value):
    """Return value as float, or None when it is missing or not numeric."""
    if value is None or value == '':
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def group_indian_digits(integer_part: str) -> str:
    """Insert commas after the last three digits, then every two digits."""
    if len(integer_part) <= 3:
        return integer_part
    last_three = integer_part[-3:]
    remaining = integer_part[:-3]
    chunks = []
    while remaining:
        chunks.insert(0, remaining[-2:])
        remaining = remaining[:-2]
    return ','.join(chunks) + ',' + last_three


def format_indian_number(value, decimals=2):
    """Format a number, abbreviating lakhs and crores (150000 -> '1.50 Lac')."""
    number = _to_number(value)
    if not number:
        return '0'

    sign = '-' if number < 0 else ''
    abs_value = abs(number)

    if abs_value >= CRORE:
        return f"{sign}{abs_value / CRORE:.{decimals}f} Cr"
    if abs_value >= LAKH:
        return f"{sign}{abs_value / LAKH:.{decimals}f} Lac"
    return f"{sign}{abs_value:,.{decimals}f}"


def format_indian_number_with_decimals(value, max_decimals=2):
    """
    Round to max_decimals, drop trailing zeros and group with Indian commas.

    1234567.5 -> '12,34,567.5', 1000 -> '1,000'
    """
    number = _to_number(value)
    if number is None:
        return '0.00'

    try:
        rounded = Decimal(str(number)).quantize(Decimal(1).scaleb(-max_decimals), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return '0.00'
    if rounded == 0:
        return '0'

    text = format(rounded, 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')

    negative = text.startswith('-')
    if negative:
        text = text[1:]
    integer_part, _, decimal_part = text.partition('.')

    formatted = group_indian_digits(integer_part)
    if negative:
        formatted = '-' + formatted
    return f"{formatted}.{decimal_part}" if decimal_part else formatted


def format_currency(value):
    """Format a rupee amount: '₹2.5 Cr', '₹1.5 Lac', '₹12,345.5'."""
    number = _to_number(value)
    if number is None:
        return '₹0'

    sign = '-' if number < 0 else ''
    abs_value = abs(number)

    if abs_value >= CRORE:
        return f"{sign}₹{format_indian_number_with_decimals(abs_value / CRORE, 2)} Cr"
    if abs_value >= LAKH:
        return f"{sign}₹{format_indian_number_with_decimals(abs_value / LAKH, 2)} Lac"
    return f"{sign}₹{format_indian_number_with_decimals(abs_value, 2)}"


def _to_local_datetime(value):
    """Parse strings and normalise aware datetimes to the local time zone."""
    if value in (None, ''):
        return None
    if isinstance(value, str):
        parsed = None
        try:
            parsed = parse_datetime(value)
            if parsed is None:
                parsed = parse_date(value)
        except ValueError:
            return None
        if parsed is None:
            return None
        value = parsed
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return None


def format_indian_date(value):
    """DD/MM/YYYY, or 'N/A' when the value is empty or unparsable."""
    moment = _to_local_datetime(value)
    if moment is None:
        return 'N/A'
    return moment.strftime('%d/%m/%Y')


def format_indian_datetime(value):
    """DD/MM/YYYY HH:MM, or 'N/A' when the value is empty or unparsable."""
    moment = _to_local_datetime(value)
    if moment is None:
        return 'N/A'
    return moment.strftime('%d/%m/%Y %H:%M')


def format_relative_date(value, now=None):
    """
    Describe how long ago something happened.

    Falls back to the Indian date once the value is a week old.
    """
    moment = _to_local_datetime(value)
    if moment is None:
        return 'N/A'

    now = now or timezone.now()
    if timezone.is_aware(now):
        now = timezone.localtime(now)
    if timezone.is_aware(now) != timezone.is_aware(moment):
        # Compare naive values in local time
        now = timezone.make_naive(now) if timezone.is_aware(now) else now
        moment = timezone.make_naive(moment) if timezone.is_aware(moment) else moment

    diff_seconds = (now - moment).total_seconds()
    diff_mins = math.floor(diff_seconds / 60)
    diff_hours = math.floor(diff_seconds / 3600)
    diff_days = math.floor(diff_seconds / 86400)

    if diff_mins < 1:
        return 'Just now'
    if diff_mins < 60:
        return f"{diff_mins} min ago"
    if diff_hours < 24:
        return f"{diff_hours} hour{'s' if diff_hours > 1 else ''} ago"
    if diff_days < 7:
        return f"{diff_days} day{'s' if diff_days > 1 else ''} ago"
    return format_indian_date(moment)
