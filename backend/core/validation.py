"""
Shared field validation rules.

The same rules back the serializers of every app, so a name that is too short
or a malformed phone number is rejected with the same message everywhere.
"""
import re

from rest_framework import serializers


class ValidationRule:
    """Constraints for a single input field"""

    def __init__(self, required=False, min_length=None, max_length=None, pattern=None,
                 pattern_message=None, min_value=None, max_value=None, custom=None):
        self.required = required
        self.min_length = min_length
        self.max_length = max_length
        self.pattern = re.compile(pattern, re.ASCII) if pattern else None
        self.pattern_message = pattern_message
        self.min_value = min_value
        self.max_value = max_value
        self.custom = custom


def _multi_word_check(value):
    if not value:
        return None
    words = str(value).split()
    if len(words) > 50:
        return 'Maximum 50 words allowed'
    long_words = [word for word in words if len(word) > 20]
    if long_words:
        return f"Each word can be maximum 20 characters. Words exceeding: {', '.join(long_words[:3])}"
    return None


NAME_PATTERN = r'^[a-zA-Z0-9\s\-_.,()]+$'
NAME_MESSAGE = 'Name can only contain letters, numbers, spaces, and -_.,()'
NUMBER_PATTERN = r'^\d*\.?\d+$'

VALIDATION_RULES = {
    'PRODUCT_NAME': ValidationRule(
        required=True, min_length=2, max_length=100,
        pattern=NAME_PATTERN, pattern_message=NAME_MESSAGE,
    ),
    'MATERIAL_NAME': ValidationRule(
        required=True, min_length=2, max_length=100,
        pattern=NAME_PATTERN, pattern_message=NAME_MESSAGE,
    ),
    'MULTI_WORD_ALPHABETIC': ValidationRule(
        required=True, pattern=r'^[a-zA-Z\s]+$',
        pattern_message='Can only contain letters (a-z, A-Z) and spaces',
        custom=_multi_word_check,
    ),
    'CUSTOMER_NAME': ValidationRule(
        required=True, min_length=2, max_length=100,
        pattern=r"^[a-zA-Z\s\-'.]+$",
        pattern_message='Name can only contain letters, spaces, hyphens, apostrophes, and periods',
    ),
    'SUPPLIER_NAME': ValidationRule(
        required=True, min_length=2, max_length=100,
        pattern=r'^[a-zA-Z0-9\s\-_.,()&]+$',
        pattern_message='Name can only contain letters, numbers, spaces, and -_.,()&',
    ),
    'NOTES': ValidationRule(
        max_length=1000,
        pattern=r"""^[a-zA-Z0-9\s\-_.,()!?@#$%&*:;'"/]+$""",
        pattern_message='Notes contain invalid characters',
    ),
    'DESCRIPTION': ValidationRule(max_length=500),
    'QUANTITY': ValidationRule(
        required=True, min_value=0, max_value=999999,
        pattern=NUMBER_PATTERN, pattern_message='Must be a valid number',
    ),
    'COST': ValidationRule(
        required=True, min_value=0.01, max_value=999999.99,
        pattern=NUMBER_PATTERN, pattern_message='Must be a valid number greater than 0',
    ),
    'STOCK_LEVEL': ValidationRule(
        required=True, min_value=0, max_value=999999,
        pattern=r'^\d+$', pattern_message='Must be a positive whole number',
    ),
    'DIMENSION': ValidationRule(
        min_value=0.01, max_value=9999.99,
        pattern=NUMBER_PATTERN, pattern_message='Must be a valid number greater than 0',
    ),
    'PHONE': ValidationRule(
        min_length=10, max_length=15, pattern=r'^[\d\s\-\+()]+$',
        pattern_message='Phone number can only contain digits, spaces, -, +, and ()',
    ),
    'EMAIL': ValidationRule(
        max_length=100, pattern=r'^[^\s@]+@[^\s@]+\.[^\s@]+$',
        pattern_message='Please enter a valid email address',
    ),
    'ADDRESS': ValidationRule(
        max_length=200, pattern=r'^[a-zA-Z0-9\s\-_.,#/]+$',
        pattern_message='Address contains invalid characters',
    ),
    'CITY': ValidationRule(
        max_length=50, pattern=r"^[a-zA-Z\s\-']+$",
        pattern_message='City can only contain letters, spaces, hyphens, and apostrophes',
    ),
    'PINCODE': ValidationRule(
        min_length=6, max_length=10, pattern=r'^\d+$',
        pattern_message='Pincode must be numeric',
    ),
    'GST_NUMBER': ValidationRule(
        min_length=15, max_length=15,
        pattern=r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}[Z]{1}[0-9A-Z]{1}$',
        pattern_message='Invalid GST number format. Please enter a valid 15-character GST number.',
    ),
    'CATEGORY': ValidationRule(required=True, min_length=1, max_length=50),
    'UNIT': ValidationRule(
        required=True, min_length=1, max_length=20, pattern=r'^[a-zA-Z0-9\s]+$',
        pattern_message='Unit can only contain letters, numbers, and spaces',
    ),
}


def get_rule(rule):
    """Accept either a rule name or a ValidationRule instance"""
    if isinstance(rule, ValidationRule):
        return rule
    return VALIDATION_RULES[rule]


def validate_field(value, rule, field_name):
    """Return the first error message for value, or None when it passes."""
    rule = get_rule(rule)
    string_value = str(value).strip() if value is not None else ''

    if rule.required and not string_value:
        return f"{field_name} is required"
    if not string_value:
        return None

    if rule.min_length and len(string_value) < rule.min_length:
        return f"{field_name} must be at least {rule.min_length} characters"
    if rule.max_length and len(string_value) > rule.max_length:
        return f"{field_name} must be no more than {rule.max_length} characters"

    if rule.pattern and not rule.pattern.match(string_value):
        return rule.pattern_message or f"{field_name} format is invalid"

    if rule.min_value is not None or rule.max_value is not None:
        try:
            number = float(string_value)
        except ValueError:
            return f"{field_name} must be a valid number"
        if rule.min_value is not None and number < rule.min_value:
            return f"{field_name} must be at least {rule.min_value}"
        if rule.max_value is not None and number > rule.max_value:
            return f"{field_name} must be no more than {rule.max_value}"

    if rule.custom:
        return rule.custom(value)
    return None


def validate_fields(data, rules, field_labels=None):
    """Validate several fields, returning {field: message} for the failures."""
    field_labels = field_labels or {}
    field_errors = {}
    for field_name, rule in rules.items():
        label = field_labels.get(field_name, field_name)
        error = validate_field(data.get(field_name), rule, label)
        if error:
            field_errors[field_name] = error
    return field_errors


def get_character_count(value, max_length):
    current = len(str(value)) if value else 0
    return {
        'current': current,
        'max': max_length,
        'remaining': max(0, max_length - current),
        'is_over_limit': current > max_length,
    }


def format_validation_errors(errors):
    """Join error messages into one numbered message."""
    errors = list(errors)
    if not errors:
        return ''
    if len(errors) == 1:
        return errors[0]
    lines = '\n'.join(f"{index}. {error}" for index, error in enumerate(errors, start=1))
    return f"Please fix the following:\n{lines}"


def rule_validator(rule, label):
    """DRF field validator enforcing one of the rules above"""
    def validator(value):
        error = validate_field(value, rule, label)
        if error:
            raise serializers.ValidationError(error)
    return validator


def validate_with_rules(attrs, rules, field_labels=None, partial=False):
    """
    Serializer-level check. On partial updates only the submitted fields are
    validated.
    """
    if partial:
        rules = {name: rule for name, rule in rules.items() if name in attrs}
    errors = validate_fields(attrs, rules, field_labels)
    if errors:
        raise serializers.ValidationError(errors)
    return attrs
