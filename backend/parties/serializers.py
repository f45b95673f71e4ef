from decimal import Decimal

from rest_framework import serializers

from backend.core.validation import validate_with_rules
from .models import Customer, Supplier

ADDRESS_KEYS = ('address', 'city', 'state', 'pincode')

CUSTOMER_RULES = {
    'name': 'CUSTOMER_NAME',
    'phone': 'PHONE',
    'email': 'EMAIL',
    'city': 'CITY',
    'pincode': 'PINCODE',
    'gst_number': 'GST_NUMBER',
    'notes': 'NOTES',
}

SUPPLIER_RULES = {
    'name': 'SUPPLIER_NAME',
    'phone': 'PHONE',
    'email': 'EMAIL',
    'city': 'CITY',
    'pincode': 'PINCODE',
    'gst_number': 'GST_NUMBER',
    'notes': 'NOTES',
}

FIELD_LABELS = {
    'name': 'Name',
    'phone': 'Phone',
    'email': 'Email',
    'city': 'City',
    'pincode': 'Pincode',
    'gst_number': 'GST number',
    'notes': 'Notes',
}


def validate_address_payload(value):
    """Addresses are stored as {address, city, state, pincode}"""
    if value in (None, ''):
        return {}
    if not isinstance(value, dict):
        raise serializers.ValidationError("Address must be an object with address, city, state and pincode")
    unknown = set(value) - set(ADDRESS_KEYS)
    if unknown:
        raise serializers.ValidationError(f"Unknown address fields: {', '.join(sorted(unknown))}")
    return {key: str(value.get(key) or '').strip() for key in ADDRESS_KEYS}


def normalize_gst_number(attrs):
    if attrs.get('gst_number'):
        attrs['gst_number'] = attrs['gst_number'].strip().upper()
    return attrs


class CustomerSerializer(serializers.ModelSerializer):
    permanent_address = serializers.JSONField(required=False, validators=[validate_address_payload])
    delivery_address = serializers.JSONField(required=False, validators=[validate_address_payload])

    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'email', 'phone', 'address', 'city', 'state', 'pincode',
            'customer_type', 'status', 'company_name', 'gst_number',
            'permanent_address', 'delivery_address', 'credit_limit', 'outstanding_amount',
            'total_orders', 'total_value', 'last_order_date', 'registration_date', 'notes',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['outstanding_amount', 'total_orders', 'total_value', 'last_order_date',
                            'created_at', 'updated_at']

    def validate_credit_limit(self, value):
        if value < 0:
            raise serializers.ValidationError("Credit limit cannot be negative")
        return value

    def validate(self, attrs):
        attrs = normalize_gst_number(attrs)
        for key in ('permanent_address', 'delivery_address'):
            if key in attrs:
                attrs[key] = validate_address_payload(attrs[key])
        return validate_with_rules(attrs, CUSTOMER_RULES, FIELD_LABELS, partial=self.partial)


class CustomerBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ['id', 'name', 'company_name', 'phone', 'email']


class SupplierSerializer(serializers.ModelSerializer):
    total_orders = serializers.SerializerMethodField()
    total_value = serializers.SerializerMethodField()

    class Meta:
        model = Supplier
        fields = [
            'id', 'name', 'contact_person', 'email', 'phone', 'address', 'city', 'state', 'pincode',
            'gst_number', 'performance_rating', 'status', 'notes', 'total_orders', 'total_value',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def _order_totals(self, obj):
        # List views annotate the totals; fall back to a query for single objects
        if hasattr(obj, 'order_count'):
            return {'total_orders': obj.order_count, 'total_value': obj.order_value or Decimal('0.00')}
        if not obj.pk:
            return {'total_orders': 0, 'total_value': Decimal('0.00')}
        return obj.get_order_totals()

    def get_total_orders(self, obj):
        return self._order_totals(obj)['total_orders']

    def get_total_value(self, obj):
        return str(self._order_totals(obj)['total_value'])

    def validate_performance_rating(self, value):
        if value < 0 or value > 5:
            raise serializers.ValidationError("Performance rating must be between 0 and 5")
        return value

    def validate(self, attrs):
        attrs = normalize_gst_number(attrs)
        return validate_with_rules(attrs, SUPPLIER_RULES, FIELD_LABELS, partial=self.partial)


class SupplierBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = ['id', 'name', 'contact_person', 'phone']
