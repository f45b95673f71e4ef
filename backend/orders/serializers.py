from decimal import Decimal

from rest_framework import serializers

from backend.core.formatting import format_currency
from backend.core.validation import validate_with_rules
from .models import Order, OrderItem, OrderPayment
from .pricing import PRICING_UNIT_CHOICES

ORDER_RULES = {
    'notes': 'NOTES',
}


class OrderItemSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(read_only=True)
    individual_product_ids = serializers.ListField(
        child=serializers.IntegerField(), required=False, write_only=True
    )
    individual_products = serializers.SerializerMethodField()
    product_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    gst_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True,
                                       min_value=Decimal('0'), max_value=Decimal('100'))

    class Meta:
        model = OrderItem
        fields = [
            'id', 'product_type', 'product', 'raw_material', 'product_name', 'quantity', 'unit', 'unit_price',
            'pricing_unit', 'gst_rate', 'gst_included', 'subtotal', 'gst_amount', 'total_price',
            'quality_grade', 'specifications', 'individual_products', 'individual_product_ids'
        ]
        read_only_fields = ['subtotal', 'gst_amount', 'total_price']

    def get_individual_products(self, obj):
        return [
            {'id': piece.id, 'qr_code': piece.qr_code, 'serial_number': piece.serial_number, 'status': piece.status}
            for piece in obj.individual_products.all()
        ]

    def validate(self, attrs):
        product_type = attrs.setdefault('product_type', 'product')
        if product_type == 'product':
            if not attrs.get('product'):
                raise serializers.ValidationError({'product': 'Select a product'})
            attrs['raw_material'] = None
        else:
            if not attrs.get('raw_material'):
                raise serializers.ValidationError({'raw_material': 'Select a raw material'})
            attrs['product'] = None
            if attrs.get('individual_product_ids'):
                raise serializers.ValidationError(
                    {'individual_product_ids': 'Individual products can only be selected for product lines'}
                )
        return attrs


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, required=False)
    payments = serializers.SerializerMethodField()
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    total_amount_display = serializers.SerializerMethodField()
    outstanding_amount_display = serializers.SerializerMethodField()
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'customer', 'customer_name', 'customer_email', 'customer_phone',
            'order_date', 'expected_delivery', 'subtotal', 'gst_amount', 'discount_amount', 'total_amount',
            'total_amount_display', 'paid_amount', 'outstanding_amount', 'outstanding_amount_display',
            'status', 'status_display', 'priority', 'notes', 'items', 'accepted_at', 'dispatched_at',
            'delivered_at', 'cancelled_at', 'payments', 'created_by', 'created_by_username', 'created_at',
            'updated_at'
        ]
        read_only_fields = [
            'order_number', 'customer_name', 'customer_email', 'customer_phone', 'subtotal', 'gst_amount',
            'total_amount', 'paid_amount', 'outstanding_amount', 'status', 'accepted_at', 'dispatched_at',
            'delivered_at', 'cancelled_at', 'created_by', 'created_at', 'updated_at'
        ]
        extra_kwargs = {
            'discount_amount': {'min_value': Decimal('0')},
        }

    def get_payments(self, obj):
        return OrderPaymentSerializer(obj.payments.select_related('created_by'), many=True).data

    def get_total_amount_display(self, obj):
        return format_currency(obj.total_amount)

    def get_outstanding_amount_display(self, obj):
        return format_currency(obj.outstanding_amount)

    def validate(self, attrs):
        if self.instance is None and not attrs.get('items'):
            raise serializers.ValidationError({'items': 'Add at least one item to the order'})
        if 'items' in attrs and not attrs['items']:
            raise serializers.ValidationError({'items': 'An order needs at least one item'})

        order_date = attrs.get('order_date', getattr(self.instance, 'order_date', None))
        expected = attrs.get('expected_delivery', getattr(self.instance, 'expected_delivery', None))
        if order_date and expected and expected < order_date:
            raise serializers.ValidationError(
                {'expected_delivery': 'Expected delivery cannot be before the order date'}
            )
        customer = attrs.get('customer')
        if customer is not None and customer.status == 'suspended':
            raise serializers.ValidationError({'customer': 'This customer is suspended'})
        return validate_with_rules(attrs, ORDER_RULES, {'notes': 'Notes'}, partial=self.partial)


class OrderListSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'customer', 'customer_name', 'order_date', 'expected_delivery',
            'total_amount', 'paid_amount', 'outstanding_amount', 'status', 'status_display', 'priority',
            'item_count', 'created_at'
        ]

    def get_item_count(self, obj):
        count = getattr(obj, 'item_count', None)
        return count if count is not None else obj.items.count()


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True)


class OrderPaymentSerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = OrderPayment
        fields = ['id', 'order', 'amount', 'payment_method', 'reference', 'notes', 'created_by',
                  'created_by_username', 'created_at']
        read_only_fields = ['order', 'created_by', 'created_at']
        extra_kwargs = {
            'amount': {'min_value': Decimal('0.01')},
        }


class PriceCalculationSerializer(serializers.Serializer):
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3)
    pricing_unit = serializers.ChoiceField(choices=PRICING_UNIT_CHOICES, default='unit')
    gst_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True)
    gst_included = serializers.BooleanField(default=True)
    product = serializers.IntegerField(required=False, allow_null=True)
    length = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, allow_null=True)
    width = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, allow_null=True)
    length_unit = serializers.CharField(required=False, allow_blank=True)
    width_unit = serializers.CharField(required=False, allow_blank=True)
    weight = serializers.CharField(required=False, allow_blank=True)
    gsm = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
