from django.db import transaction
from rest_framework import serializers

from backend.core.formatting import format_currency
from backend.core.validation import validate_with_rules
from backend.materials.models import RawMaterial
from .models import PurchaseOrder, PurchaseOrderItem

PURCHASE_ORDER_RULES = {
    'notes': 'NOTES',
}

UNIT_VALUES = [value for value, _ in RawMaterial.UNIT_CHOICES]


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(read_only=True)
    material_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    unit = serializers.CharField(max_length=20, required=False, allow_blank=True)

    class Meta:
        model = PurchaseOrderItem
        fields = [
            'id', 'raw_material', 'material_name', 'material_type', 'category', 'unit', 'quantity', 'unit_price',
            'total_price'
        ]
        read_only_fields = ['total_price']

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than 0")
        return value

    def validate_unit_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Unit price cannot be negative")
        return value

    def validate(self, attrs):
        material = attrs.get('raw_material')
        if material is not None:
            attrs['material_name'] = attrs.get('material_name') or material.name
            attrs['material_type'] = attrs.get('material_type') or material.material_type
            attrs['category'] = attrs.get('category') or material.category
            attrs['unit'] = attrs.get('unit') or material.unit
        else:
            if not attrs.get('material_name'):
                raise serializers.ValidationError({'material_name': 'Select a material or enter a name'})
            unit = attrs.get('unit') or 'kg'
            if unit not in UNIT_VALUES:
                raise serializers.ValidationError({'unit': f"Unit must be one of {', '.join(UNIT_VALUES)}"})
            attrs['unit'] = unit
        return attrs


class PurchaseOrderListSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    total_amount_display = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'order_number', 'supplier', 'supplier_name', 'order_date', 'expected_delivery',
            'actual_delivery', 'status', 'status_display', 'total_amount', 'total_amount_display',
            'stock_received', 'created_at'
        ]

    def get_total_amount_display(self, obj):
        return format_currency(obj.total_amount)


class PurchaseOrderSerializer(serializers.ModelSerializer):
    items = PurchaseOrderItemSerializer(many=True, required=False)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    total_amount_display = serializers.SerializerMethodField()
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'order_number', 'supplier', 'supplier_name', 'order_date', 'expected_delivery',
            'actual_delivery', 'status', 'status_display', 'total_amount', 'total_amount_display', 'notes',
            'stock_received', 'items', 'created_by_username', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'order_number', 'actual_delivery', 'status', 'total_amount', 'stock_received', 'created_at',
            'updated_at'
        ]

    def get_total_amount_display(self, obj):
        return format_currency(obj.total_amount)

    def validate_supplier(self, value):
        if value.status != 'active':
            raise serializers.ValidationError(f"Supplier {value.name} is {value.status}")
        return value

    def validate(self, attrs):
        items = attrs.get('items')
        if self.instance is None and not items:
            raise serializers.ValidationError({'items': 'Add at least one item'})
        if items is not None and not items:
            raise serializers.ValidationError({'items': 'A purchase order needs at least one item'})
        if self.instance is not None and self.instance.status != 'pending':
            if items is not None or ('supplier' in attrs and attrs['supplier'] != self.instance.supplier):
                raise serializers.ValidationError('Items and supplier can only be changed while the order is pending')

        order_date = attrs.get('order_date') or (self.instance.order_date if self.instance else None)
        expected = attrs.get('expected_delivery')
        if expected and order_date and expected < order_date:
            raise serializers.ValidationError({'expected_delivery': 'Expected delivery cannot be before the order date'})
        return validate_with_rules(attrs, PURCHASE_ORDER_RULES, {'notes': 'Notes'}, partial=self.partial)

    def _write_items(self, purchase_order, items):
        purchase_order.items.all().delete()
        for item in items:
            PurchaseOrderItem.objects.create(purchase_order=purchase_order, **item)
        purchase_order.recalculate_total()

    def create(self, validated_data):
        items = validated_data.pop('items')
        with transaction.atomic():
            purchase_order = PurchaseOrder.objects.create(**validated_data)
            self._write_items(purchase_order, items)
        return purchase_order

    def update(self, instance, validated_data):
        items = validated_data.pop('items', None)
        with transaction.atomic():
            instance = super().update(instance, validated_data)
            if items is not None:
                self._write_items(instance, items)
        return instance


class PurchaseOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PurchaseOrder.STATUS_CHOICES)
