from decimal import Decimal

from rest_framework import serializers

from backend.core.validation import validate_with_rules
from .models import MaterialStockMovement, RawMaterial

MATERIAL_RULES = {
    'name': 'MATERIAL_NAME',
    'category': 'CATEGORY',
}

MATERIAL_LABELS = {
    'name': 'Material name',
    'category': 'Category',
}

NON_NEGATIVE = {'min_value': Decimal('0')}


class RawMaterialSerializer(serializers.ModelSerializer):
    total_value = serializers.SerializerMethodField()

    class Meta:
        model = RawMaterial
        fields = [
            'id', 'name', 'material_type', 'category', 'current_stock', 'unit', 'min_threshold',
            'max_capacity', 'reorder_point', 'daily_usage', 'supplier', 'supplier_name',
            'cost_per_unit', 'total_value', 'batch_number', 'quality_grade', 'color', 'image_url',
            'last_restocked', 'status', 'created_at', 'updated_at'
        ]
        read_only_fields = ['status', 'last_restocked', 'created_at', 'updated_at']
        extra_kwargs = {
            'current_stock': NON_NEGATIVE,
            'min_threshold': NON_NEGATIVE,
            'max_capacity': NON_NEGATIVE,
            'reorder_point': NON_NEGATIVE,
            'daily_usage': NON_NEGATIVE,
            'cost_per_unit': NON_NEGATIVE,
        }

    def get_total_value(self, obj):
        return str(obj.total_value.quantize(Decimal('0.01')))

    def validate(self, attrs):
        if self.instance is not None and 'current_stock' in attrs \
                and attrs['current_stock'] != self.instance.current_stock:
            raise serializers.ValidationError(
                {'current_stock': 'Use the adjust-stock endpoint to change the stock level'}
            )
        supplier = attrs.get('supplier')
        if supplier is not None and not attrs.get('supplier_name'):
            attrs['supplier_name'] = supplier.name
        return validate_with_rules(attrs, MATERIAL_RULES, MATERIAL_LABELS, partial=self.partial)


class RawMaterialBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = RawMaterial
        fields = ['id', 'name', 'category', 'unit', 'current_stock', 'cost_per_unit', 'status']


class StockAdjustmentSerializer(serializers.Serializer):
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    movement_type = serializers.ChoiceField(choices=MaterialStockMovement.MOVEMENT_TYPE_CHOICES)
    reason = serializers.ChoiceField(choices=MaterialStockMovement.REASON_CHOICES, default='adjustment')
    reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class MaterialStockMovementSerializer(serializers.ModelSerializer):
    material_name = serializers.CharField(source='material.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = MaterialStockMovement
        fields = [
            'id', 'material', 'material_name', 'movement_type', 'quantity', 'reason', 'reference',
            'notes', 'stock_after', 'created_by', 'created_by_username', 'created_at'
        ]
