from decimal import Decimal

from rest_framework import serializers

from backend.core.validation import validate_with_rules
from .models import Machine, MaterialConsumption, ProductionBatch, ProductionStage, Wastage

BATCH_RULES = {
    'notes': 'NOTES',
}


class MachineSerializer(serializers.ModelSerializer):
    class Meta:
        model = Machine
        fields = ['id', 'name', 'machine_type', 'status', 'location', 'notes', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class ProductionStageSerializer(serializers.ModelSerializer):
    stage_display = serializers.CharField(source='get_stage_display', read_only=True)
    machine_name = serializers.CharField(source='machine.name', read_only=True, default=None)
    started_by_username = serializers.CharField(source='started_by.username', read_only=True, default=None)
    completed_by_username = serializers.CharField(source='completed_by.username', read_only=True, default=None)

    class Meta:
        model = ProductionStage
        fields = [
            'id', 'stage', 'stage_display', 'sequence', 'status', 'machine', 'machine_name', 'started_at',
            'started_by_username', 'completed_at', 'completed_by_username', 'notes'
        ]


class MaterialConsumptionSerializer(serializers.ModelSerializer):
    material_name = serializers.CharField(read_only=True)

    class Meta:
        model = MaterialConsumption
        fields = [
            'id', 'material_type', 'raw_material', 'product', 'material_name', 'quantity', 'unit', 'cost',
            'deducted', 'deducted_at', 'created_at'
        ]
        read_only_fields = ['deducted', 'deducted_at', 'created_at']

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than 0")
        return value

    def validate(self, attrs):
        material_type = attrs.setdefault('material_type', 'raw_material')
        if material_type == 'raw_material':
            material = attrs.get('raw_material')
            if material is None:
                raise serializers.ValidationError({'raw_material': 'Select a raw material'})
            attrs['product'] = None
            attrs['unit'] = attrs.get('unit') or material.unit
            if not attrs.get('cost'):
                attrs['cost'] = (attrs['quantity'] * material.cost_per_unit).quantize(Decimal('0.01'))
        else:
            product = attrs.get('product')
            if product is None:
                raise serializers.ValidationError({'product': 'Select a product'})
            attrs['raw_material'] = None
            attrs['unit'] = attrs.get('unit') or product.unit
        return attrs


class WastageSerializer(serializers.ModelSerializer):
    batch_number = serializers.CharField(source='batch.batch_number', read_only=True)
    raw_material_name = serializers.CharField(source='raw_material.name', read_only=True, default=None)
    waste_type_display = serializers.CharField(source='get_waste_type_display', read_only=True)

    class Meta:
        model = Wastage
        fields = [
            'id', 'batch', 'batch_number', 'raw_material', 'raw_material_name', 'waste_type', 'waste_type_display',
            'quantity', 'unit', 'status', 'notes', 'returned_at', 'created_at'
        ]
        read_only_fields = ['batch', 'status', 'returned_at', 'created_at']

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be greater than 0")
        return value

    def validate(self, attrs):
        material = attrs.get('raw_material')
        if material is not None and not attrs.get('unit'):
            attrs['unit'] = material.unit
        return attrs


class ProductionBatchListSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    order_number = serializers.CharField(source='order.order_number', read_only=True, default=None)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = ProductionBatch
        fields = [
            'id', 'batch_number', 'product', 'product_name', 'order', 'order_number', 'planned_quantity',
            'actual_quantity', 'status', 'status_display', 'priority', 'start_date', 'completion_date',
            'operator', 'created_at'
        ]


class ProductionBatchSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    order_number = serializers.CharField(source='order.order_number', read_only=True, default=None)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    stages = ProductionStageSerializer(many=True, read_only=True)
    consumptions = MaterialConsumptionSerializer(many=True, read_only=True)
    wastage = WastageSerializer(many=True, read_only=True)
    current_stage = serializers.SerializerMethodField()
    individual_product_count = serializers.SerializerMethodField()
    cancelled_by_username = serializers.CharField(source='cancelled_by.username', read_only=True, default=None)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = ProductionBatch
        fields = [
            'id', 'batch_number', 'product', 'product_name', 'order', 'order_number', 'planned_quantity',
            'actual_quantity', 'status', 'status_display', 'priority', 'start_date', 'completion_date',
            'operator', 'supervisor', 'notes', 'current_stage', 'stages', 'consumptions', 'wastage',
            'individual_product_count', 'cancelled_at', 'cancelled_by_username', 'cancellation_reason',
            'created_by_username', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'batch_number', 'actual_quantity', 'status', 'completion_date', 'cancelled_at',
            'cancellation_reason', 'created_at', 'updated_at'
        ]

    def get_current_stage(self, obj):
        stage = obj.current_stage
        return stage.stage if stage else None

    def get_individual_product_count(self, obj):
        return obj.individual_products.count()

    def validate_planned_quantity(self, value):
        if value < 1:
            raise serializers.ValidationError("Planned quantity must be at least 1")
        return value

    def validate(self, attrs):
        attrs = validate_with_rules(attrs, BATCH_RULES, {'notes': 'Notes'}, partial=self.partial)
        if self.instance is not None:
            if self.instance.is_closed:
                raise serializers.ValidationError(f"A {self.instance.status} batch cannot be edited")
            if self.instance.status != 'planned':
                for field in ('product', 'planned_quantity'):
                    if field in attrs and attrs[field] != getattr(self.instance, field):
                        raise serializers.ValidationError(
                            {field: 'Can only be changed while the batch is planned'}
                        )
        product = attrs.get('product')
        order = attrs.get('order')
        if product is not None and order is not None and not order.items.filter(product=product).exists():
            raise serializers.ValidationError({'order': f'Order {order.order_number} has no line for {product.name}'})
        return attrs


class StageActionSerializer(serializers.Serializer):
    machine = serializers.PrimaryKeyRelatedField(queryset=Machine.objects.all(), required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    actual_quantity = serializers.IntegerField(required=False, min_value=0)
    individual_status = serializers.ChoiceField(choices=['available', 'quality_check'], required=False,
                                                default='available')
    quality_grade = serializers.CharField(max_length=20, required=False, allow_blank=True)
    inspector = serializers.CharField(max_length=200, required=False, allow_blank=True)
    location = serializers.CharField(max_length=200, required=False, allow_blank=True)
    final_length = serializers.DecimalField(max_digits=10, decimal_places=3, required=False)
    final_width = serializers.DecimalField(max_digits=10, decimal_places=3, required=False)
    final_weight = serializers.DecimalField(max_digits=10, decimal_places=3, required=False)

    def validate_machine(self, value):
        if value is not None and value.status != 'active':
            raise serializers.ValidationError(f"Machine {value.name} is {value.status}")
        return value


class CancelBatchSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=1000)
