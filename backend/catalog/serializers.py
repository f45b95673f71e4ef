from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from backend.core.validation import validate_with_rules
from .models import IndividualProduct, Product, Recipe, RecipeMaterial
from .recipes import material_cost_per_unit, required_per_sqm
from .units import calculate_product_ratio, format_sqm_with_square_feet, format_stock_rolls, product_sqm

PRODUCT_RULES = {
    'name': 'PRODUCT_NAME',
    'notes': 'NOTES',
    'description': 'DESCRIPTION',
    'length': 'DIMENSION',
    'width': 'DIMENSION',
}

PRODUCT_LABELS = {
    'name': 'Product name',
    'notes': 'Notes',
    'description': 'Description',
    'length': 'Length',
    'width': 'Width',
}


class ProductSerializer(serializers.ModelSerializer):
    sqm = serializers.SerializerMethodField()
    sqm_display = serializers.SerializerMethodField()
    stock_display = serializers.SerializerMethodField()
    recipe_id = serializers.SerializerMethodField()
    individual_counts = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'qr_code', 'name', 'category', 'subcategory', 'description',
            'length', 'length_unit', 'width', 'width_unit', 'weight', 'weight_unit', 'thickness',
            'color', 'pattern', 'unit', 'base_quantity', 'current_stock', 'min_stock_level',
            'max_stock_level', 'reorder_point', 'individual_stock_tracking', 'manufacturing_date',
            'image_url', 'notes', 'status', 'sqm', 'sqm_display', 'stock_display', 'recipe_id',
            'individual_counts', 'created_at', 'updated_at'
        ]
        read_only_fields = ['qr_code', 'current_stock', 'created_at', 'updated_at']

    def get_sqm(self, obj):
        return str(product_sqm(obj).quantize(Decimal('0.0001')))

    def get_sqm_display(self, obj):
        sqm = product_sqm(obj)
        return format_sqm_with_square_feet(sqm) if sqm > 0 else None

    def get_stock_display(self, obj):
        return format_stock_rolls(obj.current_stock)

    def get_recipe_id(self, obj):
        return Recipe.objects.filter(product=obj).values_list('id', flat=True).first()

    def get_individual_counts(self, obj):
        if not obj.individual_stock_tracking or obj.pk is None:
            return None
        counts = {}
        for row in obj.individual_products.values('status').order_by():
            counts[row['status']] = counts.get(row['status'], 0) + 1
        return counts

    def validate(self, attrs):
        for value_field, unit_field in (('length', 'length_unit'), ('width', 'width_unit'),
                                        ('weight', 'weight_unit')):
            value = attrs.get(value_field, getattr(self.instance, value_field, None))
            unit = attrs.get(unit_field, getattr(self.instance, unit_field, ''))
            if value is not None and not unit:
                raise serializers.ValidationError({unit_field: f'Unit is required when {value_field} is set'})

        minimum = attrs.get('min_stock_level', getattr(self.instance, 'min_stock_level', 0))
        maximum = attrs.get('max_stock_level', getattr(self.instance, 'max_stock_level', 0))
        if maximum and minimum > maximum:
            raise serializers.ValidationError(
                {'max_stock_level': 'Maximum stock level must be greater than the minimum'}
            )
        return validate_with_rules(attrs, PRODUCT_RULES, PRODUCT_LABELS, partial=self.partial)


class ProductListSerializer(serializers.ModelSerializer):
    sqm = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'qr_code', 'name', 'category', 'subcategory', 'length', 'length_unit', 'width',
            'width_unit', 'color', 'pattern', 'unit', 'current_stock', 'min_stock_level',
            'individual_stock_tracking', 'status', 'sqm', 'image_url', 'updated_at'
        ]

    def get_sqm(self, obj):
        return str(product_sqm(obj).quantize(Decimal('0.0001')))


class IndividualProductSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    batch_number = serializers.CharField(source='batch.batch_number', read_only=True, default=None)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = IndividualProduct
        fields = [
            'id', 'product', 'product_name', 'qr_code', 'serial_number', 'batch', 'batch_number',
            'status', 'status_display', 'final_length', 'final_width', 'final_weight', 'quality_grade',
            'inspector', 'location', 'notes', 'production_date', 'completion_date', 'sold_date',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['product', 'qr_code', 'serial_number', 'batch', 'sold_date', 'created_at',
                            'updated_at']

    def validate_status(self, value):
        instance = self.instance
        if instance is not None and instance.status != value and 'sold' in (instance.status, value) \
                and instance.order_items.exists():
            raise serializers.ValidationError('Status of pieces on an order is managed by the order')
        return value


class IndividualProductBulkCreateSerializer(serializers.Serializer):
    count = serializers.IntegerField(min_value=1, max_value=500)
    status = serializers.ChoiceField(
        choices=[('available', 'Available'), ('quality_check', 'Quality Check'), ('in_production', 'In Production')],
        default='available'
    )
    final_length = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, allow_null=True)
    final_width = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, allow_null=True)
    final_weight = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, allow_null=True)
    quality_grade = serializers.CharField(max_length=20, required=False, allow_blank=True)
    inspector = serializers.CharField(max_length=200, required=False, allow_blank=True)
    location = serializers.CharField(max_length=200, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    production_date = serializers.DateField(required=False, allow_null=True)
    completion_date = serializers.DateField(required=False, allow_null=True)


class RecipeMaterialSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(read_only=True)
    material_name = serializers.CharField(read_only=True)
    quantity_per_sqm = serializers.DecimalField(max_digits=12, decimal_places=4, required=False,
                                                min_value=Decimal('0'))
    required_per_sqm = serializers.SerializerMethodField()
    effective_cost_per_unit = serializers.SerializerMethodField()

    class Meta:
        model = RecipeMaterial
        fields = [
            'id', 'material_type', 'raw_material', 'component_product', 'material_name', 'quantity_per_sqm',
            'unit', 'waste_factor', 'cost_per_unit', 'effective_cost_per_unit', 'required_per_sqm',
            'is_optional', 'specifications', 'quality_requirements'
        ]
        extra_kwargs = {
            'waste_factor': {'min_value': Decimal('0'), 'max_value': Decimal('100')},
            'cost_per_unit': {'min_value': Decimal('0')},
        }

    def get_required_per_sqm(self, obj):
        return str(required_per_sqm(obj).quantize(Decimal('0.0001')))

    def get_effective_cost_per_unit(self, obj):
        return str(material_cost_per_unit(obj))

    def validate(self, attrs):
        material_type = attrs.get('material_type', 'raw_material')
        if material_type == 'raw_material':
            if not attrs.get('raw_material'):
                raise serializers.ValidationError({'raw_material': 'Select a raw material'})
            attrs['component_product'] = None
            if 'quantity_per_sqm' not in attrs:
                raise serializers.ValidationError({'quantity_per_sqm': 'This field is required.'})
            if not attrs.get('unit'):
                attrs['unit'] = attrs['raw_material'].unit
        else:
            if not attrs.get('component_product'):
                raise serializers.ValidationError({'component_product': 'Select a product'})
            attrs['raw_material'] = None
            if not attrs.get('unit'):
                attrs['unit'] = attrs['component_product'].unit
        return attrs


class RecipeSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)
    materials = RecipeMaterialSerializer(many=True, required=False)
    cost_per_sqm = serializers.SerializerMethodField()

    class Meta:
        model = Recipe
        fields = [
            'id', 'product', 'product_name', 'base_unit', 'description', 'version', 'is_active',
            'materials', 'cost_per_sqm', 'created_by', 'created_by_username', 'created_at', 'updated_at'
        ]
        read_only_fields = ['version', 'created_by', 'created_at', 'updated_at']

    def get_cost_per_sqm(self, obj):
        total = sum(
            (required_per_sqm(line) * material_cost_per_unit(line) for line in obj.materials.all()),
            Decimal('0')
        )
        return str(total.quantize(Decimal('0.01')))

    def validate(self, attrs):
        product = attrs.get('product', getattr(self.instance, 'product', None))
        for line in attrs.get('materials', []):
            component = line.get('component_product')
            if component is not None and product is not None and component.pk == product.pk:
                raise serializers.ValidationError({'materials': 'A product cannot be a component of its own recipe'})
        return attrs

    def _write_materials(self, recipe, materials):
        recipe.materials.all().delete()
        for line in materials:
            if line.get('material_type') == 'product' and line.get('quantity_per_sqm') is None:
                line['quantity_per_sqm'] = calculate_product_ratio(line['component_product'], recipe.product) \
                    .quantize(Decimal('0.0001'))
            RecipeMaterial.objects.create(recipe=recipe, **line)

    def create(self, validated_data):
        materials = validated_data.pop('materials', [])
        with transaction.atomic():
            recipe = Recipe.objects.create(**validated_data)
            self._write_materials(recipe, materials)
        return recipe

    def update(self, instance, validated_data):
        materials = validated_data.pop('materials', None)
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            if materials is not None:
                instance.version += 1
                self._write_materials(instance, materials)
            instance.save()
        return instance
