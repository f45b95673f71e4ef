from django.contrib import admin
from .models import Product, IndividualProduct, Recipe, RecipeMaterial


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'qr_code', 'category', 'color', 'current_stock', 'individual_stock_tracking',
                    'status', 'created_at']
    list_filter = ['status', 'category', 'individual_stock_tracking', 'created_at']
    search_fields = ['name', 'qr_code', 'category', 'color', 'pattern']
    ordering = ['name']
    readonly_fields = ['qr_code', 'current_stock', 'created_at', 'updated_at']


@admin.register(IndividualProduct)
class IndividualProductAdmin(admin.ModelAdmin):
    list_display = ['serial_number', 'qr_code', 'product', 'batch', 'status', 'quality_grade', 'location']
    list_filter = ['status', 'quality_grade', 'created_at']
    search_fields = ['serial_number', 'qr_code', 'product__name']
    readonly_fields = ['qr_code', 'serial_number', 'created_at', 'updated_at']
    ordering = ['-created_at']


class RecipeMaterialInline(admin.TabularInline):
    model = RecipeMaterial
    extra = 1
    fields = ['material_type', 'raw_material', 'component_product', 'quantity_per_sqm', 'unit', 'waste_factor',
              'cost_per_unit', 'is_optional']


@admin.register(Recipe)
class RecipeAdmin(admin.ModelAdmin):
    list_display = ['product', 'version', 'is_active', 'created_by', 'updated_at']
    list_filter = ['is_active']
    search_fields = ['product__name']
    inlines = [RecipeMaterialInline]
