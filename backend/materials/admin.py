from django.contrib import admin
from .models import RawMaterial, MaterialStockMovement


@admin.register(RawMaterial)
class RawMaterialAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'current_stock', 'unit', 'min_threshold', 'cost_per_unit',
                    'supplier_name', 'status', 'updated_at']
    list_filter = ['status', 'category', 'unit']
    search_fields = ['name', 'category', 'supplier_name', 'batch_number']
    readonly_fields = ['status', 'last_restocked']
    ordering = ['name']


@admin.register(MaterialStockMovement)
class MaterialStockMovementAdmin(admin.ModelAdmin):
    list_display = ['material', 'movement_type', 'quantity', 'reason', 'stock_after', 'created_by', 'created_at']
    list_filter = ['movement_type', 'reason', 'created_at']
    search_fields = ['material__name', 'reference', 'notes']
    ordering = ['-created_at']
