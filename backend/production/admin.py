from django.contrib import admin
from .models import Machine, MaterialConsumption, ProductionBatch, ProductionStage, Wastage


class ProductionStageInline(admin.TabularInline):
    model = ProductionStage
    extra = 0
    fields = ['stage', 'status', 'machine', 'started_at', 'completed_at']
    readonly_fields = ['stage', 'started_at', 'completed_at']


class MaterialConsumptionInline(admin.TabularInline):
    model = MaterialConsumption
    extra = 0
    fields = ['material_type', 'raw_material', 'product', 'quantity', 'unit', 'cost', 'deducted']
    readonly_fields = ['deducted']


@admin.register(ProductionBatch)
class ProductionBatchAdmin(admin.ModelAdmin):
    list_display = ['batch_number', 'product', 'planned_quantity', 'actual_quantity', 'status', 'priority',
                    'start_date', 'completion_date']
    list_filter = ['status', 'priority']
    search_fields = ['batch_number', 'product__name', 'operator']
    readonly_fields = ['batch_number', 'cancelled_at', 'created_at', 'updated_at']
    inlines = [ProductionStageInline, MaterialConsumptionInline]


@admin.register(Machine)
class MachineAdmin(admin.ModelAdmin):
    list_display = ['name', 'machine_type', 'status', 'location']
    list_filter = ['status']
    search_fields = ['name']


@admin.register(Wastage)
class WastageAdmin(admin.ModelAdmin):
    list_display = ['batch', 'waste_type', 'raw_material', 'quantity', 'unit', 'status', 'created_at']
    list_filter = ['status', 'waste_type']
