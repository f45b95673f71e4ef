from django.contrib import admin
from .models import PurchaseOrder, PurchaseOrderItem


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    readonly_fields = ['total_price']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'supplier', 'order_date', 'expected_delivery', 'status', 'total_amount',
                    'stock_received']
    list_filter = ['status', 'stock_received', 'order_date']
    search_fields = ['order_number', 'supplier__name']
    readonly_fields = ['order_number', 'total_amount', 'actual_delivery', 'stock_received', 'created_at',
                       'updated_at']
    inlines = [PurchaseOrderItemInline]
