from django.contrib import admin
from .models import Order, OrderItem, OrderPayment


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ['product_type', 'product', 'raw_material', 'product_name', 'quantity', 'unit_price', 'pricing_unit',
              'gst_rate', 'gst_included', 'total_price']
    readonly_fields = ['total_price']


class OrderPaymentInline(admin.TabularInline):
    model = OrderPayment
    extra = 0
    readonly_fields = ['created_by', 'created_at']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer_name', 'order_date', 'status', 'priority', 'total_amount',
                    'paid_amount', 'outstanding_amount']
    list_filter = ['status', 'priority', 'order_date']
    search_fields = ['order_number', 'customer_name', 'customer_phone']
    readonly_fields = ['order_number', 'subtotal', 'gst_amount', 'total_amount', 'outstanding_amount',
                       'accepted_at', 'dispatched_at', 'delivered_at', 'cancelled_at', 'created_at', 'updated_at']
    inlines = [OrderItemInline, OrderPaymentInline]
    ordering = ['-order_date']
