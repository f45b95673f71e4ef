from django.contrib import admin
from .models import Customer, Supplier


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'company_name', 'phone', 'city', 'customer_type', 'status',
                    'total_orders', 'outstanding_amount', 'created_at']
    list_filter = ['status', 'customer_type', 'created_at']
    search_fields = ['name', 'company_name', 'phone', 'email', 'gst_number']
    readonly_fields = ['total_orders', 'total_value', 'outstanding_amount', 'last_order_date']
    ordering = ['name']


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['name', 'contact_person', 'phone', 'city', 'performance_rating', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['name', 'contact_person', 'email', 'gst_number']
    ordering = ['name']
