from django.urls import path
from .views import (
    customer_list_create, customer_detail, customer_stats, customer_orders, customer_gst_lookup,
    supplier_list_create, supplier_detail, supplier_stats, supplier_purchase_orders
)

urlpatterns = [
    # Customer endpoints
    path('customers/', customer_list_create, name='customer-list-create'),
    path('customers/stats/', customer_stats, name='customer-stats'),
    path('customers/gst-lookup/<str:gst_number>/', customer_gst_lookup, name='customer-gst-lookup'),
    path('customers/<int:pk>/', customer_detail, name='customer-detail'),
    path('customers/<int:pk>/orders/', customer_orders, name='customer-orders'),

    # Supplier endpoints
    path('suppliers/', supplier_list_create, name='supplier-list-create'),
    path('suppliers/stats/', supplier_stats, name='supplier-stats'),
    path('suppliers/<int:pk>/', supplier_detail, name='supplier-detail'),
    path('suppliers/<int:pk>/purchase-orders/', supplier_purchase_orders, name='supplier-purchase-orders'),
]
