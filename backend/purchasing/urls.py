from django.urls import path
from .views import (
    purchase_order_list_create, purchase_order_detail, purchase_order_update_status, purchase_order_stats
)

urlpatterns = [
    path('purchase-orders/', purchase_order_list_create, name='purchase-order-list-create'),
    path('purchase-orders/stats/', purchase_order_stats, name='purchase-order-stats'),
    path('purchase-orders/<int:pk>/', purchase_order_detail, name='purchase-order-detail'),
    path('purchase-orders/<int:pk>/status/', purchase_order_update_status, name='purchase-order-update-status'),
]
