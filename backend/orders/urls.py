from django.urls import path
from .views import (
    order_list_create, order_detail, order_update_status, order_payments, order_stats, order_calculate_price
)

urlpatterns = [
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/stats/', order_stats, name='order-stats'),
    path('orders/calculate-price/', order_calculate_price, name='order-calculate-price'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/status/', order_update_status, name='order-update-status'),
    path('orders/<int:pk>/payments/', order_payments, name='order-payments'),
]
