from django.urls import path
from .views import (
    product_list_create, product_detail, product_stats, product_export, product_individual_products,
    individual_product_list, individual_product_detail, individual_product_by_qr, individual_product_stats,
    individual_product_label,
    recipe_list_create, recipe_detail, recipe_by_product, recipe_calculate
)

urlpatterns = [
    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/stats/', product_stats, name='product-stats'),
    path('products/export/', product_export, name='product-export'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/individual-products/', product_individual_products, name='product-individual-products'),

    # Individual product endpoints
    path('individual-products/', individual_product_list, name='individual-product-list'),
    path('individual-products/stats/', individual_product_stats, name='individual-product-stats'),
    path('individual-products/qr/<str:qr_code>/', individual_product_by_qr, name='individual-product-by-qr'),
    path('individual-products/<int:pk>/', individual_product_detail, name='individual-product-detail'),
    path('individual-products/<int:pk>/label/', individual_product_label, name='individual-product-label'),

    # Recipe endpoints
    path('recipes/', recipe_list_create, name='recipe-list-create'),
    path('recipes/product/<int:product_id>/', recipe_by_product, name='recipe-by-product'),
    path('recipes/<int:pk>/', recipe_detail, name='recipe-detail'),
    path('recipes/<int:pk>/calculate/', recipe_calculate, name='recipe-calculate'),
]
