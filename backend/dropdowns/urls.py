from django.urls import path
from .views import (
    dropdown_list_create, dropdown_detail, dropdown_by_category, dropdown_grouped,
    dropdown_categories, dropdown_product_bundle, dropdown_toggle_active, dropdown_update_order
)

urlpatterns = [
    path('dropdowns/', dropdown_list_create, name='dropdown-list-create'),
    path('dropdowns/grouped/', dropdown_grouped, name='dropdown-grouped'),
    path('dropdowns/categories/', dropdown_categories, name='dropdown-categories'),
    path('dropdowns/products/', dropdown_product_bundle, name='dropdown-product-bundle'),
    path('dropdowns/update-order/', dropdown_update_order, name='dropdown-update-order'),
    path('dropdowns/category/<str:category>/', dropdown_by_category, name='dropdown-by-category'),
    path('dropdowns/<int:pk>/', dropdown_detail, name='dropdown-detail'),
    path('dropdowns/<int:pk>/toggle-active/', dropdown_toggle_active, name='dropdown-toggle-active'),
]
