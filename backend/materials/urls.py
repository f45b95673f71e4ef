from django.urls import path
from .views import (
    raw_material_list_create, raw_material_detail, raw_material_stats, raw_material_adjust_stock,
    raw_material_movements, raw_material_export, raw_material_import
)

urlpatterns = [
    path('raw-materials/', raw_material_list_create, name='raw-material-list-create'),
    path('raw-materials/stats/', raw_material_stats, name='raw-material-stats'),
    path('raw-materials/export/', raw_material_export, name='raw-material-export'),
    path('raw-materials/import/', raw_material_import, name='raw-material-import'),
    path('raw-materials/<int:pk>/', raw_material_detail, name='raw-material-detail'),
    path('raw-materials/<int:pk>/adjust-stock/', raw_material_adjust_stock, name='raw-material-adjust-stock'),
    path('raw-materials/<int:pk>/movements/', raw_material_movements, name='raw-material-movements'),
]
