from django.urls import path
from .views import (
    batch_list_create, batch_detail, batch_stage_start, batch_stage_complete, batch_cancel, batch_consumption,
    batch_waste, production_stats, machine_list_create, machine_detail, waste_list, waste_return
)

urlpatterns = [
    path('production/batches/', batch_list_create, name='batch-list-create'),
    path('production/batches/<int:pk>/', batch_detail, name='batch-detail'),
    path('production/batches/<int:pk>/stages/<str:stage>/start/', batch_stage_start, name='batch-stage-start'),
    path('production/batches/<int:pk>/stages/<str:stage>/complete/', batch_stage_complete,
         name='batch-stage-complete'),
    path('production/batches/<int:pk>/cancel/', batch_cancel, name='batch-cancel'),
    path('production/batches/<int:pk>/consumption/', batch_consumption, name='batch-consumption'),
    path('production/batches/<int:pk>/waste/', batch_waste, name='batch-waste'),
    path('production/stats/', production_stats, name='production-stats'),
    path('production/machines/', machine_list_create, name='machine-list-create'),
    path('production/machines/<int:pk>/', machine_detail, name='machine-detail'),
    path('production/waste/', waste_list, name='waste-list'),
    path('production/waste/<int:pk>/return/', waste_return, name='waste-return'),
]
