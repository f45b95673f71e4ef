from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard/', views.dashboard, name='report-dashboard'),
    path('reports/sales/', views.sales_report, name='report-sales'),
    path('reports/inventory/', views.inventory_report, name='report-inventory'),
    path('reports/production/', views.production_report, name='report-production'),
]
