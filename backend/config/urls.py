"""
URL configuration for the backend project.

Every app mounts its routes under /api/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Carpet ERP Admin Panel"
admin.site.site_title = "Carpet ERP Admin Portal"
admin.site.index_title = "Welcome to the Carpet ERP Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('backend.core.urls')),
    path('api/', include('backend.dropdowns.urls')),
    path('api/', include('backend.parties.urls')),
    path('api/', include('backend.materials.urls')),
    path('api/', include('backend.catalog.urls')),
    path('api/', include('backend.orders.urls')),
    path('api/', include('backend.production.urls')),
    path('api/', include('backend.purchasing.urls')),
    path('api/', include('backend.notifications.urls')),
    path('api/', include('backend.reports.urls')),
]
