from django.contrib import admin
from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'notification_type', 'module', 'priority', 'status', 'created_at']
    list_filter = ['notification_type', 'module', 'priority', 'status']
    search_fields = ['title', 'message', 'related_id']
    readonly_fields = ['created_at', 'read_at']
    ordering = ['-created_at']
