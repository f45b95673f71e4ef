from django.db import models
from backend.core.models import User


class Notification(models.Model):
    """In-app notifications shown in the notification dropdown"""
    TYPE_CHOICES = [
        ('info', 'Info'),
        ('warning', 'Warning'),
        ('error', 'Error'),
        ('success', 'Success'),
        ('production_request', 'Production Request'),
        ('restock_request', 'Restock Request'),
        ('low_stock', 'Low Stock'),
        ('order_alert', 'Order Alert'),
        ('activity_log', 'Activity Log'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    STATUS_CHOICES = [
        ('unread', 'Unread'),
        ('read', 'Read'),
        ('dismissed', 'Dismissed'),
    ]

    MODULE_CHOICES = [
        ('orders', 'Orders'),
        ('products', 'Products'),
        ('materials', 'Materials'),
        ('production', 'Production'),
        ('activity', 'Activity'),
    ]

    notification_type = models.CharField(max_length=30, choices=TYPE_CHOICES, default='info')
    title = models.CharField(max_length=200)
    message = models.TextField()
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='unread')
    module = models.CharField(max_length=20, choices=MODULE_CHOICES, default='activity')
    related_id = models.CharField(max_length=100, blank=True)
    related_data = models.JSONField(default=dict, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='notifications_created')
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"[{self.notification_type}] {self.title}"

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status', 'module'], name='notification_status_idx'),
            models.Index(fields=['notification_type', 'related_id'], name='notification_related_idx'),
        ]
