from rest_framework import serializers

from backend.core.formatting import format_relative_date
from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    relative_time = serializers.SerializerMethodField()
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Notification
        fields = [
            'id', 'notification_type', 'title', 'message', 'priority', 'status', 'module', 'related_id',
            'related_data', 'created_by', 'created_by_username', 'read_at', 'created_at', 'relative_time'
        ]
        read_only_fields = ['created_by', 'read_at', 'created_at']

    def get_relative_time(self, obj):
        return format_relative_date(obj.created_at)
