import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Notification
from .serializers import NotificationSerializer

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _int_param(request, name, default, maximum=None):
    try:
        value = int(request.query_params.get(name, default))
    except (TypeError, ValueError):
        value = default
    value = max(0, value)
    return min(value, maximum) if maximum is not None else value


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def notification_list_create(request):
    """
    List notifications newest first as {data, total}, or create one.

    Filters: module, status, type; paging with limit/offset.
    """
    if request.method == 'GET':
        queryset = Notification.objects.select_related('created_by')
        module = request.query_params.get('module')
        if module:
            queryset = queryset.filter(module=module)
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        notification_type = request.query_params.get('type')
        if notification_type:
            queryset = queryset.filter(notification_type=notification_type)
        priority = request.query_params.get('priority')
        if priority:
            queryset = queryset.filter(priority=priority)

        limit = _int_param(request, 'limit', DEFAULT_LIMIT, MAX_LIMIT) or DEFAULT_LIMIT
        offset = _int_param(request, 'offset', 0)
        queryset = queryset.order_by('-created_at', '-id')
        total = queryset.count()
        serializer = NotificationSerializer(queryset[offset:offset + limit], many=True)
        return Response({'data': serializer.data, 'total': total})

    serializer = NotificationSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(created_by=request.user)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def notification_detail(request, pk):
    notification = get_object_or_404(Notification, pk=pk)

    if request.method == 'GET':
        return Response(NotificationSerializer(notification).data)
    elif request.method == 'PATCH':
        serializer = NotificationSerializer(notification, data=request.data, partial=True)
        if serializer.is_valid():
            new_status = serializer.validated_data.get('status')
            if new_status == 'read' and notification.read_at is None:
                notification = serializer.save(read_at=timezone.now())
            elif new_status == 'unread':
                notification = serializer.save(read_at=None)
            else:
                notification = serializer.save()
            return Response(NotificationSerializer(notification).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        notification.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_read(request, pk):
    notification = get_object_or_404(Notification, pk=pk)
    if notification.status != 'read':
        notification.status = 'read'
        notification.read_at = timezone.now()
        notification.save(update_fields=['status', 'read_at'])
    return Response(NotificationSerializer(notification).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_all_read(request):
    """Mark every unread notification (optionally of one module) as read"""
    queryset = Notification.objects.filter(status='unread')
    module = request.data.get('module') or request.query_params.get('module')
    if module:
        queryset = queryset.filter(module=module)
    updated = queryset.update(status='read', read_at=timezone.now())
    logger.info(f"{request.user.username} marked {updated} notifications as read")
    return Response({'updated': updated})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_unread_count(request):
    queryset = Notification.objects.filter(status='unread')
    counts = {}
    for module in queryset.values_list('module', flat=True):
        counts[module] = counts.get(module, 0) + 1
    return Response({'count': sum(counts.values()), 'by_module': counts})
