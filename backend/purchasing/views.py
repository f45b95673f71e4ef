import logging
from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.formatting import format_currency
from backend.core.permissions import module_permission
from backend.core.utils import create_activity_log, paginated_response, parse_date_param
from .models import PurchaseOrder
from .serializers import PurchaseOrderListSerializer, PurchaseOrderSerializer, PurchaseOrderStatusSerializer
from .services import PurchaseOrderError, change_status

logger = logging.getLogger(__name__)


def _purchase_order_queryset():
    return PurchaseOrder.objects.select_related('supplier', 'created_by').prefetch_related('items')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('purchase_orders')])
def purchase_order_list_create(request):
    """List purchase orders or create a new one"""
    if request.method == 'GET':
        queryset = PurchaseOrder.objects.select_related('supplier')

        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(order_number__icontains=search) |
                Q(supplier__name__icontains=search) |
                Q(items__material_name__icontains=search)
            ).distinct()
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status__in=status_filter.split(','))
        supplier = request.query_params.get('supplier')
        if supplier:
            queryset = queryset.filter(supplier_id=supplier)
        date_from = request.query_params.get('date_from')
        if date_from:
            queryset = queryset.filter(order_date__gte=parse_date_param(date_from, 'date_from'))
        date_to = request.query_params.get('date_to')
        if date_to:
            queryset = queryset.filter(order_date__lte=parse_date_param(date_to, 'date_to'))

        return paginated_response(request, queryset.order_by('-order_date', '-id'), PurchaseOrderListSerializer)

    serializer = PurchaseOrderSerializer(data=request.data)
    if serializer.is_valid():
        purchase_order = serializer.save(created_by=request.user)
        create_activity_log(request=request, action='create', module='purchase_orders',
                            object_id=purchase_order.id, object_name=purchase_order.order_number,
                            changes={'supplier': purchase_order.supplier.name,
                                     'total_amount': str(purchase_order.total_amount)})
        return Response(PurchaseOrderSerializer(purchase_order).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, module_permission('purchase_orders')])
def purchase_order_detail(request, pk):
    purchase_order = get_object_or_404(_purchase_order_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(PurchaseOrderSerializer(purchase_order).data)
    elif request.method in ('PUT', 'PATCH'):
        if purchase_order.status in ('delivered', 'cancelled'):
            return Response({'error': f'A {purchase_order.status} purchase order cannot be edited'},
                            status=status.HTTP_400_BAD_REQUEST)
        serializer = PurchaseOrderSerializer(purchase_order, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            purchase_order = serializer.save()
            create_activity_log(request=request, action='update', module='purchase_orders',
                                object_id=purchase_order.id, object_name=purchase_order.order_number,
                                changes={'fields': sorted(serializer.validated_data.keys())})
            return Response(PurchaseOrderSerializer(_purchase_order_queryset().get(pk=pk)).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if purchase_order.status not in ('pending', 'cancelled'):
            return Response({'error': 'Only pending or cancelled purchase orders can be deleted'},
                            status=status.HTTP_400_BAD_REQUEST)
        order_number = purchase_order.order_number
        purchase_order.delete()
        create_activity_log(request=request, action='delete', module='purchase_orders', object_id=pk,
                            object_name=order_number)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, module_permission('purchase_orders', 'edit')])
def purchase_order_update_status(request, pk):
    """Change status; delivery adds the ordered quantities to stock"""
    purchase_order = get_object_or_404(_purchase_order_queryset(), pk=pk)
    serializer = PurchaseOrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    new_status = serializer.validated_data['status']
    try:
        old_status = change_status(purchase_order, new_status, user=request.user)
    except PurchaseOrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='update', module='purchase_orders',
                        object_id=purchase_order.id, object_name=purchase_order.order_number,
                        changes={'status': {'from': old_status, 'to': new_status}})
    return Response(PurchaseOrderSerializer(_purchase_order_queryset().get(pk=pk)).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('purchase_orders')])
def purchase_order_stats(request):
    stats = PurchaseOrder.objects.aggregate(
        total_orders=Count('id'),
        pending_orders=Count('id', filter=Q(status='pending')),
        approved_orders=Count('id', filter=Q(status='approved')),
        in_transit_orders=Count('id', filter=Q(status__in=['shipped', 'in-transit'])),
        delivered_orders=Count('id', filter=Q(status='delivered')),
        cancelled_orders=Count('id', filter=Q(status='cancelled')),
    )
    total_value = PurchaseOrder.objects.exclude(status='cancelled').aggregate(
        total=Sum('total_amount')
    )['total'] or Decimal('0.00')
    stats['total_value'] = total_value
    stats['total_value_display'] = format_currency(total_value)
    return Response(stats)
