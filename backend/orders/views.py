import logging
from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.catalog.models import Product
from backend.core.formatting import format_currency
from backend.core.permissions import module_permission
from backend.core.utils import create_activity_log, paginated_response, parse_date_param
from .models import Order
from .pricing import calculate_item_price, get_available_pricing_units, get_suggested_pricing_unit, \
    product_dimensions
from .serializers import (
    OrderListSerializer, OrderPaymentSerializer, OrderSerializer, OrderStatusSerializer,
    PriceCalculationSerializer
)
from .services import OrderError, change_status, create_order, record_payment, release_individual_products, \
    update_order

logger = logging.getLogger(__name__)


def _order_queryset():
    return Order.objects.select_related('customer', 'created_by').prefetch_related(
        'items__individual_products', 'items__product', 'items__raw_material'
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('orders')])
def order_list_create(request):
    """List orders or create a new order with its items"""
    if request.method == 'GET':
        queryset = Order.objects.select_related('customer').annotate(item_count=Count('items'))

        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(order_number__icontains=search) |
                Q(customer_name__icontains=search) |
                Q(customer_phone__icontains=search)
            )
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status__in=status_filter.split(','))
        customer = request.query_params.get('customer')
        if customer:
            queryset = queryset.filter(customer_id=customer)
        priority = request.query_params.get('priority')
        if priority:
            queryset = queryset.filter(priority=priority)
        date_from = request.query_params.get('date_from')
        if date_from:
            queryset = queryset.filter(order_date__gte=parse_date_param(date_from, 'date_from'))
        date_to = request.query_params.get('date_to')
        if date_to:
            queryset = queryset.filter(order_date__lte=parse_date_param(date_to, 'date_to'))

        return paginated_response(request, queryset.order_by('-order_date', '-id'), OrderListSerializer)

    serializer = OrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = dict(serializer.validated_data)
    items = data.pop('items')
    try:
        order = create_order(data, items, user=request.user)
    except OrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='create', module='orders', object_id=order.id,
                        object_name=order.order_number,
                        changes={'customer': order.customer_name, 'total_amount': str(order.total_amount)})
    return Response(OrderSerializer(_order_queryset().get(pk=order.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, module_permission('orders')])
def order_detail(request, pk):
    """Retrieve, update or delete an order"""
    order = get_object_or_404(_order_queryset(), pk=pk)

    if request.method == 'GET':
        serializer = OrderSerializer(order)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = OrderSerializer(order, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = dict(serializer.validated_data)
        items = data.pop('items', None)
        try:
            order = update_order(order, data, items)
        except OrderError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        create_activity_log(request=request, action='update', module='orders', object_id=order.id,
                            object_name=order.order_number,
                            changes={'fields': sorted(serializer.validated_data.keys())})
        return Response(OrderSerializer(_order_queryset().get(pk=order.pk)).data)
    else:  # DELETE
        if order.status not in ('pending', 'cancelled'):
            return Response({'error': 'Only pending or cancelled orders can be deleted'},
                            status=status.HTTP_400_BAD_REQUEST)
        if order.payments.exists():
            return Response({'error': 'Cannot delete an order with recorded payments'},
                            status=status.HTTP_400_BAD_REQUEST)
        if order.status == 'pending':
            release_individual_products(order)
        number = order.order_number
        customer = order.customer
        order.delete()
        customer.refresh_order_totals()
        create_activity_log(request=request, action='delete', module='orders', object_id=pk, object_name=number)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, module_permission('orders', 'edit')])
def order_update_status(request, pk):
    """Move an order along its workflow"""
    order = get_object_or_404(Order.objects.select_related('customer'), pk=pk)
    serializer = OrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    new_status = serializer.validated_data['status']
    try:
        old_status = change_status(order, new_status, user=request.user)
    except OrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='status_change', module='orders', object_id=order.id,
                        object_name=order.order_number, detail=order.get_status_display(),
                        changes={'status': {'old': old_status, 'new': new_status},
                                 'notes': serializer.validated_data.get('notes', '')})
    return Response(OrderSerializer(_order_queryset().get(pk=order.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, module_permission('orders', 'edit')])
def order_payments(request, pk):
    """Record a payment against an order"""
    order = get_object_or_404(Order.objects.select_related('customer'), pk=pk)

    serializer = OrderPaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        order, payment = record_payment(
            order, data['amount'], data.get('payment_method', 'cash'), data.get('reference', ''),
            data.get('notes', ''), user=request.user,
        )
    except OrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='payment', module='orders', object_id=order.id,
                        object_name=order.order_number, detail=format_currency(payment.amount),
                        changes={'amount': str(payment.amount), 'payment_method': payment.payment_method,
                                 'outstanding_amount': str(order.outstanding_amount)})
    return Response({
        'payment': OrderPaymentSerializer(payment).data,
        'paid_amount': order.paid_amount,
        'outstanding_amount': order.outstanding_amount,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('orders')])
def order_stats(request):
    """Order counts by status and money totals (cancelled orders excluded from money)"""
    active = ~Q(status='cancelled')
    stats = Order.objects.aggregate(
        total_orders=Count('id'),
        pending=Count('id', filter=Q(status='pending')),
        accepted=Count('id', filter=Q(status='accepted')),
        in_production=Count('id', filter=Q(status='in_production')),
        ready=Count('id', filter=Q(status='ready')),
        dispatched=Count('id', filter=Q(status='dispatched')),
        delivered=Count('id', filter=Q(status='delivered')),
        cancelled=Count('id', filter=Q(status='cancelled')),
        total_revenue=Sum('total_amount', filter=active),
        total_paid=Sum('paid_amount', filter=active),
        total_outstanding=Sum('outstanding_amount', filter=active),
    )
    today = timezone.localdate()
    stats['today_orders'] = Order.objects.filter(order_date=today).count()
    for key in ('total_revenue', 'total_paid', 'total_outstanding'):
        stats[key] = stats[key] or Decimal('0.00')
        stats[f'{key}_display'] = format_currency(stats[key])
    return Response(stats)


@api_view(['POST'])
@permission_classes([IsAuthenticated, module_permission('orders', 'view')])
def order_calculate_price(request):
    """
    Price a line before it is added to an order.

    Dimensions come from the product when one is given, else from the
    length/width/weight/gsm fields of the request.
    """
    serializer = PriceCalculationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    if data.get('product'):
        product = get_object_or_404(Product, pk=data['product'])
        dimensions = product_dimensions(product)
        if data.get('gsm'):
            dimensions['gsm'] = data['gsm']
    else:
        dimensions = {key: data.get(key) for key in ('length', 'width', 'length_unit', 'width_unit', 'weight', 'gsm')}

    result = calculate_item_price(
        data['unit_price'], data['quantity'], data['pricing_unit'], dimensions,
        data.get('gst_rate'), data['gst_included'],
    )
    result['available_pricing_units'] = get_available_pricing_units(dimensions)
    result['suggested_pricing_unit'] = get_suggested_pricing_unit(dimensions)
    result['total_price_display'] = format_currency(result['total_price'])
    return Response(result)
