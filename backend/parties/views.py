import logging
from decimal import Decimal

from django.db.models import Avg, Count, Q, Sum
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.formatting import format_currency
from backend.core.permissions import module_permission
from backend.core.utils import create_activity_log, paginated_response
from backend.core.validation import validate_field
from .gst_lookup import GSTLookupError, lookup_gst_details
from .models import Customer, Supplier
from .serializers import CustomerSerializer, SupplierSerializer

logger = logging.getLogger(__name__)


def _supplier_queryset():
    return Supplier.objects.annotate(
        order_count=Count('purchase_orders', filter=~Q(purchase_orders__status='cancelled'), distinct=True),
        order_value=Sum('purchase_orders__total_amount', filter=~Q(purchase_orders__status='cancelled')),
    )


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('customers')])
def customer_list_create(request):
    """List customers or create a new customer"""
    if request.method == 'GET':
        queryset = Customer.objects.all()

        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(company_name__icontains=search) |
                Q(phone__icontains=search) |
                Q(email__icontains=search) |
                Q(gst_number__icontains=search)
            )
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        customer_type = request.query_params.get('customer_type') or request.query_params.get('type')
        if customer_type:
            queryset = queryset.filter(customer_type=customer_type)
        city = request.query_params.get('city')
        if city:
            queryset = queryset.filter(city__iexact=city)

        return paginated_response(request, queryset.order_by('-created_at', '-id'), CustomerSerializer)

    serializer = CustomerSerializer(data=request.data)
    if serializer.is_valid():
        customer = serializer.save()
        create_activity_log(request=request, action='create', module='customers',
                            object_id=customer.id, object_name=customer.name)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, module_permission('customers')])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_object_or_404(Customer, pk=pk)

    if request.method == 'GET':
        serializer = CustomerSerializer(customer)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CustomerSerializer(customer, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_activity_log(request=request, action='update', module='customers',
                                object_id=customer.id, object_name=customer.name,
                                changes={'fields': sorted(serializer.validated_data.keys())})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if customer.orders.exists():
            return Response(
                {'error': 'Cannot delete a customer with orders. Set the status to inactive instead.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        name = customer.name
        customer.delete()
        create_activity_log(request=request, action='delete', module='customers', object_id=pk, object_name=name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('customers')])
def customer_stats(request):
    """Customer counts and total outstanding amount"""
    stats = Customer.objects.aggregate(
        total=Count('id'),
        active=Count('id', filter=Q(status='active')),
        new=Count('id', filter=Q(status='new')),
        inactive=Count('id', filter=Q(status='inactive')),
        business=Count('id', filter=Q(customer_type='business')),
        individual=Count('id', filter=Q(customer_type='individual')),
        total_outstanding=Sum('outstanding_amount'),
        total_value=Sum('total_value'),
    )
    stats['total_outstanding'] = stats['total_outstanding'] or Decimal('0.00')
    stats['total_value'] = stats['total_value'] or Decimal('0.00')
    stats['total_outstanding_display'] = format_currency(stats['total_outstanding'])
    stats['total_value_display'] = format_currency(stats['total_value'])
    return Response(stats)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('orders', 'view')])
def customer_orders(request, pk):
    """Orders placed by a customer, newest first"""
    from backend.orders.serializers import OrderListSerializer

    customer = get_object_or_404(Customer, pk=pk)
    queryset = customer.orders.select_related('customer').order_by('-order_date', '-id')
    status_filter = request.query_params.get('status')
    if status_filter:
        queryset = queryset.filter(status=status_filter)
    return paginated_response(request, queryset, OrderListSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('customers', 'view')])
def customer_gst_lookup(request, gst_number):
    """Look up registered business details for a GST number"""
    gst_number = gst_number.strip().upper()
    error = validate_field(gst_number, 'GST_NUMBER', 'GST number')
    if error:
        return Response({'error': error}, status=status.HTTP_400_BAD_REQUEST)

    try:
        details = lookup_gst_details(gst_number)
    except GSTLookupError as e:
        return Response({'error': str(e)}, status=e.status_code)
    return Response(details)


# Supplier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('suppliers')])
def supplier_list_create(request):
    """List suppliers or create a new supplier"""
    if request.method == 'GET':
        queryset = _supplier_queryset()

        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(contact_person__icontains=search) |
                Q(phone__icontains=search) |
                Q(email__icontains=search)
            )
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        return paginated_response(request, queryset.order_by('name', 'id'), SupplierSerializer)

    serializer = SupplierSerializer(data=request.data)
    if serializer.is_valid():
        supplier = serializer.save()
        create_activity_log(request=request, action='create', module='suppliers',
                            object_id=supplier.id, object_name=supplier.name)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, module_permission('suppliers')])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    supplier = get_object_or_404(_supplier_queryset(), pk=pk)

    if request.method == 'GET':
        serializer = SupplierSerializer(supplier)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_activity_log(request=request, action='update', module='suppliers',
                                object_id=supplier.id, object_name=supplier.name,
                                changes={'fields': sorted(serializer.validated_data.keys())})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if supplier.purchase_orders.exists():
            return Response(
                {'error': 'Cannot delete a supplier with purchase orders. Set the status to inactive instead.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        name = supplier.name
        supplier.delete()
        create_activity_log(request=request, action='delete', module='suppliers', object_id=pk, object_name=name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('suppliers')])
def supplier_stats(request):
    """Supplier counts, average rating and purchase value"""
    from backend.purchasing.models import PurchaseOrder

    stats = Supplier.objects.aggregate(
        total=Count('id'),
        active=Count('id', filter=Q(status='active')),
        inactive=Count('id', filter=Q(status='inactive')),
        suspended=Count('id', filter=Q(status='suspended')),
        average_rating=Avg('performance_rating'),
    )
    total_value = PurchaseOrder.objects.exclude(status='cancelled').aggregate(
        total=Sum('total_amount')
    )['total'] or Decimal('0.00')

    stats['average_rating'] = round(float(stats['average_rating'] or 0), 1)
    stats['total_purchase_value'] = total_value
    stats['total_purchase_value_display'] = format_currency(total_value)
    return Response(stats)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('purchase_orders', 'view')])
def supplier_purchase_orders(request, pk):
    """Purchase orders placed with a supplier"""
    from backend.purchasing.serializers import PurchaseOrderListSerializer

    supplier = get_object_or_404(Supplier, pk=pk)
    queryset = supplier.purchase_orders.select_related('supplier').order_by('-order_date', '-id')
    return paginated_response(request, queryset, PurchaseOrderListSerializer)
