import logging
from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.catalog.models import IndividualProduct, Product
from backend.core.formatting import format_currency
from backend.core.models import ActivityLog
from backend.core.serializers import ActivityLogSerializer
from backend.core.utils import get_date_range
from backend.materials.models import RawMaterial
from backend.notifications.models import Notification
from backend.orders.models import Order, OrderItem
from backend.parties.models import Customer
from backend.production.models import ProductionBatch, Wastage

logger = logging.getLogger('backend.reports')

ZERO = Decimal('0.00')
LOW_STOCK = ['low-stock', 'out-of-stock']
ACTIVE_BATCH_STATUSES = ['planned', 'in_progress', 'in_production']


def _money(value):
    return value or ZERO


def _status_counts(queryset, choices):
    counts = {value: 0 for value, _ in choices}
    for row in queryset.values('status').annotate(count=Count('id')):
        counts[row['status']] = row['count']
    return counts


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard(request):
    """Headline counts, this month's revenue and the latest activity"""
    today = timezone.localdate()
    month_start = today.replace(day=1)

    orders = Order.objects.aggregate(
        total=Count('id'),
        pending=Count('id', filter=Q(status='pending')),
    )
    revenue = Order.objects.exclude(status='cancelled').filter(
        order_date__gte=month_start, order_date__lte=today
    ).aggregate(total=Sum('total_amount'))['total']

    recent_activity = ActivityLog.objects.select_related('user').order_by('-created_at')[:10]

    return Response({
        'total_customers': Customer.objects.count(),
        'total_orders': orders['total'],
        'pending_orders': orders['pending'],
        'total_products': Product.objects.count(),
        'low_stock_products': Product.objects.filter(status__in=LOW_STOCK).count(),
        'low_stock_materials': RawMaterial.objects.filter(status__in=LOW_STOCK).count(),
        'active_batches': ProductionBatch.objects.filter(status__in=ACTIVE_BATCH_STATUSES).count(),
        'unread_notifications': Notification.objects.filter(status='unread').count(),
        'revenue_this_month': _money(revenue),
        'revenue_this_month_display': format_currency(_money(revenue)),
        'recent_activity': ActivityLogSerializer(recent_activity, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sales_report(request):
    """Sales summary for a date range (default last 30 days); cancelled orders are left out"""
    date_from, date_to = get_date_range(request, default_days=30)
    orders = Order.objects.exclude(status='cancelled').filter(order_date__gte=date_from, order_date__lte=date_to)

    totals = orders.aggregate(
        count=Count('id'),
        revenue=Sum('total_amount'),
        gst=Sum('gst_amount'),
        paid=Sum('paid_amount'),
        outstanding=Sum('outstanding_amount'),
    )

    daily = [
        {
            'date': row['order_date'].isoformat(),
            'orders': row['orders'],
            'revenue': _money(row['revenue']),
        }
        for row in orders.values('order_date').annotate(
            orders=Count('id'), revenue=Sum('total_amount')
        ).order_by('order_date')
    ]

    top_customers = [
        {
            'customer_id': row['customer_id'],
            'customer_name': row['customer_name'],
            'orders': row['orders'],
            'revenue': _money(row['revenue']),
            'revenue_display': format_currency(_money(row['revenue'])),
        }
        for row in orders.values('customer_id', 'customer_name').annotate(
            orders=Count('id'), revenue=Sum('total_amount')
        ).order_by('-revenue')[:10]
    ]

    top_products = [
        {
            'product_id': row['product_id'],
            'product_name': row['product_name'],
            'quantity': row['quantity'],
            'revenue': _money(row['revenue']),
        }
        for row in OrderItem.objects.filter(order__in=orders, product_type='product').values(
            'product_id', 'product_name'
        ).annotate(quantity=Sum('quantity'), revenue=Sum('total_price')).order_by('-revenue')[:10]
    ]

    revenue = _money(totals['revenue'])
    return Response({
        'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
        'summary': {
            'total_orders': totals['count'],
            'total_revenue': revenue,
            'total_revenue_display': format_currency(revenue),
            'total_gst': _money(totals['gst']),
            'total_gst_display': format_currency(_money(totals['gst'])),
            'total_paid': _money(totals['paid']),
            'total_paid_display': format_currency(_money(totals['paid'])),
            'total_outstanding': _money(totals['outstanding']),
            'total_outstanding_display': format_currency(_money(totals['outstanding'])),
            'average_order_value': (revenue / totals['count']).quantize(Decimal('0.01')) if totals['count'] else ZERO,
        },
        'daily': daily,
        'top_customers': top_customers,
        'top_products': top_products,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_report(request):
    materials = RawMaterial.objects.all()
    stock_value = sum((material.total_value for material in materials), ZERO)

    low_stock = [
        {
            'id': material.id,
            'name': material.name,
            'current_stock': material.current_stock,
            'min_threshold': material.min_threshold,
            'unit': material.unit,
            'status': material.status,
        }
        for material in materials.filter(status__in=LOW_STOCK).order_by('current_stock')
    ]

    return Response({
        'materials': {
            'total': materials.count(),
            'by_status': _status_counts(materials, RawMaterial.STATUS_CHOICES),
            'stock_value': stock_value.quantize(Decimal('0.01')),
            'stock_value_display': format_currency(stock_value),
            'low_stock': low_stock,
        },
        'products': {
            'total': Product.objects.count(),
            'by_status': _status_counts(Product.objects.all(), Product.STATUS_CHOICES),
            'total_stock': Product.objects.aggregate(total=Sum('current_stock'))['total'] or 0,
        },
        'individual_products': {
            'total': IndividualProduct.objects.count(),
            'by_status': _status_counts(IndividualProduct.objects.all(), IndividualProduct.STATUS_CHOICES),
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def production_report(request):
    """Batches created in the date range (default last 30 days) with their output and waste"""
    date_from, date_to = get_date_range(request, default_days=30)
    batches = ProductionBatch.objects.filter(created_at__date__gte=date_from, created_at__date__lte=date_to)

    quantities = batches.aggregate(planned=Sum('planned_quantity'), actual=Sum('actual_quantity'))
    completed = batches.filter(status='completed').aggregate(
        planned=Sum('planned_quantity'), actual=Sum('actual_quantity')
    )
    completed_planned = completed['planned'] or 0
    efficiency = round((completed['actual'] or 0) * 100 / completed_planned, 1) if completed_planned else None

    waste_by_type = {value: {'label': label, 'quantity': ZERO, 'entries': 0}
                     for value, label in Wastage.WASTE_TYPE_CHOICES}
    for row in Wastage.objects.filter(batch__in=batches).values('waste_type').annotate(
        quantity=Sum('quantity'), entries=Count('id')
    ):
        waste_by_type[row['waste_type']].update(quantity=row['quantity'], entries=row['entries'])

    by_product = [
        {
            'product_id': row['product_id'],
            'product_name': row['product__name'],
            'batches': row['batches'],
            'planned_quantity': row['planned'],
            'actual_quantity': row['actual'] or 0,
        }
        for row in batches.values('product_id', 'product__name').annotate(
            batches=Count('id'), planned=Sum('planned_quantity'), actual=Sum('actual_quantity')
        ).order_by('-planned')
    ]

    return Response({
        'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
        'total_batches': batches.count(),
        'by_status': _status_counts(batches, ProductionBatch.STATUS_CHOICES),
        'planned_quantity': quantities['planned'] or 0,
        'actual_quantity': quantities['actual'] or 0,
        'completion_rate': efficiency,
        'by_product': by_product,
        'waste_by_type': waste_by_type,
    })
