"""Utility functions for activity logging, pagination and numbering"""
import logging
from datetime import datetime, timedelta

from django.conf import settings
from django.core.paginator import Paginator
from django.utils import timezone
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from .models import ActivityLog, Setting

logger = logging.getLogger(__name__)

MODULE_LABELS = {
    'products': 'product',
    'materials': 'material',
    'customers': 'customer',
    'suppliers': 'supplier',
    'recipes': 'recipe',
    'orders': 'order',
    'production': 'production batch',
    'purchase_orders': 'purchase order',
    'dropdowns': 'dropdown option',
    'individual_products': 'individual product',
    'users': 'user',
}

INVENTORY_MODULES = ('products', 'materials')


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def describe_activity(user_name, action, module, object_name=None, detail=None):
    """
    Build the sentence shown in the activity feed.

    >>> describe_activity('admin', 'create', 'materials', 'Wool Yarn')
    'admin added new material "Wool Yarn" to inventory'
    """
    actor = user_name or 'System'
    label = MODULE_LABELS.get(module, module)
    target = f'{label} "{object_name}"' if object_name else label

    if action == 'create':
        message = f'{actor} added new {target}'
        if module in INVENTORY_MODULES:
            message += ' to inventory'
    elif action == 'update':
        message = f'{actor} updated {target}'
    elif action == 'delete':
        message = f'{actor} deleted {target}'
    elif action == 'status_change':
        message = f'{actor} changed status of {target}'
        if detail:
            message += f' to {detail}'
        return message
    elif action == 'stock_adjust':
        message = f'{actor} adjusted stock of {target}'
    elif action == 'payment':
        message = f'{actor} recorded a payment on {target}'
    elif action == 'export':
        message = f'{actor} exported {label} list'
    elif action == 'import':
        message = f'{actor} imported {label} list'
    elif action == 'login':
        message = f'{actor} logged in'
    else:
        message = f'{actor} performed {action} on {target}'

    if detail:
        message += f' ({detail})'
    return message


def create_activity_log(request=None, action=None, module=None, object_id=None,
                        object_name=None, changes=None, user=None, detail=None):
    """
    Create an activity log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, status_change, ...)
        module: Module the object belongs to (orders, materials, ...)
        object_id: ID of the object
        object_name: Human-readable name of the object (e.g. material name, order number)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        detail: Extra text appended to the description (e.g. the new status)
    """
    if not action or not module:
        logger.warning(f"Activity log skipped: missing required fields (action={action}, module={module})")
        return None

    try:
        log_user = user
        if log_user is None and request is not None and hasattr(request, 'user'):
            log_user = request.user
        if log_user is not None and not log_user.is_authenticated:
            log_user = None

        user_name = log_user.display_name if log_user else None
        return ActivityLog.objects.create(
            user=log_user,
            action=action,
            module=module,
            object_id=str(object_id) if object_id is not None else '',
            object_name=object_name or '',
            description=describe_activity(user_name, action, module, object_name, detail),
            changes=changes or {},
            ip_address=get_client_ip(request) if request else None,
        )
    except Exception as e:
        # Don't fail the main operation if activity logging fails
        logger.error(f"Failed to create activity log: {str(e)}")
        return None


def get_page_params(request):
    try:
        page = int(request.query_params.get('page', 1))
    except (TypeError, ValueError):
        page = 1
    try:
        page_size = int(request.query_params.get('page_size', settings.DEFAULT_PAGE_SIZE))
    except (TypeError, ValueError):
        page_size = settings.DEFAULT_PAGE_SIZE
    page_size = max(1, min(page_size, settings.MAX_PAGE_SIZE))
    return max(page, 1), page_size


def paginated_response(request, queryset, serializer_class, context=None):
    """Paginate queryset and return the standard list envelope"""
    page, page_size = get_page_params(request)
    paginator = Paginator(queryset, page_size)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj.object_list, many=True, context=context or {'request': request})
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': page_size,
        'total_pages': paginator.num_pages,
    })


def parse_date_param(value, param_name):
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError({param_name: 'Invalid date format. Use YYYY-MM-DD'})


def get_date_range(request, default_days=30):
    """Read date_from/date_to query params, defaulting to the last default_days days"""
    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')

    today = timezone.localdate()
    end = parse_date_param(date_to, 'date_to') if date_to else today
    start = parse_date_param(date_from, 'date_from') if date_from else end - timedelta(days=default_days)
    if start > end:
        raise ValidationError({'date_from': 'date_from must be on or before date_to'})
    return start, end


def get_setting(key, default=None):
    """Return a Setting value, or default when the key is not configured"""
    setting = Setting.objects.filter(key=key).first()
    if setting is None:
        return default
    return setting.value


def generate_document_number(model, field, prefix, on_date=None):
    """
    Next sequential number for the day, e.g. ON-20240115-0003.

    Looks at existing numbers with the same prefix and date and adds one.
    """
    on_date = on_date or timezone.localdate()
    base = f"{prefix}-{on_date.strftime('%Y%m%d')}-"
    existing = model.objects.filter(**{f'{field}__startswith': base}).values_list(field, flat=True)

    max_number = 0
    for number in existing:
        try:
            max_number = max(max_number, int(number[len(base):]))
        except ValueError:
            continue

    candidate = f"{base}{max_number + 1:04d}"
    while model.objects.filter(**{field: candidate}).exists():
        max_number += 1
        candidate = f"{base}{max_number + 1:04d}"
    return candidate
