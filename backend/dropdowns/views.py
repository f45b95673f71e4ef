import logging

from django.core.cache import cache
from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.cache_utils import DROPDOWNS_CACHE_TTL
from backend.core.permissions import module_permission
from backend.core.utils import create_activity_log
from .cache_signals import GROUPED_CACHE_KEY, PRODUCT_BUNDLE_CACHE_KEY
from .models import DropdownOption
from .serializers import DropdownOptionSerializer, DisplayOrderUpdateSerializer

logger = logging.getLogger(__name__)

# Response key -> dropdown category for the product form bundle
PRODUCT_BUNDLE_CATEGORIES = {
    'units': 'unit',
    'colors': 'color',
    'patterns': 'pattern',
    'weights': 'weight',
    'categories': 'category',
    'subcategories': 'subcategory',
    'lengths': 'length',
    'widths': 'width',
    'heights': 'height',
    'thicknesses': 'thickness',
    'weight_units': 'weight_units',
    'length_units': 'length_units',
    'width_units': 'width_units',
}

VALID_CATEGORIES = {choice for choice, _ in DropdownOption.CATEGORY_CHOICES}


def _parse_bool(value):
    return str(value).lower() in ('1', 'true', 'yes')


def _log_option(request, action, option):
    create_activity_log(
        request=request,
        action=action,
        module='dropdowns',
        object_id=option.id,
        object_name=f"{option.category}: {option.value}",
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('dropdowns')])
def dropdown_list_create(request):
    """List dropdown options or create a new one"""
    if request.method == 'GET':
        queryset = DropdownOption.objects.all()

        category = request.query_params.get('category')
        if category:
            queryset = queryset.filter(category=category)
        is_active = request.query_params.get('is_active')
        if is_active is not None:
            queryset = queryset.filter(is_active=_parse_bool(is_active))
        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(Q(value__icontains=search) | Q(category__icontains=search))

        serializer = DropdownOptionSerializer(queryset.order_by('category', 'display_order', 'value'), many=True)
        return Response(serializer.data)

    serializer = DropdownOptionSerializer(data=request.data)
    if serializer.is_valid():
        option = serializer.save()
        _log_option(request, 'create', option)
        return Response(DropdownOptionSerializer(option).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, module_permission('dropdowns')])
def dropdown_detail(request, pk):
    """Retrieve, update or delete a dropdown option"""
    option = get_object_or_404(DropdownOption, pk=pk)

    if request.method == 'GET':
        return Response(DropdownOptionSerializer(option).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = DropdownOptionSerializer(option, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            option = serializer.save()
            _log_option(request, 'update', option)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        _log_option(request, 'delete', option)
        option.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dropdown_by_category(request, category):
    """Options for one category, ordered for display"""
    if category not in VALID_CATEGORIES:
        return Response({'error': f"Unknown dropdown category '{category}'"}, status=status.HTTP_404_NOT_FOUND)

    queryset = DropdownOption.objects.filter(category=category)
    is_active = request.query_params.get('is_active')
    if is_active is not None:
        queryset = queryset.filter(is_active=_parse_bool(is_active))

    serializer = DropdownOptionSerializer(queryset.order_by('display_order', 'value'), many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dropdown_grouped(request):
    """Active options grouped by category"""
    cached_data = cache.get(GROUPED_CACHE_KEY)
    if cached_data is not None:
        return Response(cached_data)

    grouped = {}
    for option in DropdownOption.objects.filter(is_active=True).order_by('category', 'display_order', 'value'):
        grouped.setdefault(option.category, []).append(DropdownOptionSerializer(option).data)

    cache.set(GROUPED_CACHE_KEY, grouped, DROPDOWNS_CACHE_TTL)
    return Response(grouped)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dropdown_categories(request):
    """Every known category with its option count"""
    counts = {
        row['category']: row['total']
        for row in DropdownOption.objects.values('category').annotate(total=Count('id'))
    }
    data = [
        {'value': value, 'label': label, 'count': counts.get(value, 0)}
        for value, label in DropdownOption.CATEGORY_CHOICES
    ]
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dropdown_product_bundle(request):
    """All the option lists the product form needs, in one call"""
    cached_data = cache.get(PRODUCT_BUNDLE_CACHE_KEY)
    if cached_data is not None:
        return Response({'data': cached_data})

    options = DropdownOption.objects.filter(
        is_active=True, category__in=PRODUCT_BUNDLE_CATEGORIES.values()
    ).order_by('display_order', 'value')

    data = {key: [] for key in PRODUCT_BUNDLE_CATEGORIES}
    category_keys = {category: key for key, category in PRODUCT_BUNDLE_CATEGORIES.items()}
    for option in options:
        data[category_keys[option.category]].append(DropdownOptionSerializer(option).data)

    cache.set(PRODUCT_BUNDLE_CACHE_KEY, data, DROPDOWNS_CACHE_TTL)
    return Response({'data': data})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, module_permission('dropdowns', 'edit')])
def dropdown_toggle_active(request, pk):
    """Flip is_active on an option"""
    option = get_object_or_404(DropdownOption, pk=pk)
    option.is_active = not option.is_active
    option.save(update_fields=['is_active', 'updated_at'])
    _log_option(request, 'update', option)
    return Response(DropdownOptionSerializer(option).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, module_permission('dropdowns', 'edit')])
def dropdown_update_order(request):
    """Bulk update display_order: {"updates": [{"id": 1, "display_order": 2}, ...]}"""
    serializer = DisplayOrderUpdateSerializer(data=request.data.get('updates', []), many=True)
    serializer.is_valid(raise_exception=True)
    updates = serializer.validated_data
    if not updates:
        return Response({'error': 'No updates provided'}, status=status.HTTP_400_BAD_REQUEST)

    ids = [update['id'] for update in updates]
    options = {option.id: option for option in DropdownOption.objects.filter(id__in=ids)}
    missing = [option_id for option_id in ids if option_id not in options]
    if missing:
        return Response({'error': f"Dropdown options not found: {missing}"}, status=status.HTTP_404_NOT_FOUND)

    with transaction.atomic():
        for update in updates:
            option = options[update['id']]
            option.display_order = update['display_order']
            option.save(update_fields=['display_order', 'updated_at'])

    logger.info(f"Updated display order for {len(updates)} dropdown options")
    return Response({'updated': len(updates)})
