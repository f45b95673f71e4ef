import csv
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Q, Sum, F
from django.db.models.deletion import ProtectedError
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exports import EXTRA_FIELDS_KEY, export_rows, read_csv_upload
from backend.core.formatting import format_currency
from backend.core.permissions import module_permission
from backend.core.utils import create_activity_log, paginated_response
from backend.parties.models import Supplier
from .models import RawMaterial
from .serializers import MaterialStockMovementSerializer, RawMaterialSerializer, StockAdjustmentSerializer
from .services import InsufficientStock, adjust_stock, record_opening_stock, to_decimal

logger = logging.getLogger(__name__)

# Export/import column -> model field
MATERIAL_COLUMNS = [
    ('Name', 'name'),
    ('Supplier', 'supplier_name'),
    ('Category', 'category'),
    ('Unit', 'unit'),
    ('Current Stock', 'current_stock'),
    ('Min Threshold', 'min_threshold'),
    ('Max Capacity', 'max_capacity'),
    ('Reorder Point', 'reorder_point'),
    ('Cost Per Unit', 'cost_per_unit'),
    ('Type', 'material_type'),
    ('Color', 'color'),
]
NUMERIC_FIELDS = ('current_stock', 'min_threshold', 'max_capacity', 'reorder_point', 'cost_per_unit')


def _filtered_materials(request):
    queryset = RawMaterial.objects.select_related('supplier')

    search = request.query_params.get('search')
    if search:
        queryset = queryset.filter(
            Q(name__icontains=search) |
            Q(category__icontains=search) |
            Q(supplier_name__icontains=search) |
            Q(batch_number__icontains=search)
        )
    status_filter = request.query_params.get('status')
    if status_filter:
        queryset = queryset.filter(status=status_filter)
    category = request.query_params.get('category')
    if category:
        queryset = queryset.filter(category__iexact=category)
    supplier = request.query_params.get('supplier')
    if supplier:
        queryset = queryset.filter(supplier_id=supplier)
    return queryset.order_by('name', 'id')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('materials')])
def raw_material_list_create(request):
    """List raw materials or create a new one"""
    if request.method == 'GET':
        return paginated_response(request, _filtered_materials(request), RawMaterialSerializer)

    serializer = RawMaterialSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            material = serializer.save()
            record_opening_stock(material, user=request.user)
        create_activity_log(request=request, action='create', module='materials',
                            object_id=material.id, object_name=material.name)

        from backend.notifications.services import check_low_stock
        check_low_stock([material])
        return Response(RawMaterialSerializer(material).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, module_permission('materials')])
def raw_material_detail(request, pk):
    """Retrieve, update or delete a raw material"""
    material = get_object_or_404(RawMaterial.objects.select_related('supplier'), pk=pk)

    if request.method == 'GET':
        serializer = RawMaterialSerializer(material)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = RawMaterialSerializer(material, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            material = serializer.save()
            create_activity_log(request=request, action='update', module='materials',
                                object_id=material.id, object_name=material.name,
                                changes={'fields': sorted(serializer.validated_data.keys())})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        name = material.name
        try:
            material.delete()
        except ProtectedError:
            return Response(
                {'error': 'This material is used by recipes, orders or production batches and cannot be deleted.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_activity_log(request=request, action='delete', module='materials', object_id=pk, object_name=name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('materials')])
def raw_material_stats(request):
    """Material counts by status and total stock value"""
    stats = RawMaterial.objects.aggregate(
        total_materials=Count('id'),
        in_stock=Count('id', filter=Q(status='in-stock')),
        low_stock=Count('id', filter=Q(status='low-stock')),
        out_of_stock=Count('id', filter=Q(status='out-of-stock')),
        overstock=Count('id', filter=Q(status='overstock')),
        total_value=Sum(F('current_stock') * F('cost_per_unit')),
    )
    total_value = Decimal(stats['total_value'] or 0).quantize(Decimal('0.01'))
    count = stats['total_materials']
    stats['total_value'] = total_value
    stats['average_value'] = (total_value / count).quantize(Decimal('0.01')) if count else Decimal('0.00')
    stats['total_value_display'] = format_currency(total_value)
    return Response(stats)


@api_view(['POST'])
@permission_classes([IsAuthenticated, module_permission('materials', 'edit')])
def raw_material_adjust_stock(request, pk):
    """Add or remove stock, recording a movement"""
    material = get_object_or_404(RawMaterial, pk=pk)
    serializer = StockAdjustmentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        movement = adjust_stock(
            material,
            data['quantity'],
            data['movement_type'],
            data['reason'],
            user=request.user,
            reference=data['reference'],
            notes=data['notes'],
        )
    except InsufficientStock as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(
        request=request, action='stock_adjust', module='materials',
        object_id=material.id, object_name=material.name,
        detail=f"{'+' if movement.movement_type == 'in' else '-'}{movement.quantity} {material.unit}",
        changes={'movement_type': movement.movement_type, 'quantity': str(movement.quantity),
                 'reason': movement.reason, 'stock_after': str(movement.stock_after)},
    )
    material.refresh_from_db()
    return Response({
        'material': RawMaterialSerializer(material).data,
        'movement': MaterialStockMovementSerializer(movement).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('materials')])
def raw_material_movements(request, pk):
    """Stock movement history for a material"""
    material = get_object_or_404(RawMaterial, pk=pk)
    queryset = material.movements.select_related('material', 'created_by')
    movement_type = request.query_params.get('movement_type')
    if movement_type:
        queryset = queryset.filter(movement_type=movement_type)
    return paginated_response(request, queryset, MaterialStockMovementSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('materials')])
def raw_material_export(request):
    """Download the (filtered) material list as CSV or Excel"""
    materials = _filtered_materials(request)
    headers = [header for header, _ in MATERIAL_COLUMNS]
    rows = (
        [getattr(material, field) for _, field in MATERIAL_COLUMNS]
        for material in materials
    )
    response = export_rows(rows, headers, 'raw_materials', request.query_params.get('format', 'csv'),
                           sheet_title='Raw Materials')
    create_activity_log(request=request, action='export', module='materials')
    return response


def _row_to_material_data(row):
    extra = [value for value in row.get(EXTRA_FIELDS_KEY, []) if value]
    if extra:
        raise ValueError(f"Row has {len(extra)} value(s) beyond the header columns")
    data = {}
    for header, field in MATERIAL_COLUMNS:
        value = row.get(header, '')
        if value == '':
            continue
        if field in NUMERIC_FIELDS:
            value = to_decimal(value)
            if value < 0:
                raise ValueError(f"{header} cannot be negative")
        elif field == 'unit':
            value = value.lower()
        data[field] = value
    return data


@api_view(['POST'])
@permission_classes([IsAuthenticated, module_permission('materials', 'create')])
@parser_classes([MultiPartParser, FormParser])
def raw_material_import(request):
    """
    Create or update materials from a CSV upload.

    Rows are matched on name (case-insensitive). A changed stock level on an
    existing material is applied as an adjustment movement.
    """
    uploaded_file = request.FILES.get('file')
    if not uploaded_file:
        return Response({'error': 'Upload a CSV file in the "file" field'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        rows = read_csv_upload(uploaded_file)
    except UnicodeDecodeError:
        return Response({'error': 'File must be UTF-8 encoded CSV'}, status=status.HTTP_400_BAD_REQUEST)
    except csv.Error as e:
        return Response({'error': f'Malformed CSV file: {e}'}, status=status.HTTP_400_BAD_REQUEST)

    suppliers = {supplier.name.lower(): supplier for supplier in Supplier.objects.all()}
    created = updated = 0
    errors = []

    for row_number, row in enumerate(rows, start=2):
        try:
            data = _row_to_material_data(row)
        except ValueError as e:
            errors.append({'row': row_number, 'error': str(e)})
            continue

        supplier = suppliers.get(data.get('supplier_name', '').lower())
        if supplier is not None:
            data['supplier'] = supplier.id

        existing = RawMaterial.objects.filter(name__iexact=data.get('name', '')).first()
        new_stock = data.pop('current_stock', None) if existing else None
        serializer = RawMaterialSerializer(existing, data=data, partial=existing is not None)
        if not serializer.is_valid():
            messages = [f"{field}: {', '.join(str(m) for m in msgs)}" for field, msgs in serializer.errors.items()]
            errors.append({'row': row_number, 'error': '; '.join(messages)})
            continue

        with transaction.atomic():
            material = serializer.save()
            if existing is None:
                record_opening_stock(material, user=request.user)
                created += 1
            else:
                if new_stock is not None and new_stock != material.current_stock:
                    difference = new_stock - material.current_stock
                    adjust_stock(material, abs(difference), 'in' if difference > 0 else 'out', 'adjustment',
                                 user=request.user, notes='CSV import', check_notifications=False)
                updated += 1

    create_activity_log(request=request, action='import', module='materials',
                        changes={'created': created, 'updated': updated, 'errors': len(errors)})
    from backend.notifications.services import check_low_stock
    check_low_stock()
    return Response({'created': created, 'updated': updated, 'errors': errors})
