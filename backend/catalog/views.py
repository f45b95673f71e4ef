import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.db.models.deletion import ProtectedError
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exports import export_rows
from backend.core.permissions import module_permission
from backend.core.utils import create_activity_log, paginated_response
from .filters import IndividualProductFilter, ProductFilter
from .label_generator import generate_individual_product_label
from .models import IndividualProduct, Product, Recipe
from .recipes import calculate_recipe_requirements
from .serializers import (
    IndividualProductBulkCreateSerializer, IndividualProductSerializer, ProductListSerializer,
    ProductSerializer, RecipeSerializer
)
from .services import UntrackedProductError, create_individual_products
from .units import product_sqm

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = [
    ('QR Code', 'qr_code'),
    ('Name', 'name'),
    ('Category', 'category'),
    ('Subcategory', 'subcategory'),
    ('Length', 'length'),
    ('Length Unit', 'length_unit'),
    ('Width', 'width'),
    ('Width Unit', 'width_unit'),
    ('Color', 'color'),
    ('Pattern', 'pattern'),
    ('Unit', 'unit'),
    ('Current Stock', 'current_stock'),
    ('Min Stock Level', 'min_stock_level'),
    ('Status', 'status'),
]


def _filtered_products(request):
    filterset = ProductFilter(request.query_params, queryset=Product.objects.all())
    return filterset.qs.order_by('name', 'id')


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('products')])
def product_list_create(request):
    """List products (filtered by ProductFilter) or create a new product"""
    if request.method == 'GET':
        return paginated_response(request, _filtered_products(request), ProductListSerializer)

    serializer = ProductSerializer(data=request.data)
    if serializer.is_valid():
        product = serializer.save()
        create_activity_log(request=request, action='create', module='products',
                            object_id=product.id, object_name=product.name)
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, module_permission('products')])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        serializer = ProductSerializer(product)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            product = serializer.save()
            if 'individual_stock_tracking' in serializer.validated_data:
                product.refresh_stock()
            create_activity_log(request=request, action='update', module='products',
                                object_id=product.id, object_name=product.name,
                                changes={'fields': sorted(serializer.validated_data.keys())})
            return Response(ProductSerializer(product).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if product.individual_products.filter(status='sold').exists():
            return Response(
                {'error': 'Cannot delete a product with sold individual products. Mark it discontinued instead.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        name = product.name
        try:
            product.delete()
        except ProtectedError:
            return Response(
                {'error': 'This product is used by recipes, orders or production batches and cannot be deleted.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_activity_log(request=request, action='delete', module='products', object_id=pk, object_name=name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('products')])
def product_stats(request):
    """Product counts by stock status"""
    stats = Product.objects.aggregate(
        total_products=Count('id'),
        in_stock=Count('id', filter=Q(status='in-stock')),
        low_stock=Count('id', filter=Q(status='low-stock')),
        out_of_stock=Count('id', filter=Q(status='out-of-stock')),
        inactive=Count('id', filter=Q(status__in=['inactive', 'discontinued'])),
        tracked=Count('id', filter=Q(individual_stock_tracking=True)),
        total_stock=Sum('current_stock'),
    )
    stats['total_stock'] = stats['total_stock'] or 0
    stats['categories'] = Product.objects.exclude(category='').values('category').distinct().count()
    return Response(stats)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('products')])
def product_export(request):
    """Download the (filtered) product list as CSV or Excel"""
    products = _filtered_products(request)
    headers = [header for header, _ in PRODUCT_COLUMNS] + ['SQM']
    rows = (
        [getattr(product, field) for _, field in PRODUCT_COLUMNS] + [product_sqm(product).quantize(Decimal('0.0001'))]
        for product in products
    )
    response = export_rows(rows, headers, 'products', request.query_params.get('format', 'csv'),
                           sheet_title='Products')
    create_activity_log(request=request, action='export', module='products')
    return response


# Individual product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('individual_products')])
def product_individual_products(request, pk):
    """List the pieces of a product, or bulk-create {count, ...} new ones"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        queryset = product.individual_products.select_related('product', 'batch')
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return paginated_response(request, queryset, IndividualProductSerializer)

    serializer = IndividualProductBulkCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = dict(serializer.validated_data)
    count = data.pop('count')
    try:
        created = create_individual_products(product, count, **data)
    except UntrackedProductError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='create', module='individual_products',
                        object_id=product.id, object_name=product.name, detail=f'{count} pieces',
                        changes={'serial_numbers': [item.serial_number for item in created]})
    return Response({
        'created': len(created),
        'current_stock': product.current_stock,
        'results': IndividualProductSerializer(created, many=True).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('individual_products')])
def individual_product_list(request):
    """List individual products across all products"""
    queryset = IndividualProduct.objects.select_related('product', 'batch')
    filterset = IndividualProductFilter(request.query_params, queryset=queryset)
    return paginated_response(request, filterset.qs, IndividualProductSerializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, module_permission('individual_products')])
def individual_product_detail(request, pk):
    """Retrieve, update or delete one individual product"""
    individual = get_object_or_404(IndividualProduct.objects.select_related('product', 'batch'), pk=pk)
    product = individual.product

    if request.method == 'GET':
        serializer = IndividualProductSerializer(individual)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = IndividualProductSerializer(individual, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            previous_status = individual.status
            with transaction.atomic():
                individual = serializer.save()
                if individual.status != previous_status:
                    if individual.status == 'sold' and individual.sold_date is None:
                        individual.sold_date = timezone.localdate()
                        individual.save(update_fields=['sold_date'])
                    product.refresh_stock()
            create_activity_log(request=request, action='update', module='individual_products',
                                object_id=individual.id, object_name=individual.serial_number,
                                changes={'fields': sorted(serializer.validated_data.keys())})
            return Response(IndividualProductSerializer(individual).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if individual.status in ('sold', 'reserved'):
            return Response(
                {'error': f'Cannot delete a {individual.status} individual product'},
                status=status.HTTP_400_BAD_REQUEST
            )
        serial = individual.serial_number
        with transaction.atomic():
            individual.delete()
            product.refresh_stock()
        create_activity_log(request=request, action='delete', module='individual_products',
                            object_id=pk, object_name=serial)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('individual_products')])
def individual_product_by_qr(request, qr_code):
    """Look up a piece by its scanned QR code"""
    individual = get_object_or_404(IndividualProduct.objects.select_related('product', 'batch'),
                                   qr_code=qr_code.strip())
    return Response(IndividualProductSerializer(individual).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('individual_products')])
def individual_product_stats(request):
    """Piece counts per status, optionally for one product"""
    queryset = IndividualProduct.objects.all()
    product_id = request.query_params.get('product')
    if product_id:
        queryset = queryset.filter(product_id=product_id)

    counts = {choice: 0 for choice, _ in IndividualProduct.STATUS_CHOICES}
    for row in queryset.values('status').annotate(count=Count('id')).order_by():
        counts[row['status']] = row['count']
    return Response({'total': sum(counts.values()), 'by_status': counts})


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('individual_products')])
def individual_product_label(request, pk):
    """Printable tag label (PNG data URL) with QR code and serial barcode"""
    individual = get_object_or_404(IndividualProduct.objects.select_related('product'), pk=pk)
    try:
        label = generate_individual_product_label(individual)
    except (OSError, ValueError) as e:
        logger.error(f"Label generation failed for individual product {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to generate label'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response({
        'id': individual.id,
        'qr_code': individual.qr_code,
        'serial_number': individual.serial_number,
        'label': label,
    })


# Recipe views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('recipes')])
def recipe_list_create(request):
    """List recipes or create one (with its materials)"""
    if request.method == 'GET':
        queryset = Recipe.objects.select_related('product', 'created_by').prefetch_related(
            'materials__raw_material', 'materials__component_product'
        )
        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(product__name__icontains=search)
        is_active = request.query_params.get('is_active')
        if is_active in ('true', 'false'):
            queryset = queryset.filter(is_active=is_active == 'true')
        return paginated_response(request, queryset.order_by('product__name'), RecipeSerializer)

    serializer = RecipeSerializer(data=request.data)
    if serializer.is_valid():
        recipe = serializer.save(created_by=request.user)
        create_activity_log(request=request, action='create', module='recipes',
                            object_id=recipe.id, object_name=recipe.product.name)
        return Response(RecipeSerializer(recipe).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, module_permission('recipes')])
def recipe_detail(request, pk):
    """Retrieve, update or delete a recipe. Writing materials replaces the list."""
    recipe = get_object_or_404(Recipe.objects.select_related('product'), pk=pk)

    if request.method == 'GET':
        return Response(RecipeSerializer(recipe).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = RecipeSerializer(recipe, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            recipe = serializer.save()
            create_activity_log(request=request, action='update', module='recipes',
                                object_id=recipe.id, object_name=recipe.product.name,
                                changes={'fields': sorted(serializer.validated_data.keys()),
                                         'version': recipe.version})
            return Response(RecipeSerializer(recipe).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        name = recipe.product.name
        recipe.delete()
        create_activity_log(request=request, action='delete', module='recipes', object_id=pk, object_name=name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('recipes')])
def recipe_by_product(request, product_id):
    recipe = get_object_or_404(Recipe.objects.select_related('product'), product_id=product_id)
    return Response(RecipeSerializer(recipe).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('recipes')])
def recipe_calculate(request, pk):
    """Material requirements and cost for ?quantity=N units of the product"""
    recipe = get_object_or_404(Recipe.objects.select_related('product'), pk=pk)
    quantity = request.query_params.get('quantity', '1')
    try:
        result = calculate_recipe_requirements(recipe, quantity)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(result)
