import logging

from django.db.models import Count, Q, Sum
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.permissions import module_permission
from backend.core.utils import create_activity_log, paginated_response, parse_date_param
from .models import Machine, ProductionBatch, Wastage
from .serializers import (
    CancelBatchSerializer, MachineSerializer, MaterialConsumptionSerializer, ProductionBatchListSerializer,
    ProductionBatchSerializer, ProductionStageSerializer, StageActionSerializer, WastageSerializer
)
from .services import ProductionError, cancel_batch, complete_stage, create_batch, prefill_consumption, \
    return_waste, start_stage

logger = logging.getLogger(__name__)

INDIVIDUAL_DETAIL_FIELDS = ('quality_grade', 'inspector', 'location', 'final_length', 'final_width', 'final_weight')


def _batch_queryset():
    return ProductionBatch.objects.select_related(
        'product', 'order', 'created_by', 'cancelled_by'
    ).prefetch_related(
        'stages__machine', 'stages__started_by', 'stages__completed_by', 'consumptions__raw_material',
        'consumptions__product', 'wastage__raw_material'
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('production')])
def batch_list_create(request):
    """List production batches or create a new one"""
    if request.method == 'GET':
        queryset = ProductionBatch.objects.select_related('product', 'order')

        search = request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(batch_number__icontains=search) |
                Q(product__name__icontains=search) |
                Q(operator__icontains=search)
            )
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status__in=status_filter.split(','))
        product = request.query_params.get('product')
        if product:
            queryset = queryset.filter(product_id=product)
        order = request.query_params.get('order')
        if order:
            queryset = queryset.filter(order_id=order)
        priority = request.query_params.get('priority')
        if priority:
            queryset = queryset.filter(priority=priority)

        return paginated_response(request, queryset.order_by('-created_at', '-id'), ProductionBatchListSerializer)

    serializer = ProductionBatchSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    batch = create_batch(dict(serializer.validated_data), user=request.user)
    create_activity_log(request=request, action='create', module='production', object_id=batch.id,
                        object_name=batch.batch_number,
                        changes={'product': batch.product.name, 'planned_quantity': batch.planned_quantity})
    return Response(ProductionBatchSerializer(_batch_queryset().get(pk=batch.pk)).data,
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, module_permission('production')])
def batch_detail(request, pk):
    batch = get_object_or_404(_batch_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(ProductionBatchSerializer(batch).data)

    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductionBatchSerializer(batch, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        replan = batch.status == 'planned' and any(
            field in serializer.validated_data and serializer.validated_data[field] != getattr(batch, field)
            for field in ('product', 'planned_quantity')
        )
        batch = serializer.save()
        if replan:
            batch.consumptions.filter(deducted=False).delete()
            prefill_consumption(batch)

        create_activity_log(request=request, action='update', module='production', object_id=batch.id,
                            object_name=batch.batch_number, changes=request.data)
        return Response(ProductionBatchSerializer(_batch_queryset().get(pk=batch.pk)).data)

    else:  # DELETE
        if batch.status != 'planned':
            return Response({'error': 'Only planned batches can be deleted'}, status=status.HTTP_400_BAD_REQUEST)
        batch_number = batch.batch_number
        batch_id = batch.id
        batch.delete()
        create_activity_log(request=request, action='delete', module='production', object_id=batch_id,
                            object_name=batch_number)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, module_permission('production', 'edit')])
def batch_stage_start(request, pk, stage):
    batch = get_object_or_404(ProductionBatch, pk=pk)
    serializer = StageActionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        production_stage = start_stage(batch, stage, user=request.user,
                                       machine=serializer.validated_data.get('machine'),
                                       notes=serializer.validated_data.get('notes', ''))
    except ProductionError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='update', module='production', object_id=batch.id,
                        object_name=batch.batch_number, detail=f"started {stage} stage")
    return Response({
        'stage': ProductionStageSerializer(production_stage).data,
        'batch_status': batch.status,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, module_permission('production', 'edit')])
def batch_stage_complete(request, pk, stage):
    """
    Complete a stage.

    Completing planning takes the batch's materials out of stock; completing
    individual_products creates the finished pieces and closes the batch.
    """
    batch = get_object_or_404(ProductionBatch.objects.select_related('product'), pk=pk)
    serializer = StageActionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    individual_fields = {name: data[name] for name in INDIVIDUAL_DETAIL_FIELDS if data.get(name) not in (None, '')}
    try:
        production_stage = complete_stage(
            batch, stage, user=request.user, notes=data.get('notes', ''),
            actual_quantity=data.get('actual_quantity'), individual_status=data['individual_status'],
            individual_fields=individual_fields,
        )
    except ProductionError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='update', module='production', object_id=batch.id,
                        object_name=batch.batch_number, detail=f"completed {stage} stage")
    return Response({
        'stage': ProductionStageSerializer(production_stage).data,
        'batch_status': batch.status,
        'actual_quantity': batch.actual_quantity,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, module_permission('production', 'edit')])
def batch_cancel(request, pk):
    batch = get_object_or_404(ProductionBatch, pk=pk)
    serializer = CancelBatchSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    reason = serializer.validated_data.get('reason', '')
    try:
        cancel_batch(batch, user=request.user, reason=reason)
    except ProductionError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='update', module='production', object_id=batch.id,
                        object_name=batch.batch_number, detail='cancelled batch', changes={'reason': reason})
    return Response(ProductionBatchSerializer(_batch_queryset().get(pk=batch.pk)).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('production')])
def batch_consumption(request, pk):
    """Material consumption lines of a batch; new lines only before planning completes"""
    batch = get_object_or_404(ProductionBatch, pk=pk)

    if request.method == 'GET':
        consumptions = batch.consumptions.select_related('raw_material', 'product')
        return Response(MaterialConsumptionSerializer(consumptions, many=True).data)

    if batch.status not in ('planned', 'in_progress') or \
            batch.stages.filter(stage='planning', status='completed').exists():
        return Response({'error': 'Materials can only be added before planning is completed'},
                        status=status.HTTP_400_BAD_REQUEST)

    serializer = MaterialConsumptionSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(batch=batch)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('production')])
def batch_waste(request, pk):
    batch = get_object_or_404(ProductionBatch, pk=pk)

    if request.method == 'GET':
        wastage = batch.wastage.select_related('raw_material', 'batch')
        return Response(WastageSerializer(wastage, many=True).data)

    if batch.status == 'cancelled':
        return Response({'error': 'Cannot record waste for a cancelled batch'},
                        status=status.HTTP_400_BAD_REQUEST)

    serializer = WastageSerializer(data=request.data)
    if serializer.is_valid():
        wastage = serializer.save(batch=batch, created_by=request.user)
        logger.info(f"Waste recorded for {batch.batch_number}: {wastage.quantity} {wastage.unit}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('production')])
def waste_list(request):
    queryset = Wastage.objects.select_related('batch', 'raw_material')
    status_filter = request.query_params.get('status')
    if status_filter:
        queryset = queryset.filter(status=status_filter)
    waste_type = request.query_params.get('waste_type')
    if waste_type:
        queryset = queryset.filter(waste_type=waste_type)
    batch = request.query_params.get('batch')
    if batch:
        queryset = queryset.filter(batch_id=batch)
    return paginated_response(request, queryset.order_by('-created_at', '-id'), WastageSerializer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, module_permission('production', 'edit')])
def waste_return(request, pk):
    wastage = get_object_or_404(Wastage.objects.select_related('batch', 'raw_material'), pk=pk)
    try:
        return_waste(wastage, user=request.user)
    except ProductionError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_activity_log(request=request, action='update', module='production', object_id=wastage.batch_id,
                        object_name=wastage.batch.batch_number,
                        detail=f"returned {wastage.quantity} {wastage.unit} of {wastage.raw_material.name} to stock")
    return Response(WastageSerializer(wastage).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, module_permission('production')])
def production_stats(request):
    queryset = ProductionBatch.objects.all()
    date_from = request.query_params.get('date_from')
    if date_from:
        queryset = queryset.filter(created_at__date__gte=parse_date_param(date_from, 'date_from'))
    date_to = request.query_params.get('date_to')
    if date_to:
        queryset = queryset.filter(created_at__date__lte=parse_date_param(date_to, 'date_to'))

    by_status = {value: 0 for value, _ in ProductionBatch.STATUS_CHOICES}
    for row in queryset.values('status').annotate(count=Count('id')):
        by_status[row['status']] = row['count']

    totals = queryset.aggregate(planned=Sum('planned_quantity'), actual=Sum('actual_quantity'))
    waste = Wastage.objects.filter(batch__in=queryset).aggregate(
        total=Sum('quantity'), returned=Sum('quantity', filter=Q(status='returned'))
    )

    return Response({
        'total_batches': sum(by_status.values()),
        'active_batches': by_status['planned'] + by_status['in_progress'] + by_status['in_production'],
        'by_status': by_status,
        'planned_quantity': totals['planned'] or 0,
        'actual_quantity': totals['actual'] or 0,
        'total_waste': waste['total'] or 0,
        'returned_waste': waste['returned'] or 0,
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, module_permission('production')])
def machine_list_create(request):
    if request.method == 'GET':
        queryset = Machine.objects.all()
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return Response(MachineSerializer(queryset, many=True).data)

    serializer = MachineSerializer(data=request.data)
    if serializer.is_valid():
        machine = serializer.save()
        create_activity_log(request=request, action='create', module='production', object_id=machine.id,
                            object_name=machine.name, detail='added machine')
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, module_permission('production')])
def machine_detail(request, pk):
    machine = get_object_or_404(Machine, pk=pk)

    if request.method == 'GET':
        return Response(MachineSerializer(machine).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = MachineSerializer(machine, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        machine.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
