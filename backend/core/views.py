from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from django.db.models import Q
from .models import Setting, ActivityLog
from .permissions import IsAdminRole
from .serializers import (
    UserSerializer, UserCreateSerializer,
    SettingSerializer, ActivityLogSerializer
)
from .utils import create_activity_log, paginated_response, parse_date_param

User = get_user_model()

SEARCH_RESULT_LIMIT = 5


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        create_activity_log(
            user=self.user,
            action='login',
            module='users',
            object_id=self.user.id,
            object_name=self.user.username,
        )
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = 'admin' if user.is_admin else user.role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with role and effective module permissions"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['is_admin'] = user.is_admin
    user_data['effective_permissions'] = user.get_effective_permissions()
    return Response(user_data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        users = User.objects.all().order_by('username')
        search = request.query_params.get('search')
        if search:
            users = users.filter(
                Q(username__icontains=search) | Q(full_name__icontains=search) | Q(email__icontains=search)
            )
        role = request.query_params.get('role')
        if role:
            users = users.filter(role=role)
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            create_activity_log(request=request, action='create', module='users',
                                object_id=user.id, object_name=user.username)
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_activity_log(request=request, action='update', module='users',
                                object_id=user.id, object_name=user.username)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        username = user.username
        user.delete()
        create_activity_log(request=request, action='delete', module='users', object_id=pk, object_name=username)
        return Response(status=status.HTTP_204_NO_CONTENT)


# Setting views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def setting_list_create(request):
    """List all settings or create a new setting (admins only)"""
    if request.method == 'GET':
        settings = Setting.objects.all().order_by('key')
        serializer = SettingSerializer(settings, many=True)
        return Response(serializer.data)
    if not request.user.is_admin:
        return Response({'error': 'Admin access required.'}, status=status.HTTP_403_FORBIDDEN)
    serializer = SettingSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def setting_detail(request, pk):
    """Retrieve, update or delete a setting"""
    setting = get_object_or_404(Setting, pk=pk)

    if request.method == 'GET':
        serializer = SettingSerializer(setting)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SettingSerializer(setting, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# ActivityLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def activity_log_list(request):
    """List activity logs, newest first"""
    queryset = ActivityLog.objects.select_related('user')

    # Non-admins only see their own activity
    if not request.user.is_admin:
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action')
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    module_filter = request.query_params.get('module')
    if module_filter:
        queryset = queryset.filter(module=module_filter)

    user_filter = request.query_params.get('user')
    if user_filter:
        queryset = queryset.filter(user_id=user_filter)

    date_from = request.query_params.get('date_from')
    date_to = request.query_params.get('date_to')
    if date_from:
        queryset = queryset.filter(created_at__date__gte=parse_date_param(date_from, 'date_from'))
    if date_to:
        queryset = queryset.filter(created_at__date__lte=parse_date_param(date_to, 'date_to'))

    queryset = queryset.order_by('-created_at', '-id')
    return paginated_response(request, queryset, ActivityLogSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def activity_log_detail(request, pk):
    """Retrieve an activity log entry"""
    activity_log = get_object_or_404(ActivityLog, pk=pk)

    if not request.user.is_admin and activity_log.user_id != request.user.id:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = ActivityLogSerializer(activity_log)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def global_search(request):
    """Search customers, suppliers, products, materials, orders and purchase orders"""
    query = request.query_params.get('q', '').strip()

    results = {
        'customers': [],
        'suppliers': [],
        'products': [],
        'raw_materials': [],
        'orders': [],
        'purchase_orders': [],
    }
    if len(query) < 2:
        return Response(results)

    from backend.parties.models import Customer, Supplier
    from backend.catalog.models import Product
    from backend.materials.models import RawMaterial
    from backend.orders.models import Order
    from backend.purchasing.models import PurchaseOrder
    from backend.parties.serializers import CustomerBriefSerializer, SupplierBriefSerializer
    from backend.catalog.serializers import ProductListSerializer
    from backend.materials.serializers import RawMaterialBriefSerializer
    from backend.orders.serializers import OrderListSerializer
    from backend.purchasing.serializers import PurchaseOrderListSerializer

    customers = Customer.objects.filter(
        Q(name__icontains=query) |
        Q(company_name__icontains=query) |
        Q(phone__icontains=query) |
        Q(email__icontains=query)
    )[:SEARCH_RESULT_LIMIT]
    results['customers'] = CustomerBriefSerializer(customers, many=True).data

    suppliers = Supplier.objects.filter(
        Q(name__icontains=query) |
        Q(contact_person__icontains=query) |
        Q(phone__icontains=query) |
        Q(email__icontains=query)
    )[:SEARCH_RESULT_LIMIT]
    results['suppliers'] = SupplierBriefSerializer(suppliers, many=True).data

    products = Product.objects.filter(
        Q(name__icontains=query) |
        Q(qr_code__icontains=query) |
        Q(category__icontains=query)
    )[:SEARCH_RESULT_LIMIT]
    results['products'] = ProductListSerializer(products, many=True).data

    materials = RawMaterial.objects.filter(
        Q(name__icontains=query) |
        Q(category__icontains=query) |
        Q(supplier_name__icontains=query) |
        Q(batch_number__icontains=query)
    )[:SEARCH_RESULT_LIMIT]
    results['raw_materials'] = RawMaterialBriefSerializer(materials, many=True).data

    orders = Order.objects.filter(
        Q(order_number__icontains=query) |
        Q(customer_name__icontains=query)
    )[:SEARCH_RESULT_LIMIT]
    results['orders'] = OrderListSerializer(orders, many=True).data

    purchase_orders = PurchaseOrder.objects.filter(
        Q(order_number__icontains=query) |
        Q(supplier__name__icontains=query)
    ).select_related('supplier')[:SEARCH_RESULT_LIMIT]
    results['purchase_orders'] = PurchaseOrderListSerializer(purchase_orders, many=True).data

    return Response(results)
