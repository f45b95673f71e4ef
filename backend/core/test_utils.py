"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from backend.catalog.models import IndividualProduct, Product, Recipe, RecipeMaterial
from backend.dropdowns.models import DropdownOption
from backend.materials.models import RawMaterial
from backend.notifications.models import Notification
from backend.orders.models import Order, OrderItem
from backend.parties.models import Customer, Supplier
from backend.production.models import Machine
from backend.production.services import create_batch
from backend.purchasing.models import PurchaseOrder, PurchaseOrderItem

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='admin', permissions=None):
        """Create a test user; admins by default so every module is open"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            permissions=permissions or {},
        )

    @staticmethod
    def create_dropdown_option(category='color', value=None, display_order=0, is_active=True):
        return DropdownOption.objects.create(
            category=category,
            value=value or f'Option {TestDataFactory.random_string(4)}',
            display_order=display_order,
            is_active=is_active,
        )

    @staticmethod
    def create_customer(name=None, **kwargs):
        """Create a test customer"""
        defaults = {
            'phone': f'9{random.randint(100000000, 999999999)}',
            'status': 'active',
            'customer_type': 'individual',
        }
        defaults.update(kwargs)
        return Customer.objects.create(name=name or f'Customer {TestDataFactory.random_string(6)}', **defaults)

    @staticmethod
    def create_supplier(name=None, **kwargs):
        """Create a test supplier"""
        defaults = {
            'contact_person': 'Test Contact',
            'phone': f'8{random.randint(100000000, 999999999)}',
            'status': 'active',
        }
        defaults.update(kwargs)
        return Supplier.objects.create(name=name or f'Supplier {TestDataFactory.random_string(6)}', **defaults)

    @staticmethod
    def create_raw_material(name=None, **kwargs):
        """Create a test raw material"""
        defaults = {
            'category': 'Yarn',
            'unit': 'kg',
            'current_stock': Decimal('100.00'),
            'min_threshold': Decimal('10.00'),
            'max_capacity': Decimal('1000.00'),
            'cost_per_unit': Decimal('10.00'),
        }
        defaults.update(kwargs)
        return RawMaterial.objects.create(name=name or f'Material {TestDataFactory.random_string(6)}', **defaults)

    @staticmethod
    def create_product(name=None, **kwargs):
        """Create a test product; 2m x 3m, tracked individually unless told otherwise"""
        defaults = {
            'category': 'Carpet',
            'length': Decimal('2'),
            'length_unit': 'm',
            'width': Decimal('3'),
            'width_unit': 'm',
            'unit': 'piece',
            'individual_stock_tracking': True,
        }
        defaults.update(kwargs)
        return Product.objects.create(name=name or f'Product {TestDataFactory.random_string(6)}', **defaults)

    @staticmethod
    def create_individual_product(product, status='available', **kwargs):
        individual = IndividualProduct.objects.create(product=product, status=status, **kwargs)
        product.refresh_stock()
        return individual

    @staticmethod
    def create_recipe(product, materials=None, user=None):
        """
        Create a recipe; materials is a list of (raw_material, quantity_per_sqm)
        """
        recipe = Recipe.objects.create(product=product, created_by=user)
        for raw_material, quantity_per_sqm in materials or []:
            RecipeMaterial.objects.create(
                recipe=recipe,
                material_type='raw_material',
                raw_material=raw_material,
                quantity_per_sqm=Decimal(str(quantity_per_sqm)),
                unit=raw_material.unit,
            )
        return recipe

    @staticmethod
    def create_order(customer=None, user=None, **kwargs):
        """Create an order without items; totals are taken as given"""
        customer = customer or TestDataFactory.create_customer()
        defaults = {
            'total_amount': Decimal('1000.00'),
            'subtotal': Decimal('847.46'),
            'gst_amount': Decimal('152.54'),
        }
        defaults.update(kwargs)
        return Order.objects.create(customer=customer, created_by=user, **defaults)

    @staticmethod
    def create_order_item(order, product=None, quantity=Decimal('1'), unit_price=Decimal('1000.00'), **kwargs):
        product = product or TestDataFactory.create_product()
        defaults = {
            'product_type': 'product',
            'product_name': product.name,
            'unit': product.unit,
            'total_price': Decimal(quantity) * Decimal(unit_price),
        }
        defaults.update(kwargs)
        return OrderItem.objects.create(order=order, product=product, quantity=quantity, unit_price=unit_price,
                                        **defaults)

    @staticmethod
    def create_purchase_order(supplier=None, total_amount=None, status='pending', items=None, user=None):
        """
        Create a purchase order; items is a list of (raw_material, quantity, unit_price).

        Without items the total is taken as given.
        """
        supplier = supplier or TestDataFactory.create_supplier()
        purchase_order = PurchaseOrder.objects.create(
            supplier=supplier,
            status=status,
            total_amount=total_amount if total_amount is not None else Decimal('1000.00'),
            created_by=user,
        )
        if items:
            for raw_material, quantity, unit_price in items:
                PurchaseOrderItem.objects.create(
                    purchase_order=purchase_order,
                    raw_material=raw_material,
                    material_name=raw_material.name,
                    category=raw_material.category,
                    unit=raw_material.unit,
                    quantity=Decimal(str(quantity)),
                    unit_price=Decimal(str(unit_price)),
                )
            purchase_order.recalculate_total()
        return purchase_order

    @staticmethod
    def create_machine(name=None, **kwargs):
        return Machine.objects.create(name=name or f'Loom {TestDataFactory.random_string(4)}', **kwargs)

    @staticmethod
    def create_production_batch(product=None, planned_quantity=2, user=None, **kwargs):
        """Create a batch through the production service so it gets its stages"""
        product = product or TestDataFactory.create_product()
        return create_batch({'product': product, 'planned_quantity': planned_quantity, **kwargs}, user=user)

    @staticmethod
    def create_notification(title='Test notification', **kwargs):
        defaults = {
            'message': 'Something happened',
            'notification_type': 'info',
            'module': 'activity',
        }
        defaults.update(kwargs)
        return Notification.objects.create(title=title, **defaults)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
