"""
Tests for purchase orders: items, status flow and stock receipt on delivery
"""
from decimal import Decimal

from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.materials.models import MaterialStockMovement, RawMaterial
from backend.notifications.models import Notification
from backend.parties.models import Supplier
from backend.purchasing.models import PurchaseOrder
from backend.purchasing.services import PurchaseOrderError, change_status, receive_stock


class PurchaseOrderCRUDTests(TestCase):
    """Test creating and editing purchase orders"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier(name='Loom Supplies')
        self.material = TestDataFactory.create_raw_material(name='Cotton Yarn', supplier=self.supplier)

    def test_create_purchase_order(self):
        response = self.client.post('/api/purchase-orders/', {
            'supplier': self.supplier.id,
            'expected_delivery': '2099-01-10',
            'items': [
                {'raw_material': self.material.id, 'quantity': '100', 'unit_price': '12.50'},
                {'material_name': 'Latex Glue', 'unit': 'liters', 'category': 'Chemicals', 'quantity': '20',
                 'unit_price': '30'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['order_number'].startswith('PO-'))
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('1850.00'))
        self.assertEqual(response.data['items'][0]['material_name'], 'Cotton Yarn')
        self.assertEqual(response.data['items'][0]['unit'], 'kg')
        self.assertEqual(response.data['supplier_name'], 'Loom Supplies')

    def test_items_are_required(self):
        response = self.client.post('/api/purchase-orders/', {'supplier': self.supplier.id, 'items': []},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unlinked_item_needs_a_known_unit(self):
        response = self.client.post('/api/purchase-orders/', {
            'supplier': self.supplier.id,
            'items': [{'material_name': 'Mystery', 'unit': 'bushels', 'quantity': '1', 'unit_price': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_suspended_supplier_is_refused(self):
        supplier = TestDataFactory.create_supplier(status='suspended')
        response = self.client.post('/api/purchase-orders/', {
            'supplier': supplier.id,
            'items': [{'raw_material': self.material.id, 'quantity': '1', 'unit_price': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_items_recalculates_total(self):
        purchase_order = TestDataFactory.create_purchase_order(supplier=self.supplier,
                                                               items=[(self.material, 10, 5)])
        response = self.client.patch(f'/api/purchase-orders/{purchase_order.id}/', {
            'items': [{'raw_material': self.material.id, 'quantity': '4', 'unit_price': '5'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('20.00'))
        self.assertEqual(len(response.data['items']), 1)

    def test_items_locked_after_approval(self):
        purchase_order = TestDataFactory.create_purchase_order(supplier=self.supplier, status='approved',
                                                               items=[(self.material, 10, 5)])
        response = self.client.patch(f'/api/purchase-orders/{purchase_order.id}/', {
            'items': [{'raw_material': self.material.id, 'quantity': '1', 'unit_price': '5'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f'/api/purchase-orders/{purchase_order.id}/', {'notes': 'Call before delivery'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_delete_only_pending_or_cancelled(self):
        approved = TestDataFactory.create_purchase_order(supplier=self.supplier, status='approved')
        response = self.client.delete(f'/api/purchase-orders/{approved.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        pending = TestDataFactory.create_purchase_order(supplier=self.supplier)
        response = self.client.delete(f'/api/purchase-orders/{pending.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_list_filters(self):
        TestDataFactory.create_purchase_order(supplier=self.supplier)
        TestDataFactory.create_purchase_order(supplier=self.supplier, status='cancelled')
        TestDataFactory.create_purchase_order()

        response = self.client.get(f'/api/purchase-orders/?supplier={self.supplier.id}')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/purchase-orders/?status=pending')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/purchase-orders/?search=Loom')
        self.assertEqual(response.data['count'], 2)

    def test_stats(self):
        TestDataFactory.create_purchase_order(supplier=self.supplier, total_amount=Decimal('2000.00'))
        TestDataFactory.create_purchase_order(supplier=self.supplier, total_amount=Decimal('500.00'),
                                              status='cancelled')
        TestDataFactory.create_purchase_order(supplier=self.supplier, total_amount=Decimal('300.00'),
                                              status='delivered')
        response = self.client.get('/api/purchase-orders/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 3)
        self.assertEqual(response.data['pending_orders'], 1)
        self.assertEqual(response.data['delivered_orders'], 1)
        self.assertEqual(response.data['total_value'], Decimal('2300.00'))


class PurchaseOrderStatusTests(TestCase):
    """Test the status flow and stock receipt"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier()
        self.material = TestDataFactory.create_raw_material(name='Wool', current_stock=Decimal('10'),
                                                            cost_per_unit=Decimal('100'))
        self.purchase_order = TestDataFactory.create_purchase_order(
            supplier=self.supplier, items=[(self.material, 40, 120)]
        )

    def set_status(self, new_status):
        return self.client.post(f'/api/purchase-orders/{self.purchase_order.id}/status/', {'status': new_status},
                                format='json')

    def test_invalid_transition(self):
        response = self.set_status('delivered')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('pending', response.data['error'])

    def test_delivery_adds_stock_once(self):
        for new_status in ('approved', 'shipped', 'in-transit', 'delivered'):
            response = self.set_status(new_status)
            self.assertEqual(response.status_code, status.HTTP_200_OK, new_status)

        self.assertTrue(response.data['stock_received'])
        self.assertIsNotNone(response.data['actual_delivery'])
        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('50.00'))
        self.assertEqual(self.material.cost_per_unit, Decimal('120.00'))
        self.assertIsNotNone(self.material.last_restocked)

        movement = MaterialStockMovement.objects.get(material=self.material, reason='purchase')
        self.assertEqual(movement.reference, self.purchase_order.order_number)

        # receiving again is a no-op
        self.purchase_order.refresh_from_db()
        self.assertEqual(receive_stock(self.purchase_order), [])
        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('50.00'))
        self.assertTrue(Notification.objects.filter(related_id=str(self.purchase_order.id)).exists())

    def test_delivered_is_final(self):
        self.purchase_order.status = 'in-transit'
        self.purchase_order.save()
        change_status(self.purchase_order, 'delivered', user=self.user)
        with self.assertRaises(PurchaseOrderError):
            change_status(self.purchase_order, 'cancelled', user=self.user)

    def test_unlinked_item_creates_material(self):
        purchase_order = TestDataFactory.create_purchase_order(supplier=self.supplier, status='shipped')
        purchase_order.items.create(material_name='Jute Backing', category='Backing', unit='meters',
                                    quantity=Decimal('200'), unit_price=Decimal('45'))
        purchase_order.recalculate_total()

        change_status(purchase_order, 'delivered', user=self.user)
        material = RawMaterial.objects.get(name='Jute Backing')
        self.assertEqual(material.supplier, self.supplier)
        self.assertEqual(material.current_stock, Decimal('200.00'))
        self.assertEqual(material.unit, 'meters')
        self.assertEqual(purchase_order.items.get().raw_material, material)

    def test_cancelled_order_adds_no_stock(self):
        response = self.set_status('cancelled')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('10.00'))


class SeedDemoDataTests(TestCase):
    """Test the demo data command"""

    def test_seed_is_idempotent(self):
        call_command('seed_demo_data', verbosity=0)
        counts = (Supplier.objects.count(), RawMaterial.objects.count(), PurchaseOrder.objects.count())
        self.assertEqual(counts[0], 1)
        self.assertGreater(counts[1], 0)
        self.assertEqual(counts[2], 3)

        call_command('seed_demo_data', verbosity=0)
        self.assertEqual((Supplier.objects.count(), RawMaterial.objects.count(), PurchaseOrder.objects.count()),
                         counts)
