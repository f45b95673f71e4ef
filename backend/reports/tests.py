"""
Test suite for the report endpoints: dashboard, sales, inventory and production
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_activity_log
from backend.production.models import ProductionBatch, Wastage


class ReportsTests(TestCase):
    """Test report endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_dashboard(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_order(customer=customer, total_amount=Decimal('150000.00'))
        TestDataFactory.create_order(customer=customer, status='cancelled')
        TestDataFactory.create_raw_material(current_stock=Decimal('5'))
        TestDataFactory.create_notification()
        create_activity_log(user=self.user, action='create', module='orders', object_name='ON-1')

        response = self.client.get('/api/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_customers'], 1)
        self.assertEqual(response.data['total_orders'], 2)
        self.assertEqual(response.data['pending_orders'], 1)
        self.assertEqual(response.data['low_stock_materials'], 1)
        self.assertEqual(response.data['unread_notifications'], 1)
        self.assertEqual(response.data['revenue_this_month'], Decimal('150000.00'))
        self.assertEqual(response.data['revenue_this_month_display'], '₹1.5 Lac')
        self.assertEqual(len(response.data['recent_activity']), 1)

    def test_sales_report(self):
        big = TestDataFactory.create_customer(name='Big Buyer')
        small = TestDataFactory.create_customer(name='Small Buyer')
        product = TestDataFactory.create_product(name='Persian Blue')
        order = TestDataFactory.create_order(customer=big, total_amount=Decimal('1000.00'))
        TestDataFactory.create_order_item(order, product=product, quantity=Decimal('2'),
                                          unit_price=Decimal('500.00'))
        TestDataFactory.create_order(customer=small, total_amount=Decimal('500.00'))
        TestDataFactory.create_order(customer=small, total_amount=Decimal('9999.00'), status='cancelled')

        response = self.client.get('/api/reports/sales/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summary = response.data['summary']
        self.assertEqual(summary['total_orders'], 2)
        self.assertEqual(summary['total_revenue'], Decimal('1500.00'))
        self.assertEqual(summary['average_order_value'], Decimal('750.00'))
        self.assertEqual(summary['total_outstanding'], Decimal('1500.00'))
        self.assertEqual(len(response.data['daily']), 1)
        self.assertEqual(response.data['daily'][0]['orders'], 2)
        self.assertEqual(response.data['top_customers'][0]['customer_name'], 'Big Buyer')
        self.assertEqual(response.data['top_products'][0]['product_name'], 'Persian Blue')
        self.assertEqual(response.data['top_products'][0]['quantity'], Decimal('2'))

    def test_sales_report_date_range(self):
        TestDataFactory.create_order()
        tomorrow = (timezone.localdate() + timedelta(days=1)).isoformat()
        response = self.client.get(f'/api/reports/sales/?date_from={tomorrow}&date_to={tomorrow}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['total_orders'], 0)
        self.assertEqual(response.data['summary']['average_order_value'], Decimal('0.00'))

        response = self.client.get('/api/reports/sales/?date_from=yesterday')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_inventory_report(self):
        TestDataFactory.create_raw_material(name='Latex', current_stock=Decimal('5'))
        TestDataFactory.create_raw_material(name='Wool', current_stock=Decimal('100'))
        product = TestDataFactory.create_product()
        TestDataFactory.create_individual_product(product)
        TestDataFactory.create_individual_product(product, status='sold')

        response = self.client.get('/api/reports/inventory/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        materials = response.data['materials']
        self.assertEqual(materials['total'], 2)
        self.assertEqual(materials['by_status']['low-stock'], 1)
        self.assertEqual(materials['stock_value'], Decimal('1050.00'))
        self.assertEqual([row['name'] for row in materials['low_stock']], ['Latex'])
        self.assertEqual(response.data['products']['by_status']['in-stock'], 1)
        self.assertEqual(response.data['products']['total_stock'], 1)
        self.assertEqual(response.data['individual_products']['by_status'],
                         {'available': 1, 'sold': 1, 'damaged': 0, 'returned': 0, 'in_production': 0,
                          'quality_check': 0, 'reserved': 0})

    def test_production_report(self):
        product = TestDataFactory.create_product(name='Hall Runner')
        done = TestDataFactory.create_production_batch(product, planned_quantity=2, user=self.user)
        ProductionBatch.objects.filter(pk=done.pk).update(status='completed', actual_quantity=2)
        TestDataFactory.create_production_batch(product, planned_quantity=3, user=self.user)
        Wastage.objects.create(batch=done, waste_type='cutting_waste', quantity=Decimal('1.5'), unit='kg')

        response = self.client.get('/api/reports/production/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_batches'], 2)
        self.assertEqual(response.data['by_status']['completed'], 1)
        self.assertEqual(response.data['by_status']['planned'], 1)
        self.assertEqual(response.data['planned_quantity'], 5)
        self.assertEqual(response.data['actual_quantity'], 2)
        self.assertEqual(response.data['completion_rate'], 100.0)
        self.assertEqual(response.data['by_product'][0]['batches'], 2)
        self.assertEqual(response.data['waste_by_type']['cutting_waste']['quantity'], Decimal('1.50'))
        self.assertEqual(response.data['waste_by_type']['cutting_waste']['label'], 'Scrap')
        self.assertEqual(response.data['waste_by_type']['other']['entries'], 0)

    def test_production_report_without_completed_batches(self):
        TestDataFactory.create_production_batch()
        response = self.client.get('/api/reports/production/')
        self.assertIsNone(response.data['completion_rate'])
