"""
Tests for orders: line pricing, piece reservation, status flow and payments
"""
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from rest_framework import status

from backend.catalog.models import IndividualProduct
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.materials.models import MaterialStockMovement
from backend.orders.models import Order
from backend.orders.pricing import (
    calculate_gst, calculate_item_price, calculate_order_total, calculate_total_price, format_unit_label,
    get_available_pricing_units, get_gsm, get_suggested_pricing_unit
)
from backend.orders.services import OrderError, change_status, record_payment


class PricingTests(SimpleTestCase):
    """Test the pricing helpers"""

    dimensions = {'length': Decimal('2'), 'width': Decimal('3'), 'length_unit': 'm', 'width_unit': 'm'}

    def test_gst_included_is_backed_out(self):
        gst = calculate_gst(Decimal('1180'), Decimal('18'), gst_included=True)
        self.assertEqual(gst['subtotal'], Decimal('1000.00'))
        self.assertEqual(gst['gst_amount'], Decimal('180.00'))
        self.assertEqual(gst['total'], Decimal('1180.00'))

    def test_gst_excluded_is_added(self):
        gst = calculate_gst(Decimal('500'), Decimal('12'), gst_included=False)
        self.assertEqual(gst['subtotal'], Decimal('500.00'))
        self.assertEqual(gst['total'], Decimal('560.00'))

    def test_area_pricing(self):
        self.assertEqual(calculate_total_price(100, 2, 'sqm', self.dimensions), Decimal('1200'))
        # no dimensions falls back to price x quantity
        self.assertEqual(calculate_total_price(100, 2, 'sqm', None), Decimal('200'))

    def test_square_foot_pricing(self):
        total = calculate_total_price(10, 1, 'sqft', self.dimensions)
        self.assertEqual(total.quantize(Decimal('0.01')), Decimal('645.83'))
        result = calculate_item_price(10, 2, 'sqft', self.dimensions, Decimal('18'), gst_included=False)
        self.assertEqual(result['base_amount'], Decimal('1291.67'))
        self.assertEqual(result['unit_value'], Decimal('64.5835'))

    def test_weight_pricing_uses_gsm(self):
        dimensions = dict(self.dimensions, gsm=Decimal('450'))
        self.assertEqual(calculate_total_price(100, 1, 'kg', dimensions), Decimal('270'))

    def test_gsm_from_weight_text(self):
        self.assertEqual(get_gsm({'weight': '450 gsm'}), Decimal('450'))
        self.assertEqual(get_gsm({}), Decimal('0'))

    def test_item_price_validation(self):
        result = calculate_item_price(0, 1, 'unit', None, Decimal('18'))
        self.assertFalse(result['is_valid'])
        self.assertEqual(result['error'], 'Please enter a price')

        result = calculate_item_price(100, 0, 'unit', None, Decimal('18'))
        self.assertEqual(result['error'], 'Please enter a quantity')

    def test_order_total(self):
        items = [
            {'unit_price': 100, 'quantity': 2, 'pricing_unit': 'sqm', 'dimensions': self.dimensions,
             'gst_rate': Decimal('18')},
            {'unit_price': 500, 'quantity': 1, 'gst_rate': Decimal('12'), 'gst_included': False},
        ]
        self.assertEqual(calculate_order_total(items), Decimal('1760.00'))
        self.assertEqual(calculate_order_total([]), Decimal('0'))

    def test_available_units(self):
        self.assertEqual(get_available_pricing_units(self.dimensions), ['unit'])
        with_weight = dict(self.dimensions, weight='450')
        self.assertEqual(get_available_pricing_units(with_weight), ['unit', 'sqft', 'sqm', 'kg', 'gsm'])
        self.assertEqual(get_available_pricing_units(None), ['unit'])
        self.assertEqual(get_suggested_pricing_unit(self.dimensions), 'sqm')
        self.assertEqual(get_suggested_pricing_unit({'gsm': '300'}), 'gsm')

    def test_unit_label(self):
        self.assertEqual(format_unit_label('unit', 1), 'product')
        self.assertEqual(format_unit_label('unit', 3), 'products')
        self.assertEqual(format_unit_label('sqm', 3), 'sqm')


class OrderCreateTests(TestCase):
    """Test creating and editing orders"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Sharma Interiors')
        self.product = TestDataFactory.create_product(name='Persian Blue')
        self.pieces = [TestDataFactory.create_individual_product(self.product) for _ in range(3)]

    def order_payload(self, **item):
        line = {'product': self.product.id, 'quantity': '2', 'unit_price': '100', 'pricing_unit': 'sqm'}
        line.update(item)
        return {'customer': self.customer.id, 'items': [line]}

    def test_create_order_prices_lines(self):
        response = self.client.post('/api/orders/', self.order_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['order_number'].startswith('ON-'))
        self.assertEqual(response.data['customer_name'], 'Sharma Interiors')
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('1200.00'))
        self.assertEqual(Decimal(response.data['gst_amount']), Decimal('183.05'))
        self.assertEqual(Decimal(response.data['subtotal']), Decimal('1016.95'))
        self.assertEqual(Decimal(response.data['outstanding_amount']), Decimal('1200.00'))
        self.assertEqual(response.data['items'][0]['product_name'], 'Persian Blue')

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_orders, 1)
        self.assertEqual(self.customer.outstanding_amount, Decimal('1200.00'))

    def test_gst_on_top(self):
        response = self.client.post('/api/orders/', self.order_payload(
            pricing_unit='unit', quantity='1', unit_price='500', gst_rate='12', gst_included=False
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('560.00'))

    def test_items_are_required(self):
        response = self.client.post('/api/orders/', {'customer': self.customer.id, 'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_suspended_customer_is_refused(self):
        self.customer.status = 'suspended'
        self.customer.save()
        response = self.client.post('/api/orders/', self.order_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reserve_individual_products(self):
        ids = [self.pieces[0].id, self.pieces[1].id]
        response = self.client.post('/api/orders/', self.order_payload(individual_product_ids=ids),
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['items'][0]['individual_products']), 2)
        self.assertEqual(IndividualProduct.objects.filter(id__in=ids, status='reserved').count(), 2)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 1)

    def test_cannot_reserve_more_than_quantity(self):
        ids = [piece.id for piece in self.pieces]
        response = self.client.post('/api/orders/', self.order_payload(individual_product_ids=ids),
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.exists())
        self.assertFalse(IndividualProduct.objects.filter(status='reserved').exists())

    def test_cannot_reserve_sold_piece(self):
        sold = TestDataFactory.create_individual_product(self.product, status='sold')
        response = self.client.post('/api/orders/', self.order_payload(individual_product_ids=[sold.id]),
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('not available', response.data['error'])

    def test_raw_material_line(self):
        material = TestDataFactory.create_raw_material(name='Cotton Yarn')
        response = self.client.post('/api/orders/', {
            'customer': self.customer.id,
            'items': [{'product_type': 'raw_material', 'raw_material': material.id, 'quantity': '5',
                       'unit_price': '200', 'gst_rate': '5'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        item = response.data['items'][0]
        self.assertIsNone(item['product'])
        self.assertEqual(item['unit'], 'kg')
        self.assertEqual(Decimal(item['total_price']), Decimal('1000.00'))

    def test_replacing_items_releases_reservations(self):
        response = self.client.post('/api/orders/', self.order_payload(individual_product_ids=[self.pieces[0].id]),
                                    format='json')
        order_id = response.data['id']

        response = self.client.patch(f'/api/orders/{order_id}/', {
            'items': [{'product': self.product.id, 'quantity': '1', 'unit_price': '900'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('900.00'))
        self.pieces[0].refresh_from_db()
        self.assertEqual(self.pieces[0].status, 'available')

    def test_items_locked_after_acceptance(self):
        order = TestDataFactory.create_order(customer=self.customer, status='accepted')
        response = self.client.patch(f'/api/orders/{order.id}/', {
            'items': [{'product': self.product.id, 'quantity': '1', 'unit_price': '900'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_and_filters(self):
        TestDataFactory.create_order(customer=self.customer)
        TestDataFactory.create_order(customer=self.customer, status='cancelled')
        TestDataFactory.create_order()

        response = self.client.get('/api/orders/')
        self.assertEqual(response.data['count'], 3)
        response = self.client.get(f'/api/orders/?customer={self.customer.id}')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/orders/?status=pending,accepted')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/orders/?search=Sharma')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/orders/?date_from=not-a-date')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_viewer_cannot_create(self):
        viewer = TestDataFactory.create_user(role='user')
        client = AuthenticatedAPIClient().authenticate_user(viewer)
        self.assertEqual(client.get('/api/orders/').status_code, status.HTTP_200_OK)
        response = client.post('/api/orders/', self.order_payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class OrderStatusTests(TestCase):
    """Test the status flow and its stock side effects"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product()
        self.pieces = [TestDataFactory.create_individual_product(self.product) for _ in range(2)]
        self.material = TestDataFactory.create_raw_material(current_stock=Decimal('100.00'))

        response = self.client.post('/api/orders/', {
            'customer': TestDataFactory.create_customer().id,
            'items': [
                {'product': self.product.id, 'quantity': '2', 'unit_price': '1000',
                 'individual_product_ids': [piece.id for piece in self.pieces]},
                {'product_type': 'raw_material', 'raw_material': self.material.id, 'quantity': '10',
                 'unit_price': '50'},
            ],
        }, format='json')
        self.order = Order.objects.get(pk=response.data['id'])

    def set_status(self, new_status):
        return self.client.post(f'/api/orders/{self.order.id}/status/', {'status': new_status}, format='json')

    def test_invalid_transition(self):
        response = self.set_status('delivered')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("'pending'", response.data['error'])

    def test_dispatch_sells_pieces_and_deducts_materials(self):
        for new_status in ('accepted', 'ready', 'dispatched'):
            response = self.set_status(new_status)
            self.assertEqual(response.status_code, status.HTTP_200_OK, new_status)

        self.assertIsNotNone(response.data['accepted_at'])
        self.assertIsNotNone(response.data['dispatched_at'])
        for piece in self.pieces:
            piece.refresh_from_db()
            self.assertEqual(piece.status, 'sold')
            self.assertIsNotNone(piece.sold_date)

        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('90.00'))
        movement = MaterialStockMovement.objects.get(material=self.material, movement_type='out')
        self.assertEqual(movement.reference, self.order.order_number)

        response = self.set_status('delivered')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.set_status('cancelled').status_code, status.HTTP_400_BAD_REQUEST)

    def test_dispatch_fails_without_material_stock(self):
        self.material.current_stock = Decimal('5.00')
        self.material.save()
        self.order.status = 'ready'
        self.order.save()

        with self.assertRaises(OrderError):
            change_status(self.order, 'dispatched', user=self.user)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'ready')
        self.assertFalse(IndividualProduct.objects.filter(status='sold').exists())

    def test_cancel_releases_pieces(self):
        response = self.set_status('cancelled')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['cancelled_at'])
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 2)
        self.assertFalse(IndividualProduct.objects.filter(status='reserved').exists())

    def test_same_status_is_refused(self):
        response = self.set_status('pending')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class OrderPaymentTests(TestCase):
    """Test payments, deletion rules and stats"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer()
        self.order = TestDataFactory.create_order(customer=self.customer, total_amount=Decimal('1200.00'))

    def pay(self, amount):
        return self.client.post(f'/api/orders/{self.order.id}/payments/',
                                {'amount': amount, 'payment_method': 'upi'}, format='json')

    def test_record_payment(self):
        response = self.pay('500')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['paid_amount'], Decimal('500.00'))
        self.assertEqual(response.data['outstanding_amount'], Decimal('700.00'))
        self.assertEqual(response.data['payment']['payment_method'], 'upi')

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.outstanding_amount, Decimal('700.00'))

    def test_payment_cannot_exceed_outstanding(self):
        self.pay('1000')
        response = self.pay('300')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('outstanding', response.data['error'])

    def test_no_payment_on_cancelled_order(self):
        self.order.status = 'cancelled'
        self.order.save()
        with self.assertRaises(OrderError):
            record_payment(self.order, '100', user=self.user)

    def test_delete_rules(self):
        self.pay('100')
        response = self.client.delete(f'/api/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        accepted = TestDataFactory.create_order(customer=self.customer, status='accepted')
        response = self.client.delete(f'/api/orders/{accepted.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        pending = TestDataFactory.create_order(customer=self.customer)
        response = self.client.delete(f'/api/orders/{pending.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Order.objects.filter(pk=pending.pk).exists())

    def test_stats(self):
        self.pay('200')
        TestDataFactory.create_order(customer=self.customer, status='cancelled', total_amount=Decimal('999.00'))
        response = self.client.get('/api/orders/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 2)
        self.assertEqual(response.data['pending'], 1)
        self.assertEqual(response.data['cancelled'], 1)
        self.assertEqual(response.data['total_revenue'], Decimal('1200.00'))
        self.assertEqual(response.data['total_paid'], Decimal('200.00'))
        self.assertEqual(response.data['total_outstanding'], Decimal('1000.00'))
        self.assertEqual(response.data['today_orders'], 2)

    def test_calculate_price(self):
        product = TestDataFactory.create_product(weight=Decimal('450'))
        response = self.client.post('/api/orders/calculate-price/', {
            'product': product.id, 'unit_price': '100', 'quantity': '1', 'pricing_unit': 'sqm', 'gst_rate': '18',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_price'], Decimal('600.00'))
        self.assertEqual(response.data['sqm_per_unit'], Decimal('6.0000'))
        self.assertEqual(response.data['suggested_pricing_unit'], 'sqm')
        self.assertIn('sqft', response.data['available_pricing_units'])
