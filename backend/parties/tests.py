"""
Tests for customers, suppliers and the GST lookup
"""
from decimal import Decimal
from io import StringIO
from unittest import mock

import requests
from django.core.management import call_command
from django.test import TestCase, override_settings
from rest_framework import status

from backend.core.models import ActivityLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.parties.gst_lookup import parse_gst_response
from backend.parties.models import Customer, Supplier

VALID_GST = '27AAPFU0939F1ZV'


class CustomerAPITests(TestCase):
    """Test customer endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_customer(self):
        data = {
            'name': 'Ravi Sharma',
            'phone': '+91 98765 43210',
            'email': 'ravi@example.com',
            'city': 'Jaipur',
            'pincode': '302001',
            'customer_type': 'business',
            'company_name': 'Sharma Interiors',
            'gst_number': VALID_GST.lower(),
            'delivery_address': {'address': '12 MI Road', 'city': 'Jaipur'},
        }
        response = self.client.post('/api/customers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['gst_number'], VALID_GST)
        self.assertEqual(response.data['status'], 'new')
        self.assertEqual(response.data['delivery_address']['state'], '')
        self.assertTrue(ActivityLog.objects.filter(module='customers', action='create').exists())

    def test_create_customer_rejects_invalid_name(self):
        response = self.client.post('/api/customers/', {'name': 'R2D2'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_create_customer_rejects_invalid_gst_and_pincode(self):
        response = self.client.post(
            '/api/customers/', {'name': 'Asha Rao', 'gst_number': 'ABC123', 'pincode': '30A001'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('gst_number', response.data)
        self.assertIn('pincode', response.data)

    def test_partial_update_only_validates_submitted_fields(self):
        customer = TestDataFactory.create_customer(name='Asha Rao')
        response = self.client.patch(f'/api/customers/{customer.id}/', {'status': 'active'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        customer.refresh_from_db()
        self.assertEqual(customer.status, 'active')

    def test_list_is_paginated_and_searchable(self):
        TestDataFactory.create_customer(name='Asha Rao')
        TestDataFactory.create_customer(name='Vikram Singh')
        response = self.client.get('/api/customers/?search=vikram')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Vikram Singh')
        self.assertEqual(response.data['page'], 1)

    def test_delete_refused_when_customer_has_orders(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_order(customer=customer)
        response = self.client.delete(f'/api/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Customer.objects.filter(pk=customer.pk).exists())

    def test_delete_customer_without_orders(self):
        customer = TestDataFactory.create_customer()
        response = self.client.delete(f'/api/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Customer.objects.filter(pk=customer.pk).exists())

    def test_stats(self):
        TestDataFactory.create_customer(status='active', customer_type='business')
        TestDataFactory.create_customer(status='new')
        response = self.client.get('/api/customers/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['active'], 1)
        self.assertEqual(response.data['new'], 1)
        self.assertEqual(response.data['business'], 1)

    def test_customer_orders(self):
        customer = TestDataFactory.create_customer()
        order = TestDataFactory.create_order(customer=customer)
        TestDataFactory.create_order()
        response = self.client.get(f'/api/customers/{customer.id}/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['order_number'], order.order_number)

    def test_user_without_create_permission_is_forbidden(self):
        viewer = TestDataFactory.create_user(role='user')
        self.client.authenticate_user(viewer)
        self.assertEqual(self.client.get('/api/customers/').status_code, status.HTTP_200_OK)
        response = self.client.post('/api/customers/', {'name': 'Asha Rao'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_user_with_create_permission_can_create(self):
        editor = TestDataFactory.create_user(role='user', permissions={'customers': {'create': True}})
        self.client.authenticate_user(editor)
        response = self.client.post('/api/customers/', {'name': 'Asha Rao'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)


class CustomerTotalsTests(TestCase):
    """Test order totals kept on the customer"""

    def test_refresh_order_totals_ignores_cancelled_orders(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_order(customer=customer, total_amount=Decimal('1000.00'), paid_amount=Decimal('400.00'))
        TestDataFactory.create_order(customer=customer, total_amount=Decimal('500.00'))
        TestDataFactory.create_order(customer=customer, total_amount=Decimal('9999.00'), status='cancelled')

        customer.refresh_order_totals()
        customer.refresh_from_db()
        self.assertEqual(customer.total_orders, 2)
        self.assertEqual(customer.total_value, Decimal('1500.00'))
        self.assertEqual(customer.outstanding_amount, Decimal('1100.00'))
        self.assertIsNotNone(customer.last_order_date)

    def test_refresh_customer_totals_command(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_order(customer=customer, total_amount=Decimal('750.00'))
        Customer.objects.filter(pk=customer.pk).update(total_orders=0, total_value=Decimal('0.00'))

        out = StringIO()
        call_command('refresh_customer_totals', stdout=out)
        customer.refresh_from_db()
        self.assertEqual(customer.total_orders, 1)
        self.assertEqual(customer.total_value, Decimal('750.00'))
        self.assertIn('1 customers updated', out.getvalue())

    def test_refresh_customer_totals_dry_run_changes_nothing(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_order(customer=customer, total_amount=Decimal('750.00'))
        Customer.objects.filter(pk=customer.pk).update(total_orders=0, total_value=Decimal('0.00'))

        call_command('refresh_customer_totals', '--dry-run', stdout=StringIO())
        customer.refresh_from_db()
        self.assertEqual(customer.total_orders, 0)


class SupplierAPITests(TestCase):
    """Test supplier endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_supplier(self):
        data = {'name': 'Jaipur Yarn & Co.', 'contact_person': 'Mohan', 'performance_rating': '4.5'}
        response = self.client.post('/api/suppliers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_orders'], 0)

    def test_rating_must_be_between_zero_and_five(self):
        response = self.client.post('/api/suppliers/', {'name': 'Loom Works', 'performance_rating': '6'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('performance_rating', response.data)

    def test_totals_exclude_cancelled_purchase_orders(self):
        supplier = TestDataFactory.create_supplier()
        TestDataFactory.create_purchase_order(supplier=supplier, total_amount=Decimal('2000.00'))
        TestDataFactory.create_purchase_order(supplier=supplier, total_amount=Decimal('500.00'), status='cancelled')

        response = self.client.get(f'/api/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 1)
        self.assertEqual(Decimal(response.data['total_value']), Decimal('2000.00'))

        response = self.client.get('/api/suppliers/')
        self.assertEqual(response.data['results'][0]['total_orders'], 1)

    def test_delete_refused_when_purchase_orders_exist(self):
        supplier = TestDataFactory.create_supplier()
        TestDataFactory.create_purchase_order(supplier=supplier)
        response = self.client.delete(f'/api/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Supplier.objects.filter(pk=supplier.pk).exists())

    def test_supplier_purchase_orders(self):
        supplier = TestDataFactory.create_supplier()
        purchase_order = TestDataFactory.create_purchase_order(supplier=supplier)
        response = self.client.get(f'/api/suppliers/{supplier.id}/purchase-orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['results'][0]['order_number'], purchase_order.order_number)

    def test_stats(self):
        TestDataFactory.create_supplier(status='active')
        TestDataFactory.create_supplier(status='suspended')
        response = self.client.get('/api/suppliers/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['suspended'], 1)


class GSTLookupTests(TestCase):
    """Test the GST lookup endpoint with the upstream API mocked"""

    PAYLOAD = {
        'success': True,
        'data': [{
            'legalName': 'SHARMA TEXTILES PRIVATE LIMITED',
            'tradeName': 'Sharma Carpets',
            'constitutionOfBusiness': 'Private Limited Company',
            'status': 'Active',
            'principalAddress': {
                'address': {
                    'buildingNumber': '12',
                    'buildingName': 'Textile Tower',
                    'street': 'MI Road',
                    'location': 'Jaipur',
                    'locality': '',
                    'district': 'Jaipur',
                    'stateCode': 'Rajasthan',
                    'pincode': 302001,
                }
            },
        }],
    }

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_parse_response_prefers_legal_name_and_trade_name(self):
        details = parse_gst_response(VALID_GST, self.PAYLOAD)
        self.assertEqual(details['name'], 'SHARMA TEXTILES PRIVATE LIMITED')
        self.assertEqual(details['company_name'], 'Sharma Carpets')
        self.assertEqual(details['address'], '12, Textile Tower, MI Road, Jaipur')
        self.assertEqual(details['city'], 'Jaipur')
        self.assertEqual(details['pincode'], '302001')

    @override_settings(GST_API_KEY='')
    def test_lookup_without_api_key_returns_503(self):
        response = self.client.get(f'/api/customers/gst-lookup/{VALID_GST}/')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    def test_invalid_gst_number_returns_400(self):
        response = self.client.get('/api/customers/gst-lookup/12345/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(GST_API_KEY='test-key')
    @mock.patch('backend.parties.gst_lookup.requests.get')
    def test_lookup_success(self, mock_get):
        mock_get.return_value = mock.Mock(status_code=200, json=mock.Mock(return_value=self.PAYLOAD))
        response = self.client.get(f'/api/customers/gst-lookup/{VALID_GST.lower()}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['gst_number'], VALID_GST)
        self.assertEqual(response.data['business_type'], 'Private Limited Company')
        _, kwargs = mock_get.call_args
        self.assertEqual(kwargs['headers']['x-rapidapi-key'], 'test-key')

    @override_settings(GST_API_KEY='test-key')
    @mock.patch('backend.parties.gst_lookup.requests.get')
    def test_lookup_empty_payload_returns_404(self, mock_get):
        mock_get.return_value = mock.Mock(status_code=200, json=mock.Mock(return_value={'success': True, 'data': []}))
        response = self.client.get(f'/api/customers/gst-lookup/{VALID_GST}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    @override_settings(GST_API_KEY='test-key')
    @mock.patch('backend.parties.gst_lookup.requests.get')
    def test_lookup_network_error_returns_502(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError('boom')
        response = self.client.get(f'/api/customers/gst-lookup/{VALID_GST}/')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
