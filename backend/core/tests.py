"""
Tests for authentication, users, settings, activity logs and shared helpers
"""
from datetime import date, timedelta
from types import SimpleNamespace

from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import ValidationError

from backend.core.formatting import (
    format_currency, format_indian_date, format_indian_number, format_indian_number_with_decimals, format_relative_date
)
from backend.core.models import ActivityLog, Setting
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import (
    create_activity_log, describe_activity, generate_document_number, get_date_range, get_setting
)
from backend.core.validation import (
    VALIDATION_RULES, format_validation_errors, get_character_count, rule_validator, validate_fields
)
from backend.orders.models import Order


class FormattingTests(SimpleTestCase):
    """Test Indian number, currency and date formatting"""

    def test_currency(self):
        self.assertEqual(format_currency(12345.5), '₹12,345.5')
        self.assertEqual(format_currency(150000), '₹1.5 Lac')
        self.assertEqual(format_currency(25000000), '₹2.5 Cr')
        self.assertEqual(format_currency(-500), '-₹500')
        self.assertEqual(format_currency(None), '₹0')

    def test_indian_number_abbreviations(self):
        self.assertEqual(format_indian_number(0), '0')
        self.assertEqual(format_indian_number(150000), '1.50 Lac')
        self.assertEqual(format_indian_number(-25000000, decimals=1), '-2.5 Cr')
        self.assertEqual(format_indian_number(1234.5), '1,234.50')

    def test_indian_grouping(self):
        self.assertEqual(format_indian_number_with_decimals(1234567.5), '12,34,567.5')
        self.assertEqual(format_indian_number_with_decimals(1000), '1,000')
        self.assertEqual(format_indian_number_with_decimals('abc'), '0.00')

    def test_dates(self):
        self.assertEqual(format_indian_date(date(2024, 1, 15)), '15/01/2024')
        self.assertEqual(format_indian_date('2024-01-15'), '15/01/2024')
        self.assertEqual(format_indian_date(None), 'N/A')

    def test_relative_date(self):
        now = timezone.now()
        self.assertEqual(format_relative_date(now, now=now), 'Just now')
        self.assertEqual(format_relative_date(now - timedelta(minutes=5), now=now), '5 min ago')
        self.assertEqual(format_relative_date(now - timedelta(hours=1), now=now), '1 hour ago')
        self.assertEqual(format_relative_date(now - timedelta(days=3), now=now), '3 days ago')

    def test_describe_activity(self):
        self.assertEqual(describe_activity('admin', 'create', 'materials', 'Wool Yarn'),
                         'admin added new material "Wool Yarn" to inventory')
        self.assertEqual(describe_activity(None, 'status_change', 'orders', 'ON-20240115-0001', 'Accepted'),
                         'System changed status of order "ON-20240115-0001" to Accepted')

    def test_validation_rules(self):
        rules = {'name': VALIDATION_RULES['PRODUCT_NAME']}
        self.assertEqual(validate_fields({'name': 'Blue Rug (2x3)'}, rules), {})
        self.assertIn('name', validate_fields({'name': 'R'}, rules))
        self.assertIn('name', validate_fields({'name': 'Rug #1'}, rules))

    def test_validation_helpers(self):
        self.assertEqual(format_validation_errors([]), '')
        self.assertEqual(format_validation_errors(['Name is required']), 'Name is required')
        self.assertEqual(format_validation_errors(['Name is required', 'Phone format is invalid']),
                         'Please fix the following:\n1. Name is required\n2. Phone format is invalid')
        self.assertEqual(get_character_count('abc', 2),
                         {'current': 3, 'max': 2, 'remaining': 0, 'is_over_limit': True})
        with self.assertRaises(ValidationError):
            rule_validator('PINCODE', 'Pincode')('12ab56')
        rule_validator('PINCODE', 'Pincode')('')

    def test_digit_rules_reject_non_ascii_digits(self):
        with self.assertRaises(ValidationError):
            rule_validator('PINCODE', 'Pincode')('१२३४५६')
        rule_validator('PINCODE', 'Pincode')('110001')
        errors = validate_fields({'minimum_stock': '٥'}, {'minimum_stock': 'STOCK_LEVEL'})
        self.assertEqual(errors, {'minimum_stock': 'Must be a positive whole number'})
        self.assertEqual(validate_fields({'minimum_stock': '5'}, {'minimum_stock': 'STOCK_LEVEL'}), {})


class UtilsTests(TestCase):
    """Test numbering, settings and date range helpers"""

    def test_document_number_is_sequential_per_day(self):
        day = date(2024, 1, 15)
        first = TestDataFactory.create_order(order_date=day)
        self.assertEqual(first.order_number, 'ON-20240115-0001')
        self.assertEqual(generate_document_number(Order, 'order_number', 'ON', day), 'ON-20240115-0002')
        self.assertEqual(generate_document_number(Order, 'order_number', 'ON', date(2024, 1, 16)),
                         'ON-20240116-0001')

    def test_get_setting(self):
        self.assertEqual(get_setting('default_gst_rate', '18'), '18')
        Setting.objects.create(key='default_gst_rate', value='12')
        self.assertEqual(get_setting('default_gst_rate', '18'), '12')

    def test_date_range(self):
        request = SimpleNamespace(query_params={'date_to': '2024-03-31'})
        self.assertEqual(get_date_range(request, default_days=30), (date(2024, 3, 1), date(2024, 3, 31)))

        request = SimpleNamespace(query_params={'date_from': '2024-04-01', 'date_to': '2024-03-31'})
        with self.assertRaises(ValidationError):
            get_date_range(request)

        request = SimpleNamespace(query_params={'date_from': '01/04/2024'})
        with self.assertRaises(ValidationError):
            get_date_range(request)

    def test_activity_log_without_request(self):
        user = TestDataFactory.create_user(username='meera')
        log = create_activity_log(user=user, action='update', module='customers', object_id=3,
                                  object_name='Sharma Interiors')
        self.assertEqual(log.object_id, '3')
        self.assertEqual(log.description, 'meera updated customer "Sharma Interiors"')
        self.assertIsNone(create_activity_log(action='update'))


class AuthTests(TestCase):
    """Test login, token refresh and the current user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(username='operator', password='s3cret-pass', role='user',
                                                permissions={'orders': {'create': True, 'edit': True}})

    def test_login(self):
        response = self.client.post('/api/auth/login/', {'username': 'operator', 'password': 's3cret-pass'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['username'], 'operator')
        self.assertTrue(ActivityLog.objects.filter(user=self.user, action='login').exists())

        response = self.client.post('/api/auth/refresh/', {'refresh': response.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_wrong_password(self):
        response = self.client.post('/api/auth/login/', {'username': 'operator', 'password': 'nope'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_bad_refresh_token(self):
        response = self.client.post('/api/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_reports_effective_permissions(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        orders = response.data['effective_permissions']['orders']
        self.assertEqual(orders, {'view': True, 'create': True, 'edit': True, 'delete': False})
        self.assertEqual(response.data['effective_permissions']['materials']['create'], False)

    def test_granted_permission_opens_endpoint(self):
        self.client.authenticate_user(self.user)
        customer = TestDataFactory.create_customer()
        order = TestDataFactory.create_order(customer=customer)
        response = self.client.post(f'/api/orders/{order.id}/status/', {'status': 'accepted'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.delete(f'/api/orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class UserAdminTests(TestCase):
    """Test user management (admin only)"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(username='admin_user')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_non_admin_is_refused(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user(role='user'))
        response = client.get('/api/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_user(self):
        response = self.client.post('/api/users/', {
            'username': 'weaver', 'email': 'weaver@test.com', 'password': 'Loom-Strong-42',
            'password_confirm': 'Loom-Strong-42', 'role': 'user',
            'permissions': {'production': {'view': True, 'edit': True}},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['permissions'], {'production': {'view': True, 'edit': True}})
        self.assertTrue(ActivityLog.objects.filter(module='users', action='create', object_name='weaver').exists())

    def test_create_user_validation(self):
        payload = {'username': 'weaver', 'password': 'Loom-Strong-42', 'password_confirm': 'Other-Strong-42'}
        response = self.client.post('/api/users/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

        payload['password_confirm'] = payload['password']
        payload['permissions'] = {'kitchen': {'view': True}}
        response = self.client.post('/api/users/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('permissions', response.data)

        payload['permissions'] = {}
        payload['phone'] = 'call me'
        response = self.client.post('/api/users/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', response.data)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        other = TestDataFactory.create_user(role='user')
        response = self.client.delete(f'/api/users/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class SettingAndActivityTests(TestCase):
    """Test settings, the activity feed and global search"""

    def setUp(self):
        self.admin = TestDataFactory.create_user()
        self.user = TestDataFactory.create_user(role='user')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_settings_write_is_admin_only(self):
        response = self.client.post('/api/settings/', {'key': 'default_gst_rate', 'value': '12'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        client = AuthenticatedAPIClient().authenticate_user(self.user)
        self.assertEqual(client.get('/api/settings/').status_code, status.HTTP_200_OK)
        response = client.post('/api/settings/', {'key': 'company_name', 'value': 'Test'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_activity_feed_visibility(self):
        create_activity_log(user=self.admin, action='create', module='orders', object_name='ON-1')
        own = create_activity_log(user=self.user, action='update', module='orders', object_name='ON-2')

        response = self.client.get('/api/activity-logs/')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/activity-logs/?action=update')
        self.assertEqual(response.data['count'], 1)

        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/activity-logs/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], own.id)

        other = ActivityLog.objects.exclude(pk=own.pk).get()
        response = client.get(f'/api/activity-logs/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_global_search(self):
        customer = TestDataFactory.create_customer(name='Sharma Interiors')
        TestDataFactory.create_order(customer=customer)
        TestDataFactory.create_product(name='Sharma Special Rug')

        response = self.client.get('/api/search/?q=sharma')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['customers']), 1)
        self.assertEqual(len(response.data['orders']), 1)
        self.assertEqual(len(response.data['products']), 1)
        self.assertEqual(response.data['suppliers'], [])

        response = self.client.get('/api/search/?q=s')
        self.assertEqual(response.data['customers'], [])

    def test_media_files_are_not_served(self):
        response = self.client.get('/media/labels/ON-1.png')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
