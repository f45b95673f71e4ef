"""
Tests for notifications and the low stock check
"""
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.notifications.models import Notification
from backend.notifications.services import check_low_stock, notify


class NotificationAPITests(TestCase):
    """Test the notification endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(role='user')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/notifications/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_list_newest_first_with_total(self):
        first = TestDataFactory.create_notification(title='First')
        second = TestDataFactory.create_notification(title='Second')
        response = self.client.get('/api/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 2)
        self.assertEqual([item['id'] for item in response.data['data']], [second.id, first.id])
        self.assertEqual(response.data['data'][0]['relative_time'], 'Just now')

    def test_filters_and_paging(self):
        TestDataFactory.create_notification(module='orders', notification_type='order_alert')
        TestDataFactory.create_notification(module='orders', status='read')
        TestDataFactory.create_notification(module='materials', notification_type='low_stock')

        response = self.client.get('/api/notifications/?module=orders')
        self.assertEqual(response.data['total'], 2)
        response = self.client.get('/api/notifications/?status=unread&type=low_stock')
        self.assertEqual(response.data['total'], 1)

        response = self.client.get('/api/notifications/?limit=1&offset=1')
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(len(response.data['data']), 1)
        response = self.client.get('/api/notifications/?limit=abc')
        self.assertEqual(len(response.data['data']), 3)

    def test_create(self):
        response = self.client.post('/api/notifications/', {
            'title': 'Restock latex', 'message': 'Running low on latex', 'notification_type': 'restock_request',
            'module': 'materials', 'priority': 'high',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'unread')
        self.assertEqual(response.data['created_by_username'], self.user.username)

    def test_invalid_module(self):
        response = self.client.post('/api/notifications/', {
            'title': 'Oops', 'message': 'Bad module', 'module': 'kitchen',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mark_read(self):
        notification = TestDataFactory.create_notification()
        response = self.client.post(f'/api/notifications/{notification.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'read')
        self.assertIsNotNone(response.data['read_at'])

        response = self.client.patch(f'/api/notifications/{notification.id}/', {'status': 'unread'},
                                     format='json')
        self.assertEqual(response.data['status'], 'unread')
        self.assertIsNone(response.data['read_at'])

    def test_mark_all_read_by_module(self):
        TestDataFactory.create_notification(module='orders')
        TestDataFactory.create_notification(module='orders')
        TestDataFactory.create_notification(module='production')

        response = self.client.post('/api/notifications/read-all/', {'module': 'orders'}, format='json')
        self.assertEqual(response.data['updated'], 2)

        response = self.client.get('/api/notifications/unread-count/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['by_module'], {'production': 1})

    def test_delete(self):
        notification = TestDataFactory.create_notification()
        response = self.client.delete(f'/api/notifications/{notification.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Notification.objects.exists())


class LowStockTests(TestCase):
    """Test low stock notifications"""

    def test_notify_truncates_title(self):
        notification = notify('x' * 250, 'message', related_id=7)
        self.assertEqual(len(notification.title), 200)
        self.assertEqual(notification.related_id, '7')

    def test_low_and_out_of_stock_materials(self):
        TestDataFactory.create_raw_material(name='Latex', current_stock=Decimal('5.00'))
        TestDataFactory.create_raw_material(name='Jute', current_stock=Decimal('0.00'))
        TestDataFactory.create_raw_material(name='Cotton')

        created = check_low_stock()
        self.assertEqual(len(created), 2)
        by_title = {notification.title: notification for notification in created}
        self.assertEqual(by_title['Low stock: Latex'].priority, 'high')
        self.assertEqual(by_title['Out of stock: Jute'].priority, 'urgent')
        self.assertEqual(by_title['Low stock: Latex'].message, 'Latex has 5 kg left (minimum 10 kg).')

    def test_unread_notification_is_not_repeated(self):
        TestDataFactory.create_raw_material(name='Latex', current_stock=Decimal('5.00'))
        self.assertEqual(len(check_low_stock()), 1)
        self.assertEqual(check_low_stock(), [])

        Notification.objects.update(status='read')
        self.assertEqual(len(check_low_stock()), 1)

    def test_command(self):
        TestDataFactory.create_raw_material(name='Latex', current_stock=Decimal('5.00'))
        out = StringIO()
        call_command('check_low_stock', stdout=out)
        self.assertIn('Low stock: Latex', out.getvalue())
        self.assertIn('1 notifications created', out.getvalue())
