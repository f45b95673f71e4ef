"""
Tests for dropdown options: CRUD, grouping, ordering and the seed command
"""
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.dropdowns.models import DropdownOption
from backend.dropdowns.seed_data import DEFAULT_DROPDOWN_OPTIONS


class DropdownAPITests(TestCase):
    """Test dropdown option endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_option_defaults_display_order(self):
        """New options go to the end of their category"""
        TestDataFactory.create_dropdown_option(category='color', value='Red', display_order=4)
        response = self.client.post('/api/dropdowns/', {'category': 'color', 'value': '  Teal  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['value'], 'Teal')
        self.assertEqual(response.data['display_order'], 5)

    def test_duplicate_value_is_rejected_case_insensitively(self):
        TestDataFactory.create_dropdown_option(category='color', value='Red')
        response = self.client.post('/api/dropdowns/', {'category': 'color', 'value': 'red'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('value', response.data)

    def test_same_value_allowed_in_other_category(self):
        TestDataFactory.create_dropdown_option(category='color', value='Standard')
        response = self.client.post('/api/dropdowns/', {'category': 'pattern', 'value': 'Standard'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_list_filters_by_category(self):
        TestDataFactory.create_dropdown_option(category='color', value='Red')
        TestDataFactory.create_dropdown_option(category='unit', value='kg')
        response = self.client.get('/api/dropdowns/?category=unit')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([option['value'] for option in response.data], ['kg'])

    def test_grouped_only_includes_active_options_in_order(self):
        TestDataFactory.create_dropdown_option(category='color', value='Blue', display_order=2)
        TestDataFactory.create_dropdown_option(category='color', value='Red', display_order=1)
        TestDataFactory.create_dropdown_option(category='color', value='Pink', display_order=3, is_active=False)
        response = self.client.get('/api/dropdowns/grouped/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([option['value'] for option in response.data['color']], ['Red', 'Blue'])

    def test_grouped_cache_is_invalidated_on_change(self):
        TestDataFactory.create_dropdown_option(category='unit', value='kg')
        first = self.client.get('/api/dropdowns/grouped/')
        self.assertEqual(len(first.data['unit']), 1)

        self.client.post('/api/dropdowns/', {'category': 'unit', 'value': 'roll'}, format='json')
        second = self.client.get('/api/dropdowns/grouped/')
        self.assertEqual(len(second.data['unit']), 2)

    def test_toggle_active(self):
        option = TestDataFactory.create_dropdown_option(category='color', value='Red')
        response = self.client.patch(f'/api/dropdowns/{option.id}/toggle-active/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])

    def test_update_order(self):
        red = TestDataFactory.create_dropdown_option(category='color', value='Red', display_order=1)
        blue = TestDataFactory.create_dropdown_option(category='color', value='Blue', display_order=2)
        data = {'updates': [{'id': red.id, 'display_order': 2}, {'id': blue.id, 'display_order': 1}]}
        response = self.client.patch('/api/dropdowns/update-order/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        red.refresh_from_db()
        blue.refresh_from_db()
        self.assertEqual(red.display_order, 2)
        self.assertEqual(blue.display_order, 1)

    def test_product_bundle_keys(self):
        TestDataFactory.create_dropdown_option(category='pattern', value='Floral')
        response = self.client.get('/api/dropdowns/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('patterns', response.data['data'])
        self.assertEqual(response.data['data']['patterns'][0]['value'], 'Floral')
        self.assertEqual(response.data['data']['units'], [])

    def test_product_bundle_includes_heights_and_thicknesses(self):
        TestDataFactory.create_dropdown_option(category='height', value='45 meter')
        TestDataFactory.create_dropdown_option(category='thickness', value='5mm')
        data = self.client.get('/api/dropdowns/products/').data['data']
        self.assertEqual([option['value'] for option in data['heights']], ['45 meter'])
        self.assertEqual([option['value'] for option in data['thicknesses']], ['5mm'])

    def test_unknown_category_returns_404(self):
        response = self.client.get('/api/dropdowns/category/flavour/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_view_only_user_cannot_create(self):
        viewer = TestDataFactory.create_user(role='user')
        self.client.authenticate_user(viewer)
        self.assertEqual(self.client.get('/api/dropdowns/').status_code, status.HTTP_200_OK)
        response = self.client.post('/api/dropdowns/', {'category': 'color', 'value': 'Red'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_option(self):
        option = TestDataFactory.create_dropdown_option(category='color', value='Red')
        response = self.client.delete(f'/api/dropdowns/{option.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(DropdownOption.objects.filter(id=option.id).exists())


class SeedDropdownsCommandTests(TestCase):
    """Test the seed_dropdowns management command"""

    def test_seed_creates_defaults(self):
        call_command('seed_dropdowns', stdout=StringIO())
        self.assertEqual(DropdownOption.objects.count(), len(DEFAULT_DROPDOWN_OPTIONS))
        self.assertEqual(DropdownOption.objects.get(category='pattern', value='RD-1009').display_order, 999)

    def test_seed_is_idempotent(self):
        call_command('seed_dropdowns', stdout=StringIO())
        out = StringIO()
        call_command('seed_dropdowns', stdout=out)
        self.assertEqual(DropdownOption.objects.count(), len(DEFAULT_DROPDOWN_OPTIONS))
        self.assertIn(f"Skipped: {len(DEFAULT_DROPDOWN_OPTIONS)}", out.getvalue())

    def test_seed_clear_removes_custom_options(self):
        DropdownOption.objects.create(category='color', value='Custom Teal', display_order=50)
        call_command('seed_dropdowns', '--clear', stdout=StringIO())
        self.assertFalse(DropdownOption.objects.filter(value='Custom Teal').exists())
        self.assertEqual(DropdownOption.objects.count(), len(DEFAULT_DROPDOWN_OPTIONS))
