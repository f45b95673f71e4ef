"""
Tests for raw materials: derived status, stock movements, export and import
"""
from decimal import Decimal

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.materials.models import MaterialStockMovement, RawMaterial, calculate_material_status
from backend.materials.services import InsufficientStock, adjust_stock
from backend.notifications.models import Notification


class MaterialStatusTests(TestCase):
    """Test status derivation"""

    def test_status_rules(self):
        self.assertEqual(calculate_material_status(0, 10), 'out-of-stock')
        self.assertEqual(calculate_material_status(10, 10), 'low-stock')
        self.assertEqual(calculate_material_status(11, 10), 'in-stock')
        self.assertEqual(calculate_material_status(600, 10, 500), 'overstock')
        self.assertEqual(calculate_material_status(600, 10, 0), 'in-stock')

    def test_status_is_derived_on_save(self):
        material = TestDataFactory.create_raw_material(current_stock=Decimal('5'), min_threshold=Decimal('10'))
        self.assertEqual(material.status, 'low-stock')
        self.assertEqual(material.total_value, Decimal('5') * material.cost_per_unit)


class AdjustStockTests(TestCase):
    """Test the stock mutation service"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.material = TestDataFactory.create_raw_material(current_stock=Decimal('100'), min_threshold=Decimal('10'))

    def test_stock_in_records_movement(self):
        movement = adjust_stock(self.material, '25.5', 'in', 'purchase', user=self.user, reference='PO-1')
        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('125.50'))
        self.assertIsNotNone(self.material.last_restocked)
        self.assertEqual(movement.stock_after, Decimal('125.50'))
        self.assertEqual(movement.created_by, self.user)

    def test_stock_out_beyond_available_raises(self):
        with self.assertRaises(InsufficientStock):
            adjust_stock(self.material, 101, 'out', 'production')
        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('100.00'))
        self.assertEqual(MaterialStockMovement.objects.count(), 0)

    def test_zero_quantity_rejected(self):
        with self.assertRaises(ValueError):
            adjust_stock(self.material, 0, 'in', 'adjustment')

    def test_dropping_below_threshold_creates_low_stock_notification(self):
        adjust_stock(self.material, 95, 'out', 'production')
        self.material.refresh_from_db()
        self.assertEqual(self.material.status, 'low-stock')
        notification = Notification.objects.get(notification_type='low_stock', related_id=str(self.material.id))
        self.assertEqual(notification.priority, 'high')


class RawMaterialAPITests(TestCase):
    """Test raw material endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_material_records_opening_stock(self):
        supplier = TestDataFactory.create_supplier(name='Loom Supplies')
        data = {
            'name': 'Wool Yarn',
            'category': 'Yarn',
            'unit': 'kg',
            'current_stock': '40',
            'min_threshold': '10',
            'cost_per_unit': '350',
            'supplier': supplier.id,
        }
        response = self.client.post('/api/raw-materials/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'in-stock')
        self.assertEqual(response.data['supplier_name'], 'Loom Supplies')
        self.assertEqual(response.data['total_value'], '14000.00')
        material = RawMaterial.objects.get(pk=response.data['id'])
        self.assertEqual(material.movements.count(), 1)

    def test_create_rejects_invalid_name(self):
        response = self.client.post('/api/raw-materials/', {'name': 'W', 'category': 'Yarn'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_update_cannot_change_stock_directly(self):
        material = TestDataFactory.create_raw_material(current_stock=Decimal('10'))
        response = self.client.patch(f'/api/raw-materials/{material.id}/', {'current_stock': '50'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('current_stock', response.data)

    def test_adjust_stock_endpoint(self):
        material = TestDataFactory.create_raw_material(current_stock=Decimal('10'))
        response = self.client.post(
            f'/api/raw-materials/{material.id}/adjust-stock/',
            {'quantity': '4', 'movement_type': 'out', 'reason': 'damage'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['material']['current_stock']), Decimal('6'))

        response = self.client.get(f'/api/raw-materials/{material.id}/movements/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['reason'], 'damage')

    def test_adjust_stock_insufficient_returns_400(self):
        material = TestDataFactory.create_raw_material(current_stock=Decimal('3'))
        response = self.client.post(
            f'/api/raw-materials/{material.id}/adjust-stock/',
            {'quantity': '4', 'movement_type': 'out'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient stock', response.data['error'])

    def test_stats(self):
        TestDataFactory.create_raw_material(current_stock=Decimal('0'))
        TestDataFactory.create_raw_material(current_stock=Decimal('5'), min_threshold=Decimal('10'))
        TestDataFactory.create_raw_material(current_stock=Decimal('50'), min_threshold=Decimal('10'),
                                            cost_per_unit=Decimal('2'))
        response = self.client.get('/api/raw-materials/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_materials'], 3)
        self.assertEqual(response.data['out_of_stock'], 1)
        self.assertEqual(response.data['low_stock'], 1)
        self.assertEqual(response.data['in_stock'], 1)

    def test_list_filters_by_status(self):
        TestDataFactory.create_raw_material(name='Latex', current_stock=Decimal('0'))
        TestDataFactory.create_raw_material(name='Jute', current_stock=Decimal('100'))
        response = self.client.get('/api/raw-materials/?status=out-of-stock')
        self.assertEqual([item['name'] for item in response.data['results']], ['Latex'])

    def test_export_csv(self):
        TestDataFactory.create_raw_material(name='Jute')
        response = self.client.get('/api/raw-materials/export/?format=csv')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('attachment; filename="raw_materials.csv"', response['Content-Disposition'])
        content = response.content.decode('utf-8')
        self.assertTrue(content.startswith('Name,Supplier,Category,Unit,Current Stock'))
        self.assertIn('Jute', content)

    def test_export_xlsx(self):
        TestDataFactory.create_raw_material(name='Jute')
        response = self.client.get('/api/raw-materials/export/?format=xlsx')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.content.startswith(b'PK'))

    def test_export_unknown_format(self):
        response = self.client.get('/api/raw-materials/export/?format=pdf')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_import_creates_updates_and_reports_errors(self):
        existing = TestDataFactory.create_raw_material(name='Jute', current_stock=Decimal('10'))
        csv_content = (
            'Name,Supplier,Category,Unit,Current Stock,Min Threshold,Max Capacity,Reorder Point,Cost Per Unit,Type,Color\n'
            'Wool Yarn,,Yarn,kg,20,5,100,10,300,Natural,White\n'
            'jute,,Fibre,kg,25,5,100,10,40,Natural,Brown\n'
            'X,,Yarn,kg,1,0,0,0,1,,\n'
        )
        upload = SimpleUploadedFile('materials.csv', csv_content.encode('utf-8'), content_type='text/csv')
        response = self.client.post('/api/raw-materials/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual(response.data['updated'], 1)
        self.assertEqual(len(response.data['errors']), 1)
        self.assertEqual(response.data['errors'][0]['row'], 4)

        existing.refresh_from_db()
        self.assertEqual(existing.current_stock, Decimal('25.00'))
        self.assertEqual(existing.category, 'Fibre')
        self.assertTrue(existing.movements.filter(notes='CSV import').exists())

    def test_import_without_file(self):
        response = self.client.post('/api/raw-materials/import/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_import_reports_row_with_extra_values(self):
        csv_content = (
            'Name,Category,Unit,Current Stock\n'
            'Wool Yarn,Yarn,kg,10,extra\n'
            'Jute,Fibre,kg,5\n'
        )
        upload = SimpleUploadedFile('materials.csv', csv_content.encode('utf-8'), content_type='text/csv')
        response = self.client.post('/api/raw-materials/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual(response.data['errors'][0]['row'], 2)
        self.assertIn('beyond the header columns', response.data['errors'][0]['error'])
        self.assertFalse(RawMaterial.objects.filter(name='Wool Yarn').exists())
        self.assertEqual(RawMaterial.objects.get(name='Jute').current_stock, Decimal('5.00'))

    def test_import_malformed_csv(self):
        # a single field above the csv module's default size limit
        csv_content = 'Name,Category\n"' + 'x' * 200000 + '",Yarn\n'
        upload = SimpleUploadedFile('materials.csv', csv_content.encode('utf-8'), content_type='text/csv')
        response = self.client.post('/api/raw-materials/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Malformed CSV file', response.data['error'])
