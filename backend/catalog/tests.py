"""
Tests for products, individual products and recipes
"""
from decimal import Decimal
from types import SimpleNamespace

from django.test import SimpleTestCase, TestCase
from rest_framework import status

from backend.catalog.models import IndividualProduct, Recipe
from backend.catalog.recipes import calculate_recipe_requirements
from backend.catalog.services import UntrackedProductError, create_individual_products
from backend.catalog.units import (
    calculate_sqm, calculate_stock_status, convert_to_feet, convert_to_meters, format_sqm_with_square_feet
)
from backend.catalog.utils import format_serial, get_prefix_for_product
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.materials.models import RawMaterial


class UnitTests(SimpleTestCase):
    """Test dimension and code helpers"""

    def test_convert_to_meters(self):
        self.assertEqual(convert_to_meters(100, 'cm'), Decimal('1'))
        self.assertEqual(convert_to_meters(1500, 'mm'), Decimal('1.5'))
        self.assertEqual(convert_to_meters(10, 'feet'), Decimal('3.048'))
        self.assertEqual(convert_to_meters(10, ' IN '), Decimal('0.254'))
        self.assertEqual(convert_to_meters(2, 'yards'), Decimal('1.8288'))
        self.assertEqual(convert_to_meters(4, 'm'), Decimal('4'))
        # unknown units pass through
        self.assertEqual(convert_to_meters(5, 'furlong'), Decimal('5'))

    def test_convert_to_feet(self):
        self.assertEqual(convert_to_feet(12, 'in'), Decimal('1'))
        self.assertEqual(convert_to_feet(1, 'yd'), Decimal('3'))
        self.assertEqual(convert_to_feet(Decimal('30.48'), 'cm'), Decimal('1'))
        self.assertEqual(convert_to_feet(2, 'Meters'), Decimal('6.56168'))
        self.assertEqual(convert_to_feet(7, 'ft'), Decimal('7'))
        self.assertEqual(convert_to_feet(5, 'furlong'), Decimal('5'))

    def test_sqm_converts_units(self):
        self.assertEqual(calculate_sqm(200, 300, 'cm', 'cm'), Decimal('6'))
        self.assertEqual(calculate_sqm(2, 3, 'm', 'm'), Decimal('6'))
        self.assertEqual(calculate_sqm(None, 3), Decimal('0'))

    def test_sqm_display(self):
        self.assertEqual(format_sqm_with_square_feet(Decimal('1.5')), '1.5000 sqm (16.1459 sqft)')

    def test_stock_status(self):
        self.assertEqual(calculate_stock_status(0, 5), 'out-of-stock')
        self.assertEqual(calculate_stock_status(3, 5), 'low-stock')
        self.assertEqual(calculate_stock_status(5, 5), 'in-stock')
        self.assertEqual(calculate_stock_status(0, 5, 'discontinued'), 'discontinued')

    def test_serial_prefix(self):
        self.assertEqual(get_prefix_for_product(SimpleNamespace(category='Carpet', name='Blue')), 'CAR')
        self.assertEqual(get_prefix_for_product(SimpleNamespace(category='', name='Runner 2x8')), 'RUN')
        self.assertEqual(get_prefix_for_product(SimpleNamespace(category='', name='A1')), 'UNK')
        self.assertEqual(format_serial('CAR', 12), 'CAR-0012')
        self.assertEqual(format_serial('CAR', 10000), 'CAR-10000')


class ProductAPITests(TestCase):
    """Test product endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_product(self):
        response = self.client.post('/api/products/', {
            'name': 'Kashmir Silk',
            'category': 'Carpet',
            'length': '200',
            'length_unit': 'cm',
            'width': '150',
            'width_unit': 'cm',
            'unit': 'piece',
            'min_stock_level': 2,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['qr_code'].startswith('PRD-'))
        self.assertEqual(response.data['sqm'], '3.0000')
        self.assertEqual(response.data['status'], 'out-of-stock')
        self.assertEqual(response.data['individual_counts'], {})

    def test_dimension_needs_unit(self):
        response = self.client.post('/api/products/', {'name': 'No Unit', 'length': '2'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('length_unit', response.data)

    def test_invalid_name(self):
        response = self.client.post('/api/products/', {'name': 'Rug @ home'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_untracked_stock_follows_base_quantity(self):
        response = self.client.post('/api/products/', {
            'name': 'Jute Roll', 'individual_stock_tracking': False, 'base_quantity': 12, 'min_stock_level': 20,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['current_stock'], 12)
        self.assertEqual(response.data['status'], 'low-stock')
        self.assertIsNone(response.data['individual_counts'])

    def test_search_and_status_filters(self):
        TestDataFactory.create_product(name='Persian Rug', color='Red')
        TestDataFactory.create_product(name='Modern Rug', color='Grey')
        stocked = TestDataFactory.create_product(name='Shaggy Mat')
        TestDataFactory.create_individual_product(stocked)

        response = self.client.get('/api/products/?search=red persian')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/products/?search=rug')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/products/?status=in-stock,low-stock')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Shaggy Mat')

    def test_delete_rules(self):
        product = TestDataFactory.create_product()
        TestDataFactory.create_individual_product(product, status='sold')
        response = self.client.delete(f'/api/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        used = TestDataFactory.create_product()
        TestDataFactory.create_order_item(TestDataFactory.create_order(), product=used)
        response = self.client.delete(f'/api/products/{used.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        unused = TestDataFactory.create_product()
        response = self.client.delete(f'/api/products/{unused.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_stats(self):
        product = TestDataFactory.create_product()
        TestDataFactory.create_individual_product(product)
        TestDataFactory.create_product(individual_stock_tracking=False, base_quantity=5)
        TestDataFactory.create_product()

        response = self.client.get('/api/products/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_products'], 3)
        self.assertEqual(response.data['in_stock'], 2)
        self.assertEqual(response.data['out_of_stock'], 1)
        self.assertEqual(response.data['total_stock'], 6)

    def test_export_csv(self):
        TestDataFactory.create_product(name='Export Me')
        response = self.client.get('/api/products/export/?format=csv')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response['Content-Type'].startswith('text/csv'))
        content = response.content.decode('utf-8')
        self.assertIn('QR Code', content)
        self.assertIn('Export Me', content)

    def test_export_unknown_format(self):
        response = self.client.get('/api/products/export/?format=pdf')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class IndividualProductTests(TestCase):
    """Test individual product pieces and their effect on stock"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(name='Hall Runner', category='Carpet', min_stock_level=2)

    def test_bulk_create(self):
        response = self.client.post(f'/api/products/{self.product.id}/individual-products/', {
            'count': 3, 'quality_grade': 'A', 'location': 'Rack 4',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created'], 3)
        self.assertEqual(response.data['current_stock'], 3)
        serials = [item['serial_number'] for item in response.data['results']]
        self.assertEqual(serials, ['CAR-0001', 'CAR-0002', 'CAR-0003'])
        self.assertTrue(all(item['quality_grade'] == 'A' for item in response.data['results']))

        self.product.refresh_from_db()
        self.assertEqual(self.product.status, 'in-stock')

    def test_serials_continue_after_existing(self):
        create_individual_products(self.product, 2)
        created = create_individual_products(self.product, 1)
        self.assertEqual(created[0].serial_number, 'CAR-0003')

    def test_untracked_product_has_no_pieces(self):
        untracked = TestDataFactory.create_product(individual_stock_tracking=False)
        with self.assertRaises(UntrackedProductError):
            create_individual_products(untracked, 1)
        response = self.client.post(f'/api/products/{untracked.id}/individual-products/', {'count': 1},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_pieces_not_available_do_not_count(self):
        create_individual_products(self.product, 2, status='quality_check')
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 0)

    def test_status_change_refreshes_stock(self):
        pieces = create_individual_products(self.product, 2)
        response = self.client.patch(f'/api/individual-products/{pieces[0].id}/', {'status': 'damaged'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 1)
        self.assertEqual(self.product.status, 'low-stock')

        response = self.client.patch(f'/api/individual-products/{pieces[1].id}/', {'status': 'sold'},
                                     format='json')
        self.assertIsNotNone(response.data['sold_date'])

    def test_lookup_by_qr(self):
        piece = TestDataFactory.create_individual_product(self.product)
        response = self.client.get(f'/api/individual-products/qr/{piece.qr_code}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], piece.id)
        self.assertEqual(response.data['product_name'], 'Hall Runner')

        response = self.client.get('/api/individual-products/qr/IND-UNKNOWN/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_rules(self):
        reserved = TestDataFactory.create_individual_product(self.product, status='reserved')
        response = self.client.delete(f'/api/individual-products/{reserved.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        available = TestDataFactory.create_individual_product(self.product)
        response = self.client.delete(f'/api/individual-products/{available.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 0)

    def test_list_and_stats(self):
        create_individual_products(self.product, 2)
        TestDataFactory.create_individual_product(self.product, status='sold')
        TestDataFactory.create_individual_product(TestDataFactory.create_product())

        response = self.client.get(f'/api/individual-products/?product={self.product.id}&status=available')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get(f'/api/individual-products/stats/?product={self.product.id}')
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(response.data['by_status']['sold'], 1)
        self.assertEqual(response.data['by_status']['damaged'], 0)

    def test_label(self):
        piece = TestDataFactory.create_individual_product(self.product, final_length=Decimal('2.5'),
                                                          final_width=Decimal('1.5'))
        response = self.client.get(f'/api/individual-products/{piece.id}/label/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['serial_number'], piece.serial_number)
        self.assertTrue(response.data['label'].startswith('data:image/png;base64,'))


class RecipeTests(TestCase):
    """Test recipes and the requirements calculator"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product()
        self.yarn = TestDataFactory.create_raw_material(name='Wool Yarn', cost_per_unit=Decimal('10.00'))

    def test_create_recipe(self):
        response = self.client.post('/api/recipes/', {
            'product': self.product.id,
            'materials': [
                {'material_type': 'raw_material', 'raw_material': self.yarn.id, 'quantity_per_sqm': '0.5'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['version'], 1)
        self.assertEqual(response.data['materials'][0]['unit'], 'kg')
        self.assertEqual(response.data['materials'][0]['material_name'], 'Wool Yarn')
        self.assertEqual(response.data['cost_per_sqm'], '5.00')
        self.assertEqual(Recipe.objects.get().created_by, self.user)

    def test_one_recipe_per_product(self):
        TestDataFactory.create_recipe(self.product, [(self.yarn, '0.5')])
        response = self.client.post('/api/recipes/', {'product': self.product.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_component_product_ratio(self):
        backing = TestDataFactory.create_product(name='Backing Sheet', length=Decimal('1'), width=Decimal('1'))
        response = self.client.post('/api/recipes/', {
            'product': self.product.id,
            'materials': [{'material_type': 'product', 'component_product': backing.id}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['materials'][0]['quantity_per_sqm']), Decimal('1'))

        response = self.client.post('/api/recipes/', {
            'product': backing.id,
            'materials': [{'material_type': 'product', 'component_product': backing.id}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_replacing_materials_bumps_version(self):
        recipe = TestDataFactory.create_recipe(self.product, [(self.yarn, '0.5')])
        response = self.client.patch(f'/api/recipes/{recipe.id}/', {
            'materials': [
                {'material_type': 'raw_material', 'raw_material': self.yarn.id, 'quantity_per_sqm': '0.75'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['version'], 2)

        response = self.client.patch(f'/api/recipes/{recipe.id}/', {'description': 'Hand knotted'},
                                     format='json')
        self.assertEqual(response.data['version'], 2)

    def test_by_product(self):
        recipe = TestDataFactory.create_recipe(self.product, [(self.yarn, '0.5')])
        response = self.client.get(f'/api/recipes/product/{self.product.id}/')
        self.assertEqual(response.data['id'], recipe.id)

    def test_calculate_requirements(self):
        recipe = TestDataFactory.create_recipe(self.product, [(self.yarn, '0.5')])
        result = calculate_recipe_requirements(recipe, 2)
        self.assertEqual(result['total_sqm'], Decimal('12.0000'))
        self.assertEqual(result['materials'][0]['required_quantity'], Decimal('6.0000'))
        self.assertEqual(result['total_cost'], Decimal('60.00'))
        self.assertEqual(result['cost_per_sqm'], Decimal('5.00'))
        self.assertTrue(result['can_produce'])
        self.assertEqual(result['max_producible'], 33)

    def test_calculate_shortfall_with_waste(self):
        self.yarn.current_stock = Decimal('5.00')
        self.yarn.save()
        recipe = TestDataFactory.create_recipe(self.product, [(self.yarn, '0.5')])
        line = recipe.materials.get()
        line.waste_factor = Decimal('10')
        line.save()

        response = self.client.get(f'/api/recipes/{recipe.id}/calculate/?quantity=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        material = response.data['materials'][0]
        self.assertEqual(material['required_quantity'], Decimal('6.6000'))
        self.assertEqual(material['shortfall'], Decimal('1.6000'))
        self.assertFalse(response.data['can_produce'])
        self.assertEqual(response.data['max_producible'], 1)

    def test_calculate_rejects_bad_quantity(self):
        recipe = TestDataFactory.create_recipe(self.product, [(self.yarn, '0.5')])
        response = self.client.get(f'/api/recipes/{recipe.id}/calculate/?quantity=0')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_deleting_product_removes_recipe(self):
        TestDataFactory.create_recipe(self.product, [(self.yarn, '0.5')])
        TestDataFactory.create_individual_product(self.product)
        response = self.client.delete(f'/api/products/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Recipe.objects.exists())
        self.assertFalse(IndividualProduct.objects.exists())
        self.assertTrue(RawMaterial.objects.filter(pk=self.yarn.pk).exists())
