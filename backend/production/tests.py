"""
Tests for production batches: stage workflow, stock deduction, finished pieces and waste
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.materials.models import MaterialStockMovement
from backend.notifications.models import Notification
from backend.production.models import ProductionBatch, Wastage
from backend.production.services import ProductionError, cancel_batch, complete_stage, start_stage


def run_stages(client, batch_id, stages, payload=None):
    for stage in stages:
        client.post(f'/api/production/batches/{batch_id}/stages/{stage}/start/', {}, format='json')
        response = client.post(f'/api/production/batches/{batch_id}/stages/{stage}/complete/', payload or {},
                               format='json')
        assert response.status_code == 200, response.data


class ProductionBatchTests(TestCase):
    """Test batch creation and editing"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.material = TestDataFactory.create_raw_material(name='Wool', current_stock=Decimal('100'))
        self.product = TestDataFactory.create_product(name='Hall Runner')
        TestDataFactory.create_recipe(self.product, [(self.material, '0.5')])

    def test_create_batch_builds_stages_and_consumption(self):
        response = self.client.post('/api/production/batches/', {
            'product': self.product.id,
            'planned_quantity': 2,
            'priority': 'high',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['batch_number'].startswith('BATCH-'))
        self.assertEqual(response.data['status'], 'planned')
        self.assertEqual([s['stage'] for s in response.data['stages']],
                         ['planning', 'machine', 'wastage', 'individual_products'])
        self.assertEqual(response.data['current_stage'], 'planning')

        # 2 pieces of 2m x 3m need 12 sqm, at 0.5 kg per sqm
        consumption = response.data['consumptions']
        self.assertEqual(len(consumption), 1)
        self.assertEqual(Decimal(consumption[0]['quantity']), Decimal('6'))
        self.assertEqual(consumption[0]['material_name'], 'Wool')

    def test_planned_quantity_must_be_positive(self):
        response = self.client.post('/api/production/batches/', {
            'product': self.product.id,
            'planned_quantity': 0,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_changing_quantity_replans_consumption(self):
        batch = TestDataFactory.create_production_batch(self.product, planned_quantity=2)
        response = self.client.patch(f'/api/production/batches/{batch.id}/', {'planned_quantity': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['consumptions'][0]['quantity']), Decimal('12'))

    def test_only_planned_batches_can_be_deleted(self):
        batch = TestDataFactory.create_production_batch(self.product)
        start_stage(batch, 'planning', user=self.user)
        response = self.client.delete(f'/api/production/batches/{batch.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        planned = TestDataFactory.create_production_batch(self.product)
        response = self.client.delete(f'/api/production/batches/{planned.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(ProductionBatch.objects.filter(pk=planned.id).exists())

    def test_filter_by_status(self):
        TestDataFactory.create_production_batch(self.product)
        cancelled = TestDataFactory.create_production_batch(self.product)
        self.client.post(f'/api/production/batches/{cancelled.id}/cancel/', {'reason': 'No demand'}, format='json')

        response = self.client.get('/api/production/batches/?status=cancelled')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], cancelled.id)


class StageWorkflowTests(TestCase):
    """Test the stage order and the stock effects of each stage"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.material = TestDataFactory.create_raw_material(name='Wool', current_stock=Decimal('100'),
                                                            min_threshold=Decimal('10'))
        self.product = TestDataFactory.create_product(name='Hall Runner')
        TestDataFactory.create_recipe(self.product, [(self.material, '0.5')])
        self.batch = TestDataFactory.create_production_batch(self.product, planned_quantity=2, user=self.user)

    def url(self, stage, action):
        return f'/api/production/batches/{self.batch.id}/stages/{stage}/{action}/'

    def test_stages_must_run_in_order(self):
        response = self.client.post(self.url('machine', 'start'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('planning', response.data['error'])

    def test_starting_planning_moves_batch_in_progress(self):
        response = self.client.post(self.url('planning', 'start'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['batch_status'], 'in_progress')
        self.batch.refresh_from_db()
        self.assertIsNotNone(self.batch.start_date)

    def test_cannot_complete_stage_that_was_not_started(self):
        response = self.client.post(self.url('planning', 'complete'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_completing_planning_deducts_materials(self):
        self.client.post(self.url('planning', 'start'), {}, format='json')
        response = self.client.post(self.url('planning', 'complete'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['batch_status'], 'in_production')

        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('94.00'))
        movement = MaterialStockMovement.objects.get(material=self.material, reason='production')
        self.assertEqual(movement.reference, self.batch.batch_number)
        self.assertFalse(self.batch.consumptions.filter(deducted=False).exists())

    def test_shortfall_deducts_nothing(self):
        other = TestDataFactory.create_raw_material(name='Latex', current_stock=Decimal('1'))
        self.batch.consumptions.create(material_type='raw_material', raw_material=other, quantity=Decimal('5'),
                                       unit='kg')
        self.client.post(self.url('planning', 'start'), {}, format='json')
        response = self.client.post(self.url('planning', 'complete'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient stock', response.data['error'])

        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('100.00'))
        self.assertFalse(self.batch.consumptions.filter(deducted=True).exists())
        self.assertEqual(self.batch.stages.get(stage='planning').status, 'in_progress')

    def test_machine_stage_records_machine(self):
        machine = TestDataFactory.create_machine(name='Tufting 1')
        start_stage(self.batch, 'planning', user=self.user)
        complete_stage(self.batch, 'planning', user=self.user)

        response = self.client.post(self.url('machine', 'start'), {'machine': machine.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stage']['machine_name'], 'Tufting 1')

    def test_machine_under_maintenance_is_refused(self):
        machine = TestDataFactory.create_machine(status='maintenance')
        start_stage(self.batch, 'planning', user=self.user)
        complete_stage(self.batch, 'planning', user=self.user)
        response = self.client.post(self.url('machine', 'start'), {'machine': machine.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_final_stage_creates_individual_products(self):
        run_stages(self.client, self.batch.id, ['planning', 'machine', 'wastage'])
        self.client.post(self.url('individual_products', 'start'), {}, format='json')
        response = self.client.post(self.url('individual_products', 'complete'), {
            'actual_quantity': 3,
            'quality_grade': 'A',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['batch_status'], 'completed')
        self.assertEqual(response.data['actual_quantity'], 3)

        self.batch.refresh_from_db()
        self.assertEqual(self.batch.status, 'completed')
        self.assertIsNotNone(self.batch.completion_date)
        pieces = self.batch.individual_products.all()
        self.assertEqual(pieces.count(), 3)
        self.assertTrue(all(piece.quality_grade == 'A' and piece.status == 'available' for piece in pieces))

        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 3)
        self.assertTrue(Notification.objects.filter(module='production', related_id=str(self.batch.id)).exists())

    def test_final_stage_defaults_to_planned_quantity(self):
        run_stages(self.client, self.batch.id, ['planning', 'machine', 'wastage', 'individual_products'],
                   {'individual_status': 'quality_check'})
        self.batch.refresh_from_db()
        self.assertEqual(self.batch.actual_quantity, 2)
        self.assertEqual(self.batch.individual_products.filter(status='quality_check').count(), 2)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_stock, 0)

    def test_untracked_product_adds_to_base_quantity(self):
        product = TestDataFactory.create_product(individual_stock_tracking=False, base_quantity=5)
        batch = TestDataFactory.create_production_batch(product, planned_quantity=4)
        for stage in ['planning', 'machine', 'wastage', 'individual_products']:
            start_stage(batch, stage, user=self.user)
            complete_stage(batch, stage, user=self.user)
        product.refresh_from_db()
        self.assertEqual(product.base_quantity, 9)
        self.assertEqual(product.current_stock, 9)

    def test_completed_batch_cannot_be_cancelled(self):
        for stage in ['planning', 'machine', 'wastage', 'individual_products']:
            start_stage(self.batch, stage, user=self.user)
            complete_stage(self.batch, stage, user=self.user)
        response = self.client.post(f'/api/production/batches/{self.batch.id}/cancel/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancel_records_reason(self):
        response = self.client.post(f'/api/production/batches/{self.batch.id}/cancel/',
                                    {'reason': 'Loom broke down'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.assertEqual(response.data['cancellation_reason'], 'Loom broke down')
        self.assertEqual(response.data['cancelled_by_username'], self.user.username)

        with self.assertRaises(ProductionError):
            start_stage(self.batch, 'planning', user=self.user)

    def test_stage_actions_reload_the_batch(self):
        start_stage(self.batch, 'planning', user=self.user)
        cancel_batch(ProductionBatch.objects.get(pk=self.batch.pk), user=self.user, reason='Order withdrawn')

        # self.batch still holds the in-progress state in memory
        with self.assertRaises(ProductionError):
            complete_stage(self.batch, 'planning', user=self.user)
        self.assertEqual(self.batch.status, 'cancelled')
        self.assertFalse(self.batch.consumptions.filter(deducted=True).exists())
        with self.assertRaises(ProductionError):
            cancel_batch(self.batch, user=self.user)


class ConsumptionAndWasteTests(TestCase):
    """Test consumption lines and waste handling"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.material = TestDataFactory.create_raw_material(name='Jute', current_stock=Decimal('50'),
                                                            cost_per_unit=Decimal('4'))
        self.product = TestDataFactory.create_product()
        self.batch = TestDataFactory.create_production_batch(self.product)

    def test_add_consumption_line(self):
        response = self.client.post(f'/api/production/batches/{self.batch.id}/consumption/', {
            'raw_material': self.material.id,
            'quantity': '2.5',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['unit'], 'kg')
        self.assertEqual(Decimal(response.data['cost']), Decimal('10.00'))

    def test_consumption_closed_after_planning(self):
        start_stage(self.batch, 'planning', user=self.user)
        complete_stage(self.batch, 'planning', user=self.user)
        response = self.client.post(f'/api/production/batches/{self.batch.id}/consumption/', {
            'raw_material': self.material.id,
            'quantity': '1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_record_and_return_waste(self):
        response = self.client.post(f'/api/production/batches/{self.batch.id}/waste/', {
            'raw_material': self.material.id,
            'waste_type': 'excess_material',
            'quantity': '3',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        waste_id = response.data['id']
        self.assertEqual(response.data['status'], 'generated')

        response = self.client.post(f'/api/production/waste/{waste_id}/return/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'returned')
        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('53.00'))
        self.assertTrue(MaterialStockMovement.objects.filter(material=self.material, reason='waste_return').exists())

        # only once
        response = self.client.post(f'/api/production/waste/{waste_id}/return/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.material.refresh_from_db()
        self.assertEqual(self.material.current_stock, Decimal('53.00'))

    def test_waste_without_material_cannot_be_returned(self):
        waste = Wastage.objects.create(batch=self.batch, waste_type='defective_products', quantity=Decimal('1'),
                                       unit='piece')
        response = self.client.post(f'/api/production/waste/{waste.id}/return/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_waste_list_filters(self):
        Wastage.objects.create(batch=self.batch, waste_type='cutting_waste', quantity=Decimal('2'))
        Wastage.objects.create(batch=self.batch, waste_type='contamination', quantity=Decimal('1'))
        response = self.client.get('/api/production/waste/?waste_type=contamination')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['waste_type'], 'contamination')


class MachineAndStatsTests(TestCase):
    """Test machines and production stats"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_machine_crud(self):
        response = self.client.post('/api/production/machines/', {
            'name': 'Loom A',
            'machine_type': 'Handloom',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        machine_id = response.data['id']

        response = self.client.patch(f'/api/production/machines/{machine_id}/', {'status': 'maintenance'},
                                     format='json')
        self.assertEqual(response.data['status'], 'maintenance')

        response = self.client.get('/api/production/machines/?status=active')
        self.assertEqual(response.data, [])

        response = self.client.delete(f'/api/production/machines/{machine_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_stats(self):
        product = TestDataFactory.create_product()
        TestDataFactory.create_production_batch(product, planned_quantity=3)
        TestDataFactory.create_production_batch(product, planned_quantity=5)
        response = self.client.get('/api/production/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_batches'], 2)
        self.assertEqual(response.data['active_batches'], 2)
        self.assertEqual(response.data['by_status']['planned'], 2)
        self.assertEqual(response.data['planned_quantity'], 8)

    def test_view_only_user_cannot_start_stage(self):
        viewer = TestDataFactory.create_user(role='user')
        client = AuthenticatedAPIClient().authenticate_user(viewer)
        batch = TestDataFactory.create_production_batch()
        response = client.post(f'/api/production/batches/{batch.id}/stages/planning/start/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = client.get(f'/api/production/batches/{batch.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
