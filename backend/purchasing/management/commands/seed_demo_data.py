"""
Management command to load a demo supplier, raw materials and purchase orders
"""
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db import DatabaseError, transaction
from django.utils import timezone

from backend.materials.models import RawMaterial
from backend.materials.services import record_opening_stock
from backend.parties.models import Supplier
from backend.purchasing.models import PurchaseOrder, PurchaseOrderItem

DEMO_SUPPLIER = {
    'name': 'Demo Yarn Traders',
    'contact_person': 'Ravi Kumar',
    'email': 'orders@demoyarn.example',
    'phone': '9876543210',
    'city': 'Panipat',
    'state': 'Haryana',
    'performance_rating': Decimal('4.0'),
}

# name, material_type, category, unit, current_stock, min_threshold, max_capacity, cost_per_unit
DEMO_MATERIALS = [
    ('Cotton Yarn White', 'Yarn', 'Yarn', 'kg', Decimal('500'), Decimal('100'), Decimal('2000'), Decimal('180')),
    ('Polyester Yarn Grey', 'Yarn', 'Yarn', 'kg', Decimal('80'), Decimal('100'), Decimal('1500'), Decimal('140')),
    ('Jute Backing Cloth', 'Backing', 'Backing', 'meters', Decimal('1200'), Decimal('200'), Decimal('5000'), Decimal('45')),
    ('Latex Adhesive', 'Chemical', 'Chemicals', 'liters', Decimal('0'), Decimal('50'), Decimal('800'), Decimal('95')),
    ('Red Dye', 'Dye', 'Dyes', 'kg', Decimal('25'), Decimal('10'), Decimal('200'), Decimal('650')),
]

# order suffix, status, days ago, [(material name, quantity, unit price)]
DEMO_PURCHASE_ORDERS = [
    ('DEMO-1', 'pending', 2, [('Polyester Yarn Grey', Decimal('400'), Decimal('138'))]),
    ('DEMO-2', 'approved', 5, [('Latex Adhesive', Decimal('300'), Decimal('92')),
                               ('Red Dye', Decimal('20'), Decimal('640'))]),
    ('DEMO-3', 'delivered', 20, [('Cotton Yarn White', Decimal('500'), Decimal('175'))]),
]


class Command(BaseCommand):
    help = "Adds a demo supplier, raw materials and purchase orders (safe to run more than once)"

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("ADDING DEMO DATA"))
        self.stdout.write(self.style.SUCCESS("=" * 80))

        created = {'suppliers': 0, 'materials': 0, 'purchase_orders': 0}
        try:
            with transaction.atomic():
                supplier, was_created = Supplier.objects.get_or_create(
                    name=DEMO_SUPPLIER['name'], defaults=DEMO_SUPPLIER
                )
                created['suppliers'] += int(was_created)

                materials = {}
                for name, material_type, category, unit, stock, minimum, capacity, cost in DEMO_MATERIALS:
                    material, was_created = RawMaterial.objects.get_or_create(
                        name=name,
                        supplier=supplier,
                        defaults={
                            'material_type': material_type,
                            'category': category,
                            'unit': unit,
                            'current_stock': stock,
                            'min_threshold': minimum,
                            'max_capacity': capacity,
                            'reorder_point': minimum * 2,
                            'cost_per_unit': cost,
                        },
                    )
                    if was_created:
                        record_opening_stock(material)
                        created['materials'] += 1
                        self.stdout.write(f"  ✓ Material: {material.name} ({material.current_stock} {material.unit})")
                    materials[name] = material

                today = timezone.localdate()
                for suffix, status, days_ago, lines in DEMO_PURCHASE_ORDERS:
                    marker = f"Demo purchase order {suffix}"
                    if PurchaseOrder.objects.filter(supplier=supplier, notes=marker).exists():
                        self.stdout.write(self.style.WARNING(f"  - Skipped (already exists): {marker}"))
                        continue

                    order_date = today - timedelta(days=days_ago)
                    purchase_order = PurchaseOrder.objects.create(
                        supplier=supplier,
                        order_date=order_date,
                        expected_delivery=order_date + timedelta(days=7),
                        actual_delivery=order_date + timedelta(days=6) if status == 'delivered' else None,
                        status=status,
                        notes=marker,
                        stock_received=status == 'delivered',
                    )
                    for material_name, quantity, unit_price in lines:
                        material = materials[material_name]
                        PurchaseOrderItem.objects.create(
                            purchase_order=purchase_order,
                            raw_material=material,
                            material_name=material.name,
                            material_type=material.material_type,
                            category=material.category,
                            unit=material.unit,
                            quantity=quantity,
                            unit_price=unit_price,
                        )
                    purchase_order.recalculate_total()
                    created['purchase_orders'] += 1
                    self.stdout.write(f"  ✓ Purchase order: {purchase_order.order_number} ({status})")
        except DatabaseError as e:
            raise CommandError(f"Failed to seed demo data: {e}")

        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("SUMMARY"))
        self.stdout.write(self.style.SUCCESS("=" * 80))
        for name, count in created.items():
            self.stdout.write(f"{name.replace('_', ' ').capitalize()} created: {count}")
