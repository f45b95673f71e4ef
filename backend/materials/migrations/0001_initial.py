# Generated manually
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('parties', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='RawMaterial',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('material_type', models.CharField(blank=True, max_length=100)),
                ('category', models.CharField(max_length=100)),
                ('current_stock', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('unit', models.CharField(choices=[('kg', 'Kilograms'), ('liters', 'Liters'), ('rolls', 'Rolls'), ('meters', 'Meters'), ('sqm', 'Square Meters'), ('pieces', 'Pieces'), ('boxes', 'Boxes')], default='kg', max_length=20)),
                ('min_threshold', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('max_capacity', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('reorder_point', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('daily_usage', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('supplier_name', models.CharField(blank=True, max_length=200)),
                ('cost_per_unit', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('batch_number', models.CharField(blank=True, max_length=100)),
                ('quality_grade', models.CharField(blank=True, max_length=20)),
                ('color', models.CharField(blank=True, max_length=50)),
                ('image_url', models.URLField(blank=True)),
                ('last_restocked', models.DateTimeField(blank=True, null=True)),
                ('status', models.CharField(choices=[('in-stock', 'In Stock'), ('low-stock', 'Low Stock'), ('out-of-stock', 'Out of Stock'), ('overstock', 'Overstock')], default='out-of-stock', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='raw_materials', to='parties.supplier')),
            ],
            options={
                'db_table': 'raw_materials',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['status'], name='material_status_idx'),
                    models.Index(fields=['category'], name='material_category_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='MaterialStockMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('movement_type', models.CharField(choices=[('in', 'Stock In'), ('out', 'Stock Out')], max_length=10)),
                ('quantity', models.DecimalField(decimal_places=2, max_digits=12)),
                ('reason', models.CharField(choices=[('purchase', 'Purchase'), ('production', 'Production'), ('adjustment', 'Adjustment'), ('waste_return', 'Waste Return'), ('damage', 'Damage'), ('return', 'Return')], max_length=20)),
                ('reference', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('stock_after', models.DecimalField(decimal_places=2, max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='material_movements', to=settings.AUTH_USER_MODEL)),
                ('material', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='movements', to='materials.rawmaterial')),
            ],
            options={
                'db_table': 'material_stock_movements',
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
