# Generated manually
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='DropdownOption',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category', models.CharField(choices=[('color', 'Color'), ('pattern', 'Pattern'), ('category', 'Category'), ('subcategory', 'Subcategory'), ('unit', 'Unit'), ('width', 'Width'), ('height', 'Height'), ('length', 'Length'), ('weight', 'Weight'), ('thickness', 'Thickness'), ('weight_units', 'Weight Units'), ('length_units', 'Length Units'), ('length_unit', 'Length Unit'), ('width_units', 'Width Units'), ('width_unit', 'Width Unit'), ('material_category', 'Material Category'), ('material_unit', 'Material Unit'), ('material_type', 'Material Type'), ('material_color', 'Material Color'), ('priority', 'Priority'), ('quality_rating', 'Quality Rating'), ('waste_type', 'Waste Type')], max_length=50)),
                ('value', models.CharField(max_length=100)),
                ('display_order', models.PositiveIntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'dropdown_options',
                'ordering': ['category', 'display_order', 'value'],
                'constraints': [models.UniqueConstraint(fields=('category', 'value'), name='unique_dropdown_category_value')],
                'indexes': [models.Index(fields=['category', 'is_active'], name='dropdown_category_active_idx')],
            },
        ),
    ]
