from decimal import Decimal

from django.db import models

from backend.core.models import User


def calculate_material_status(current_stock, min_threshold, max_capacity=None):
    """Stock status derived from the stock level and thresholds"""
    current_stock = Decimal(current_stock or 0)
    if current_stock <= 0:
        return 'out-of-stock'
    if current_stock <= Decimal(min_threshold or 0):
        return 'low-stock'
    if max_capacity and Decimal(max_capacity) > 0 and current_stock > Decimal(max_capacity):
        return 'overstock'
    return 'in-stock'


class RawMaterial(models.Model):
    """Raw materials used in carpet production"""
    UNIT_CHOICES = [
        ('kg', 'Kilograms'),
        ('liters', 'Liters'),
        ('rolls', 'Rolls'),
        ('meters', 'Meters'),
        ('sqm', 'Square Meters'),
        ('pieces', 'Pieces'),
        ('boxes', 'Boxes'),
    ]
    STATUS_CHOICES = [
        ('in-stock', 'In Stock'),
        ('low-stock', 'Low Stock'),
        ('out-of-stock', 'Out of Stock'),
        ('overstock', 'Overstock'),
    ]

    name = models.CharField(max_length=200)
    material_type = models.CharField(max_length=100, blank=True)
    category = models.CharField(max_length=100)
    current_stock = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    unit = models.CharField(max_length=20, choices=UNIT_CHOICES, default='kg')
    min_threshold = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    max_capacity = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    reorder_point = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    daily_usage = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    supplier = models.ForeignKey('parties.Supplier', on_delete=models.SET_NULL, null=True, blank=True,
                                 related_name='raw_materials')
    supplier_name = models.CharField(max_length=200, blank=True)
    cost_per_unit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    batch_number = models.CharField(max_length=100, blank=True)
    quality_grade = models.CharField(max_length=20, blank=True)
    color = models.CharField(max_length=50, blank=True)
    image_url = models.URLField(blank=True)
    last_restocked = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='out-of-stock')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'raw_materials'
        ordering = ['name']
        indexes = [
            models.Index(fields=['status'], name='material_status_idx'),
            models.Index(fields=['category'], name='material_category_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.supplier_id and not self.supplier_name:
            self.supplier_name = self.supplier.name
        self.status = calculate_material_status(self.current_stock, self.min_threshold, self.max_capacity)
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'current_stock' in update_fields:
            kwargs['update_fields'] = set(update_fields) | {'status'}
        super().save(*args, **kwargs)

    @property
    def total_value(self):
        return (self.current_stock or Decimal('0')) * (self.cost_per_unit or Decimal('0'))

    @property
    def is_low_stock(self):
        return self.status in ('low-stock', 'out-of-stock')


class MaterialStockMovement(models.Model):
    """Every change to a raw material's stock level"""
    MOVEMENT_TYPE_CHOICES = [
        ('in', 'Stock In'),
        ('out', 'Stock Out'),
    ]
    REASON_CHOICES = [
        ('purchase', 'Purchase'),
        ('production', 'Production'),
        ('adjustment', 'Adjustment'),
        ('waste_return', 'Waste Return'),
        ('damage', 'Damage'),
        ('return', 'Return'),
    ]

    material = models.ForeignKey(RawMaterial, on_delete=models.CASCADE, related_name='movements')
    movement_type = models.CharField(max_length=10, choices=MOVEMENT_TYPE_CHOICES)
    quantity = models.DecimalField(max_digits=12, decimal_places=2)
    reason = models.CharField(max_length=20, choices=REASON_CHOICES)
    reference = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    stock_after = models.DecimalField(max_digits=12, decimal_places=2)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='material_movements')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.material.name} - {self.movement_type} - {self.quantity}"

    class Meta:
        db_table = 'material_stock_movements'
        ordering = ['-created_at', '-id']
