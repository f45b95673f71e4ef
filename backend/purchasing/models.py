from decimal import Decimal

from django.db import models
from django.utils import timezone

from backend.core.models import User
from backend.parties.models import Supplier


class PurchaseOrder(models.Model):
    """Raw material order placed with a supplier"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('shipped', 'Shipped'),
        ('in-transit', 'In Transit'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]

    TRANSITIONS = {
        'pending': ['approved', 'cancelled'],
        'approved': ['shipped', 'cancelled'],
        'shipped': ['in-transit', 'delivered'],
        'in-transit': ['delivered'],
        'delivered': [],
        'cancelled': [],
    }

    order_number = models.CharField(max_length=50, unique=True, db_index=True)
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='purchase_orders')
    order_date = models.DateField(default=timezone.localdate)
    expected_delivery = models.DateField(null=True, blank=True)
    actual_delivery = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    stock_received = models.BooleanField(default=False)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='purchase_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.order_number} - {self.supplier.name}"

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-order_date', '-id']
        indexes = [
            models.Index(fields=['status'], name='po_status_idx'),
            models.Index(fields=['supplier', 'status'], name='po_supplier_status_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self.order_number:
            from backend.core.utils import generate_document_number
            self.order_number = generate_document_number(PurchaseOrder, 'order_number', 'PO', self.order_date)
        super().save(*args, **kwargs)

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.status, [])

    def recalculate_total(self, save=True):
        self.total_amount = sum((item.total_price for item in self.items.all()), Decimal('0.00'))
        if save:
            self.save(update_fields=['total_amount', 'updated_at'])
        return self.total_amount


class PurchaseOrderItem(models.Model):
    """Purchase order line; unlinked lines describe a new material"""
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='items')
    raw_material = models.ForeignKey('materials.RawMaterial', on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='purchase_order_items')
    material_name = models.CharField(max_length=200)
    material_type = models.CharField(max_length=100, blank=True)
    category = models.CharField(max_length=100, blank=True)
    unit = models.CharField(max_length=20, default='kg')
    quantity = models.DecimalField(max_digits=12, decimal_places=2)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    def __str__(self):
        return f"{self.material_name} x {self.quantity} {self.unit}"

    class Meta:
        db_table = 'purchase_order_items'
        ordering = ['id']

    def save(self, *args, **kwargs):
        self.total_price = (self.quantity * self.unit_price).quantize(Decimal('0.01'))
        super().save(*args, **kwargs)
