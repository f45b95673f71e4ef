from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.utils import timezone

from backend.core.models import User
from .pricing import PRICING_UNIT_CHOICES


class Order(models.Model):
    """Customer orders"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('accepted', 'Accepted'),
        ('in_production', 'In Production'),
        ('ready', 'Ready'),
        ('dispatched', 'Dispatched'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    # status -> statuses it may move to
    TRANSITIONS = {
        'pending': ('accepted', 'cancelled'),
        'accepted': ('in_production', 'ready', 'cancelled'),
        'in_production': ('ready', 'cancelled'),
        'ready': ('dispatched', 'cancelled'),
        'dispatched': ('delivered',),
        'delivered': (),
        'cancelled': (),
    }

    # status -> timestamp field stamped on entering it
    STATUS_TIMESTAMPS = {
        'accepted': 'accepted_at',
        'dispatched': 'dispatched_at',
        'delivered': 'delivered_at',
        'cancelled': 'cancelled_at',
    }

    order_number = models.CharField(max_length=50, unique=True, db_index=True)
    customer = models.ForeignKey('parties.Customer', on_delete=models.PROTECT, related_name='orders')
    customer_name = models.CharField(max_length=200, blank=True)
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    order_date = models.DateField(default=timezone.localdate)
    expected_delivery = models.DateField(null=True, blank=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    gst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    outstanding_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default='medium')
    notes = models.TextField(blank=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    dispatched_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='orders_created')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.order_number} - {self.customer_name}"

    class Meta:
        db_table = 'orders'
        ordering = ['-order_date', '-id']
        indexes = [
            models.Index(fields=['status'], name='order_status_idx'),
            models.Index(fields=['order_date'], name='order_date_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self.order_number:
            from backend.core.utils import generate_document_number
            self.order_number = generate_document_number(Order, 'order_number', 'ON', self.order_date)
        if self.customer_id and not self.customer_name:
            self.customer_name = self.customer.name
            self.customer_email = self.customer.email or ''
            self.customer_phone = self.customer.phone or ''
        self.outstanding_amount = max(Decimal('0.00'), (self.total_amount or 0) - (self.paid_amount or 0))
        super().save(*args, **kwargs)

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.status, ())

    @property
    def is_editable(self):
        return self.status == 'pending'

    def recalculate_totals(self, save=True):
        """Totals from the line items, less the order discount"""
        totals = self.items.aggregate(subtotal=Sum('subtotal'), gst=Sum('gst_amount'), total=Sum('total_price'))
        self.subtotal = totals['subtotal'] or Decimal('0.00')
        self.gst_amount = totals['gst'] or Decimal('0.00')
        self.total_amount = max(Decimal('0.00'), (totals['total'] or Decimal('0.00')) - self.discount_amount)
        self.outstanding_amount = max(Decimal('0.00'), self.total_amount - self.paid_amount)
        if save:
            self.save(update_fields=['subtotal', 'gst_amount', 'total_amount', 'outstanding_amount', 'updated_at'])


class OrderItem(models.Model):
    """A product or raw material line on an order"""
    PRODUCT_TYPE_CHOICES = [
        ('product', 'Product'),
        ('raw_material', 'Raw Material'),
    ]

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product_type = models.CharField(max_length=20, choices=PRODUCT_TYPE_CHOICES, default='product')
    product = models.ForeignKey('catalog.Product', on_delete=models.PROTECT, null=True, blank=True,
                                related_name='order_items')
    raw_material = models.ForeignKey('materials.RawMaterial', on_delete=models.PROTECT, null=True, blank=True,
                                     related_name='order_items')
    product_name = models.CharField(max_length=200)
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    unit = models.CharField(max_length=20, blank=True)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    pricing_unit = models.CharField(max_length=10, choices=PRICING_UNIT_CHOICES, default='unit')
    gst_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('18.00'))
    gst_included = models.BooleanField(default=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    gst_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    quality_grade = models.CharField(max_length=20, blank=True)
    specifications = models.TextField(blank=True)
    individual_products = models.ManyToManyField('catalog.IndividualProduct', blank=True, related_name='order_items')

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"

    class Meta:
        db_table = 'order_items'
        ordering = ['id']


class OrderPayment(models.Model):
    """Payments received against an order"""
    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
        ('upi', 'UPI'),
        ('bank_transfer', 'Bank Transfer'),
        ('cheque', 'Cheque'),
        ('other', 'Other'),
    ]

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash')
    reference = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='order_payments')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_payments'
        ordering = ['-created_at']
