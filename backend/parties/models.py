from decimal import Decimal

from django.db import models
from django.db.models import Max, Sum
from django.utils import timezone


class Customer(models.Model):
    """Customers placing carpet orders"""
    CUSTOMER_TYPE_CHOICES = [
        ('individual', 'Individual'),
        ('business', 'Business'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('suspended', 'Suspended'),
        ('new', 'New'),
    ]

    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    pincode = models.CharField(max_length=10, blank=True)
    customer_type = models.CharField(max_length=20, choices=CUSTOMER_TYPE_CHOICES, default='individual')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='new')
    company_name = models.CharField(max_length=200, blank=True)
    gst_number = models.CharField(max_length=15, blank=True)
    permanent_address = models.JSONField(default=dict, blank=True)
    delivery_address = models.JSONField(default=dict, blank=True)
    credit_limit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    outstanding_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_orders = models.PositiveIntegerField(default=0)
    total_value = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    last_order_date = models.DateField(null=True, blank=True)
    registration_date = models.DateField(default=timezone.localdate)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.company_name or self.name

    class Meta:
        db_table = 'customers'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='customer_status_idx'),
            models.Index(fields=['name'], name='customer_name_idx'),
        ]

    def refresh_order_totals(self, save=True):
        """Recalculate the order counters from non-cancelled orders"""
        orders = self.orders.exclude(status='cancelled')
        totals = orders.aggregate(
            value=Sum('total_amount'),
            outstanding=Sum('outstanding_amount'),
            last_date=Max('order_date'),
        )
        self.total_orders = orders.count()
        self.total_value = totals['value'] or Decimal('0.00')
        self.outstanding_amount = totals['outstanding'] or Decimal('0.00')
        self.last_order_date = totals['last_date']
        if save:
            self.save(update_fields=['total_orders', 'total_value', 'outstanding_amount',
                                     'last_order_date', 'updated_at'])


class Supplier(models.Model):
    """Raw material suppliers"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('suspended', 'Suspended'),
    ]

    name = models.CharField(max_length=200)
    contact_person = models.CharField(max_length=200, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    pincode = models.CharField(max_length=10, blank=True)
    gst_number = models.CharField(max_length=15, blank=True)
    performance_rating = models.DecimalField(max_digits=3, decimal_places=1, default=Decimal('0.0'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'suppliers'
        ordering = ['name']
        indexes = [
            models.Index(fields=['status'], name='supplier_status_idx'),
        ]

    def get_order_totals(self):
        """Count and value of non-cancelled purchase orders"""
        totals = self.purchase_orders.exclude(status='cancelled').aggregate(
            value=Sum('total_amount'),
        )
        return {
            'total_orders': self.purchase_orders.exclude(status='cancelled').count(),
            'total_value': totals['value'] or Decimal('0.00'),
        }
