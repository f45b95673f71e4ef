from decimal import Decimal

from django.db import models

from backend.core.models import User


class Machine(models.Model):
    """Looms, tufting and finishing machines used by production"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('maintenance', 'Maintenance'),
        ('inactive', 'Inactive'),
    ]

    name = models.CharField(max_length=200, unique=True)
    machine_type = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    location = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'machines'
        ordering = ['name']


class ProductionBatch(models.Model):
    """A production run of one product"""
    STATUS_CHOICES = [
        ('planned', 'Planned'),
        ('in_progress', 'In Progress'),
        ('in_production', 'In Production'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('on_hold', 'On Hold'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    batch_number = models.CharField(max_length=50, unique=True, db_index=True)
    product = models.ForeignKey('catalog.Product', on_delete=models.PROTECT, related_name='production_batches')
    order = models.ForeignKey('orders.Order', on_delete=models.SET_NULL, null=True, blank=True,
                              related_name='production_batches')
    planned_quantity = models.PositiveIntegerField()
    actual_quantity = models.PositiveIntegerField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='planned')
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default='medium')
    start_date = models.DateField(null=True, blank=True)
    completion_date = models.DateField(null=True, blank=True)
    operator = models.CharField(max_length=200, blank=True)
    supervisor = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='cancelled_batches')
    cancellation_reason = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='production_batches')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.batch_number} - {self.product.name}"

    class Meta:
        db_table = 'production_batches'
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'production batches'
        indexes = [
            models.Index(fields=['status'], name='batch_status_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self.batch_number:
            from backend.core.utils import generate_document_number
            self.batch_number = generate_document_number(ProductionBatch, 'batch_number', 'BATCH')
        super().save(*args, **kwargs)

    @property
    def is_closed(self):
        return self.status in ('completed', 'cancelled')

    @property
    def current_stage(self):
        """First stage that is not completed, None when all are done"""
        for stage in self.stages.all():
            if stage.status != 'completed':
                return stage
        return None


class ProductionStage(models.Model):
    STAGE_CHOICES = [
        ('planning', 'Planning'),
        ('machine', 'Machine'),
        ('wastage', 'Wastage'),
        ('individual_products', 'Individual Products'),
    ]
    STAGE_ORDER = [stage for stage, _ in STAGE_CHOICES]

    STATUS_CHOICES = [
        ('not_started', 'Not Started'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
    ]

    batch = models.ForeignKey(ProductionBatch, on_delete=models.CASCADE, related_name='stages')
    stage = models.CharField(max_length=30, choices=STAGE_CHOICES)
    sequence = models.PositiveSmallIntegerField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='not_started')
    machine = models.ForeignKey(Machine, on_delete=models.SET_NULL, null=True, blank=True, related_name='stages')
    started_at = models.DateTimeField(null=True, blank=True)
    started_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='stages_started')
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='stages_completed')
    notes = models.TextField(blank=True)

    def __str__(self):
        return f"{self.batch.batch_number} - {self.get_stage_display()} ({self.status})"

    class Meta:
        db_table = 'production_stages'
        ordering = ['batch', 'sequence']
        constraints = [
            models.UniqueConstraint(fields=['batch', 'stage'], name='unique_batch_stage'),
        ]


class MaterialConsumption(models.Model):
    """Material planned for and taken out of stock by a batch"""
    MATERIAL_TYPE_CHOICES = [
        ('raw_material', 'Raw Material'),
        ('product', 'Product'),
    ]

    batch = models.ForeignKey(ProductionBatch, on_delete=models.CASCADE, related_name='consumptions')
    material_type = models.CharField(max_length=20, choices=MATERIAL_TYPE_CHOICES, default='raw_material')
    raw_material = models.ForeignKey('materials.RawMaterial', on_delete=models.PROTECT, null=True, blank=True,
                                     related_name='consumptions')
    product = models.ForeignKey('catalog.Product', on_delete=models.PROTECT, null=True, blank=True,
                                related_name='consumptions')
    quantity = models.DecimalField(max_digits=12, decimal_places=4)
    unit = models.CharField(max_length=20, blank=True)
    cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    deducted = models.BooleanField(default=False)
    deducted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.material_name}: {self.quantity} {self.unit}"

    class Meta:
        db_table = 'material_consumptions'
        ordering = ['id']

    @property
    def material(self):
        return self.raw_material if self.material_type == 'raw_material' else self.product

    @property
    def material_name(self):
        material = self.material
        return material.name if material else ''


class Wastage(models.Model):
    """Waste generated by a batch, optionally returned to raw material stock"""
    WASTE_TYPE_CHOICES = [
        ('cutting_waste', 'Scrap'),
        ('defective_products', 'Defective'),
        ('excess_material', 'Excess'),
        ('contamination', 'Contamination'),
        ('expired_material', 'Expired Material'),
        ('other', 'Other'),
    ]

    STATUS_CHOICES = [
        ('generated', 'Generated'),
        ('returned', 'Returned'),
        ('disposed', 'Disposed'),
    ]

    batch = models.ForeignKey(ProductionBatch, on_delete=models.CASCADE, related_name='wastage')
    raw_material = models.ForeignKey('materials.RawMaterial', on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='wastage')
    waste_type = models.CharField(max_length=30, choices=WASTE_TYPE_CHOICES, default='cutting_waste')
    quantity = models.DecimalField(max_digits=12, decimal_places=2)
    unit = models.CharField(max_length=20, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='generated')
    notes = models.TextField(blank=True)
    returned_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='wastage')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.batch.batch_number} - {self.get_waste_type_display()} {self.quantity} {self.unit}"

    class Meta:
        db_table = 'production_wastage'
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'wastage'
