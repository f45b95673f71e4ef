from django.db import models
from decimal import Decimal
from backend.core.models import User
from .units import calculate_stock_status, product_sqm


class Product(models.Model):
    """Carpet products (finished goods and semi-finished rolls)"""
    STATUS_CHOICES = [
        ('in-stock', 'In Stock'),
        ('low-stock', 'Low Stock'),
        ('out-of-stock', 'Out of Stock'),
        ('inactive', 'Inactive'),
        ('discontinued', 'Discontinued'),
    ]

    qr_code = models.CharField(max_length=100, unique=True, db_index=True)
    name = models.CharField(max_length=200, db_index=True)
    category = models.CharField(max_length=100, blank=True)
    subcategory = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    length = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    length_unit = models.CharField(max_length=20, blank=True)
    width = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    width_unit = models.CharField(max_length=20, blank=True)
    weight = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    weight_unit = models.CharField(max_length=20, blank=True)
    thickness = models.CharField(max_length=50, blank=True)
    color = models.CharField(max_length=50, blank=True)
    pattern = models.CharField(max_length=100, blank=True)
    unit = models.CharField(max_length=20, default='roll')
    base_quantity = models.PositiveIntegerField(default=0)
    current_stock = models.PositiveIntegerField(default=0)
    min_stock_level = models.PositiveIntegerField(default=0)
    max_stock_level = models.PositiveIntegerField(default=0)
    reorder_point = models.PositiveIntegerField(default=0)
    individual_stock_tracking = models.BooleanField(default=True)
    manufacturing_date = models.DateField(null=True, blank=True)
    image_url = models.URLField(blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='out-of-stock')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.qr_code})"

    class Meta:
        db_table = 'products'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='product_status_idx'),
            models.Index(fields=['category'], name='product_category_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self.qr_code:
            from .utils import generate_product_qr_code
            self.qr_code = generate_product_qr_code()
        if not self.individual_stock_tracking:
            self.current_stock = self.base_quantity
        self.status = calculate_stock_status(self.current_stock, self.min_stock_level, self.status)
        super().save(*args, **kwargs)

    @property
    def sqm(self):
        return product_sqm(self)

    def refresh_stock(self):
        """
        Recount stock: tracked products count their available individual
        products, others use base_quantity.
        """
        if self.individual_stock_tracking:
            self.current_stock = self.individual_products.filter(status='available').count()
        else:
            self.current_stock = self.base_quantity
        self.status = calculate_stock_status(self.current_stock, self.min_stock_level, self.status)
        Product.objects.filter(pk=self.pk).update(current_stock=self.current_stock, status=self.status)
        return self.current_stock


class IndividualProduct(models.Model):
    """A single physical carpet piece with its own QR code"""
    STATUS_CHOICES = [
        ('available', 'Available'),
        ('sold', 'Sold'),
        ('damaged', 'Damaged'),
        ('returned', 'Returned'),
        ('in_production', 'In Production'),
        ('quality_check', 'Quality Check'),
        ('reserved', 'Reserved'),
    ]

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='individual_products')
    qr_code = models.CharField(max_length=100, unique=True, db_index=True)
    serial_number = models.CharField(max_length=100, unique=True)
    batch = models.ForeignKey('production.ProductionBatch', on_delete=models.SET_NULL, null=True, blank=True,
                              related_name='individual_products')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='available', db_index=True)
    final_length = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    final_width = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    final_weight = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    quality_grade = models.CharField(max_length=20, blank=True)
    inspector = models.CharField(max_length=200, blank=True)
    location = models.CharField(max_length=200, blank=True)
    notes = models.TextField(blank=True)
    production_date = models.DateField(null=True, blank=True)
    completion_date = models.DateField(null=True, blank=True)
    sold_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product.name} #{self.serial_number}"

    class Meta:
        db_table = 'individual_products'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['product', 'status'], name='individual_product_status_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self.qr_code or not self.serial_number:
            from .utils import generate_individual_qr_code, generate_serial_number
            if not self.qr_code:
                self.qr_code = generate_individual_qr_code()
            if not self.serial_number:
                self.serial_number = generate_serial_number(self.product)
        super().save(*args, **kwargs)


class Recipe(models.Model):
    """Materials needed to make 1 SQM of a product"""
    product = models.OneToOneField(Product, on_delete=models.CASCADE, related_name='recipe')
    base_unit = models.CharField(max_length=20, default='sqm')
    description = models.TextField(blank=True)
    version = models.PositiveIntegerField(default=1)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='recipes')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Recipe for {self.product.name} (v{self.version})"

    class Meta:
        db_table = 'recipes'


class RecipeMaterial(models.Model):
    """A raw material or component product used by a recipe"""
    MATERIAL_TYPE_CHOICES = [
        ('raw_material', 'Raw Material'),
        ('product', 'Product'),
    ]

    recipe = models.ForeignKey(Recipe, on_delete=models.CASCADE, related_name='materials')
    material_type = models.CharField(max_length=20, choices=MATERIAL_TYPE_CHOICES, default='raw_material')
    raw_material = models.ForeignKey('materials.RawMaterial', on_delete=models.PROTECT, null=True, blank=True,
                                     related_name='recipe_materials')
    component_product = models.ForeignKey(Product, on_delete=models.PROTECT, null=True, blank=True,
                                          related_name='used_in_recipes')
    quantity_per_sqm = models.DecimalField(max_digits=12, decimal_places=4)
    unit = models.CharField(max_length=20, blank=True)
    waste_factor = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    cost_per_unit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    is_optional = models.BooleanField(default=False)
    specifications = models.TextField(blank=True)
    quality_requirements = models.TextField(blank=True)

    def __str__(self):
        return f"{self.material_name}: {self.quantity_per_sqm} {self.unit}/sqm"

    class Meta:
        db_table = 'recipe_materials'
        ordering = ['id']

    @property
    def material(self):
        return self.raw_material if self.material_type == 'raw_material' else self.component_product

    @property
    def material_name(self):
        material = self.material
        return material.name if material else ''
