from django.db import models


class DropdownOption(models.Model):
    """Configurable select-input value (color, pattern, unit, ...)"""
    CATEGORY_CHOICES = [
        ('color', 'Color'),
        ('pattern', 'Pattern'),
        ('category', 'Category'),
        ('subcategory', 'Subcategory'),
        ('unit', 'Unit'),
        ('width', 'Width'),
        ('height', 'Height'),
        ('length', 'Length'),
        ('weight', 'Weight'),
        ('thickness', 'Thickness'),
        ('weight_units', 'Weight Units'),
        ('length_units', 'Length Units'),
        ('length_unit', 'Length Unit'),
        ('width_units', 'Width Units'),
        ('width_unit', 'Width Unit'),
        ('material_category', 'Material Category'),
        ('material_unit', 'Material Unit'),
        ('material_type', 'Material Type'),
        ('material_color', 'Material Color'),
        ('priority', 'Priority'),
        ('quality_rating', 'Quality Rating'),
        ('waste_type', 'Waste Type'),
    ]

    category = models.CharField(max_length=50, choices=CATEGORY_CHOICES)
    value = models.CharField(max_length=100)
    display_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.category}: {self.value}"

    @classmethod
    def next_display_order(cls, category):
        last = cls.objects.filter(category=category).aggregate(models.Max('display_order'))['display_order__max']
        return (last or 0) + 1

    class Meta:
        db_table = 'dropdown_options'
        ordering = ['category', 'display_order', 'value']
        constraints = [
            models.UniqueConstraint(fields=['category', 'value'], name='unique_dropdown_category_value'),
        ]
        indexes = [
            models.Index(fields=['category', 'is_active'], name='dropdown_category_active_idx'),
        ]
