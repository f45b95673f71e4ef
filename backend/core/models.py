from django.contrib.auth.models import AbstractUser
from django.db import models


MODULE_CHOICES = [
    ('products', 'Products'),
    ('materials', 'Raw Materials'),
    ('customers', 'Customers'),
    ('suppliers', 'Suppliers'),
    ('recipes', 'Recipes'),
    ('orders', 'Orders'),
    ('production', 'Production'),
    ('purchase_orders', 'Purchase Orders'),
    ('dropdowns', 'Dropdown Options'),
    ('individual_products', 'Individual Products'),
    ('users', 'Users'),
]

PERMISSION_ACTIONS = ('view', 'create', 'edit', 'delete')


class User(AbstractUser):
    """Application user with a role and per-module permissions"""
    ROLE_CHOICES = [
        ('admin', 'Admin'),
        ('user', 'User'),
    ]

    full_name = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='user')
    department = models.CharField(max_length=100, blank=True)
    permissions = models.JSONField(default=dict, blank=True, help_text="{module: {view, create, edit, delete}}")
    avatar_url = models.URLField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'

    @property
    def is_admin(self):
        return self.role == 'admin' or self.is_superuser

    @property
    def display_name(self):
        return self.full_name or self.get_full_name() or self.username

    def has_module_permission(self, module, action='view'):
        """Admins can do everything; other users default to view-only."""
        if self.is_admin:
            return True
        module_permissions = (self.permissions or {}).get(module, {})
        return bool(module_permissions.get(action, action == 'view'))

    def get_effective_permissions(self):
        modules = [module for module, _ in MODULE_CHOICES]
        return {
            module: {action: self.has_module_permission(module, action) for action in PERMISSION_ACTIONS}
            for module in modules
        }


class Setting(models.Model):
    """System settings"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'


class ActivityLog(models.Model):
    """Activity feed entry for changes made through the API"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('status_change', 'Status Change'),
        ('stock_adjust', 'Stock Adjustment'),
        ('payment', 'Payment'),
        ('login', 'Login'),
        ('export', 'Export'),
        ('import', 'Import'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='activity_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    module = models.CharField(max_length=50, choices=MODULE_CHOICES)
    object_id = models.CharField(max_length=100, blank=True)
    object_name = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.description or f"{self.action} {self.module} {self.object_id}"

    class Meta:
        db_table = 'activity_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='activity_created_idx'),
            models.Index(fields=['action'], name='activity_action_idx'),
            models.Index(fields=['module'], name='activity_module_idx'),
        ]
