from django.contrib import admin
from .models import DropdownOption


@admin.register(DropdownOption)
class DropdownOptionAdmin(admin.ModelAdmin):
    list_display = ['category', 'value', 'display_order', 'is_active', 'updated_at']
    list_filter = ['category', 'is_active']
    search_fields = ['value']
    list_editable = ['display_order', 'is_active']
    ordering = ['category', 'display_order', 'value']
