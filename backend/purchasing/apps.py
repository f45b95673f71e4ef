from django.apps import AppConfig


class PurchasingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backend.purchasing'
    verbose_name = 'Purchase Orders'
