from django.apps import AppConfig


class DropdownsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backend.dropdowns'
    verbose_name = 'Dropdown Options'

    def ready(self):
        """Import signals when app is ready"""
        import backend.dropdowns.cache_signals  # noqa: F401
