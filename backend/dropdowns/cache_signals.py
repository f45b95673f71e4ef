"""
Cache invalidation for dropdown options
"""
from django.core.cache import cache
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from backend.core.cache_utils import invalidate_cache_pattern, is_suspended
from .models import DropdownOption

logger = logging.getLogger(__name__)

GROUPED_CACHE_KEY = 'dropdowns:grouped'
PRODUCT_BUNDLE_CACHE_KEY = 'dropdowns:products'


def invalidate_dropdowns_cache():
    cache.delete_many([GROUPED_CACHE_KEY, PRODUCT_BUNDLE_CACHE_KEY])
    invalidate_cache_pattern('dropdowns:')
    logger.info("Invalidated dropdowns cache")


@receiver(post_save, sender=DropdownOption)
@receiver(post_delete, sender=DropdownOption)
def dropdown_option_changed(sender, instance, **kwargs):
    if is_suspended():
        return
    invalidate_dropdowns_cache()
