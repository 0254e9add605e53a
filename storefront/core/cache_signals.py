"""
Cache invalidation signals
Automatically invalidate cache when catalog data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
from storefront.catalog.models import Product
from .cache_utils import invalidate_products_cache

logger = logging.getLogger(__name__)


@receiver([post_save, post_delete], sender=Product)
def invalidate_products_cache_on_change(sender, instance, **kwargs):
    """Invalidate products cache when a product is saved or deleted"""
    logger.debug(f"Product {instance.pk} changed, invalidating products list cache")
    invalidate_products_cache()
