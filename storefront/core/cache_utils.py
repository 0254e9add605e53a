"""
Caching utilities for the public product list
Uses Redis (django-redis) when configured, the local-memory cache otherwise
"""
from django.core.cache import cache
import hashlib
import json
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
PRODUCTS_LIST_CACHE_TTL = 120  # 2 minutes
PRODUCTS_LIST_KEY_PREFIX = 'products_list'


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def get_cached_products_list(filters_dict):
    """
    Get cached products list

    Returns:
        tuple: (cached_data or None, cache_key)
    """
    cache_key = make_cache_key(PRODUCTS_LIST_KEY_PREFIX, json.dumps(filters_dict, sort_keys=True))
    return cache.get(cache_key), cache_key


def cache_products_list(cache_key, data):
    """Cache products list data"""
    cache.set(cache_key, data, PRODUCTS_LIST_CACHE_TTL)
    logger.debug(f"Cached products list: {cache_key}")


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    Uses Redis SCAN when the Redis backend is active; other backends
    cannot enumerate keys, so they are cleared entirely.
    """
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")
    except NotImplementedError:
        cache.clear()
        logger.info(f"Cache invalidation requested for pattern: {pattern} - backend has no key scan, cleared cache")
        return

    try:
        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Cache invalidation requested for pattern: {pattern} - Deleted {len(keys)} keys")
        else:
            logger.info(f"Cache invalidation requested for pattern: {pattern} - No keys found")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_products_cache():
    """Invalidate every cached products list"""
    invalidate_cache_pattern(PRODUCTS_LIST_KEY_PREFIX)
