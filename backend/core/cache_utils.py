"""
Caching utilities
Uses the default cache (Redis in production, local memory otherwise)
"""
import logging
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
DROPDOWNS_CACHE_TTL = 3600  # 1 hour

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern
    Note: This requires Redis with SCAN command support
    """
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")
    except NotImplementedError:
        # Local memory cache has no key scan
        logger.debug(f"Pattern invalidation unavailable for {pattern}; cache backend is not Redis")
        return 0
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")
        return 0

    keys = []
    cursor = 0
    while True:
        cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
        keys.extend(partial_keys)
        if cursor == 0:
            break

    if keys:
        redis_conn.delete(*keys)
        logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    return len(keys)


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)
