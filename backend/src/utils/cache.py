"""Caching utilities for the testimonial API."""

import hashlib
import json

from cachetools import TTLCache

# Global caches - persist across Lambda invocations (warm starts)
WIDGET_CACHE_TTL_SECONDS = 60  # approvals are rare compared to widget traffic
_widget_cache: TTLCache = TTLCache(maxsize=5000, ttl=WIDGET_CACHE_TTL_SECONDS)


def get_cache_key(*args, **kwargs) -> str:
    """Generate a cache key from function arguments."""
    key_data = json.dumps({"args": args, "kwargs": kwargs}, sort_keys=True, default=str)
    # MD5 is used here only for cache key generation, not for security purposes
    return hashlib.md5(key_data.encode(), usedforsecurity=False).hexdigest()


def widget_cache_key(project_id: str, domain: str | None, tags: list[str] | None) -> str:
    """Cache key for a widget request; tag order does not matter."""
    return get_cache_key(project_id, domain, sorted(set(tags or [])))


def get_widget_cache():
    """Get the widget cache for direct access."""
    return _widget_cache


def clear_all_caches() -> None:
    """Clear all caches. Useful for testing."""
    _widget_cache.clear()


# Cache-Control header values
CACHE_CONTROL_WIDGET = f"public, max-age={WIDGET_CACHE_TTL_SECONDS}"
CACHE_CONTROL_PUBLIC = "public, max-age=300"  # Public pages, cacheable by any cache
CACHE_CONTROL_PRIVATE = "private, no-cache"  # Owner dashboards, no caching
