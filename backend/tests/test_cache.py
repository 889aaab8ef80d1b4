"""Tests for caching utilities."""

import pytest
from cachetools import TTLCache

from utils.cache import (
    CACHE_CONTROL_PRIVATE,
    CACHE_CONTROL_PUBLIC,
    CACHE_CONTROL_WIDGET,
    WIDGET_CACHE_TTL_SECONDS,
    clear_all_caches,
    get_cache_key,
    get_widget_cache,
    widget_cache_key,
)


@pytest.fixture(autouse=True)
def _clear_caches():
    """Clear all caches before and after each test."""
    clear_all_caches()
    yield
    clear_all_caches()


class TestCacheConstants:
    """Test cache constant values."""

    def test_widget_ttl(self):
        assert WIDGET_CACHE_TTL_SECONDS == 60

    def test_cache_control_headers(self):
        assert CACHE_CONTROL_WIDGET == "public, max-age=60"
        assert CACHE_CONTROL_PUBLIC.startswith("public")
        assert CACHE_CONTROL_PRIVATE == "private, no-cache"


class TestCacheKeys:
    """Test cache key generation."""

    def test_same_args_same_key(self):
        assert get_cache_key("a", b=1) == get_cache_key("a", b=1)

    def test_different_args_different_key(self):
        assert get_cache_key("a") != get_cache_key("b")

    def test_widget_key_ignores_tag_order_and_duplicates(self):
        assert widget_cache_key("p", None, ["b", "a"]) == widget_cache_key(
            "p", None, ["a", "b", "a"]
        )

    def test_widget_key_depends_on_domain(self):
        assert widget_cache_key("p", "a.com", []) != widget_cache_key("p", None, [])

    def test_widget_key_none_tags(self):
        assert widget_cache_key("p", None, None) == widget_cache_key("p", None, [])


class TestWidgetCache:
    """Test the widget cache instance."""

    def test_is_ttl_cache(self):
        cache = get_widget_cache()
        assert isinstance(cache, TTLCache)
        assert cache.ttl == WIDGET_CACHE_TTL_SECONDS

    def test_clear_all_caches(self):
        get_widget_cache()["k"] = "v"
        clear_all_caches()
        assert "k" not in get_widget_cache()
