"""
Tests for the parsed-workbook cache.
"""
import pytest
import time
from insightforge.core.cache import SimpleCache, get_workbook_cache, generate_workbook_cache_key


@pytest.mark.unit
def test_simple_cache_set_get():
    cache = SimpleCache(default_ttl=1.0)

    cache.set("key1", "value1")
    assert cache.get("key1") == "value1"
    assert cache.get("missing") is None

    cache.set("key2", "value2", ttl=0.1)
    assert cache.get("key2") == "value2"

    time.sleep(0.2)
    assert cache.get("key2") is None


@pytest.mark.unit
def test_simple_cache_cleanup():
    """Only expired entries are removed."""
    cache = SimpleCache(default_ttl=0.1)

    cache.set("key1", "value1")
    cache.set("key2", "value2", ttl=5.0)

    time.sleep(0.15)
    assert cache.cleanup_expired() == 1

    assert cache.get("key1") is None
    assert cache.get("key2") == "value2"


@pytest.mark.unit
def test_simple_cache_stats_and_clear():
    cache = SimpleCache(default_ttl=1.0)
    cache.set("key1", "value1")
    cache.set("key2", "value2")

    stats = cache.get_stats()
    assert stats["size"] == 2
    assert stats["default_ttl"] == 1.0

    cache.clear()
    assert cache.get_stats()["size"] == 0


@pytest.mark.unit
def test_generate_workbook_cache_key():
    key1 = generate_workbook_cache_key(b"a,b\n1,2", "data.csv")
    key2 = generate_workbook_cache_key(b"a,b\n1,2", "data.csv")
    key3 = generate_workbook_cache_key(b"a,b\n1,3", "data.csv")
    key4 = generate_workbook_cache_key(b"a,b\n1,2", "other.csv")

    assert key1 == key2
    assert key1 != key3
    # The name matters too: the same bytes may be a .csv or an .xlsx
    assert key1 != key4
    assert key1.startswith("workbook:")


@pytest.mark.unit
def test_workbook_cache_singleton():
    assert get_workbook_cache() is get_workbook_cache()
