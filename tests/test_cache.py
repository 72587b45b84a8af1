"""Tests for write-once schema caches."""

import threading

from anchorlens.cache import InMemorySchemaCache, LockedSchemaCache
from anchorlens.kernel.idl import build_schema_index_from_dict


def _schema(name):
    return build_schema_index_from_dict({"metadata": {"name": name}})


def test_get_missing_returns_none():
    assert InMemorySchemaCache().get("prog") is None


def test_put_is_write_once():
    cache = InMemorySchemaCache()
    first, second = _schema("first"), _schema("second")
    assert cache.put("prog", first) is first
    assert cache.put("prog", second) is first
    assert cache.get("prog") is first
    assert "prog" in cache
    assert len(cache) == 1


def test_locked_cache_concurrent_puts_keep_one_entry():
    cache = LockedSchemaCache()
    schemas = [_schema(f"s{i}") for i in range(8)]
    stored = []

    def worker(schema):
        stored.append(cache.put("prog", schema))

    threads = [threading.Thread(target=worker, args=(s,)) for s in schemas]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(cache) == 1
    assert all(s is cache.get("prog") for s in stored)
