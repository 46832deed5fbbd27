"""
Unit tests for the key-value stores (in-memory, and Redis with a mocked client).
"""

from __future__ import annotations

import json
import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import redis

from kv_oauth.errors import StorageError
from kv_oauth.storage import MemoryKVStore, RedisKVStore


def test_memory_put_get_delete(store: MemoryKVStore) -> None:
    """Basic put, get and delete on the in-memory store."""
    store.put("k", {"a": 1})
    assert store.get("k") == {"a": 1}
    store.delete("k")
    assert store.get("k") is None
    # Idempotent delete
    store.delete("k")


def test_memory_returns_copies(store: MemoryKVStore) -> None:
    """Callers cannot mutate stored records through shared references."""
    value = {"a": 1}
    store.put("k", value)
    value["a"] = 2
    got = store.get("k")
    assert got == {"a": 1}
    got["a"] = 3
    assert store.get("k") == {"a": 1}


def test_memory_ttl_expiry(store: MemoryKVStore, clock) -> None:
    """Records vanish once their TTL has elapsed."""
    store.put("k", {}, ttl=timedelta(seconds=10))
    clock.advance(9.9)
    assert store.get("k") == {}
    clock.advance(0.2)
    assert store.get("k") is None
    assert store.get_and_delete("k") is None
    assert len(store) == 0


def test_memory_no_ttl_never_expires(store: MemoryKVStore, clock) -> None:
    """Records without a TTL outlive any clock advance."""
    store.put("k", {})
    clock.advance(10 * 365 * 24 * 3600)
    assert store.get("k") == {}


def test_memory_rejects_non_positive_ttl(store: MemoryKVStore) -> None:
    """A zero TTL is refused."""
    with pytest.raises(ValueError):
        store.put("k", {}, ttl=timedelta(0))


def test_memory_get_and_delete_is_atomic_across_threads() -> None:
    """Concurrent consumers of one key see the record exactly once."""
    store = MemoryKVStore()
    store.put("k", {"v": 1})
    barrier = threading.Barrier(8)
    results = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        got = store.get_and_delete("k")
        with lock:
            results.append(got)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert [r for r in results if r is not None] == [{"v": 1}]
    assert results.count(None) == 7


def test_redis_put_serializes_json_with_px_ttl() -> None:
    """Records are stored as compact JSON with a millisecond TTL."""
    client = MagicMock()
    RedisKVStore(client).put("oauth_session:abc", {"b": 2, "a": 1}, ttl=timedelta(minutes=10))
    client.set.assert_called_once_with("oauth_session:abc", '{"a":1,"b":2}', px=600_000)


def test_redis_put_without_ttl() -> None:
    """Records without a TTL are written without PX."""
    client = MagicMock()
    RedisKVStore(client).put("site_session:abc", {})
    client.set.assert_called_once_with("site_session:abc", "{}", px=None)


def test_redis_get_and_delete_uses_getdel() -> None:
    """Consuming a record is a single GETDEL round trip."""
    client = MagicMock()
    client.getdel.return_value = json.dumps({"state": "s"})
    store = RedisKVStore(client)

    assert store.get_and_delete("oauth_session:abc") == {"state": "s"}
    client.getdel.assert_called_once_with("oauth_session:abc")
    # Never a separate read followed by a delete.
    client.get.assert_not_called()
    client.delete.assert_not_called()


def test_redis_missing_key_returns_none() -> None:
    """GETDEL on a missing key yields None."""
    client = MagicMock()
    client.get.return_value = None
    client.getdel.return_value = None
    store = RedisKVStore(client)
    assert store.get("site_session:x") is None
    assert store.get_and_delete("oauth_session:x") is None


def test_redis_errors_are_wrapped() -> None:
    """redis-py errors surface as StorageError."""
    client = MagicMock()
    client.set.side_effect = redis.ConnectionError("down")
    client.get.side_effect = redis.TimeoutError("slow")
    client.getdel.side_effect = redis.ConnectionError("down")
    client.delete.side_effect = redis.ConnectionError("down")
    store = RedisKVStore(client)

    with pytest.raises(StorageError):
        store.put("site_session:x", {})
    with pytest.raises(StorageError):
        store.get("site_session:x")
    with pytest.raises(StorageError):
        store.get_and_delete("oauth_session:x")
    with pytest.raises(StorageError):
        store.delete("site_session:x")


def test_redis_undecodable_record_is_storage_error() -> None:
    """Garbage under a key is reported as StorageError."""
    client = MagicMock()
    client.get.return_value = "not json"
    client.getdel.return_value = "[1, 2]"
    store = RedisKVStore(client)
    with pytest.raises(StorageError):
        store.get("site_session:x")
    with pytest.raises(StorageError):
        store.get_and_delete("oauth_session:x")


def test_redis_from_url_decodes_responses(monkeypatch) -> None:
    """from_url asks redis-py for decoded str responses."""
    captured = {}

    def _fake_from_url(url, **kwargs):
        captured["url"] = url
        captured.update(kwargs)
        return MagicMock()

    monkeypatch.setattr(redis.Redis, "from_url", _fake_from_url)
    RedisKVStore.from_url("redis://localhost:6379/0")
    assert captured["url"] == "redis://localhost:6379/0"
    assert captured["decode_responses"] is True
