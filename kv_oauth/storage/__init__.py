"""
Key-value storage for handshake and site session records.

`MemoryKVStore` serves a single process (development, tests); `RedisKVStore` shares records
across workers and hosts.
"""

from kv_oauth.storage.base import KVStore, Record
from kv_oauth.storage.memory_store import MemoryKVStore
from kv_oauth.storage.redis_store import RedisKVStore

__all__ = ["KVStore", "Record", "MemoryKVStore", "RedisKVStore"]
