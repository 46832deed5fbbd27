"""Redis-backed key-value store for multi-process deployments."""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from typing import Any, Optional

import redis

from kv_oauth.errors import StorageError
from kv_oauth.storage.base import Record, ttl_milliseconds

logger = logging.getLogger(__name__)


def _namespace(key: str) -> str:
    return key.split(":", 1)[0]


class RedisKVStore:
    """
    KVStore on top of a synchronous `redis.Redis` client.

    Notes:
    - Records are stored as compact JSON strings.
    - Expiry uses native `PX` TTLs; get-and-delete is the single `GETDEL` command (Redis >= 6.2).
    - Client timeouts/retries are left to the `redis.Redis` configuration.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisKVStore":
        kwargs.setdefault("decode_responses", True)
        kwargs.setdefault("socket_timeout", 5)
        return cls(redis.Redis.from_url(url, **kwargs))

    @staticmethod
    def _decode(key: str, raw: Any) -> Optional[Record]:
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Undecodable {_namespace(key)} record") from e
        if not isinstance(data, dict):
            raise StorageError(f"Invalid {_namespace(key)} record")
        return data

    def put(self, key: str, value: Record, ttl: Optional[timedelta] = None) -> None:
        data = json.dumps(value, separators=(",", ":"), sort_keys=True)
        px = ttl_milliseconds(ttl) if ttl is not None else None
        try:
            self._client.set(key, data, px=px)
        except redis.RedisError as e:
            logger.warning("Redis SET failed for %s: %s", _namespace(key), str(e))
            raise StorageError(f"Failed to write {_namespace(key)} record") from e

    def get(self, key: str) -> Optional[Record]:
        try:
            raw = self._client.get(key)
        except redis.RedisError as e:
            raise StorageError(f"Failed to read {_namespace(key)} record") from e
        return self._decode(key, raw)

    def get_and_delete(self, key: str) -> Optional[Record]:
        try:
            raw = self._client.getdel(key)
        except redis.RedisError as e:
            raise StorageError(f"Failed to consume {_namespace(key)} record") from e
        return self._decode(key, raw)

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as e:
            raise StorageError(f"Failed to delete {_namespace(key)} record") from e
