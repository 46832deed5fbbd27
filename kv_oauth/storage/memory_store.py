"""In-process key-value store for development and tests (fallback when Redis is not configured)."""

from __future__ import annotations

import copy
import threading
import time
from datetime import timedelta
from typing import Callable, Dict, Optional, Tuple

from kv_oauth.storage.base import Record, ttl_milliseconds


class MemoryKVStore:
    """
    Dict-backed store compatible with the KVStore interface.

    Every operation holds one lock, so get-and-delete is atomic across threads.
    Expired records are dropped lazily on access.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._records: Dict[str, Tuple[Record, Optional[float]]] = {}

    def _live(self, key: str) -> Optional[Record]:
        entry = self._records.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._records[key]
            return None
        return value

    def put(self, key: str, value: Record, ttl: Optional[timedelta] = None) -> None:
        expires_at = None
        if ttl is not None:
            expires_at = self._clock() + ttl_milliseconds(ttl) / 1000.0
        with self._lock:
            self._records[key] = (copy.deepcopy(value), expires_at)

    def get(self, key: str) -> Optional[Record]:
        with self._lock:
            value = self._live(key)
            return copy.deepcopy(value) if value is not None else None

    def get_and_delete(self, key: str) -> Optional[Record]:
        with self._lock:
            value = self._live(key)
            if value is None:
                return None
            del self._records[key]
            return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for key in list(self._records) if self._live(key) is not None)
