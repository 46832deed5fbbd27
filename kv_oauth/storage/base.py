from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Optional, Protocol

Record = Dict[str, Any]


class KVStore(Protocol):
    """
    Minimal TTL-capable key-value interface. Implementations can be in-process, Redis, etc.

    Records are JSON-compatible dicts. A record whose TTL has elapsed must behave exactly
    like a missing one.
    """

    def put(self, key: str, value: Record, ttl: Optional[timedelta] = None) -> None:
        """
        Store `value` under `key`, replacing any existing record.

        `ttl=None` means the record never expires. Raises StorageError on failure.
        """

    def get(self, key: str) -> Optional[Record]:
        """Return the record, or None if absent or expired."""

    def get_and_delete(self, key: str) -> Optional[Record]:
        """
        Atomically read and remove a record.

        At most one of several concurrent callers for the same key may observe the record;
        every other caller gets None.
        """

    def delete(self, key: str) -> None:
        """Remove a record. Deleting a missing key is not an error."""


def ttl_milliseconds(ttl: timedelta) -> int:
    ms = int(ttl.total_seconds() * 1000)
    if ms <= 0:
        raise ValueError(f"TTL must be positive (got {ttl!r})")
    return ms
