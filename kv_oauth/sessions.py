"""
Server-side session records.

Two tiers live in the key-value store:
- `oauth_session:{id}`: the short-lived handshake (state, PKCE verifier, success URL) for one
  sign-in attempt. Consumed exactly once by the callback.
- `site_session:{id}`: an empty marker proving the browser holding `{id}` completed sign-in.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Optional

from kv_oauth.errors import NotFoundError, StorageError
from kv_oauth.storage.base import KVStore, Record
from kv_oauth.util import new_id, short_id

logger = logging.getLogger(__name__)

OAUTH_SESSION_PREFIX = "oauth_session"
SITE_SESSION_PREFIX = "site_session"

# Long enough to finish a provider login, short enough to bound the replay window.
OAUTH_SESSION_TTL = timedelta(minutes=10)


def oauth_session_key(session_id: str) -> str:
    return f"{OAUTH_SESSION_PREFIX}:{session_id}"


def site_session_key(session_id: str) -> str:
    return f"{SITE_SESSION_PREFIX}:{session_id}"


@dataclass(frozen=True)
class OAuthSession:
    """Handshake state for one sign-in attempt."""

    state: str
    code_verifier: str
    success_url: str

    def to_record(self) -> Record:
        return asdict(self)

    @classmethod
    def from_record(cls, data: Record) -> "OAuthSession":
        try:
            return cls(
                state=str(data["state"]),
                code_verifier=str(data["code_verifier"]),
                success_url=str(data["success_url"]),
            )
        except (KeyError, TypeError) as e:
            raise StorageError("Malformed OAuth session record") from e


class OAuthSessionManager:
    def __init__(self, store: KVStore, ttl: timedelta = OAUTH_SESSION_TTL) -> None:
        self._store = store
        self.ttl = ttl

    def create(self, state: str, code_verifier: str, success_url: str) -> str:
        session_id = new_id()
        session = OAuthSession(state=state, code_verifier=code_verifier, success_url=success_url)
        self._store.put(oauth_session_key(session_id), session.to_record(), ttl=self.ttl)
        logger.debug("Created OAuth session %s (ttl=%ss)", short_id(session_id), int(self.ttl.total_seconds()))
        return session_id

    def consume(self, session_id: str) -> OAuthSession:
        """
        Atomically read and delete a handshake record.

        Raises NotFoundError when the id is unknown, already consumed, or expired.
        """
        data = self._store.get_and_delete(oauth_session_key(session_id))
        if data is None:
            raise NotFoundError("OAuth session not found")
        return OAuthSession.from_record(data)


class SiteSessionManager:
    def __init__(self, store: KVStore) -> None:
        self._store = store

    def create(self, ttl: Optional[timedelta] = None) -> str:
        session_id = new_id()
        self._store.put(site_session_key(session_id), {}, ttl=ttl)
        logger.debug("Created site session %s (ttl=%s)", short_id(session_id), ttl)
        return session_id

    def exists(self, session_id: str) -> bool:
        return self._store.get(site_session_key(session_id)) is not None

    def delete(self, session_id: str) -> None:
        self._store.delete(site_session_key(session_id))
