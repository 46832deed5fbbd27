"""
OAuth 2.0 (authorization code + PKCE) sign-in for server-rendered apps.

Design goals:
- Tokens never reach the browser; cookies carry only opaque random ids.
- Handshake state and site sessions live in a TTL-capable key-value store.
- Provider-agnostic; configuration is passed explicitly, never held as a global.
"""

from kv_oauth.cookies import CookieOptions
from kv_oauth.errors import KVOAuthError, MissingCookieError, NotFoundError, StorageError, TokenExchangeError
from kv_oauth.flows import CallbackResult, OAuthHelpers, create_helpers, get_session_id, handle_callback, sign_in, sign_out
from kv_oauth.oauth import OAuthConfig, Tokens
from kv_oauth.storage import KVStore, MemoryKVStore, RedisKVStore

__all__ = [
    "CallbackResult",
    "CookieOptions",
    "KVOAuthError",
    "KVStore",
    "MemoryKVStore",
    "MissingCookieError",
    "NotFoundError",
    "OAuthConfig",
    "OAuthHelpers",
    "RedisKVStore",
    "StorageError",
    "TokenExchangeError",
    "Tokens",
    "create_helpers",
    "get_session_id",
    "handle_callback",
    "sign_in",
    "sign_out",
]
