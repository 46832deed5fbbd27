from __future__ import annotations


class KVOAuthError(Exception):
    """Base class for every failure raised by the sign-in flows."""


class MissingCookieError(KVOAuthError):
    """A cookie required by the flow was not sent with the request."""


class NotFoundError(KVOAuthError):
    """
    A handshake or session record is unknown, already consumed, or expired.

    This is the expected outcome of a replayed or stale callback, not a sign of corruption.
    """


class TokenExchangeError(KVOAuthError):
    """The provider rejected the authorization code, the state did not match, or the request failed."""


class StorageError(KVOAuthError):
    """The key-value store failed to read or write a record."""
