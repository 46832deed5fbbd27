from __future__ import annotations

import secrets
from urllib.parse import urlsplit

# 32 bytes = 256 bits of entropy, 43 base64url characters.
_ID_BYTES = 32


def new_id() -> str:
    """Opaque random identifier for session ids, `state` and PKCE verifiers."""
    return secrets.token_urlsafe(_ID_BYTES)


def is_https(url: str) -> bool:
    return urlsplit(str(url)).scheme.lower() == "https"


def short_id(value: str | None) -> str:
    """Truncate an identifier for log lines."""
    return (value or "")[:8]


def same_origin_path(target: str | None, default: str = "/") -> str:
    """
    Keep a post-sign-in redirect on this site.

    Returns `target` only when it is a path like `/dashboard?tab=1`; anything carrying a
    scheme or host (including `//host` and `/\\host`, which browsers treat as hosts) falls
    back to `default`. Control characters are stripped so the value is safe in a header.
    """
    path = "".join(ch for ch in (target or "").strip() if ch >= " ")
    if not path.startswith("/") or path.startswith("//") or "\\" in path:
        return default
    parts = urlsplit(path)
    if parts.scheme or parts.netloc:
        return default
    return path
