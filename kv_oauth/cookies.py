"""
Cookie codec for the handshake and site session cookies.

Both cookies carry nothing but an opaque random id. The name is derived from the cookie's
purpose and the request scheme, so the code that sets a cookie and the code that later reads
it always agree as long as they see the same scheme.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping, Optional

from starlette.requests import cookie_parser

OAUTH_COOKIE_PURPOSE = "oauth-session"
SITE_COOKIE_PURPOSE = "site-session"

# `__Host-` requires Secure + Path=/ + no Domain; browsers may reject it on HTTP.
_SECURE_PREFIX = "__Host-"


@dataclass(frozen=True)
class CookieOptions:
    """Caller overrides for cookie attributes. `None` keeps the default."""

    path: Optional[str] = None
    domain: Optional[str] = None
    max_age: Optional[int] = None
    http_only: Optional[bool] = None
    same_site: Optional[str] = None

    def __post_init__(self) -> None:
        # Max-Age=0 deletes the cookie; clearing goes through clear_cookie instead.
        if self.max_age is not None and self.max_age <= 0:
            raise ValueError(f"Cookie max_age must be positive (got {self.max_age})")

    def overrides(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str
    path: str = "/"
    domain: Optional[str] = None
    max_age: Optional[int] = None  # seconds
    http_only: bool = True
    same_site: str = "lax"
    secure: bool = False

    def set_cookie_kwargs(self) -> dict:
        """Keyword arguments for `starlette.responses.Response.set_cookie`."""
        return {
            "key": self.name,
            "value": self.value,
            "max_age": self.max_age,
            "path": self.path,
            "domain": self.domain,
            "secure": self.secure,
            "httponly": self.http_only,
            "samesite": self.same_site,
        }


def cookie_name(purpose: str, is_https: bool) -> str:
    return f"{_SECURE_PREFIX}{purpose}" if is_https else purpose


def check_cookie_options(options: Optional[CookieOptions], is_https: bool) -> None:
    """
    Reject options that would produce a cookie browsers drop.

    On HTTPS the name carries `__Host-`, which browsers only accept with `Path=/` and no
    `Domain`. Raises ValueError otherwise.
    """
    if not is_https or options is None:
        return
    if options.path is not None and options.path != "/":
        raise ValueError(f"{_SECURE_PREFIX} cookies require path '/' (got {options.path!r})")
    if options.domain:
        raise ValueError(f"{_SECURE_PREFIX} cookies cannot set a domain (got {options.domain!r})")


def build_cookie(purpose: str, value: str, is_https: bool, overrides: Optional[CookieOptions] = None) -> Cookie:
    """
    Build the cookie for `purpose`.

    Defaults are applied first, then caller overrides, then `name`, `value` and `secure`
    are recomputed so no override can make a cookie disagree with the request scheme.
    """
    check_cookie_options(overrides, is_https)
    cookie = Cookie(name=purpose, value=value)
    if overrides is not None:
        cookie = replace(cookie, **overrides.overrides())
    return replace(cookie, name=cookie_name(purpose, is_https), value=value, secure=is_https)


def clear_cookie(purpose: str, is_https: bool, overrides: Optional[CookieOptions] = None) -> Cookie:
    """An immediately-expired cookie with the same name, path and domain as `build_cookie`."""
    return replace(build_cookie(purpose, "", is_https, overrides), max_age=0)


def read_cookie(headers: Mapping[str, str], purpose: str, is_https: bool) -> Optional[str]:
    raw = headers.get("cookie") or headers.get("Cookie") or ""
    if not raw:
        return None
    value = cookie_parser(raw).get(cookie_name(purpose, is_https))
    return value or None
