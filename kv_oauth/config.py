from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from kv_oauth.cookies import CookieOptions, check_cookie_options
from kv_oauth.storage import KVStore, MemoryKVStore, RedisKVStore
from kv_oauth.util import is_https


@dataclass(frozen=True)
class Settings:
    # OAuth provider (preset name, see kv_oauth.providers)
    provider: str
    public_base_url: Optional[str]  # Redirect URI is derived from this when set

    # Storage
    redis_url: Optional[str]  # None -> in-memory store (single process only)

    # Cookies / sessions
    cookie_domain: Optional[str]
    cookie_path: str
    site_session_max_age_seconds: Optional[int]  # None -> browser-session cookie, no KV expiry
    oauth_session_ttl_seconds: int

    log_level: str

    @property
    def redirect_uri(self) -> Optional[str]:
        if not self.public_base_url:
            return None
        return f"{self.public_base_url.rstrip('/')}/callback"

    @property
    def oauth_session_ttl(self) -> timedelta:
        return timedelta(seconds=self.oauth_session_ttl_seconds)

    def cookie_options(self) -> CookieOptions:
        return CookieOptions(
            path=self.cookie_path,
            domain=self.cookie_domain,
            max_age=self.site_session_max_age_seconds,
        )


def _env(name: str) -> Optional[str]:
    return (os.getenv(name, "") or "").strip() or None


def _env_int(name: str) -> Optional[int]:
    raw = _env(name)
    if raw is None:
        return None
    try:
        return int(float(raw))
    except ValueError as e:
        raise ValueError(f"{name} must be a number (got {raw!r})") from e


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """
    Load demo-server settings from environment variables.

    The flows themselves never read configuration; only the server/CLI does.
    """
    ttl = _env_int("KV_OAUTH_SESSION_TTL_SECONDS") or 600  # 10 min default
    if ttl < 60:
        ttl = 60

    max_age = _env_int("KV_OAUTH_SITE_SESSION_MAX_AGE_SECONDS")
    if max_age is not None and max_age <= 0:
        max_age = None

    settings = Settings(
        provider=(_env("KV_OAUTH_PROVIDER") or "github").lower(),
        public_base_url=_env("KV_OAUTH_PUBLIC_BASE_URL"),
        redis_url=_env("KV_OAUTH_REDIS_URL"),
        cookie_domain=_env("KV_OAUTH_COOKIE_DOMAIN"),
        cookie_path=_env("KV_OAUTH_COOKIE_PATH") or "/",
        site_session_max_age_seconds=max_age,
        oauth_session_ttl_seconds=ttl,
        log_level=(_env("LOG_LEVEL") or "info").upper(),
    )
    # Fail at startup rather than on the first HTTPS request.
    if settings.public_base_url and is_https(settings.public_base_url):
        check_cookie_options(settings.cookie_options(), True)
    return settings


def build_store(settings: Settings) -> KVStore:
    if settings.redis_url:
        return RedisKVStore.from_url(settings.redis_url)
    return MemoryKVStore()
