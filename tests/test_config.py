"""
Tests for environment-driven settings.
"""

from __future__ import annotations

import os
from datetime import timedelta
from unittest.mock import patch

import pytest

from kv_oauth.config import build_store, load_settings
from kv_oauth.cookies import CookieOptions
from kv_oauth.storage import MemoryKVStore, RedisKVStore


@pytest.fixture(autouse=True)
def _fresh_settings():
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


def test_defaults() -> None:
    """Without environment variables the demo uses GitHub and the memory store."""
    with patch.dict(os.environ, {}, clear=True):
        s = load_settings()
    assert s.provider == "github"
    assert s.redis_url is None
    assert s.redirect_uri is None
    assert s.oauth_session_ttl == timedelta(minutes=10)
    assert s.log_level == "INFO"
    assert s.cookie_options() == CookieOptions(path="/")
    assert isinstance(build_store(s), MemoryKVStore)


def test_values_from_env() -> None:
    """Environment variables override every default."""
    env = {
        "KV_OAUTH_PROVIDER": "Google",
        "KV_OAUTH_PUBLIC_BASE_URL": "http://app.example/",
        "KV_OAUTH_COOKIE_DOMAIN": "app.example",
        "KV_OAUTH_COOKIE_PATH": "/auth",
        "KV_OAUTH_SITE_SESSION_MAX_AGE_SECONDS": "86400",
        "KV_OAUTH_SESSION_TTL_SECONDS": "300",
        "LOG_LEVEL": "debug",
    }
    with patch.dict(os.environ, env, clear=True):
        s = load_settings()
    assert s.provider == "google"
    assert s.redirect_uri == "http://app.example/callback"
    assert s.oauth_session_ttl == timedelta(minutes=5)
    assert s.log_level == "DEBUG"
    assert s.cookie_options() == CookieOptions(path="/auth", domain="app.example", max_age=86400)


def test_session_ttl_is_clamped() -> None:
    """The handshake TTL never drops below one minute."""
    with patch.dict(os.environ, {"KV_OAUTH_SESSION_TTL_SECONDS": "5"}, clear=True):
        assert load_settings().oauth_session_ttl_seconds == 60


def test_non_positive_max_age_means_browser_session() -> None:
    """A zero max-age falls back to a browser-session cookie."""
    with patch.dict(os.environ, {"KV_OAUTH_SITE_SESSION_MAX_AGE_SECONDS": "0"}, clear=True):
        assert load_settings().site_session_max_age_seconds is None


def test_invalid_number_raises() -> None:
    """Non-numeric values name the offending variable."""
    with patch.dict(os.environ, {"KV_OAUTH_SESSION_TTL_SECONDS": "ten"}, clear=True):
        with pytest.raises(ValueError, match="KV_OAUTH_SESSION_TTL_SECONDS"):
            load_settings()


def test_redis_url_selects_redis_store() -> None:
    """A Redis URL switches the demo to the Redis store."""
    with patch.dict(os.environ, {"KV_OAUTH_REDIS_URL": "redis://localhost:6379/0"}, clear=True):
        s = load_settings()
    # Client creation is lazy; no connection is made here.
    assert isinstance(build_store(s), RedisKVStore)


@pytest.mark.parametrize(
    "cookie_env",
    [{"KV_OAUTH_COOKIE_PATH": "/auth"}, {"KV_OAUTH_COOKIE_DOMAIN": "app.example"}],
)
def test_https_base_url_rejects_scoped_cookies(cookie_env) -> None:
    """An HTTPS deployment refuses cookie scoping that browsers drop for __Host- cookies."""
    env = {"KV_OAUTH_PUBLIC_BASE_URL": "https://app.example", **cookie_env}
    with patch.dict(os.environ, env, clear=True):
        with pytest.raises(ValueError, match="__Host-"):
            load_settings()


def test_https_base_url_with_root_cookies() -> None:
    """Root-scoped cookies are fine behind HTTPS."""
    env = {"KV_OAUTH_PUBLIC_BASE_URL": "https://app.example", "KV_OAUTH_COOKIE_PATH": "/"}
    with patch.dict(os.environ, env, clear=True):
        s = load_settings()
    assert s.redirect_uri == "https://app.example/callback"
