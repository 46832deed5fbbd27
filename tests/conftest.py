"""
Pytest config.

Local imports like `import kv_oauth` rely on the repo root being on sys.path when the package
is not installed. We pin the behavior here so tests can always import the local package.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Dict, Optional
from urllib.parse import parse_qs, urlsplit

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

from starlette.requests import Request  # noqa: E402

from kv_oauth.oauth import OAuthConfig  # noqa: E402
from kv_oauth.storage import MemoryKVStore  # noqa: E402


class FakeClock:
    """Monotonic clock the tests can move forward."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryKVStore:
    return MemoryKVStore(clock=clock)


@pytest.fixture
def oauth_config() -> OAuthConfig:
    return OAuthConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        authorization_endpoint="https://provider.example/oauth/authorize",
        token_endpoint="https://provider.example/oauth/token",
        redirect_uri="https://app.example/callback",
        scopes=("read:user",),
    )


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build a Starlette request for a URL, with optional cookies and headers."""

    def _make(
        url: str,
        *,
        cookies: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        method: str = "GET",
    ) -> Request:
        parts = urlsplit(url)
        raw_headers = [(b"host", parts.netloc.encode("latin-1"))]
        for k, v in (headers or {}).items():
            raw_headers.append((k.lower().encode("latin-1"), v.encode("latin-1")))
        if cookies:
            cookie_header = "; ".join(f"{k}={v}" for k, v in cookies.items())
            raw_headers.append((b"cookie", cookie_header.encode("latin-1")))
        scope = {
            "type": "http",
            "method": method,
            "scheme": parts.scheme,
            "server": (parts.hostname, parts.port or (443 if parts.scheme == "https" else 80)),
            "path": parts.path or "/",
            "raw_path": (parts.path or "/").encode("latin-1"),
            "root_path": "",
            "query_string": parts.query.encode("latin-1"),
            "headers": raw_headers,
        }
        return Request(scope)

    return _make


def response_cookies(response) -> Dict[str, str]:
    """Map cookie name -> raw Set-Cookie header for every cookie set on a response."""
    out: Dict[str, str] = {}
    for header in response.headers.getlist("set-cookie"):
        name = header.split("=", 1)[0].strip()
        out[name] = header
    return out


def cookie_value(set_cookie_header: str) -> str:
    return set_cookie_header.split(";", 1)[0].split("=", 1)[1].strip().strip('"')


def query_params(url: str) -> Dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


@pytest.fixture
def cookies_of() -> Callable[..., Dict[str, str]]:
    return response_cookies


@pytest.fixture
def value_of() -> Callable[[str], str]:
    return cookie_value


@pytest.fixture
def params_of() -> Callable[[str], Dict[str, str]]:
    return query_params
