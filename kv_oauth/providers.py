"""
Ready-made `OAuthConfig` builders for common providers.

Client credentials are read from `{PROVIDER}_CLIENT_ID` / `{PROVIDER}_CLIENT_SECRET`.
Every call returns a new config; nothing is cached process-wide.
"""

from __future__ import annotations

import os
from typing import Callable, Dict, Optional, Sequence

from kv_oauth.oauth import OAuthConfig


def _require_env(name: str) -> str:
    value = (os.getenv(name, "") or "").strip()
    if not value:
        raise ValueError(f"{name} environment variable is required")
    return value


def _build(
    env_prefix: str,
    *,
    authorization_endpoint: str,
    token_endpoint: str,
    redirect_uri: Optional[str],
    scopes: Optional[Sequence[str]],
    default_scopes: Sequence[str],
) -> OAuthConfig:
    return OAuthConfig(
        client_id=_require_env(f"{env_prefix}_CLIENT_ID"),
        client_secret=_require_env(f"{env_prefix}_CLIENT_SECRET"),
        authorization_endpoint=authorization_endpoint,
        token_endpoint=token_endpoint,
        redirect_uri=redirect_uri,
        scopes=tuple(scopes) if scopes is not None else tuple(default_scopes),
    )


def create_github_oauth_config(
    *, redirect_uri: Optional[str] = None, scopes: Optional[Sequence[str]] = None
) -> OAuthConfig:
    return _build(
        "GITHUB",
        authorization_endpoint="https://github.com/login/oauth/authorize",
        token_endpoint="https://github.com/login/oauth/access_token",
        redirect_uri=redirect_uri,
        scopes=scopes,
        default_scopes=(),
    )


def create_gitlab_oauth_config(
    *, redirect_uri: Optional[str] = None, scopes: Optional[Sequence[str]] = None
) -> OAuthConfig:
    return _build(
        "GITLAB",
        authorization_endpoint="https://gitlab.com/oauth/authorize",
        token_endpoint="https://gitlab.com/oauth/token",
        redirect_uri=redirect_uri,
        scopes=scopes,
        default_scopes=("read_user",),
    )


def create_google_oauth_config(
    *, redirect_uri: Optional[str] = None, scopes: Optional[Sequence[str]] = None
) -> OAuthConfig:
    return _build(
        "GOOGLE",
        authorization_endpoint="https://accounts.google.com/o/oauth2/v2/auth",
        token_endpoint="https://oauth2.googleapis.com/token",
        redirect_uri=redirect_uri,
        scopes=scopes,
        default_scopes=("openid", "email", "profile"),
    )


def create_discord_oauth_config(
    *, redirect_uri: Optional[str] = None, scopes: Optional[Sequence[str]] = None
) -> OAuthConfig:
    return _build(
        "DISCORD",
        authorization_endpoint="https://discord.com/oauth2/authorize",
        token_endpoint="https://discord.com/api/oauth2/token",
        redirect_uri=redirect_uri,
        scopes=scopes,
        default_scopes=("identify",),
    )


def create_auth0_oauth_config(
    *, redirect_uri: Optional[str] = None, scopes: Optional[Sequence[str]] = None
) -> OAuthConfig:
    domain = _require_env("AUTH0_DOMAIN")
    return _build(
        "AUTH0",
        authorization_endpoint=f"https://{domain}/authorize",
        token_endpoint=f"https://{domain}/oauth/token",
        redirect_uri=redirect_uri,
        scopes=scopes,
        default_scopes=("openid", "profile", "email"),
    )


def create_okta_oauth_config(
    *, redirect_uri: Optional[str] = None, scopes: Optional[Sequence[str]] = None
) -> OAuthConfig:
    domain = _require_env("OKTA_DOMAIN")
    return _build(
        "OKTA",
        authorization_endpoint=f"https://{domain}/oauth2/v1/authorize",
        token_endpoint=f"https://{domain}/oauth2/v1/token",
        redirect_uri=redirect_uri,
        scopes=scopes,
        default_scopes=("openid", "profile", "email"),
    )


PROVIDERS: Dict[str, Callable[..., OAuthConfig]] = {
    "github": create_github_oauth_config,
    "gitlab": create_gitlab_oauth_config,
    "google": create_google_oauth_config,
    "discord": create_discord_oauth_config,
    "auth0": create_auth0_oauth_config,
    "okta": create_okta_oauth_config,
}


def create_oauth_config(
    provider: str, *, redirect_uri: Optional[str] = None, scopes: Optional[Sequence[str]] = None
) -> OAuthConfig:
    key = (provider or "").strip().lower()
    factory = PROVIDERS.get(key)
    if factory is None:
        raise ValueError(f"Unknown OAuth provider: {provider!r} (expected one of {', '.join(sorted(PROVIDERS))})")
    return factory(redirect_uri=redirect_uri, scopes=scopes)
