"""
OAuth 2.0 authorization-code client with PKCE.

Provider-agnostic: endpoints and credentials come from an explicit `OAuthConfig`, so any number
of configurations can be used side by side in one process.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple
from urllib.parse import parse_qs, urlencode, urlsplit

import requests

from kv_oauth.errors import TokenExchangeError
from kv_oauth.util import new_id

logger = logging.getLogger(__name__)

_TOKEN_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class OAuthConfig:
    client_id: str
    client_secret: str
    authorization_endpoint: str
    token_endpoint: str
    redirect_uri: Optional[str] = None
    scopes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AuthorizationRequest:
    url: str
    state: str
    code_verifier: str


@dataclass(frozen=True)
class Tokens:
    """Token set returned by the provider. `raw` keeps every field of the response."""

    access_token: str
    token_type: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scopes: Tuple[str, ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "Tokens":
        access_token = str(data.get("access_token") or "").strip()
        if not access_token:
            raise TokenExchangeError("Missing access_token in token response")

        expires_in: Optional[int] = None
        if data.get("expires_in") is not None:
            try:
                expires_in = int(float(data["expires_in"]))
            except (TypeError, ValueError):
                expires_in = None

        # GitHub separates scopes with commas, RFC 6749 with spaces.
        scopes = tuple(s for s in re.split(r"[,\s]+", str(data.get("scope") or "")) if s)
        return cls(
            access_token=access_token,
            token_type=str(data.get("token_type") or "bearer"),
            refresh_token=str(data["refresh_token"]) if data.get("refresh_token") else None,
            expires_in=expires_in,
            scopes=scopes,
            raw=dict(data),
        )


def pkce_challenge(verifier: str) -> str:
    """
    Generate PKCE challenge from verifier using SHA256.
    """
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class OAuthClient:
    def __init__(self, config: OAuthConfig) -> None:
        self.config = config

    def build_authorization_request(
        self,
        *,
        scopes: Optional[Sequence[str]] = None,
        extra_params: Optional[Mapping[str, str]] = None,
    ) -> AuthorizationRequest:
        """
        Build the provider authorization URL with a fresh `state` and PKCE verifier.

        `scopes` replaces the configured default scopes; `extra_params` adds provider-specific
        query parameters (e.g. `prompt`, `login_hint`).
        """
        cfg = self.config
        state = new_id()
        verifier = new_id()  # 43 chars, within the 43..128 PKCE verifier range

        params: Dict[str, str] = {
            "response_type": "code",
            "client_id": cfg.client_id,
            "state": state,
            "code_challenge": pkce_challenge(verifier),
            "code_challenge_method": "S256",
        }
        if cfg.redirect_uri:
            params["redirect_uri"] = cfg.redirect_uri
        scope_list = list(scopes) if scopes is not None else list(cfg.scopes)
        if scope_list:
            params["scope"] = " ".join(scope_list)
        if extra_params:
            params.update({str(k): str(v) for k, v in extra_params.items()})

        sep = "&" if "?" in cfg.authorization_endpoint else "?"
        url = f"{cfg.authorization_endpoint}{sep}{urlencode(params)}"
        return AuthorizationRequest(url=url, state=state, code_verifier=verifier)

    def exchange_code(self, callback_url: str, *, state: str, code_verifier: str) -> Tokens:
        """
        Exchange the authorization code in `callback_url` for tokens.

        The `state` returned by the provider must match the one issued at authorize time.
        """
        query = {k: v[0] for k, v in parse_qs(urlsplit(str(callback_url)).query).items() if v}

        error = query.get("error")
        if error:
            desc = query.get("error_description") or ""
            raise TokenExchangeError(f"Authorization failed: {error} {desc}".strip())

        returned_state = query.get("state") or ""
        if not returned_state or not hmac.compare_digest(returned_state, state):
            raise TokenExchangeError("OAuth state mismatch")

        code = query.get("code")
        if not code:
            raise TokenExchangeError("Missing authorization code")

        cfg = self.config
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": cfg.client_id,
            "client_secret": cfg.client_secret,
            "code_verifier": code_verifier,
        }
        if cfg.redirect_uri:
            payload["redirect_uri"] = cfg.redirect_uri

        try:
            r = requests.post(
                cfg.token_endpoint,
                data=payload,
                headers={"Accept": "application/json"},
                timeout=_TOKEN_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.warning("Token request to %s failed: %s", cfg.token_endpoint, str(e))
            raise TokenExchangeError("Token request failed") from e

        if r.status_code >= 400:
            # Avoid leaking sensitive info; include minimal context.
            raise TokenExchangeError(f"Token exchange failed (status={r.status_code})")
        try:
            data = r.json()
        except ValueError as e:
            raise TokenExchangeError("Invalid token response") from e
        if not isinstance(data, dict):
            raise TokenExchangeError("Invalid token response")
        # Some providers (GitHub) report errors with a 200 status.
        if data.get("error"):
            raise TokenExchangeError(f"Token exchange failed: {data.get('error')}")
        return Tokens.from_response(data)
