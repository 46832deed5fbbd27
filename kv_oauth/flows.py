"""
Sign-in, callback and sign-out flows.

Every operation takes the OAuth configuration and the key-value store explicitly (or through
`create_helpers`), so several provider/tenant configurations can run in one process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Mapping, Optional, Sequence

from fastapi import Request
from fastapi.responses import RedirectResponse, Response

from kv_oauth.cookies import (
    OAUTH_COOKIE_PURPOSE,
    SITE_COOKIE_PURPOSE,
    CookieOptions,
    build_cookie,
    check_cookie_options,
    clear_cookie,
    read_cookie,
)
from kv_oauth.errors import MissingCookieError
from kv_oauth.oauth import OAuthClient, OAuthConfig, Tokens
from kv_oauth.sessions import OAUTH_SESSION_TTL, OAuthSessionManager, SiteSessionManager
from kv_oauth.storage.base import KVStore
from kv_oauth.util import is_https, short_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallbackResult:
    response: Response
    session_id: str
    tokens: Tokens


def _redirect(location: str) -> RedirectResponse:
    resp = RedirectResponse(url=location, status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _handshake_cookie_options(cookie_options: Optional[CookieOptions], ttl: Optional[timedelta]) -> CookieOptions:
    # Shares path/domain with the site cookie; lifetime follows the handshake record.
    max_age = max(1, int(ttl.total_seconds())) if ttl is not None else None
    return replace(cookie_options or CookieOptions(), max_age=max_age)


def sign_in(
    request: Request,
    oauth_config: OAuthConfig,
    store: KVStore,
    *,
    success_url: Optional[str] = None,
    scopes: Optional[Sequence[str]] = None,
    url_params: Optional[Mapping[str, str]] = None,
    cookie_options: Optional[CookieOptions] = None,
    oauth_session_ttl: timedelta = OAUTH_SESSION_TTL,
) -> Response:
    """
    Start sign-in: store the handshake server-side and redirect to the provider.

    `success_url` defaults to the request's Referer, else "/". Raises ValueError for cookie
    options a `__Host-` cookie cannot carry on HTTPS.
    """
    https = is_https(str(request.url))
    check_cookie_options(cookie_options, https)
    target = success_url or request.headers.get("referer") or "/"

    auth = OAuthClient(oauth_config).build_authorization_request(scopes=scopes, extra_params=url_params)
    oauth_sessions = OAuthSessionManager(store, ttl=oauth_session_ttl)
    oauth_session_id = oauth_sessions.create(auth.state, auth.code_verifier, target)

    cookie = build_cookie(
        OAUTH_COOKIE_PURPOSE,
        oauth_session_id,
        https,
        _handshake_cookie_options(cookie_options, oauth_sessions.ttl),
    )
    resp = _redirect(auth.url)
    resp.set_cookie(**cookie.set_cookie_kwargs())
    logger.info("Sign-in started (oauth_session=%s, success_url=%s)", short_id(oauth_session_id), target)
    return resp


def handle_callback(
    request: Request,
    oauth_config: OAuthConfig,
    store: KVStore,
    *,
    cookie_options: Optional[CookieOptions] = None,
) -> CallbackResult:
    """
    Finish sign-in: consume the handshake, exchange the code, and start a site session.

    Raises MissingCookieError without a handshake cookie and NotFoundError if the handshake
    was already consumed or has expired; in both cases no token exchange is attempted.
    A failed callback cannot be retried: the handshake is gone and sign-in must restart.
    """
    https = is_https(str(request.url))
    check_cookie_options(cookie_options, https)
    oauth_session_id = read_cookie(request.headers, OAUTH_COOKIE_PURPOSE, https)
    if oauth_session_id is None:
        raise MissingCookieError("OAuth cookie not found")

    oauth_session = OAuthSessionManager(store).consume(oauth_session_id)
    tokens = OAuthClient(oauth_config).exchange_code(
        str(request.url),
        state=oauth_session.state,
        code_verifier=oauth_session.code_verifier,
    )

    max_age = cookie_options.max_age if cookie_options is not None else None
    session_id = SiteSessionManager(store).create(timedelta(seconds=max_age) if max_age else None)

    resp = _redirect(oauth_session.success_url)
    resp.set_cookie(**build_cookie(SITE_COOKIE_PURPOSE, session_id, https, cookie_options).set_cookie_kwargs())
    resp.set_cookie(
        **clear_cookie(OAUTH_COOKIE_PURPOSE, https, _handshake_cookie_options(cookie_options, None)).set_cookie_kwargs()
    )
    logger.info(
        "Sign-in completed (oauth_session=%s, site_session=%s)", short_id(oauth_session_id), short_id(session_id)
    )
    return CallbackResult(response=resp, session_id=session_id, tokens=tokens)


def sign_out(
    request: Request,
    store: KVStore,
    *,
    cookie_options: Optional[CookieOptions] = None,
    success_url: str = "/",
) -> Response:
    """Delete the site session and clear its cookie. Signing out without a session is a no-op."""
    https = is_https(str(request.url))
    resp = _redirect(success_url)

    session_id = read_cookie(request.headers, SITE_COOKIE_PURPOSE, https)
    if session_id is None:
        return resp

    SiteSessionManager(store).delete(session_id)
    resp.set_cookie(**clear_cookie(SITE_COOKIE_PURPOSE, https, cookie_options).set_cookie_kwargs())
    logger.info("Signed out (site_session=%s)", short_id(session_id))
    return resp


def get_session_id(request: Request, store: KVStore) -> Optional[str]:
    """Return the site session id only if its record still exists."""
    session_id = read_cookie(request.headers, SITE_COOKIE_PURPOSE, is_https(str(request.url)))
    if session_id is None:
        return None
    return session_id if SiteSessionManager(store).exists(session_id) else None


class OAuthHelpers:
    """The four flows bound to one OAuth configuration, store and set of cookie options."""

    def __init__(
        self,
        oauth_config: OAuthConfig,
        store: KVStore,
        *,
        cookie_options: Optional[CookieOptions] = None,
        oauth_session_ttl: timedelta = OAUTH_SESSION_TTL,
    ) -> None:
        self.oauth_config = oauth_config
        self.store = store
        self.cookie_options = cookie_options
        self.oauth_session_ttl = oauth_session_ttl

    def sign_in(
        self,
        request: Request,
        *,
        success_url: Optional[str] = None,
        scopes: Optional[Sequence[str]] = None,
        url_params: Optional[Mapping[str, str]] = None,
    ) -> Response:
        return sign_in(
            request,
            self.oauth_config,
            self.store,
            success_url=success_url,
            scopes=scopes,
            url_params=url_params,
            cookie_options=self.cookie_options,
            oauth_session_ttl=self.oauth_session_ttl,
        )

    def handle_callback(self, request: Request) -> CallbackResult:
        return handle_callback(request, self.oauth_config, self.store, cookie_options=self.cookie_options)

    def sign_out(self, request: Request, *, success_url: str = "/") -> Response:
        return sign_out(request, self.store, cookie_options=self.cookie_options, success_url=success_url)

    def get_session_id(self, request: Request) -> Optional[str]:
        return get_session_id(request, self.store)


def create_helpers(
    oauth_config: OAuthConfig,
    store: KVStore,
    *,
    cookie_options: Optional[CookieOptions] = None,
    oauth_session_ttl: timedelta = OAUTH_SESSION_TTL,
) -> OAuthHelpers:
    return OAuthHelpers(oauth_config, store, cookie_options=cookie_options, oauth_session_ttl=oauth_session_ttl)
