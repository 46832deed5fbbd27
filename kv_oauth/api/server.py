"""
Demo HTTP server.

Wires the sign-in flows to routes and maps flow errors to HTTP statuses. Everything
correctness-relevant lives in the key-value store, so any number of workers can serve it
when Redis is configured.
"""

from __future__ import annotations

import html
import logging
import time
from typing import Dict, Optional, Type

from fastapi import FastAPI, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse

from kv_oauth.config import Settings, build_store, load_settings
from kv_oauth.errors import KVOAuthError, MissingCookieError, NotFoundError, StorageError, TokenExchangeError
from kv_oauth.flows import OAuthHelpers, create_helpers
from kv_oauth.providers import create_oauth_config
from kv_oauth.util import same_origin_path, short_id

logger = logging.getLogger(__name__)

_ERROR_STATUS: Dict[Type[KVOAuthError], int] = {
    MissingCookieError: 400,
    NotFoundError: 400,
    TokenExchangeError: 502,
    StorageError: 500,
}


def _error_status(exc: KVOAuthError) -> int:
    for cls in type(exc).__mro__:
        if cls in _ERROR_STATUS:
            return _ERROR_STATUS[cls]
    return 500


def create_app(helpers: OAuthHelpers) -> FastAPI:
    app = FastAPI(title="kv-oauth demo")
    app.state.helpers = helpers

    @app.exception_handler(KVOAuthError)
    async def _flow_error(request: Request, exc: KVOAuthError) -> JSONResponse:
        status = _error_status(exc)
        if status >= 500:
            logger.error("%s %s failed: %s: %s", request.method, request.url.path, type(exc).__name__, str(exc))
        else:
            logger.warning("%s %s rejected: %s: %s", request.method, request.url.path, type(exc).__name__, str(exc))
        return JSONResponse(status_code=status, content={"detail": str(exc), "error": type(exc).__name__})

    @app.middleware("http")
    async def log_requests(request: Request, call_next):  # type: ignore[no-untyped-def]
        start = time.time()
        response = await call_next(request)
        logger.debug(
            "%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, time.time() - start
        )
        return response

    @app.get("/healthz")
    def healthz() -> dict:
        return {"ok": True}

    @app.get("/", response_class=HTMLResponse)
    def index(request: Request) -> HTMLResponse:
        session_id = helpers.get_session_id(request)
        if session_id is None:
            body = '<p>Who are you?</p><p><a href="/signin">Sign in</a></p>'
        else:
            body = (
                f"<p>Signed in (session {html.escape(short_id(session_id))}&hellip;)</p>"
                '<p><a href="/protected">Protected page</a> | <a href="/signout">Sign out</a></p>'
            )
        return HTMLResponse(body)

    @app.get("/signin")
    def signin(request: Request, next_path: Optional[str] = Query(None, alias="next")):  # type: ignore[no-untyped-def]
        success_url = same_origin_path(next_path) if next_path is not None else None
        return helpers.sign_in(request, success_url=success_url)

    @app.get("/callback")
    def callback(request: Request):  # type: ignore[no-untyped-def]
        result = helpers.handle_callback(request)
        # Tokens are not persisted by the demo; an application would store them under result.session_id.
        logger.info("Received tokens (type=%s, scopes=%s)", result.tokens.token_type, ",".join(result.tokens.scopes))
        return result.response

    @app.get("/signout")
    def signout(request: Request):  # type: ignore[no-untyped-def]
        return helpers.sign_out(request)

    @app.get("/protected")
    def protected(request: Request) -> JSONResponse:
        session_id = helpers.get_session_id(request)
        if session_id is None:
            return JSONResponse(status_code=401, content={"detail": "Unauthorized"})
        return JSONResponse(content={"ok": True, "session": short_id(session_id)})

    return app


def build_helpers(settings: Settings) -> OAuthHelpers:
    oauth_config = create_oauth_config(settings.provider, redirect_uri=settings.redirect_uri)
    return create_helpers(
        oauth_config,
        build_store(settings),
        cookie_options=settings.cookie_options(),
        oauth_session_ttl=settings.oauth_session_ttl,
    )


def run(host: str = "0.0.0.0", port: int = 8000, settings: Optional[Settings] = None) -> None:
    import uvicorn

    settings = settings or load_settings()

    # Configure logging for the application
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Map Python logging levels to uvicorn log levels
    uvicorn_log_level = (
        settings.log_level.lower()
        if settings.log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"]
        else "info"
    )

    app = create_app(build_helpers(settings))
    logger.info(
        "Starting demo server on %s:%d (provider=%s, store=%s)",
        host,
        port,
        settings.provider,
        "redis" if settings.redis_url else "memory",
    )
    uvicorn.run(app, host=host, port=port, log_level=uvicorn_log_level)
