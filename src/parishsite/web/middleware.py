from typing import cast

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from parishsite.app import App
from parishsite.config import Config
from parishsite.web.cookies import SESSION_COOKIE, clear_session_cookie, decode_session_cookie, set_session_cookie, sets_cookie


class SessionCookieMiddleware(BaseHTTPMiddleware):
    """Resolve the session cookie for every request and keep it sliding.

    Handlers read ``request.state.session`` (None when anonymous). A handler
    that sets or deletes the session cookie itself (login, logout) wins over
    the refresh done here.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        app = cast(App, request.app.state.app)
        config = cast(Config, request.app.state.config)

        raw_cookie = request.cookies.get(SESSION_COOKIE)
        session_id = decode_session_cookie(config, raw_cookie) if raw_cookie else None
        session = await app.get_session(session_id) if session_id else None
        request.state.session_id = session_id
        request.state.session = session

        response = await call_next(request)

        if sets_cookie(response, SESSION_COOKIE):
            return response
        # A rejected login leaves whatever cookie the browser holds untouched
        if response.status_code == 401:
            return response
        if session is not None:
            set_session_cookie(response, config, session.id)
        elif raw_cookie:
            clear_session_cookie(response, config)
        return response


SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
}

CONTENT_SECURITY_POLICY = [
    "default-src 'self'",
    "script-src 'self'",
    "script-src-attr 'none'",
    "style-src 'self' 'unsafe-inline'",
    "img-src 'self' data:",
    "object-src 'none'",
    "base-uri 'self'",
    "form-action 'self'",
    "frame-ancestors 'self'",
]

# Interactive API docs load their assets from a CDN
CSP_EXEMPT_PATHS = ("/docs", "/openapi.json")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add browser hardening headers to every response. Headers a handler set itself are kept."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        config = cast(Config, request.app.state.config)
        response = await call_next(request)

        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        if config.production:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        if not request.url.path.startswith(CSP_EXEMPT_PATHS):
            policy = [*CONTENT_SECURITY_POLICY, "upgrade-insecure-requests"] if config.production else CONTENT_SECURITY_POLICY
            response.headers.setdefault("Content-Security-Policy", "; ".join(policy))
        return response
