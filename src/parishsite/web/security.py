"""Origin checks for state-changing admin requests.

Browsers attach ``Origin`` (or at least ``Referer``) to cross-site form
posts and fetches, so a mutating request is only accepted when those point
back at this site. Requests carrying neither fall back to Fetch Metadata.
"""

from typing import cast
from urllib.parse import urlsplit

from fastapi import Request
from starlette.datastructures import Headers

from parishsite.config import Config
from parishsite.errors import AccessDeniedError

DEV_HOSTS = frozenset({"localhost", "127.0.0.1"})
SAME_SITE_FETCH = frozenset({"same-origin", "same-site", "none"})
DEFAULT_PORTS = {"http": 80, "https": 443}


def normalize_host(value: str | None) -> str:
    """Lower-case a host, dropping any port and a leading ``www.``."""
    host = (value or "").strip().lower()
    host = host.removeprefix("www.")
    return host.split(":")[0]


def url_origin(value: str) -> str | None:
    """Return ``scheme://host[:port]`` for a URL, or None when it has no usable origin."""
    try:
        parts = urlsplit(value.strip())
        port = parts.port
    except ValueError:
        return None
    if parts.scheme not in DEFAULT_PORTS or not parts.hostname:
        return None
    if port is None or port == DEFAULT_PORTS[parts.scheme]:
        return f"{parts.scheme}://{parts.hostname}"
    return f"{parts.scheme}://{parts.hostname}:{port}"


def allowed_origins(config: Config) -> set[str]:
    return {origin for origin in (url_origin(item) for item in config.site_origins) if origin}


def request_host(headers: Headers, trust_proxy: bool) -> str:
    host = ""
    if trust_proxy:
        host = headers.get("x-forwarded-host", "").split(",")[0].strip()
    if not host:
        host = headers.get("host", "").split(",")[0].strip()
    return normalize_host(host)


def is_allowed_origin(origin: str, headers: Headers, config: Config) -> bool:
    normalized = url_origin(origin)
    if normalized is None:
        return False
    origin_host = normalize_host(urlsplit(normalized).hostname)
    req_host = request_host(headers, config.trust_proxy)
    if origin_host in DEV_HOSTS and req_host in DEV_HOSTS:
        return True
    if origin_host and origin_host == req_host:
        return True
    return normalized in allowed_origins(config)


def check_request_origin(headers: Headers, config: Config) -> str | None:
    """Return None when the request comes from this site, otherwise the rejection reason."""
    origin = headers.get("origin")
    if origin:
        return None if is_allowed_origin(origin, headers, config) else "Bad Origin"

    referer = headers.get("referer")
    if referer:
        referer_origin = url_origin(referer)
        if referer_origin and is_allowed_origin(referer_origin, headers, config):
            return None
        return "Bad Referer"

    fetch_site = headers.get("sec-fetch-site", "").lower()
    if fetch_site in SAME_SITE_FETCH:
        return None

    # Some browsers omit Fetch Metadata on first-party navigations
    fetch_mode = headers.get("sec-fetch-mode", "").lower()
    fetch_dest = headers.get("sec-fetch-dest", "").lower()
    if not fetch_site and fetch_mode == "navigate" and fetch_dest == "document":
        return None

    return "Origin required"


async def require_trusted_origin(request: Request) -> None:
    """Dependency guarding every state-changing admin route."""
    reason = check_request_origin(request.headers, cast(Config, request.app.state.config))
    if reason is not None:
        raise AccessDeniedError(reason)
