"""Session and trusted-device cookies."""

from fastapi import Response
from itsdangerous import BadSignature, Signer

from parishsite.config import Config
from parishsite.core.modules.session.models import SessionId

SESSION_COOKIE = "site.sid"
DEVICE_COOKIE = "site.trusted"
DEVICE_COOKIE_PATH = "/admin"


def _signer(config: Config) -> Signer:
    return Signer(config.session_secret_key, salt="parishsite.session")


def encode_session_cookie(config: Config, session_id: SessionId) -> str:
    return _signer(config).sign(session_id).decode("utf-8")


def decode_session_cookie(config: Config, value: str) -> SessionId | None:
    """Return the session id from a signed cookie value, or None if the signature is bad."""
    try:
        return SessionId(_signer(config).unsign(value).decode("utf-8"))
    except BadSignature:
        return None


def set_session_cookie(response: Response, config: Config, session_id: SessionId) -> None:
    # Max-Age matches the idle window and is re-sent on every authenticated request
    response.set_cookie(
        key=SESSION_COOKIE,
        value=encode_session_cookie(config, session_id),
        max_age=config.session_idle_minutes * 60,
        httponly=True,
        secure=config.production,
        samesite="strict" if config.production else "lax",
    )


def clear_session_cookie(response: Response, config: Config) -> None:
    response.delete_cookie(
        key=SESSION_COOKIE, httponly=True, secure=config.production, samesite="strict" if config.production else "lax"
    )


def set_device_cookie(response: Response, config: Config, token: str) -> None:
    response.set_cookie(
        key=DEVICE_COOKIE,
        value=token,
        max_age=config.trusted_device_days * 24 * 60 * 60,
        path=DEVICE_COOKIE_PATH,
        httponly=True,
        secure=config.production,
        samesite="lax",
    )


def clear_device_cookie(response: Response, config: Config) -> None:
    response.delete_cookie(
        key=DEVICE_COOKIE, path=DEVICE_COOKIE_PATH, httponly=True, secure=config.production, samesite="lax"
    )


def sets_cookie(response: Response, name: str) -> bool:
    """Check whether the response already carries a Set-Cookie header for name."""
    prefix = f"{name}="
    return any(value.startswith(prefix) for value in response.headers.getlist("set-cookie"))
