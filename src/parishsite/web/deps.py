from typing import Annotated, cast

from fastapi import Depends, Request

from parishsite.app import App
from parishsite.config import Config
from parishsite.core.modules.session.models import Session


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_config(request: Request) -> Config:
    return cast(Config, request.app.state.config)


async def get_session(request: Request) -> Session | None:
    """Session resolved by SessionCookieMiddleware, None when anonymous."""
    return cast(Session | None, getattr(request.state, "session", None))


async def get_remote_addr(request: Request, config: Annotated[Config, Depends(get_config)]) -> str:
    """Client address used for rate limiting. Proxy headers are honoured only with trust_proxy.

    Only the last X-Forwarded-For hop is used: it is the one appended by the
    trusted proxy, every earlier entry is whatever the client sent.
    """
    if config.trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "").split(",")[-1].strip()
        if forwarded:
            return forwarded
    return request.client.host if request.client else "unknown"


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
ConfigDep = Annotated[Config, Depends(get_config)]
SessionDep = Annotated[Session | None, Depends(get_session)]
RemoteAddrDep = Annotated[str, Depends(get_remote_addr)]
