from typing import Annotated

from fastapi import APIRouter, Cookie, Depends, Form, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import BaseModel, Field

from parishsite.web.cookies import (
    DEVICE_COOKIE,
    clear_device_cookie,
    clear_session_cookie,
    set_device_cookie,
    set_session_cookie,
)
from parishsite.web.deps import AppDep, ConfigDep, RemoteAddrDep, SessionDep
from parishsite.web.openapi import ErrorResponse
from parishsite.web.security import require_trusted_origin

router = APIRouter(prefix="/admin", tags=["admin"])

DASHBOARD_URL = "/admin/dashboard"
LOGIN_URL = "/admin/login"

LOGIN_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>Admin Login</title></head>
<body>
  <h1>Admin Portal</h1>
  <form action="/admin/login" method="POST">
    <input type="password" name="password" placeholder="Password" required autocomplete="current-password">
    <input type="text" name="token" placeholder="6-digit code" inputmode="numeric" autocomplete="one-time-code">
    <label><input type="checkbox" name="rememberDevice" value="true"> Remember this device for 30 days</label>
    <button type="submit">Login</button>
  </form>
</body>
</html>
"""

DASHBOARD_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>Admin Dashboard</title></head>
<body>
  <h1>Welcome, Admin!</h1>
  <form action="/admin/logout" method="POST"><button type="submit">Logout</button></form>
</body>
</html>
"""


class SessionStatus(BaseModel):
    """Whether the caller holds an admin session."""

    logged_in: bool = Field(..., serialization_alias="loggedIn", description="True for a live admin session")


@router.get("/login", summary="Login page", operation_id="loginPage", response_class=HTMLResponse)
async def login_page(session: SessionDep) -> Response:
    if session is not None:
        return RedirectResponse(DASHBOARD_URL, status_code=303)
    return HTMLResponse(LOGIN_PAGE)


@router.post(
    "/login",
    summary="Authenticate admin",
    description="Check the admin password and one-time code. A trusted-device cookie waives the code.",
    operation_id="login",
    dependencies=[Depends(require_trusted_origin)],
    status_code=303,
    responses={
        303: {"description": "Logged in, redirect to the dashboard"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Request did not come from this site"},
        429: {"model": ErrorResponse, "description": "Too many login attempts"},
    },
)
async def login(
    request: Request,
    app: AppDep,
    config: ConfigDep,
    remote_addr: RemoteAddrDep,
    password: Annotated[str, Form()] = "",
    token: Annotated[str, Form()] = "",
    remember_device: Annotated[bool, Form(alias="rememberDevice")] = False,
    device_token: Annotated[str | None, Cookie(alias=DEVICE_COOKIE)] = None,
) -> Response:
    result = await app.login(
        password=password,
        code=token,
        remember_device=remember_device,
        remote_addr=remote_addr,
        device_token=device_token,
        previous_session_id=getattr(request.state, "session_id", None),
    )
    request.state.session = result.session

    response = RedirectResponse(DASHBOARD_URL, status_code=303)
    set_session_cookie(response, config, result.session.id)
    if result.device_token:
        set_device_cookie(response, config, result.device_token)
    return response


@router.get("/dashboard", summary="Admin dashboard", operation_id="dashboard", response_class=HTMLResponse)
async def dashboard(session: SessionDep) -> Response:
    if session is None or not session.is_authenticated_admin:
        return RedirectResponse(LOGIN_URL, status_code=303)
    return HTMLResponse(DASHBOARD_PAGE, headers={"Cache-Control": "no-store"})


@router.get(
    "/check",
    summary="Session status",
    description="Tell front-end pages whether to show admin controls.",
    operation_id="checkSession",
)
async def check(session: SessionDep) -> SessionStatus:
    return SessionStatus(logged_in=session is not None and session.is_authenticated_admin)


@router.post(
    "/logout",
    summary="End session",
    description="Destroy the admin session. With forgetDevice the trusted-device token is revoked too.",
    operation_id="logout",
    dependencies=[Depends(require_trusted_origin)],
    status_code=204,
    responses={
        204: {"description": "Logged out"},
        403: {"model": ErrorResponse, "description": "Request did not come from this site"},
    },
)
async def logout(
    request: Request,
    app: AppDep,
    config: ConfigDep,
    forget_device: Annotated[bool, Form(alias="forgetDevice")] = False,
    device_token: Annotated[str | None, Cookie(alias=DEVICE_COOKIE)] = None,
) -> Response:
    await app.logout(getattr(request.state, "session_id", None), device_token=device_token, forget_device=forget_device)
    request.state.session = None

    response = Response(status_code=204)
    clear_session_cookie(response, config)
    if forget_device:
        clear_device_cookie(response, config)
    return response
