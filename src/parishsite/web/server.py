from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from parishsite.app import App
from parishsite.config import Config
from parishsite.errors import UserError
from parishsite.web.error_handlers import general_exception_handler, user_error_handler
from parishsite.web.middleware import SecurityHeadersMiddleware, SessionCookieMiddleware
from parishsite.web.openapi import set_custom_openapi
from parishsite.web.routers import admin_router, content_router, faculty_router, team_router


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        async with app_instance.lifespan():
            yield

    app = FastAPI(
        title="Parish Site API",
        lifespan=lifespan,
        docs_url=None if config.production else "/docs",
        redoc_url=None,
    )
    # Middleware reads these on every request, so they are set before startup
    app.state.app = app_instance
    app.state.config = config

    app.add_middleware(SessionCookieMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["Content-Type"],
        )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    app.include_router(admin_router)
    app.include_router(content_router)
    app.include_router(faculty_router)
    app.include_router(team_router)

    # Register error handlers
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)

    return app
