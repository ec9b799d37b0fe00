from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

from parishsite.web.cookies import SESSION_COOKIE

# Endpoints anyone may call; everything else needs an admin session
PUBLIC_ENDPOINTS = {
    ("GET", "/health"),
    ("GET", "/admin/login"),
    ("POST", "/admin/login"),
    ("GET", "/admin/check"),
    ("GET", "/content/events.json"),
    ("GET", "/admin/faculty.json"),
    ("GET", "/api/team"),
}


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="Parish Site API",
            version="0.1.0",
            summary="Admin sessions and editable content for the parish and school website",
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "SessionCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": SESSION_COOKIE,
                "description": "Signed admin session id, issued by POST /admin/login",
            },
        }
        openapi_schema["security"] = [{"SessionCookie": []}]

        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                if (method.upper(), path) in PUBLIC_ENDPOINTS:
                    operation["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Invalid credentials", "type": "authentication_error"},
                {"message": "Unauthorized", "type": "access_denied"},
                {"message": "Too many attempts. Please try again later.", "type": "rate_limited"},
            ]
        }
    }
