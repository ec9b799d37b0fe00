from parishsite.web.routers.admin import router as admin_router
from parishsite.web.routers.content import router as content_router
from parishsite.web.routers.faculty import router as faculty_router
from parishsite.web.routers.team import router as team_router

__all__ = [
    "admin_router",
    "content_router",
    "faculty_router",
    "team_router",
]
