from .auth import build_auth_router
from .health import build_health_router
from .projects import build_projects_router
from .users import build_users_router

__all__ = [
    "build_auth_router",
    "build_health_router",
    "build_projects_router",
    "build_users_router",
]
