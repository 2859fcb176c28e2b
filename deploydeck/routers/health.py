from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict

from fastapi import APIRouter

from deploydeck.models import utc_now


ENDPOINT_CATALOG: Dict[str, Dict[str, str]] = {
    "auth": {
        "register": "POST /api/auth/register",
        "login": "POST /api/auth/login",
        "github": "GET /api/auth/github",
        "githubCallback": "GET /api/auth/github/callback",
        "profile": "GET /api/auth/profile",
    },
    "projects": {
        "create": "POST /api/projects",
        "list": "GET /api/projects",
        "get": "GET /api/projects/:id",
        "update": "PUT /api/projects/:id",
        "delete": "DELETE /api/projects/:id",
        "deploy": "POST /api/projects/:id/deploy",
        "commits": "GET /api/projects/:id/commits",
        "analysis": "GET /api/projects/:id/analysis",
    },
    "users": {
        "dashboard": "GET /api/users/dashboard",
        "updateProfile": "PUT /api/users/profile",
    },
}


def build_health_router(
    storage_probe: Callable[[], Awaitable[str]],
    *,
    environment: str,
    version: str,
) -> APIRouter:
    router = APIRouter(tags=["health"])
    started_at = time.monotonic()

    @router.get("/health")
    async def healthcheck() -> Dict[str, Any]:
        storage = await storage_probe()
        return {
            "status": "OK" if storage != "unreachable" else "DEGRADED",
            "timestamp": utc_now().isoformat(),
            "uptime": round(time.monotonic() - started_at, 3),
            "environment": environment,
            "storage": storage,
        }

    @router.get("/api")
    async def catalog() -> Dict[str, Any]:
        return {
            "message": "DeployDeck API",
            "version": version,
            "endpoints": ENDPOINT_CATALOG,
        }

    return router
