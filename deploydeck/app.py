from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deploydeck import __version__
from deploydeck.db import MongoDatabase
from deploydeck.domain import DeployDeckError
from deploydeck.repositories import (
    InMemoryProjectRepository,
    InMemoryUserRepository,
    ProjectRepository,
    UserRepository,
)
from deploydeck.routers import (
    build_auth_router,
    build_health_router,
    build_projects_router,
    build_users_router,
)
from deploydeck.services import (
    AuthService,
    DeploymentExecutor,
    GeminiAdvisor,
    GitHubService,
    ProjectService,
    UserService,
)
from deploydeck.settings import Settings, get_settings


logger = logging.getLogger("deploydeck")


def create_app(
    settings: Optional[Settings] = None,
    *,
    user_repository: Optional[UserRepository | InMemoryUserRepository] = None,
    project_repository: Optional[ProjectRepository | InMemoryProjectRepository] = None,
    github_service: Optional[GitHubService] = None,
    advisor: Optional[GeminiAdvisor] = None,
    executor: Optional[DeploymentExecutor] = None,
    bcrypt_rounds: int = 12,
) -> FastAPI:
    """Wire services and routers.

    Repositories passed in are used as-is; otherwise a MongoDB handle is
    opened and the in-memory repositories take over if MongoDB cannot be
    reached at startup.
    """
    settings = settings or get_settings()

    mongo: Optional[MongoDatabase] = None
    if user_repository is None or project_repository is None:
        mongo = MongoDatabase.from_settings(settings)
        database = mongo.open()
        user_repository = user_repository or UserRepository(database)
        project_repository = project_repository or ProjectRepository(database)
    storage_state = {"backend": "mongodb" if mongo else "memory"}

    github_service = github_service or GitHubService(settings)
    advisor = advisor or GeminiAdvisor(settings.gemini_api_key, settings.gemini_model)
    executor = executor or DeploymentExecutor.from_settings(settings)

    auth_service = AuthService(settings, user_repository, bcrypt_rounds=bcrypt_rounds)
    user_service = UserService(user_repository, project_repository)
    project_service = ProjectService(project_repository, github_service, advisor, executor)
    auth_dependency = auth_service.build_auth_dependency()

    app = FastAPI(
        title="DeployDeck API",
        version=__version__,
        description="GitHub project tracking with simulated deployments and AI troubleshooting.",
        debug=not settings.is_production,
    )
    app.state.settings = settings
    app.state.project_service = project_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DeployDeckError)
    async def domain_error_handler(request: Request, exc: DeployDeckError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                "message": error.get("msg", "invalid value"),
            }
            for error in exc.errors()
        ]
        message = errors[0]["message"] if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"detail": message, "errors": errors})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        if settings.is_production:
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    async def storage_probe() -> str:
        if storage_state["backend"] == "mongodb" and mongo is not None:
            return "mongodb" if await mongo.ping() else "unreachable"
        return storage_state["backend"]

    app.include_router(
        build_auth_router(
            auth_service,
            github_service,
            user_service,
            auth_dependency,
            frontend_url=settings.frontend_url,
        )
    )
    app.include_router(build_projects_router(project_service, auth_dependency))
    app.include_router(build_users_router(user_service, auth_dependency))
    app.include_router(
        build_health_router(storage_probe, environment=settings.environment, version=__version__)
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        if mongo is None:
            logger.info("Using injected repositories (%s).", storage_state["backend"])
            return
        try:
            await user_repository.ensure_indexes()
            await project_repository.ensure_indexes()
            logger.info("MongoDB repositories initialized successfully.")
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("MongoDB unavailable (%s); falling back to in-memory repositories.", exc)
            users = InMemoryUserRepository()
            projects = InMemoryProjectRepository()
            auth_service.users = users
            user_service.users = users
            user_service.projects = projects
            project_service.repository = projects
            storage_state["backend"] = "memory"
            mongo.close()

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        if mongo is not None:
            mongo.close()
        logger.info("Application shutdown")

    return app
