from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from deploydeck.models import User
from deploydeck.schemas import (
    AnalysisResponse,
    CommitListResponse,
    DeploymentAccepted,
    DeployResponse,
    MessageResponse,
    ProjectCreateRequest,
    ProjectCreateResponse,
    ProjectDetailResponse,
    ProjectListResponse,
    ProjectUpdateRequest,
    ProjectUpdateResponse,
)
from deploydeck.services import ProjectService


def build_projects_router(project_service: ProjectService, auth_dependency: Callable) -> APIRouter:
    router = APIRouter(
        prefix="/api/projects",
        tags=["projects"],
        dependencies=[Depends(auth_dependency)],
    )

    @router.post(
        "",
        response_model=ProjectCreateResponse,
        status_code=status.HTTP_201_CREATED,
        summary="Track a GitHub repository as a project.",
    )
    async def create_project(
        payload: ProjectCreateRequest,
        user: User = Depends(auth_dependency),
    ) -> ProjectCreateResponse:
        project = await project_service.create_project(
            user, payload.name, payload.github_url, payload.description
        )
        return ProjectCreateResponse(message="Project created successfully", project=project)

    @router.get("", response_model=ProjectListResponse, summary="List the caller's projects.")
    async def list_projects(
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=10, ge=1, le=100),
        user: User = Depends(auth_dependency),
    ) -> ProjectListResponse:
        return await project_service.list_projects(user, page, limit)

    @router.get(
        "/{project_id}",
        response_model=ProjectDetailResponse,
        summary="Project with deployments, commits and live GitHub deployment status.",
    )
    async def get_project(project_id: str, user: User = Depends(auth_dependency)) -> ProjectDetailResponse:
        return ProjectDetailResponse(project=await project_service.get_project(user, project_id))

    @router.put("/{project_id}", response_model=ProjectUpdateResponse, summary="Rename or re-describe a project.")
    async def update_project(
        project_id: str,
        payload: ProjectUpdateRequest,
        user: User = Depends(auth_dependency),
    ) -> ProjectUpdateResponse:
        project = await project_service.update_project(
            user, project_id, name=payload.name, description=payload.description
        )
        return ProjectUpdateResponse(message="Project updated successfully", project=project)

    @router.delete("/{project_id}", response_model=MessageResponse, summary="Delete a project and its history.")
    async def delete_project(project_id: str, user: User = Depends(auth_dependency)) -> MessageResponse:
        await project_service.delete_project(user, project_id)
        return MessageResponse(message="Project deleted successfully")

    @router.post(
        "/{project_id}/deploy",
        response_model=DeployResponse,
        status_code=status.HTTP_202_ACCEPTED,
        summary="Start a deployment; completion is reported on the project later.",
    )
    async def deploy_project(
        project_id: str,
        background_tasks: BackgroundTasks,
        user: User = Depends(auth_dependency),
    ) -> DeployResponse:
        deployment, project = await project_service.deploy(user, project_id)
        background_tasks.add_task(project_service.run_deployment, deployment.id, project)
        return DeployResponse(
            message="Deployment started",
            deployment=DeploymentAccepted(
                id=deployment.id,
                status=deployment.status,
                created_at=deployment.created_at,
            ),
        )

    @router.get(
        "/{project_id}/commits",
        response_model=CommitListResponse,
        summary="Refresh the commit mirror from GitHub and return it.",
    )
    async def project_commits(project_id: str, user: User = Depends(auth_dependency)) -> CommitListResponse:
        return CommitListResponse(commits=await project_service.refresh_commits(user, project_id))

    @router.get(
        "/{project_id}/analysis",
        response_model=AnalysisResponse,
        summary="AI review of the most recent commits.",
    )
    async def project_analysis(project_id: str, user: User = Depends(auth_dependency)) -> AnalysisResponse:
        return await project_service.analyze(user, project_id)

    return router
