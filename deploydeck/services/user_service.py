from __future__ import annotations

import asyncio
from typing import Optional

from deploydeck.domain import NotFoundError, ProjectStatus
from deploydeck.models import User, UserUpdate
from deploydeck.repositories import ProjectRepository, UserRepository
from deploydeck.schemas import (
    DashboardResponse,
    DashboardStats,
    DeploymentProjectRef,
    ProfileView,
    ProjectSummary,
    RecentDeployment,
    RecentProject,
    StoredDeploymentView,
    UpdatedUserView,
    UserView,
)

RECENT_PROJECT_LIMIT = 5
RECENT_DEPLOYMENT_LIMIT = 10


class UserService:
    """Profile and dashboard views for the signed-in user."""

    def __init__(self, users: UserRepository, projects: ProjectRepository):
        self.users = users
        self.projects = projects

    async def _all_projects(self, user: User):
        total = await self.projects.count_projects(user.id)
        if not total:
            return []
        return await self.projects.list_projects(user.id, skip=0, limit=total)

    async def get_profile(self, user: User) -> ProfileView:
        projects = await self._all_projects(user)
        return ProfileView.from_record(
            user,
            has_github=bool(user.github_id),
            projects=[ProjectSummary.from_record(project) for project in projects],
        )

    async def get_dashboard(self, user: User) -> DashboardResponse:
        counts, projects = await asyncio.gather(
            self.projects.count_projects_by_status(user.id),
            self._all_projects(user),
        )
        stats = DashboardStats(
            total=sum(counts.values()),
            deployed=counts.get(ProjectStatus.DEPLOYED.value, 0),
            building=counts.get(ProjectStatus.BUILDING.value, 0),
            failed=counts.get(ProjectStatus.FAILED.value, 0),
            pending=counts.get(ProjectStatus.PENDING.value, 0),
        )

        recent_projects = []
        for project in projects[:RECENT_PROJECT_LIMIT]:
            latest = await self.projects.list_deployments(project.id, limit=1)
            recent_projects.append(
                RecentProject.from_record(
                    project, deployments=[StoredDeploymentView.from_record(d) for d in latest]
                )
            )

        names = {project.id: project.name for project in projects}
        deployments = await self.projects.list_recent_deployments(
            list(names), limit=RECENT_DEPLOYMENT_LIMIT
        )
        recent_deployments = [
            RecentDeployment.from_record(
                deployment,
                project=DeploymentProjectRef(id=deployment.project_id, name=names[deployment.project_id]),
            )
            for deployment in deployments
        ]

        return DashboardResponse(
            user=UserView.from_record(user),
            stats=stats,
            recent_projects=recent_projects,
            recent_deployments=recent_deployments,
        )

    async def update_profile(
        self, user: User, *, name: Optional[str] = None, avatar: Optional[str] = None
    ) -> UpdatedUserView:
        updated = await self.users.update_user(user.id, UserUpdate(name=name, avatar=avatar))
        if not updated:
            raise NotFoundError("User not found")
        return UpdatedUserView.from_record(updated)
