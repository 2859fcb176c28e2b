from __future__ import annotations

from collections import Counter
from typing import Dict, List, Optional, Sequence

from deploydeck.domain import DeploymentStatus, ProjectStatus, ValidationError
from deploydeck.models import (
    Commit,
    Deployment,
    DeploymentCompletion,
    Project,
    ProjectUpdate,
    User,
    UserUpdate,
    utc_now,
)


class InMemoryUserRepository:
    """Fallback repository used when MongoDB is unavailable."""

    def __init__(self) -> None:
        self._users: Dict[str, User] = {}

    async def ensure_indexes(self) -> None:  # pragma: no cover - no-op
        return

    async def create_user(self, user: User) -> User:
        if any(existing.email == user.email for existing in self._users.values()):
            raise ValidationError("User already exists with this email")
        if user.github_id and any(existing.github_id == user.github_id for existing in self._users.values()):
            raise ValidationError("GitHub account is already linked to another user")
        self._users[user.id] = user.model_copy(deep=True)
        return user

    async def get_by_id(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        for user in self._users.values():
            if user.email == email:
                return user.model_copy(deep=True)
        return None

    async def get_by_github_id(self, github_id: str) -> Optional[User]:
        for user in self._users.values():
            if user.github_id == github_id:
                return user.model_copy(deep=True)
        return None

    async def update_user(self, user_id: str, update: UserUpdate) -> Optional[User]:
        user = self._users.get(user_id)
        if not user:
            return None
        for key, value in update.to_fields().items():
            setattr(user, key, value)
        return user.model_copy(deep=True)


class InMemoryProjectRepository:
    """Fallback repository used when MongoDB is unavailable."""

    def __init__(self) -> None:
        self._projects: Dict[str, Project] = {}
        self._deployments: Dict[str, Deployment] = {}
        self._commits: Dict[str, List[Commit]] = {}

    async def ensure_indexes(self) -> None:  # pragma: no cover - no-op
        return

    async def create_project(self, project: Project) -> Project:
        self._projects[project.id] = project.model_copy(deep=True)
        return project

    async def get_project(self, project_id: str, user_id: str) -> Optional[Project]:
        project = self._projects.get(project_id)
        if not project or project.user_id != user_id:
            return None
        return project.model_copy(deep=True)

    async def list_projects(self, user_id: str, *, skip: int = 0, limit: int = 10) -> List[Project]:
        owned = [project for project in self._projects.values() if project.user_id == user_id]
        owned.sort(key=lambda project: project.updated_at, reverse=True)
        return [project.model_copy(deep=True) for project in owned[skip : skip + limit]]

    async def count_projects(self, user_id: str) -> int:
        return sum(1 for project in self._projects.values() if project.user_id == user_id)

    async def count_projects_by_status(self, user_id: str) -> Dict[str, int]:
        return dict(
            Counter(
                ProjectStatus(project.status).value
                for project in self._projects.values()
                if project.user_id == user_id
            )
        )

    async def update_project(
        self, project_id: str, user_id: str, update: ProjectUpdate
    ) -> Optional[Project]:
        project = self._projects.get(project_id)
        if not project or project.user_id != user_id:
            return None
        return self._apply_project_update(project, update)

    async def set_project_status(
        self, project_id: str, status: ProjectStatus, *, deployment_id: Optional[str] = None
    ) -> Optional[Project]:
        project = self._projects.get(project_id)
        if not project:
            return None
        return self._apply_project_update(
            project, ProjectUpdate(status=status, latest_deployment_id=deployment_id)
        )

    async def delete_project(self, project_id: str, user_id: str) -> bool:
        project = self._projects.get(project_id)
        if not project or project.user_id != user_id:
            return False
        del self._projects[project_id]
        self._commits.pop(project_id, None)
        self._deployments = {
            key: deployment
            for key, deployment in self._deployments.items()
            if deployment.project_id != project_id
        }
        return True

    @staticmethod
    def _apply_project_update(project: Project, update: ProjectUpdate) -> Project:
        for key, value in update.to_fields().items():
            setattr(project, key, value)
        return project.model_copy(deep=True)

    async def create_deployment(self, deployment: Deployment) -> Deployment:
        self._deployments[deployment.id] = deployment.model_copy(deep=True)
        return deployment

    async def get_deployment(self, deployment_id: str) -> Optional[Deployment]:
        deployment = self._deployments.get(deployment_id)
        return deployment.model_copy(deep=True) if deployment else None

    async def list_deployments(self, project_id: str, *, limit: Optional[int] = None) -> List[Deployment]:
        matches = [d for d in self._deployments.values() if d.project_id == project_id]
        matches.sort(key=lambda deployment: deployment.created_at, reverse=True)
        if limit is not None:
            matches = matches[:limit]
        return [deployment.model_copy(deep=True) for deployment in matches]

    async def list_recent_deployments(
        self, project_ids: Sequence[str], *, limit: int = 10
    ) -> List[Deployment]:
        wanted = set(project_ids)
        matches = [d for d in self._deployments.values() if d.project_id in wanted]
        matches.sort(key=lambda deployment: deployment.created_at, reverse=True)
        return [deployment.model_copy(deep=True) for deployment in matches[:limit]]

    async def count_deployments(self, project_id: str) -> int:
        return sum(1 for d in self._deployments.values() if d.project_id == project_id)

    async def finalize_deployment(
        self,
        deployment_id: str,
        project_id: str,
        completion: DeploymentCompletion,
        project_status: ProjectStatus,
    ) -> Optional[Deployment]:
        fields = completion.to_fields()
        project = self._projects.get(project_id)
        if (
            project
            and project.latest_deployment_id == deployment_id
            and ProjectStatus(project.status) == ProjectStatus.BUILDING
        ):
            project.status = project_status.value
            project.updated_at = utc_now()
        deployment = self._deployments.get(deployment_id)
        if not deployment or DeploymentStatus(deployment.status) != DeploymentStatus.BUILDING:
            return None
        for key, value in fields.items():
            setattr(deployment, key, value)
        return deployment.model_copy(deep=True)

    async def replace_commits(self, project_id: str, commits: Sequence[Commit]) -> int:
        self._commits[project_id] = [commit.model_copy(deep=True) for commit in commits]
        return len(commits)

    async def list_commits(self, project_id: str, *, limit: int = 20) -> List[Commit]:
        commits = sorted(self._commits.get(project_id, []), key=lambda c: c.date, reverse=True)
        return [commit.model_copy(deep=True) for commit in commits[:limit]]

    async def count_commits(self, project_id: str) -> int:
        return len(self._commits.get(project_id, []))
