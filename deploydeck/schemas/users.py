from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .auth import UserView
from .base import ApiModel
from .projects import ProjectView, StoredDeploymentView


class ProfileUpdateRequest(ApiModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    avatar: Optional[str] = Field(default=None, max_length=2048)


class UpdatedUserView(ApiModel):
    id: str
    name: str
    email: str
    avatar: Optional[str] = None
    updated_at: datetime


class ProfileUpdateResponse(ApiModel):
    message: str
    user: UpdatedUserView


class DashboardStats(ApiModel):
    total: int = 0
    deployed: int = 0
    building: int = 0
    failed: int = 0
    pending: int = 0


class RecentProject(ProjectView):
    deployments: List[StoredDeploymentView] = Field(default_factory=list)


class DeploymentProjectRef(ApiModel):
    id: str
    name: str


class RecentDeployment(StoredDeploymentView):
    project: DeploymentProjectRef


class DashboardResponse(ApiModel):
    user: UserView
    stats: DashboardStats
    recent_projects: List[RecentProject]
    recent_deployments: List[RecentDeployment]
