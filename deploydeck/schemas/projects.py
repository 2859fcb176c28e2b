from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field, field_validator

from deploydeck.domain import DeploymentStatus, ProjectStatus

from .base import ApiModel


class ProjectCreateRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=100, description="Project display name.")
    github_url: str = Field(..., min_length=1, description="GitHub repository URL.")
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("github_url")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("githubUrl must be a valid uri")
        return value


class ProjectUpdateRequest(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class CommitView(ApiModel):
    id: str
    sha: str
    message: str
    author: str
    date: datetime
    url: str
    project_id: str
    created_at: datetime


class StoredDeploymentView(ApiModel):
    source: Literal["stored"] = "stored"
    id: str
    status: DeploymentStatus
    url: Optional[str] = None
    logs: Optional[str] = None
    error: Optional[str] = None
    suggestion: Optional[str] = None
    project_id: str
    created_at: datetime
    updated_at: datetime
    is_from_github: Literal[False] = False


class ObservedDeploymentView(ApiModel):
    """Live GitHub deployment status; read-only and never persisted."""

    source: Literal["github"] = "github"
    id: str
    status: str
    url: Optional[str] = None
    environment: Optional[str] = None
    logs: None = None
    error: None = None
    suggestion: None = None
    project_id: str
    created_at: datetime
    updated_at: datetime
    is_from_github: Literal[True] = True


DeploymentEntry = Annotated[
    Union[StoredDeploymentView, ObservedDeploymentView], Field(discriminator="source")
]


class OwnerView(ApiModel):
    id: str
    name: str
    email: str


class ProjectView(ApiModel):
    id: str
    name: str
    github_url: str
    description: Optional[str] = None
    status: ProjectStatus
    user_id: str
    created_at: datetime
    updated_at: datetime


class ProjectCounts(ApiModel):
    deployments: int
    commits: int


class ProjectListItem(ProjectView):
    deployments: List[StoredDeploymentView] = Field(default_factory=list)
    commits: List[CommitView] = Field(default_factory=list)
    counts: ProjectCounts


class ProjectDetail(ProjectView):
    deployments: List[DeploymentEntry] = Field(default_factory=list)
    commits: List[CommitView] = Field(default_factory=list)
    user: OwnerView


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ProjectListResponse(ApiModel):
    projects: List[ProjectListItem]
    pagination: Pagination


class ProjectDetailResponse(ApiModel):
    project: ProjectDetail


class ProjectCreateResponse(ApiModel):
    message: str
    project: ProjectDetail


class ProjectUpdateResponse(ApiModel):
    message: str
    project: ProjectListItem


class DeploymentAccepted(ApiModel):
    id: str
    status: DeploymentStatus
    created_at: datetime


class DeployResponse(ApiModel):
    message: str
    deployment: DeploymentAccepted


class CommitListResponse(ApiModel):
    commits: List[CommitView]


class ProjectReference(ApiModel):
    id: str
    name: str
    github_url: str


class AnalysisResponse(ApiModel):
    project: ProjectReference
    analysis: str
