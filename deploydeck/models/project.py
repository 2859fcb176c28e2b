from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from deploydeck.domain import DeploymentStatus, ProjectStatus

from .base import MongoModel, new_id, utc_now


class Project(MongoModel):
    id: str = Field(default_factory=new_id, alias="_id", description="Primary identifier.")
    name: str = Field(..., description="Display name.")
    github_url: str = Field(..., description="Source repository URL.")
    description: Optional[str] = Field(default=None)
    status: ProjectStatus = Field(default=ProjectStatus.PENDING, description="Lifecycle state.")
    latest_deployment_id: Optional[str] = Field(
        default=None, description="Deployment whose completion may still move the status."
    )
    user_id: str = Field(..., description="Owning user id.")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    latest_deployment_id: Optional[str] = None

    def to_fields(self) -> dict[str, Any]:
        fields = self.model_dump(exclude_none=True)
        if self.status is not None:
            fields["status"] = self.status.value
        fields["updated_at"] = utc_now()
        return fields


class Deployment(MongoModel):
    id: str = Field(default_factory=new_id, alias="_id", description="Primary identifier.")
    project_id: str = Field(..., description="Foreign key to projects._id.")
    status: DeploymentStatus = Field(default=DeploymentStatus.BUILDING)
    url: Optional[str] = Field(default=None, description="Public URL of a successful deployment.")
    logs: Optional[str] = Field(default=None, description="Executor log output.")
    error: Optional[str] = Field(default=None, description="Failure message.")
    suggestion: Optional[str] = Field(default=None, description="AI remediation advice.")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class DeploymentCompletion(BaseModel):
    """Terminal write applied once by the deployment completion job."""

    status: DeploymentStatus
    url: Optional[str] = None
    logs: Optional[str] = None
    error: Optional[str] = None
    suggestion: Optional[str] = None

    def to_fields(self) -> dict[str, Any]:
        if not self.status.is_terminal:
            raise ValueError(f"deployment completion requires a terminal status, got {self.status.value}")
        return {
            "status": self.status.value,
            "url": self.url,
            "logs": self.logs,
            "error": self.error,
            "suggestion": self.suggestion,
            "updated_at": utc_now(),
        }


class Commit(MongoModel):
    id: str = Field(default_factory=new_id, alias="_id", description="Primary identifier.")
    project_id: str = Field(..., description="Foreign key to projects._id.")
    sha: str
    message: str
    author: str
    date: datetime
    url: str
    created_at: datetime = Field(default_factory=utc_now)


class RemoteCommit(BaseModel):
    """Commit as reported by GitHub, before it is mirrored under a project."""

    sha: str
    message: str
    author: str
    date: datetime
    url: str

    def for_project(self, project_id: str) -> Commit:
        return Commit(project_id=project_id, **self.model_dump())
