from .base import MongoModel, new_id, utc_now
from .project import (
    Commit,
    Deployment,
    DeploymentCompletion,
    Project,
    ProjectUpdate,
    RemoteCommit,
)
from .user import User, UserUpdate

__all__ = [
    "Commit",
    "Deployment",
    "DeploymentCompletion",
    "MongoModel",
    "Project",
    "ProjectUpdate",
    "RemoteCommit",
    "User",
    "UserUpdate",
    "new_id",
    "utc_now",
]
