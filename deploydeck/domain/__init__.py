from .errors import (
    AccessDeniedError,
    AuthRequiredError,
    DeployDeckError,
    InternalError,
    InvalidCredentialsError,
    InvalidRepositoryError,
    InvalidRepositoryUrlError,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from .states import DeploymentStatus, ProjectStatus, is_valid_transition, project_status_for

__all__ = [
    "AccessDeniedError",
    "AuthRequiredError",
    "DeployDeckError",
    "DeploymentStatus",
    "InternalError",
    "InvalidCredentialsError",
    "InvalidRepositoryError",
    "InvalidRepositoryUrlError",
    "NotFoundError",
    "ProjectStatus",
    "UpstreamServiceError",
    "ValidationError",
    "is_valid_transition",
    "project_status_for",
]
