from .auth import (
    AuthResponse,
    LoginRequest,
    ProfileResponse,
    ProfileView,
    ProjectSummary,
    RegisterRequest,
    UserView,
)
from .base import ApiModel, MessageResponse
from .projects import (
    AnalysisResponse,
    CommitListResponse,
    CommitView,
    DeploymentAccepted,
    DeploymentEntry,
    DeployResponse,
    ObservedDeploymentView,
    OwnerView,
    Pagination,
    ProjectCounts,
    ProjectCreateRequest,
    ProjectCreateResponse,
    ProjectDetail,
    ProjectDetailResponse,
    ProjectListItem,
    ProjectListResponse,
    ProjectReference,
    ProjectUpdateRequest,
    ProjectUpdateResponse,
    ProjectView,
    StoredDeploymentView,
)
from .users import (
    DashboardResponse,
    DashboardStats,
    DeploymentProjectRef,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    RecentDeployment,
    RecentProject,
    UpdatedUserView,
)

__all__ = [
    "AnalysisResponse",
    "ApiModel",
    "AuthResponse",
    "CommitListResponse",
    "CommitView",
    "DashboardResponse",
    "DashboardStats",
    "DeployResponse",
    "DeploymentAccepted",
    "DeploymentEntry",
    "DeploymentProjectRef",
    "LoginRequest",
    "MessageResponse",
    "ObservedDeploymentView",
    "OwnerView",
    "Pagination",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "ProfileUpdateResponse",
    "ProfileView",
    "ProjectCounts",
    "ProjectCreateRequest",
    "ProjectCreateResponse",
    "ProjectDetail",
    "ProjectDetailResponse",
    "ProjectListItem",
    "ProjectListResponse",
    "ProjectReference",
    "ProjectSummary",
    "ProjectUpdateRequest",
    "ProjectUpdateResponse",
    "ProjectView",
    "RecentDeployment",
    "RecentProject",
    "RegisterRequest",
    "StoredDeploymentView",
    "UpdatedUserView",
    "UserView",
]
