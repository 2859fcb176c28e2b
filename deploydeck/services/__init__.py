from .auth_service import AuthService
from .deployment_executor import DeploymentExecutor, DeploymentOutcome
from .gemini_service import GeminiAdvisor
from .github_service import DeploymentStatusSnapshot, GitHubApiError, GitHubProfile, GitHubService
from .project_service import ProjectService
from .user_service import UserService

__all__ = [
    "AuthService",
    "DeploymentExecutor",
    "DeploymentOutcome",
    "DeploymentStatusSnapshot",
    "GeminiAdvisor",
    "GitHubApiError",
    "GitHubProfile",
    "GitHubService",
    "ProjectService",
    "UserService",
]
