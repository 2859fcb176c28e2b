from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from deploydeck.models import Commit, Project, RemoteCommit, User
from deploydeck.services import DeploymentOutcome, DeploymentStatusSnapshot, GitHubApiError, GitHubProfile
from deploydeck.services.github_service import parse_repo_url
from deploydeck.settings import Settings


REPO_URL = "https://github.com/octo/hello-world"


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "JWT_SECRET": "test-secret",
        "GEMINI_API_KEY": None,
        "MONGODB_URI": "mongodb://localhost:27017",
        "MONGODB_DB_NAME": "test",
        "FRONTEND_URL": "http://frontend.test",
        "GITHUB_CLIENT_ID": "client-id",
        "GITHUB_CLIENT_SECRET": "client-secret",
    }
    values.update(overrides)
    return Settings.model_validate(values)


def make_remote_commits(count: int) -> List[RemoteCommit]:
    base = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return [
        RemoteCommit(
            sha=f"sha{index}",
            message=f"commit {index}",
            author="octocat",
            date=base + timedelta(minutes=index),
            url=f"https://github.com/octo/hello-world/commit/sha{index}",
        )
        for index in range(count)
    ]


class FakeGitHubService:
    """Scriptable stand-in for the GitHub gateway."""

    def __init__(self) -> None:
        self.accessible = True
        self.repository: Dict[str, Any] = {"description": "Hello from GitHub"}
        self.commits: List[RemoteCommit] = make_remote_commits(3)
        self.commit_error: Optional[Exception] = None
        self.repository_error: Optional[Exception] = None
        self.snapshot = DeploymentStatusSnapshot(status="no_deployments")
        self.status_error: Optional[Exception] = None
        self.profile = GitHubProfile(github_id="4242", login="octocat", name=None, email=None)
        self.oauth_token = "gho_test_token"
        self.commit_calls = 0

    async def has_access(self, repo_url: str, token: str) -> bool:
        parse_repo_url(repo_url)
        return self.accessible

    async def get_repository(self, repo_url: str, token: Optional[str] = None) -> Dict[str, Any]:
        if self.repository_error:
            raise self.repository_error
        return dict(self.repository)

    async def get_commits(
        self, repo_url: str, token: Optional[str] = None, *, limit: int = 20
    ) -> List[RemoteCommit]:
        self.commit_calls += 1
        if self.commit_error:
            raise self.commit_error
        return list(self.commits[:limit])

    async def get_deployment_status(
        self, repo_url: str, token: Optional[str] = None
    ) -> DeploymentStatusSnapshot:
        if self.status_error:
            raise self.status_error
        return self.snapshot

    def build_authorize_url(self, state: str) -> str:
        return f"https://github.com/login/oauth/authorize?{urlencode({'state': state})}"

    async def exchange_code(self, code: str) -> str:
        if code != "good-code":
            raise GitHubApiError("Token exchange failed: bad_verification_code")
        return self.oauth_token

    async def get_authenticated_user(self, token: str) -> GitHubProfile:
        return self.profile


class FakeAdvisor:
    def __init__(self) -> None:
        self.suggestion = "Set the missing environment variables."
        self.suggestion_calls: List[Dict[str, Any]] = []
        self.analysis_calls: List[List[Commit]] = []

    async def suggest_fix(self, error: str, logs: str, project: Optional[Project] = None) -> str:
        self.suggestion_calls.append({"error": error, "logs": logs, "project": project})
        return self.suggestion

    async def analyze_commits(self, repo_url: str, commits: List[Commit]) -> str:
        self.analysis_calls.append(list(commits))
        return f"{len(commits)} commits reviewed for {repo_url}"


class ExplodingExecutor:
    async def execute(self, repo_url: str, project_name: str) -> DeploymentOutcome:
        raise RuntimeError("docker daemon unreachable")


class FlakyFinalizeRepository:
    """Wraps a project repository and fails the first ``failures`` finalize calls."""

    def __init__(self, inner: Any, failures: int) -> None:
        self._inner = inner
        self.failures = failures
        self.finalize_calls = 0

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner, name)

    async def finalize_deployment(self, *args: Any, **kwargs: Any):
        self.finalize_calls += 1
        if self.finalize_calls <= self.failures:
            raise ConnectionError("write timed out")
        return await self._inner.finalize_deployment(*args, **kwargs)


def github_user(**overrides: Any) -> User:
    values: Dict[str, Any] = {
        "email": "dev@example.com",
        "name": "Dev",
        "github_id": "1001",
        "github_token": "gho_user_token",
    }
    values.update(overrides)
    return User(**values)
