from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib import error as urllib_error, parse as urllib_parse, request as urllib_request

from pydantic import BaseModel

from deploydeck.domain import InvalidRepositoryUrlError, UpstreamServiceError
from deploydeck.models import RemoteCommit
from deploydeck.settings import Settings


logger = logging.getLogger("deploydeck.github")

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_OAUTH_SCOPES = "read:user user:email repo"
REPO_URL_PATTERN = re.compile(
    r"^(?:https?://)?(?:www\.)?github\.com/([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+?)(?:\.git)?/?$"
)
USER_AGENT = "deploydeck-api"
NO_DEPLOYMENTS = "no_deployments"


class GitHubApiError(UpstreamServiceError):
    """Raised when GitHub answers with an error or cannot be reached."""

    def __init__(self, message: str, *, upstream_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class DeploymentStatusSnapshot(BaseModel):
    status: str
    deployment_id: Optional[int] = None
    environment: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_deployment(self) -> bool:
        return self.status != NO_DEPLOYMENTS


class GitHubProfile(BaseModel):
    github_id: str
    login: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.login

    @property
    def resolved_email(self) -> str:
        return self.email or f"{self.login}@github.user"


def parse_repo_url(url: str) -> Tuple[str, str]:
    """Split ``https://github.com/<owner>/<repo>[.git]`` into ``(owner, repo)``."""
    match = REPO_URL_PATTERN.match((url or "").strip())
    if not match or match.group(2) in (".", ".."):
        raise InvalidRepositoryUrlError("Invalid GitHub URL format")
    return match.group(1), match.group(2)


class GitHubService:
    """Thin client over the GitHub REST API plus the OAuth web flow."""

    def __init__(self, settings: Settings, *, timeout: float = 15.0):
        self.api_url = settings.github_api_url.rstrip("/")
        self.default_token = (settings.github_token or "").strip() or None
        self.client_id = (settings.github_client_id or "").strip()
        self.client_secret = (settings.github_client_secret or "").strip()
        self.callback_url = settings.github_callback_url
        self.timeout = timeout
        if not self.client_id or not self.client_secret:
            logger.warning(
                "GitHub OAuth credentials not configured (client_id=%s, client_secret=%s)",
                bool(self.client_id),
                bool(self.client_secret),
            )

    # repository gateway

    async def get_repository(self, repo_url: str, token: Optional[str] = None) -> Dict[str, Any]:
        owner, repo = parse_repo_url(repo_url)
        try:
            return await self._get(f"/repos/{owner}/{repo}", token)
        except GitHubApiError as exc:
            raise GitHubApiError(
                f"Failed to fetch repository info: {exc.message}", upstream_status=exc.upstream_status
            ) from exc

    async def get_commits(
        self, repo_url: str, token: Optional[str] = None, *, limit: int = 20
    ) -> List[RemoteCommit]:
        owner, repo = parse_repo_url(repo_url)
        try:
            payload = await self._get(
                f"/repos/{owner}/{repo}/commits", token, params={"per_page": limit}
            )
        except GitHubApiError as exc:
            raise GitHubApiError(
                f"Failed to fetch commits: {exc.message}", upstream_status=exc.upstream_status
            ) from exc
        if not isinstance(payload, list):
            raise GitHubApiError("Failed to fetch commits: unexpected response shape")
        return [self._to_remote_commit(item) for item in payload[:limit]]

    async def has_access(self, repo_url: str, token: str) -> bool:
        owner, repo = parse_repo_url(repo_url)
        try:
            payload = await self._get(f"/repos/{owner}/{repo}", token, use_default_token=False)
        except GitHubApiError as exc:
            if exc.upstream_status in (403, 404):
                logger.info("Repository %s/%s not accessible (HTTP %s)", owner, repo, exc.upstream_status)
                return False
            raise
        permissions = payload.get("permissions") if isinstance(payload, dict) else None
        if isinstance(permissions, dict) and "pull" in permissions:
            return bool(permissions["pull"])
        return True

    async def get_deployment_status(
        self, repo_url: str, token: Optional[str] = None
    ) -> DeploymentStatusSnapshot:
        owner, repo = parse_repo_url(repo_url)
        try:
            deployments = await self._get(
                f"/repos/{owner}/{repo}/deployments", token, params={"per_page": 1}
            )
            if not deployments:
                return DeploymentStatusSnapshot(status=NO_DEPLOYMENTS)
            latest = deployments[0]
            statuses = await self._get(
                f"/repos/{owner}/{repo}/deployments/{latest['id']}/statuses",
                token,
                params={"per_page": 1},
            )
        except GitHubApiError as exc:
            raise GitHubApiError(
                f"Failed to fetch deployment status: {exc.message}",
                upstream_status=exc.upstream_status,
            ) from exc

        latest_status = statuses[0] if statuses else {}
        payload = latest.get("payload") if isinstance(latest.get("payload"), dict) else {}
        return DeploymentStatusSnapshot(
            status=latest_status.get("state") or "unknown",
            deployment_id=latest.get("id"),
            environment=latest.get("environment"),
            url=latest_status.get("environment_url") or payload.get("web_url"),
            created_at=latest.get("created_at"),
            updated_at=latest.get("updated_at"),
        )

    # oauth

    def build_authorize_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "scope": GITHUB_OAUTH_SCOPES,
            "state": state,
        }
        return f"{GITHUB_AUTHORIZE_URL}?{urllib_parse.urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        if not self.client_id or not self.client_secret:
            raise GitHubApiError("GitHub OAuth is not configured")
        body = urllib_parse.urlencode(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": self.callback_url,
            }
        ).encode("utf-8")
        payload = await asyncio.to_thread(
            self._call_github_api,
            GITHUB_TOKEN_URL,
            None,
            "POST",
            body,
        )
        if not isinstance(payload, dict):
            raise GitHubApiError("Token exchange failed: unexpected response")
        if "error" in payload:
            detail = payload.get("error_description") or payload["error"]
            raise GitHubApiError(f"Token exchange failed: {detail}")
        token = payload.get("access_token")
        if not token:
            raise GitHubApiError("Token exchange failed: no access token returned")
        return token

    async def get_authenticated_user(self, token: str) -> GitHubProfile:
        user = await self._get("/user", token, use_default_token=False)
        email = user.get("email")
        if not email:
            email = await self._get_primary_email(token)
        return GitHubProfile(
            github_id=str(user["id"]),
            login=user["login"],
            name=user.get("name"),
            email=email,
            avatar_url=user.get("avatar_url"),
        )

    async def _get_primary_email(self, token: str) -> Optional[str]:
        try:
            emails = await self._get("/user/emails", token, use_default_token=False)
        except GitHubApiError as exc:
            logger.warning("Unable to read GitHub user emails: %s", exc)
            return None
        verified = [item for item in emails or [] if item.get("verified")]
        for item in verified:
            if item.get("primary"):
                return item.get("email")
        return verified[0].get("email") if verified else None

    # transport

    async def _get(
        self,
        path: str,
        token: Optional[str],
        *,
        params: Optional[Dict[str, Any]] = None,
        use_default_token: bool = True,
    ) -> Any:
        url = f"{self.api_url}{path}"
        if params:
            url = f"{url}?{urllib_parse.urlencode(params)}"
        resolved = (token or "").strip() or (self.default_token if use_default_token else None)
        return await asyncio.to_thread(self._call_github_api, url, resolved)

    def _call_github_api(
        self,
        url: str,
        token: Optional[str],
        method: str = "GET",
        body: Optional[bytes] = None,
    ) -> Any:
        headers = {
            "Accept": "application/vnd.github+json" if url.startswith(self.api_url) else "application/json",
            "User-Agent": USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if body is not None:
            headers["Content-Type"] = "application/x-www-form-urlencoded"

        request = urllib_request.Request(url, data=body, headers=headers, method=method)
        try:
            with urllib_request.urlopen(request, timeout=self.timeout) as response:
                raw = response.read()
        except urllib_error.HTTPError as exc:
            error_body = ""
            try:
                error_body = exc.read().decode("utf-8", errors="ignore")
            except Exception:  # pragma: no cover
                error_body = ""
            details = _extract_message(error_body) or exc.reason
            raise GitHubApiError(f"GitHub HTTP {exc.code}: {details}", upstream_status=exc.code) from exc
        except urllib_error.URLError as exc:
            raise GitHubApiError(f"GitHub request failed: {exc.reason}") from exc

        try:
            return json.loads(raw.decode("utf-8")) if raw else None
        except ValueError as exc:
            raise GitHubApiError("Failed to parse GitHub response") from exc

    @staticmethod
    def _to_remote_commit(item: Dict[str, Any]) -> RemoteCommit:
        commit = item.get("commit") or {}
        author = commit.get("author") or {}
        return RemoteCommit(
            sha=item["sha"],
            message=commit.get("message") or "",
            author=author.get("name") or "unknown",
            date=author.get("date"),
            url=item.get("html_url") or "",
        )


def _extract_message(error_body: str) -> Optional[str]:
    if not error_body:
        return None
    try:
        payload = json.loads(error_body)
    except ValueError:
        return error_body[:200]
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return error_body[:200]
