from __future__ import annotations

import asyncio
import logging
import math
from typing import List, Optional

from deploydeck.domain import (
    AccessDeniedError,
    AuthRequiredError,
    DeploymentStatus,
    InternalError,
    InvalidRepositoryError,
    InvalidRepositoryUrlError,
    NotFoundError,
    ProjectStatus,
    is_valid_transition,
    project_status_for,
)
from deploydeck.models import (
    Deployment,
    DeploymentCompletion,
    Project,
    ProjectUpdate,
    User,
)
from deploydeck.repositories import ProjectRepository
from deploydeck.schemas import (
    AnalysisResponse,
    CommitView,
    DeploymentEntry,
    ObservedDeploymentView,
    OwnerView,
    Pagination,
    ProjectCounts,
    ProjectDetail,
    ProjectListItem,
    ProjectListResponse,
    ProjectReference,
    StoredDeploymentView,
)
from deploydeck.services.deployment_executor import DeploymentExecutor, DeploymentOutcome
from deploydeck.services.gemini_service import GeminiAdvisor
from deploydeck.services.github_service import GitHubApiError, GitHubService


logger = logging.getLogger("deploydeck.projects")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
COMMIT_FETCH_LIMIT = 20
DETAIL_COMMIT_LIMIT = 20
LIST_COMMIT_LIMIT = 5
ANALYSIS_COMMIT_LIMIT = 10
COMPLETION_ATTEMPTS = 3


class ProjectService:
    """Owns project/deployment status transitions and per-request ownership checks."""

    def __init__(
        self,
        repository: ProjectRepository,
        github: GitHubService,
        advisor: GeminiAdvisor,
        executor: DeploymentExecutor,
        *,
        completion_attempts: int = COMPLETION_ATTEMPTS,
        completion_retry_delay: float = 0.5,
    ):
        self.repository = repository
        self.github = github
        self.advisor = advisor
        self.executor = executor
        self.completion_attempts = max(1, completion_attempts)
        self.completion_retry_delay = completion_retry_delay

    async def _get_owned_project(self, owner: User, project_id: str) -> Project:
        project = await self.repository.get_project(project_id, owner.id)
        if not project:
            raise NotFoundError("Project not found")
        return project

    # create / read / update / delete

    async def create_project(
        self,
        owner: User,
        name: str,
        github_url: str,
        description: Optional[str] = None,
    ) -> ProjectDetail:
        if not owner.github_token:
            raise AuthRequiredError("GitHub authentication required. Please login with GitHub.")

        try:
            has_access = await self.github.has_access(github_url, owner.github_token)
        except InvalidRepositoryUrlError as exc:
            raise InvalidRepositoryError(f"Invalid GitHub repository: {exc.message}") from exc
        if not has_access:
            raise AccessDeniedError(
                "You do not have access to this repository or it does not exist."
            )

        try:
            repo_info = await self.github.get_repository(github_url, owner.github_token)
        except (GitHubApiError, InvalidRepositoryUrlError) as exc:
            raise InvalidRepositoryError(f"Invalid GitHub repository: {exc.message}") from exc

        project = await self.repository.create_project(
            Project(
                name=name,
                github_url=github_url,
                description=description or repo_info.get("description"),
                status=ProjectStatus.PENDING,
                user_id=owner.id,
            )
        )
        logger.info("Created project id=%s owner=%s repo=%s", project.id, owner.id, github_url)

        try:
            remote_commits = await self.github.get_commits(
                github_url, owner.github_token, limit=COMMIT_FETCH_LIMIT
            )
            await self.repository.replace_commits(
                project.id, [commit.for_project(project.id) for commit in remote_commits]
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Initial commit fetch failed for project=%s: %s", project.id, exc)

        commits = await self.repository.list_commits(project.id, limit=DETAIL_COMMIT_LIMIT)
        return self._build_detail(project, owner, [], [CommitView.from_record(c) for c in commits])

    async def list_projects(
        self, owner: User, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT
    ) -> ProjectListResponse:
        page = page if page and page > 0 else DEFAULT_PAGE
        limit = limit if limit and limit > 0 else DEFAULT_LIMIT
        limit = min(limit, MAX_LIMIT)

        projects, total = await asyncio.gather(
            self.repository.list_projects(owner.id, skip=(page - 1) * limit, limit=limit),
            self.repository.count_projects(owner.id),
        )
        items = [await self._build_list_item(project) for project in projects]
        return ProjectListResponse(
            projects=items,
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit),
            ),
        )

    async def get_project(self, owner: User, project_id: str) -> ProjectDetail:
        project = await self._get_owned_project(owner, project_id)
        deployments, commits = await asyncio.gather(
            self.repository.list_deployments(project.id),
            self.repository.list_commits(project.id, limit=DETAIL_COMMIT_LIMIT),
        )
        entries: List[DeploymentEntry] = [StoredDeploymentView.from_record(d) for d in deployments]

        observed = await self._observe_live_deployment(project, owner)
        if observed is not None:
            entries.insert(0, observed)

        return self._build_detail(project, owner, entries, [CommitView.from_record(c) for c in commits])

    async def update_project(
        self,
        owner: User,
        project_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ProjectListItem:
        updated = await self.repository.update_project(
            project_id, owner.id, ProjectUpdate(name=name, description=description)
        )
        if not updated:
            raise NotFoundError("Project not found")
        return await self._build_list_item(updated)

    async def delete_project(self, owner: User, project_id: str) -> None:
        if not await self.repository.delete_project(project_id, owner.id):
            raise NotFoundError("Project not found")
        logger.info("Deleted project id=%s owner=%s", project_id, owner.id)

    # deployments

    async def deploy(self, owner: User, project_id: str) -> tuple[Deployment, Project]:
        """Mark the project BUILDING and record a new deployment.

        The caller schedules :meth:`run_deployment` for the returned pair; this
        method never waits for the build.
        """
        project = await self._get_owned_project(owner, project_id)
        current = ProjectStatus(project.status)
        if not is_valid_transition(current, ProjectStatus.BUILDING):
            raise InternalError(f"invalid status transition from {current.value} to BUILDING")

        deployment = await self.repository.create_deployment(
            Deployment(project_id=project.id, status=DeploymentStatus.BUILDING)
        )
        # Only the latest deployment may move the project out of BUILDING.
        updated = await self.repository.set_project_status(
            project.id, ProjectStatus.BUILDING, deployment_id=deployment.id
        )
        if not updated:
            raise NotFoundError("Project not found")
        logger.info("Deployment queued id=%s project=%s", deployment.id, project.id)
        return deployment, updated

    async def run_deployment(self, deployment_id: str, project: Project) -> DeploymentCompletion:
        """Execute a queued deployment and write its single terminal state."""
        try:
            outcome = await self.executor.execute(project.github_url, project.name)
            completion = await self._completion_from_outcome(outcome, project)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Deployment error deployment=%s project=%s", deployment_id, project.id)
            message = str(exc) or exc.__class__.__name__
            completion = DeploymentCompletion(
                status=DeploymentStatus.FAILED,
                error=message,
                logs=f"Deployment failed: {message}",
            )

        await self._finalize(deployment_id, project.id, completion)
        return completion

    async def _completion_from_outcome(
        self, outcome: DeploymentOutcome, project: Project
    ) -> DeploymentCompletion:
        if outcome.success:
            return DeploymentCompletion(
                status=DeploymentStatus.SUCCESS, url=outcome.url, logs=outcome.logs
            )

        error = outcome.error or "Deployment failed"
        suggestion: Optional[str] = None
        try:
            suggestion = await self.advisor.suggest_fix(error, outcome.logs, project)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("AI suggestion failed for project=%s: %s", project.id, exc)
        return DeploymentCompletion(
            status=DeploymentStatus.FAILED,
            error=error,
            logs=outcome.logs,
            suggestion=suggestion or None,
        )

    async def _finalize(
        self, deployment_id: str, project_id: str, completion: DeploymentCompletion
    ) -> None:
        project_status = project_status_for(completion.status)
        for attempt in range(1, self.completion_attempts + 1):
            try:
                finished = await self.repository.finalize_deployment(
                    deployment_id, project_id, completion, project_status
                )
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning(
                    "Finalizing deployment=%s failed (attempt %s/%s): %s",
                    deployment_id,
                    attempt,
                    self.completion_attempts,
                    exc,
                )
                if attempt < self.completion_attempts:
                    await asyncio.sleep(self.completion_retry_delay * attempt)
                continue
            if finished is None:
                logger.info("Deployment id=%s was already finalized; completion ignored", deployment_id)
                return
            logger.info(
                "Deployment finished id=%s status=%s project_status=%s",
                deployment_id,
                completion.status.value,
                project_status.value,
            )
            return
        logger.error(
            "Deployment id=%s could not be finalized; project=%s may remain BUILDING",
            deployment_id,
            project_id,
        )

    # commits / analysis

    async def refresh_commits(self, owner: User, project_id: str) -> List[CommitView]:
        project = await self._get_owned_project(owner, project_id)
        try:
            remote_commits = await self.github.get_commits(
                project.github_url, owner.github_token or "", limit=COMMIT_FETCH_LIMIT
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error fetching fresh commits for project=%s: %s", project.id, exc)
        else:
            await self.repository.replace_commits(
                project.id, [commit.for_project(project.id) for commit in remote_commits]
            )

        commits = await self.repository.list_commits(project.id, limit=DETAIL_COMMIT_LIMIT)
        return [CommitView.from_record(commit) for commit in commits]

    async def analyze(self, owner: User, project_id: str) -> AnalysisResponse:
        project = await self._get_owned_project(owner, project_id)
        commits = await self.repository.list_commits(project.id, limit=ANALYSIS_COMMIT_LIMIT)
        analysis = await self.advisor.analyze_commits(project.github_url, commits)
        return AnalysisResponse(
            project=ProjectReference(id=project.id, name=project.name, github_url=project.github_url),
            analysis=analysis,
        )

    # helpers

    async def _observe_live_deployment(
        self, project: Project, owner: User
    ) -> Optional[ObservedDeploymentView]:
        try:
            snapshot = await self.github.get_deployment_status(project.github_url, owner.github_token)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error fetching GitHub deployment status for project=%s: %s", project.id, exc)
            return None
        if not snapshot.has_deployment:
            return None

        observed_at = snapshot.updated_at or snapshot.created_at or project.updated_at
        return ObservedDeploymentView(
            id=f"github-{snapshot.deployment_id or 'unknown'}",
            status=snapshot.status.upper(),
            url=snapshot.url,
            environment=snapshot.environment,
            project_id=project.id,
            created_at=snapshot.created_at or observed_at,
            updated_at=observed_at,
        )

    async def _build_list_item(self, project: Project) -> ProjectListItem:
        latest, commits, deployment_count, commit_count = await asyncio.gather(
            self.repository.list_deployments(project.id, limit=1),
            self.repository.list_commits(project.id, limit=LIST_COMMIT_LIMIT),
            self.repository.count_deployments(project.id),
            self.repository.count_commits(project.id),
        )
        return ProjectListItem.from_record(
            project,
            deployments=[StoredDeploymentView.from_record(d) for d in latest],
            commits=[CommitView.from_record(c) for c in commits],
            counts=ProjectCounts(deployments=deployment_count, commits=commit_count),
        )

    @staticmethod
    def _build_detail(
        project: Project,
        owner: User,
        deployments: List[DeploymentEntry],
        commits: List[CommitView],
    ) -> ProjectDetail:
        return ProjectDetail.from_record(
            project,
            deployments=deployments,
            commits=commits,
            user=OwnerView(id=owner.id, name=owner.name, email=owner.email),
        )
