from __future__ import annotations

import asyncio
import logging
import random
import re
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from deploydeck.settings import Settings


logger = logging.getLogger("deploydeck.executor")

STAGE_MESSAGES: List[str] = [
    "Starting deployment for {name}",
    "Cloning repository {repo_url}...",
    "Installing dependencies...",
    "Running npm install...",
    "Building Docker image...",
    "Pushing image to registry...",
    "Deploying to AWS EC2...",
    "Configuring load balancer...",
]
COMPLETED_MESSAGE = "Deployment completed successfully!"
FAILED_MESSAGE = "Deployment failed."
BUILD_FAILURE_ERROR = "Build failed: Missing environment variables or dependency conflicts"


class DeploymentOutcome(BaseModel):
    success: bool
    logs: str
    url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def succeeded(cls, url: str, logs: str) -> "DeploymentOutcome":
        return cls(success=True, url=url, logs=logs)

    @classmethod
    def failed(cls, error: str, logs: str) -> "DeploymentOutcome":
        return cls(success=False, error=error, logs=logs)


class DeploymentExecutor:
    """Simulated build-and-deploy pipeline.

    Nothing is cloned, built or shipped: the executor narrates the usual
    stages into a timestamped log and draws the outcome at random
    (``success_rate`` chance of success).
    """

    def __init__(
        self,
        *,
        success_rate: float = 0.7,
        domain: str = "your-domain.com",
        stage_delay_seconds: float = 0.0,
        rng: Optional[random.Random] = None,
    ):
        self.success_rate = success_rate
        self.domain = domain.strip(".")
        self.stage_delay_seconds = stage_delay_seconds
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings: Settings, *, rng: Optional[random.Random] = None) -> "DeploymentExecutor":
        return cls(
            success_rate=settings.deploy_success_rate,
            domain=settings.deploy_domain,
            stage_delay_seconds=settings.deploy_stage_delay_seconds,
            rng=rng,
        )

    async def execute(self, repo_url: str, project_name: str) -> DeploymentOutcome:
        logger.info("Starting simulated deployment for %s (%s)", project_name, repo_url)
        lines: List[str] = []
        for template in STAGE_MESSAGES:
            lines.append(self._log_line(template.format(name=project_name, repo_url=repo_url)))
            if self.stage_delay_seconds:
                await asyncio.sleep(self.stage_delay_seconds)

        success = self._rng.random() < self.success_rate
        lines.append(self._log_line(COMPLETED_MESSAGE if success else FAILED_MESSAGE))
        logs = "\n".join(lines)

        if success:
            return DeploymentOutcome.succeeded(self.build_url(project_name), logs)
        return DeploymentOutcome.failed(BUILD_FAILURE_ERROR, logs)

    def build_url(self, project_name: str) -> str:
        slug = re.sub(r"\s+", "-", project_name.strip().lower())
        return f"https://{slug}.{self.domain}"

    @staticmethod
    def _log_line(message: str) -> str:
        timestamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        return f"[{timestamp}] {message}"
