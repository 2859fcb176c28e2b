from __future__ import annotations

from enum import Enum


class ProjectStatus(str, Enum):
    PENDING = "PENDING"
    BUILDING = "BUILDING"
    DEPLOYED = "DEPLOYED"
    FAILED = "FAILED"


class DeploymentStatus(str, Enum):
    PENDING = "PENDING"
    BUILDING = "BUILDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in {DeploymentStatus.SUCCESS, DeploymentStatus.FAILED}


PROJECT_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    ProjectStatus.PENDING: frozenset({ProjectStatus.BUILDING}),
    ProjectStatus.BUILDING: frozenset({ProjectStatus.DEPLOYED, ProjectStatus.FAILED}),
    ProjectStatus.DEPLOYED: frozenset({ProjectStatus.BUILDING}),
    ProjectStatus.FAILED: frozenset({ProjectStatus.BUILDING}),
}


def is_valid_transition(current: ProjectStatus, new: ProjectStatus) -> bool:
    # Redeploying while a build is in flight starts a fresh attempt.
    if current == new == ProjectStatus.BUILDING:
        return True
    return new in PROJECT_TRANSITIONS.get(current, frozenset())


def project_status_for(outcome: DeploymentStatus) -> ProjectStatus:
    if outcome == DeploymentStatus.SUCCESS:
        return ProjectStatus.DEPLOYED
    if outcome == DeploymentStatus.FAILED:
        return ProjectStatus.FAILED
    raise ValueError(f"deployment status {outcome.value} is not terminal")
