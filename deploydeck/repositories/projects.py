from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from deploydeck.domain import DeploymentStatus, ProjectStatus
from deploydeck.models import (
    Commit,
    Deployment,
    DeploymentCompletion,
    Project,
    ProjectUpdate,
    utc_now,
)


class ProjectRepository:
    """MongoDB repository handling projects, deployments and commits collections."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self._projects: AsyncIOMotorCollection = database["projects"]
        self._deployments: AsyncIOMotorCollection = database["deployments"]
        self._commits: AsyncIOMotorCollection = database["commits"]

    async def ensure_indexes(self) -> None:
        await self._projects.create_index([("user_id", 1), ("updated_at", DESCENDING)])
        await self._deployments.create_index([("project_id", 1), ("created_at", DESCENDING)])
        await self._commits.create_index([("project_id", 1), ("date", DESCENDING)])

    # projects

    async def create_project(self, project: Project) -> Project:
        await self._projects.insert_one(project.to_mongo())
        return project

    async def get_project(self, project_id: str, user_id: str) -> Optional[Project]:
        document = await self._projects.find_one({"_id": project_id, "user_id": user_id})
        return Project.from_mongo(document) if document else None

    async def list_projects(self, user_id: str, *, skip: int = 0, limit: int = 10) -> List[Project]:
        cursor = (
            self._projects.find({"user_id": user_id})
            .sort("updated_at", DESCENDING)
            .skip(skip)
            .limit(limit)
        )
        return [Project.from_mongo(document) async for document in cursor]

    async def count_projects(self, user_id: str) -> int:
        return await self._projects.count_documents({"user_id": user_id})

    async def count_projects_by_status(self, user_id: str) -> Dict[str, int]:
        pipeline = [
            {"$match": {"user_id": user_id}},
            {"$group": {"_id": "$status", "count": {"$sum": 1}}},
        ]
        counts: Dict[str, int] = {}
        async for row in self._projects.aggregate(pipeline):
            counts[row["_id"]] = row["count"]
        return counts

    async def update_project(
        self, project_id: str, user_id: str, update: ProjectUpdate
    ) -> Optional[Project]:
        document = await self._projects.find_one_and_update(
            {"_id": project_id, "user_id": user_id},
            {"$set": update.to_fields()},
            return_document=ReturnDocument.AFTER,
        )
        return Project.from_mongo(document) if document else None

    async def set_project_status(
        self, project_id: str, status: ProjectStatus, *, deployment_id: Optional[str] = None
    ) -> Optional[Project]:
        return await self._update_project_by_id(
            project_id, ProjectUpdate(status=status, latest_deployment_id=deployment_id)
        )

    async def delete_project(self, project_id: str, user_id: str) -> bool:
        result = await self._projects.delete_one({"_id": project_id, "user_id": user_id})
        if not result.deleted_count:
            return False
        await self._deployments.delete_many({"project_id": project_id})
        await self._commits.delete_many({"project_id": project_id})
        return True

    async def _update_project_by_id(self, project_id: str, update: ProjectUpdate) -> Optional[Project]:
        document = await self._projects.find_one_and_update(
            {"_id": project_id},
            {"$set": update.to_fields()},
            return_document=ReturnDocument.AFTER,
        )
        return Project.from_mongo(document) if document else None

    # deployments

    async def create_deployment(self, deployment: Deployment) -> Deployment:
        await self._deployments.insert_one(deployment.to_mongo())
        return deployment

    async def get_deployment(self, deployment_id: str) -> Optional[Deployment]:
        document = await self._deployments.find_one({"_id": deployment_id})
        return Deployment.from_mongo(document) if document else None

    async def list_deployments(self, project_id: str, *, limit: Optional[int] = None) -> List[Deployment]:
        cursor = self._deployments.find({"project_id": project_id}).sort("created_at", DESCENDING)
        if limit is not None:
            cursor = cursor.limit(limit)
        return [Deployment.from_mongo(document) async for document in cursor]

    async def list_recent_deployments(
        self, project_ids: Sequence[str], *, limit: int = 10
    ) -> List[Deployment]:
        if not project_ids:
            return []
        cursor = (
            self._deployments.find({"project_id": {"$in": list(project_ids)}})
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        return [Deployment.from_mongo(document) async for document in cursor]

    async def count_deployments(self, project_id: str) -> int:
        return await self._deployments.count_documents({"project_id": project_id})

    async def finalize_deployment(
        self,
        deployment_id: str,
        project_id: str,
        completion: DeploymentCompletion,
        project_status: ProjectStatus,
    ) -> Optional[Deployment]:
        """Write the terminal deployment state and the matching project status.

        Both writes only match records still BUILDING, so a repeated call is a
        no-op. The project moves only while this deployment is its latest one.
        Returns ``None`` when the deployment was already terminal or is gone.
        """
        await self._projects.update_one(
            {
                "_id": project_id,
                "latest_deployment_id": deployment_id,
                "status": ProjectStatus.BUILDING.value,
            },
            {"$set": {"status": project_status.value, "updated_at": utc_now()}},
        )
        document = await self._deployments.find_one_and_update(
            {"_id": deployment_id, "status": DeploymentStatus.BUILDING.value},
            {"$set": completion.to_fields()},
            return_document=ReturnDocument.AFTER,
        )
        return Deployment.from_mongo(document) if document else None

    # commits

    async def replace_commits(self, project_id: str, commits: Sequence[Commit]) -> int:
        await self._commits.delete_many({"project_id": project_id})
        if not commits:
            return 0
        result = await self._commits.insert_many([commit.to_mongo() for commit in commits])
        return len(result.inserted_ids)

    async def list_commits(self, project_id: str, *, limit: int = 20) -> List[Commit]:
        cursor = self._commits.find({"project_id": project_id}).sort("date", DESCENDING).limit(limit)
        return [Commit.from_mongo(document) async for document in cursor]

    async def count_commits(self, project_id: str) -> int:
        return await self._commits.count_documents({"project_id": project_id})
