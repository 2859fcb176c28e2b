from __future__ import annotations

import unittest
from unittest import mock

from mongomock_motor import AsyncMongoMockClient
from pymongo.errors import DuplicateKeyError

from deploydeck.domain import DeploymentStatus, ProjectStatus, ValidationError
from deploydeck.models import (
    Deployment,
    DeploymentCompletion,
    Project,
    ProjectUpdate,
    User,
    UserUpdate,
)
from deploydeck.repositories import InMemoryUserRepository, ProjectRepository, UserRepository

from tests.support import REPO_URL, make_remote_commits


class ProjectRepositoryTest(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:  # noqa: N802
        self.database = AsyncMongoMockClient()["deploydeck_test"]
        self.repository = ProjectRepository(self.database)
        await self.repository.ensure_indexes()

    async def _project(self, user_id: str = "u1", name: str = "web") -> Project:
        return await self.repository.create_project(Project(name=name, github_url=REPO_URL, user_id=user_id))

    async def _start_deployment(self, project: Project) -> Deployment:
        deployment = await self.repository.create_deployment(
            Deployment(project_id=project.id, status=DeploymentStatus.BUILDING)
        )
        await self.repository.set_project_status(
            project.id, ProjectStatus.BUILDING, deployment_id=deployment.id
        )
        return deployment

    async def test_lookups_are_scoped_to_the_owner(self) -> None:
        project = await self._project()

        self.assertIsNotNone(await self.repository.get_project(project.id, "u1"))
        self.assertIsNone(await self.repository.get_project(project.id, "u2"))
        self.assertFalse(await self.repository.delete_project(project.id, "u2"))
        self.assertEqual(await self.repository.count_projects("u1"), 1)

    async def test_delete_cascades_to_history(self) -> None:
        project = await self._project()
        await self._start_deployment(project)
        await self.repository.replace_commits(
            project.id, [commit.for_project(project.id) for commit in make_remote_commits(3)]
        )

        self.assertTrue(await self.repository.delete_project(project.id, "u1"))

        self.assertEqual(await self.repository.count_deployments(project.id), 0)
        self.assertEqual(await self.repository.count_commits(project.id), 0)
        self.assertIsNone(await self.repository.get_project(project.id, "u1"))

    async def test_replace_commits_swaps_the_whole_set(self) -> None:
        project = await self._project()
        first = [commit.for_project(project.id) for commit in make_remote_commits(3)]
        await self.repository.replace_commits(project.id, first)

        replacement = [commit.for_project(project.id) for commit in make_remote_commits(5)[3:]]
        inserted = await self.repository.replace_commits(project.id, replacement)

        self.assertEqual(inserted, 2)
        self.assertEqual(await self.repository.count_commits(project.id), 2)
        self.assertIsNone(await self.database["commits"].find_one({"sha": "sha0"}))
        self.assertIsNotNone(await self.database["commits"].find_one({"sha": "sha4"}))

        self.assertEqual(await self.repository.replace_commits(project.id, []), 0)
        self.assertEqual(await self.repository.count_commits(project.id), 0)

    async def test_status_counts_group_by_status(self) -> None:
        await self._project()
        building = await self._project(name="api")
        await self._start_deployment(building)
        await self._project(user_id="u2")

        counts = await self.repository.count_projects_by_status("u1")

        self.assertEqual(counts, {"PENDING": 1, "BUILDING": 1})

    async def test_update_sets_only_supplied_fields(self) -> None:
        project = await self._project()

        updated = await self.repository.update_project(project.id, "u1", ProjectUpdate(description="shop"))

        assert updated is not None
        self.assertEqual(updated.name, "web")
        self.assertEqual(updated.description, "shop")
        self.assertIsNone(await self.repository.update_project(project.id, "u2", ProjectUpdate(name="x")))

    async def test_finalize_writes_the_terminal_pair_once(self) -> None:
        project = await self._project()
        deployment = await self._start_deployment(project)

        finished = await self.repository.finalize_deployment(
            deployment.id,
            project.id,
            DeploymentCompletion(status=DeploymentStatus.SUCCESS, url="https://web.example", logs="ok"),
            ProjectStatus.DEPLOYED,
        )
        repeated = await self.repository.finalize_deployment(
            deployment.id,
            project.id,
            DeploymentCompletion(status=DeploymentStatus.FAILED, error="late", logs="late"),
            ProjectStatus.FAILED,
        )

        assert finished is not None
        self.assertEqual(DeploymentStatus(finished.status), DeploymentStatus.SUCCESS)
        self.assertIsNone(repeated)
        stored = await self.repository.get_deployment(deployment.id)
        assert stored is not None
        self.assertEqual(DeploymentStatus(stored.status), DeploymentStatus.SUCCESS)
        self.assertEqual(stored.url, "https://web.example")
        refreshed = await self.repository.get_project(project.id, "u1")
        assert refreshed is not None
        self.assertEqual(ProjectStatus(refreshed.status), ProjectStatus.DEPLOYED)

    async def test_finalize_of_superseded_deployment_leaves_project_alone(self) -> None:
        project = await self._project()
        older = await self._start_deployment(project)
        newer = await self._start_deployment(project)

        await self.repository.finalize_deployment(
            older.id,
            project.id,
            DeploymentCompletion(status=DeploymentStatus.SUCCESS, logs="ok"),
            ProjectStatus.DEPLOYED,
        )

        refreshed = await self.repository.get_project(project.id, "u1")
        assert refreshed is not None
        self.assertEqual(ProjectStatus(refreshed.status), ProjectStatus.BUILDING)
        self.assertEqual(refreshed.latest_deployment_id, newer.id)
        stored_older = await self.repository.get_deployment(older.id)
        assert stored_older is not None
        self.assertEqual(DeploymentStatus(stored_older.status), DeploymentStatus.SUCCESS)


class UserRepositoryTest(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:  # noqa: N802
        self.repository = UserRepository(AsyncMongoMockClient()["deploydeck_test"])
        await self.repository.ensure_indexes()

    async def test_duplicate_email_is_a_validation_error(self) -> None:
        await self.repository.create_user(User(email="ada@example.com", name="Ada"))
        with self.assertRaises(ValidationError):
            await self.repository.create_user(User(email="ada@example.com", name="Ada Two"))

    async def test_local_accounts_do_not_clash_on_missing_github_id(self) -> None:
        await self.repository.create_user(User(email="a@example.com", name="A"))
        await self.repository.create_user(User(email="b@example.com", name="B"))

        self.assertIsNotNone(await self.repository.get_by_email("b@example.com"))

    async def test_github_identity_round_trip(self) -> None:
        user = await self.repository.create_user(User(email="octo@example.com", name="Octo"))
        updated = await self.repository.update_user(
            user.id, UserUpdate(github_id="4242", github_token="gho_token")
        )

        assert updated is not None
        self.assertEqual(updated.github_token, "gho_token")
        found = await self.repository.get_by_github_id("4242")
        assert found is not None
        self.assertEqual(found.id, user.id)


class DuplicateKeyMappingTest(unittest.IsolatedAsyncioTestCase):
    def _repository_raising(self, key_pattern: dict) -> UserRepository:
        collection = mock.MagicMock()
        collection.insert_one = mock.AsyncMock(
            side_effect=DuplicateKeyError(
                "E11000 duplicate key error",
                11000,
                {"keyPattern": key_pattern, "keyValue": {}},
            )
        )
        return UserRepository({"users": collection})

    async def test_email_clash_message(self) -> None:
        repository = self._repository_raising({"email": 1})
        with self.assertRaises(ValidationError) as ctx:
            await repository.create_user(User(email="ada@example.com", name="Ada"))
        self.assertEqual(ctx.exception.message, "User already exists with this email")

    async def test_github_identity_clash_message(self) -> None:
        repository = self._repository_raising({"github_id": 1})
        with self.assertRaises(ValidationError) as ctx:
            await repository.create_user(User(email="new@example.com", name="New", github_id="4242"))
        self.assertEqual(ctx.exception.message, "GitHub account is already linked to another user")

    async def test_in_memory_repository_reports_github_identity_clash(self) -> None:
        repository = InMemoryUserRepository()
        await repository.create_user(User(email="a@example.com", name="A", github_id="4242"))

        with self.assertRaises(ValidationError) as ctx:
            await repository.create_user(User(email="b@example.com", name="B", github_id="4242"))
        self.assertEqual(ctx.exception.message, "GitHub account is already linked to another user")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
