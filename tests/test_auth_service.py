from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

import jwt

from deploydeck.domain import AuthRequiredError, InvalidCredentialsError, ValidationError
from deploydeck.repositories import InMemoryUserRepository
from deploydeck.services import AuthService, GitHubProfile

from tests.support import make_settings


class AuthServiceTest(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:  # noqa: N802
        self.users = InMemoryUserRepository()
        self.settings = make_settings()
        self.service = AuthService(self.settings, self.users, bcrypt_rounds=4)

    def test_default_secret_is_refused(self) -> None:
        with self.assertRaises(RuntimeError):
            AuthService(make_settings(JWT_SECRET="change-me"), self.users)

    async def test_register_issues_token_for_new_user(self) -> None:
        user, token = await self.service.register("Ada", "Ada@Example.com", "s3cret!")

        self.assertEqual(user.email, "ada@example.com")
        self.assertNotEqual(user.password_hash, "s3cret!")
        payload = self.service.decode_token(token)
        self.assertEqual(payload["id"], user.id)
        self.assertEqual(payload["email"], "ada@example.com")
        self.assertEqual(payload["exp"] - payload["iat"], int(timedelta(days=7).total_seconds()))

    async def test_duplicate_email_is_rejected(self) -> None:
        await self.service.register("Ada", "ada@example.com", "s3cret!")
        with self.assertRaises(ValidationError) as ctx:
            await self.service.register("Ada Again", "ADA@example.com", "another")
        self.assertEqual(ctx.exception.message, "User already exists with this email")

    async def test_login_round_trip(self) -> None:
        registered, _ = await self.service.register("Ada", "ada@example.com", "s3cret!")

        user, token = await self.service.login("ada@example.com", "s3cret!")

        self.assertEqual(user.id, registered.id)
        authenticated = await self.service.authenticate(token)
        self.assertEqual(authenticated.id, registered.id)

    async def test_login_failures_share_one_message(self) -> None:
        await self.service.register("Ada", "ada@example.com", "s3cret!")

        with self.assertRaises(InvalidCredentialsError) as wrong_password:
            await self.service.login("ada@example.com", "nope")
        with self.assertRaises(InvalidCredentialsError) as unknown_email:
            await self.service.login("ghost@example.com", "s3cret!")

        self.assertEqual(wrong_password.exception.message, unknown_email.exception.message)
        self.assertEqual(wrong_password.exception.status_code, 401)

    async def test_authenticate_rejects_missing_and_bad_tokens(self) -> None:
        with self.assertRaises(AuthRequiredError):
            await self.service.authenticate(None)
        with self.assertRaises(AuthRequiredError):
            await self.service.authenticate("not-a-jwt")

        forged = jwt.encode({"id": "someone"}, "other-secret", algorithm="HS256")
        with self.assertRaises(AuthRequiredError):
            await self.service.authenticate(forged)

    async def test_authenticate_rejects_expired_token(self) -> None:
        user, _ = await self.service.register("Ada", "ada@example.com", "s3cret!")
        past = datetime.now(timezone.utc) - timedelta(days=8)
        expired = jwt.encode(
            {"id": user.id, "iat": int(past.timestamp()), "exp": int((past + timedelta(days=7)).timestamp())},
            self.settings.jwt_secret,
            algorithm="HS256",
        )
        with self.assertRaises(AuthRequiredError) as ctx:
            await self.service.authenticate(expired)
        self.assertIn("expired", ctx.exception.message)

    async def test_authenticate_rejects_deleted_subject(self) -> None:
        user, _ = await self.service.register("Ada", "ada@example.com", "s3cret!")
        token, _ = self.service.create_access_token(user)
        other = AuthService(self.settings, InMemoryUserRepository(), bcrypt_rounds=4)
        with self.assertRaises(AuthRequiredError):
            await other.authenticate(token)

    def test_oauth_state_round_trip(self) -> None:
        state = self.service.create_oauth_state()
        self.service.verify_oauth_state(state)

        with self.assertRaises(AuthRequiredError):
            self.service.verify_oauth_state(None)
        with self.assertRaises(AuthRequiredError):
            self.service.verify_oauth_state("tampered")

    async def test_access_token_is_not_a_valid_oauth_state(self) -> None:
        user, token = await self.service.register("Ada", "ada@example.com", "s3cret!")
        with self.assertRaises(AuthRequiredError):
            self.service.verify_oauth_state(token)

    async def test_github_login_creates_user_with_synthesized_email(self) -> None:
        profile = GitHubProfile(github_id="4242", login="octocat", avatar_url="https://avatars/1")

        user = await self.service.upsert_github_user(profile, "gho_first")

        self.assertEqual(user.email, "octocat@github.user")
        self.assertEqual(user.name, "octocat")
        self.assertEqual(user.github_id, "4242")
        self.assertEqual(user.github_token, "gho_first")
        self.assertIsNone(user.password_hash)

    async def test_github_login_refreshes_token_for_known_identity(self) -> None:
        profile = GitHubProfile(github_id="4242", login="octocat", name="The Octocat")
        first = await self.service.upsert_github_user(profile, "gho_first")

        second = await self.service.upsert_github_user(profile, "gho_second")

        self.assertEqual(first.id, second.id)
        self.assertEqual(second.github_token, "gho_second")
        self.assertEqual(second.name, "The Octocat")

    async def test_github_login_links_existing_local_account(self) -> None:
        local, _ = await self.service.register("Ada", "ada@example.com", "s3cret!")
        profile = GitHubProfile(github_id="7", login="ada", email="Ada@Example.com")

        linked = await self.service.upsert_github_user(profile, "gho_ada")

        self.assertEqual(linked.id, local.id)
        self.assertEqual(linked.github_id, "7")
        self.assertIsNotNone(linked.password_hash)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
