from __future__ import annotations

import asyncio
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import jwt
from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.hash import bcrypt

from deploydeck.domain import AuthRequiredError, InvalidCredentialsError, ValidationError
from deploydeck.models import User, UserUpdate
from deploydeck.repositories import UserRepository
from deploydeck.services.github_service import GitHubProfile
from deploydeck.settings import Settings


logger = logging.getLogger("deploydeck.auth")

INVALID_CREDENTIALS = "Invalid email or password"
OAUTH_STATE_PURPOSE = "github-oauth-state"
OAUTH_STATE_TTL = timedelta(minutes=10)


class AuthService:
    """Handles password hashing, JWT issuance and GitHub identity linking."""

    algorithm = "HS256"

    def __init__(self, settings: Settings, users: UserRepository, *, bcrypt_rounds: int = 12):
        self.users = users
        self.jwt_secret = settings.jwt_secret
        self.token_lifetime = timedelta(days=int(settings.jwt_expire_days or 7))
        self._hasher = bcrypt.using(rounds=bcrypt_rounds)

        if not self.jwt_secret or self.jwt_secret == "change-me":
            raise RuntimeError("JWT_SECRET must be configured with a non-default value.")

    # passwords

    async def hash_password(self, password: str) -> str:
        return await asyncio.to_thread(self._hasher.hash, password)

    async def verify_password(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self._hasher.verify, password, password_hash)

    # local accounts

    async def register(self, name: str, email: str, password: str) -> Tuple[User, str]:
        email = email.strip().lower()
        if await self.users.get_by_email(email):
            raise ValidationError("User already exists with this email")

        user = User(
            name=name.strip(),
            email=email,
            password_hash=await self.hash_password(password),
        )
        user = await self.users.create_user(user)
        logger.info("Registered user id=%s", user.id)
        token, _ = self.create_access_token(user)
        return user, token

    async def login(self, email: str, password: str) -> Tuple[User, str]:
        user = await self.users.get_by_email(email.strip().lower())
        if not user or not user.password_hash:
            raise InvalidCredentialsError(INVALID_CREDENTIALS)
        if not await self.verify_password(password, user.password_hash):
            raise InvalidCredentialsError(INVALID_CREDENTIALS)
        token, _ = self.create_access_token(user)
        return user, token

    # tokens

    def create_access_token(self, user: User) -> Tuple[str, datetime]:
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + self.token_lifetime
        payload = {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self.jwt_secret, algorithm=self.algorithm)
        return token, expires_at

    def decode_token(self, token: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, self.jwt_secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise AuthRequiredError("Authentication token expired.") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthRequiredError("Invalid authentication token.") from exc
        if not payload.get("id"):
            raise AuthRequiredError("Invalid authentication token.")
        return payload

    async def authenticate(self, token: Optional[str]) -> User:
        if not token:
            raise AuthRequiredError("Access token required.")
        payload = self.decode_token(token)
        user = await self.users.get_by_id(payload["id"])
        if not user:
            raise AuthRequiredError("Unknown authentication subject.")
        return user

    def build_auth_dependency(self):
        bearer = HTTPBearer(auto_error=False)

        async def dependency(
            credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer),
        ) -> User:
            return await self.authenticate(credentials.credentials if credentials else None)

        return dependency

    # github identity

    def create_oauth_state(self) -> str:
        issued_at = datetime.now(timezone.utc)
        payload = {
            "purpose": OAUTH_STATE_PURPOSE,
            "nonce": secrets.token_urlsafe(16),
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + OAUTH_STATE_TTL).timestamp()),
        }
        return jwt.encode(payload, self.jwt_secret, algorithm=self.algorithm)

    def verify_oauth_state(self, state: Optional[str]) -> None:
        if not state:
            raise AuthRequiredError("Missing OAuth state.")
        try:
            payload = jwt.decode(state, self.jwt_secret, algorithms=[self.algorithm])
        except jwt.InvalidTokenError as exc:
            raise AuthRequiredError("Invalid OAuth state.") from exc
        if payload.get("purpose") != OAUTH_STATE_PURPOSE:
            raise AuthRequiredError("Invalid OAuth state.")

    async def upsert_github_user(self, profile: GitHubProfile, access_token: str) -> User:
        update = UserUpdate(
            name=profile.display_name,
            avatar=profile.avatar_url,
            github_id=profile.github_id,
            github_token=access_token,
        )
        existing = await self.users.get_by_github_id(profile.github_id)
        if existing is None:
            existing = await self.users.get_by_email(profile.resolved_email.lower())
            if existing is not None:
                logger.info("Linking GitHub identity %s to user id=%s", profile.login, existing.id)

        if existing is not None:
            updated = await self.users.update_user(existing.id, update)
            if updated is None:
                raise AuthRequiredError("User disappeared during GitHub login.")
            return updated

        user = User(
            email=profile.resolved_email.lower(),
            name=profile.display_name,
            avatar=profile.avatar_url,
            github_id=profile.github_id,
            github_token=access_token,
        )
        logger.info("Creating user from GitHub identity %s", profile.login)
        return await self.users.create_user(user)
