from __future__ import annotations

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from deploydeck.domain import ValidationError
from deploydeck.models import User, UserUpdate


class UserRepository:
    """MongoDB repository for the users collection."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self._users: AsyncIOMotorCollection = database["users"]

    async def ensure_indexes(self) -> None:
        await self._users.create_index("email", unique=True)
        await self._users.create_index("github_id", unique=True, sparse=True)

    async def create_user(self, user: User) -> User:
        try:
            await self._users.insert_one(user.to_mongo())
        except DuplicateKeyError as exc:
            key_pattern = (exc.details or {}).get("keyPattern") or {}
            if "github_id" in key_pattern:
                raise ValidationError("GitHub account is already linked to another user") from exc
            raise ValidationError("User already exists with this email") from exc
        return user

    async def get_by_id(self, user_id: str) -> Optional[User]:
        document = await self._users.find_one({"_id": user_id})
        return User.from_mongo(document) if document else None

    async def get_by_email(self, email: str) -> Optional[User]:
        document = await self._users.find_one({"email": email})
        return User.from_mongo(document) if document else None

    async def get_by_github_id(self, github_id: str) -> Optional[User]:
        document = await self._users.find_one({"github_id": github_id})
        return User.from_mongo(document) if document else None

    async def update_user(self, user_id: str, update: UserUpdate) -> Optional[User]:
        fields = update.to_fields()
        if not fields:
            return await self.get_by_id(user_id)
        document = await self._users.find_one_and_update(
            {"_id": user_id},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        return User.from_mongo(document) if document else None
