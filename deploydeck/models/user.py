from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from .base import MongoModel, new_id, utc_now


class User(MongoModel):
    id: str = Field(default_factory=new_id, alias="_id", description="Primary identifier.")
    email: str = Field(..., description="Unique login email.")
    name: str = Field(..., description="Display name.")
    password_hash: Optional[str] = Field(
        default=None, description="bcrypt hash; absent for GitHub-only accounts."
    )
    github_id: Optional[str] = Field(default=None, description="GitHub numeric user id.")
    github_token: Optional[str] = Field(
        default=None, description="Latest OAuth access token issued by GitHub."
    )
    avatar: Optional[str] = Field(default=None, description="Avatar image URL.")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_mongo(self) -> dict[str, Any]:
        document = super().to_mongo()
        # Sparse unique index on github_id only skips missing keys, not nulls.
        if document.get("github_id") is None:
            document.pop("github_id", None)
        return document


class UserUpdate(BaseModel):
    name: Optional[str] = None
    avatar: Optional[str] = None
    github_id: Optional[str] = None
    github_token: Optional[str] = None

    def to_fields(self) -> dict[str, Any]:
        fields = self.model_dump(exclude_none=True)
        if fields:
            fields["updated_at"] = utc_now()
        return fields
