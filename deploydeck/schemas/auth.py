from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from deploydeck.domain import ProjectStatus

from .base import ApiModel


class RegisterRequest(ApiModel):
    name: str = Field(..., min_length=2, max_length=50, description="Display name.")
    email: EmailStr = Field(..., description="Login email.")
    password: str = Field(..., min_length=6, description="Plain-text password.")


class LoginRequest(ApiModel):
    email: EmailStr = Field(..., description="Login email.")
    password: str = Field(..., min_length=1, description="Plain-text password.")


class UserView(ApiModel):
    id: str
    name: str
    email: str
    avatar: Optional[str] = None
    created_at: datetime


class AuthResponse(ApiModel):
    message: str
    user: UserView
    token: str = Field(..., description="Bearer token valid for seven days.")


class ProjectSummary(ApiModel):
    id: str
    name: str
    status: ProjectStatus
    created_at: datetime


class ProfileView(UserView):
    has_github: bool = False
    projects: List[ProjectSummary] = Field(default_factory=list)


class ProfileResponse(ApiModel):
    user: ProfileView
