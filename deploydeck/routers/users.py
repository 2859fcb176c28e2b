from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, Depends

from deploydeck.models import User
from deploydeck.schemas import DashboardResponse, ProfileUpdateRequest, ProfileUpdateResponse
from deploydeck.services import UserService


def build_users_router(user_service: UserService, auth_dependency: Callable) -> APIRouter:
    router = APIRouter(prefix="/api/users", tags=["users"])

    @router.get("/dashboard", response_model=DashboardResponse, summary="Project stats and recent activity.")
    async def dashboard(user: User = Depends(auth_dependency)) -> DashboardResponse:
        return await user_service.get_dashboard(user)

    @router.put("/profile", response_model=ProfileUpdateResponse, summary="Update display name or avatar.")
    async def update_profile(
        payload: ProfileUpdateRequest,
        user: User = Depends(auth_dependency),
    ) -> ProfileUpdateResponse:
        updated = await user_service.update_profile(user, name=payload.name, avatar=payload.avatar)
        return ProfileUpdateResponse(message="Profile updated successfully", user=updated)

    return router
