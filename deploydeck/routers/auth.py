from __future__ import annotations

import logging
from typing import Callable, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from deploydeck.domain import DeployDeckError
from deploydeck.models import User
from deploydeck.schemas import (
    AuthResponse,
    LoginRequest,
    ProfileResponse,
    RegisterRequest,
    UserView,
)
from deploydeck.services import AuthService, GitHubService, UserService


logger = logging.getLogger("deploydeck.auth")


def build_auth_router(
    auth_service: AuthService,
    github_service: GitHubService,
    user_service: UserService,
    auth_dependency: Callable,
    *,
    frontend_url: str,
) -> APIRouter:
    router = APIRouter(prefix="/api/auth", tags=["auth"])
    frontend_url = frontend_url.rstrip("/")

    @router.post(
        "/register",
        response_model=AuthResponse,
        status_code=status.HTTP_201_CREATED,
        summary="Create a local account and issue a bearer token.",
    )
    async def register(payload: RegisterRequest) -> AuthResponse:
        user, token = await auth_service.register(payload.name, payload.email, payload.password)
        return AuthResponse(
            message="User registered successfully",
            user=UserView.from_record(user),
            token=token,
        )

    @router.post("/login", response_model=AuthResponse, summary="Exchange email/password for a bearer token.")
    async def login(payload: LoginRequest) -> AuthResponse:
        user, token = await auth_service.login(payload.email, payload.password)
        return AuthResponse(message="Login successful", user=UserView.from_record(user), token=token)

    @router.get("/github", summary="Redirect to the GitHub OAuth consent screen.")
    async def github_login() -> RedirectResponse:
        state = auth_service.create_oauth_state()
        return RedirectResponse(github_service.build_authorize_url(state))

    @router.get("/github/callback", summary="Complete GitHub OAuth and hand the token to the frontend.")
    async def github_callback(
        code: Optional[str] = None,
        state: Optional[str] = None,
        error: Optional[str] = None,
    ) -> RedirectResponse:
        if error or not code:
            reason = error or "missing_code"
            return RedirectResponse(f"{frontend_url}/login?{urlencode({'error': reason})}")
        try:
            auth_service.verify_oauth_state(state)
            access_token = await github_service.exchange_code(code)
            profile = await github_service.get_authenticated_user(access_token)
            user = await auth_service.upsert_github_user(profile, access_token)
        except DeployDeckError as exc:
            logger.warning("GitHub login failed: %s", exc)
            return RedirectResponse(f"{frontend_url}/login?{urlencode({'error': exc.message})}")

        token, _ = auth_service.create_access_token(user)
        return RedirectResponse(f"{frontend_url}/auth/callback?{urlencode({'token': token})}")

    @router.get("/profile", response_model=ProfileResponse, summary="Return the current user and their projects.")
    async def profile(user: User = Depends(auth_dependency)) -> ProfileResponse:
        return ProfileResponse(user=await user_service.get_profile(user))

    return router
