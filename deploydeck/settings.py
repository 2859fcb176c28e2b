from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Runtime configuration resolved from environment variables."""

    port: int = Field(default=5000, alias="PORT", description="HTTP listen port.")
    environment: str = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Deployment environment name (development | staging | production).",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Root log level.")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        alias="CORS_ORIGINS",
        description="Comma-separated list of origins allowed by CORS.",
    )
    frontend_url: str = Field(
        default="http://localhost:3000",
        alias="FRONTEND_URL",
        description="Base URL of the web frontend used for OAuth redirects.",
    )
    jwt_secret: str = Field(
        default="change-me", alias="JWT_SECRET", description="HS256 signing secret for access tokens."
    )
    jwt_expire_days: int = Field(
        default=7, alias="JWT_EXPIRE_DAYS", description="Access token lifetime in days."
    )
    github_client_id: Optional[str] = Field(
        default=None, alias="GITHUB_CLIENT_ID", description="GitHub OAuth application client id."
    )
    github_client_secret: Optional[str] = Field(
        default=None,
        alias="GITHUB_CLIENT_SECRET",
        description="GitHub OAuth application client secret.",
    )
    github_callback_url: str = Field(
        default="http://localhost:5000/api/auth/github/callback",
        alias="GITHUB_CALLBACK_URL",
        description="Redirect URI registered with the GitHub OAuth application.",
    )
    github_token: Optional[str] = Field(
        default=None,
        alias="GITHUB_TOKEN",
        description="Server-side token used when a request carries no user token.",
    )
    github_api_url: str = Field(
        default="https://api.github.com", alias="GITHUB_API_URL", description="GitHub REST API base URL."
    )
    gemini_api_key: Optional[str] = Field(
        default=None, alias="GEMINI_API_KEY", description="Google Gemini API key"
    )
    gemini_model: str = Field(
        default="gemini-2.0-flash",
        alias="GEMINI_MODEL",
        description="Generative model used for troubleshooting and commit analysis.",
    )
    mongodb_uri: str = Field(
        default="mongodb://127.0.0.1:27017",
        alias="MONGODB_URI",
        description="MongoDB connection string",
    )
    mongodb_db_name: str = Field(
        default="deploydeck",
        alias="MONGODB_DB_NAME",
        description="MongoDB database name",
    )
    deploy_success_rate: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        alias="DEPLOY_SUCCESS_RATE",
        description="Probability that a simulated deployment succeeds.",
    )
    deploy_domain: str = Field(
        default="your-domain.com",
        alias="DEPLOY_DOMAIN",
        description="Domain suffix for URLs of successful simulated deployments.",
    )
    deploy_stage_delay_seconds: float = Field(
        default=0.0,
        ge=0.0,
        alias="DEPLOY_STAGE_DELAY_SECONDS",
        description="Pause between simulated deployment stages.",
    )

    model_config = {"populate_by_name": True}

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @classmethod
    def from_env(cls) -> "Settings":
        return cls.model_validate(os.environ)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance built from environment variables."""
    return Settings.from_env()
