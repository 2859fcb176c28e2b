"""Domain exceptions mapped to HTTP responses by the application handler."""

from __future__ import annotations

from typing import Optional


class DeployDeckError(Exception):
    """Base class; ``status_code`` is the HTTP status reported to clients."""

    status_code = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(DeployDeckError):
    status_code = 400


class AuthRequiredError(DeployDeckError):
    status_code = 401


class InvalidCredentialsError(DeployDeckError):
    status_code = 401


class AccessDeniedError(DeployDeckError):
    status_code = 403


class NotFoundError(DeployDeckError):
    status_code = 404


class InvalidRepositoryError(DeployDeckError):
    status_code = 400


class InvalidRepositoryUrlError(ValidationError):
    pass


class UpstreamServiceError(DeployDeckError):
    status_code = 502


class InternalError(DeployDeckError):
    status_code = 500
