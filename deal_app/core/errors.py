from typing import Any

from fastapi import HTTPException


class AppError(HTTPException):
    """Base for every error the services raise on purpose.

    ``kind`` is the machine-readable tag the error handlers map to a status
    code and envelope; ``detail`` is the human message.
    """

    kind: str = "app_error"
    status_code: int = 500

    def __init__(self, detail: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(status_code=self.status_code, detail=detail)
        self.errors = errors


class ValidationFailure(AppError):
    kind = "validation_failure"
    status_code = 400


class Unauthenticated(AppError):
    kind = "unauthenticated"
    status_code = 401


class Forbidden(AppError):
    kind = "forbidden"
    status_code = 403


class NotFound(AppError):
    kind = "not_found"
    status_code = 404


class InvalidState(AppError):
    kind = "invalid_state"
    status_code = 409


class Conflict(AppError):
    kind = "conflict"
    status_code = 409


class RateLimited(AppError):
    kind = "rate_limited"
    status_code = 429
