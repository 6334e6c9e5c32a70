from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .errors import AppError


def _field_name(loc) -> str:
    parts = [str(p) for p in (loc or ()) if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


class ValidationErrorHandler:
    async def __call__(self, request: Request, exc: RequestValidationError):
        errors = []

        for err in exc.errors():
            message = str(err.get("msg"))
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            errors.append({"field": _field_name(err.get("loc")), "message": message})

        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Validation failed",
                "errors": errors,
            },
        )


class HTTPErrorHandler:
    async def __call__(self, request: Request, exc: HTTPException):
        content = {"success": False, "message": str(exc.detail)}
        if isinstance(exc, AppError) and exc.errors:
            content["errors"] = exc.errors

        return JSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )
