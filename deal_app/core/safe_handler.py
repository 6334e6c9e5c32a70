import logging
from functools import wraps

from fastapi import HTTPException, Request

from .friendly_msg import get_friendly_message

logger = logging.getLogger(__name__)


def _find_request(args, kwargs) -> Request | None:
    return next(
        (arg for arg in (*args, *kwargs.values()) if isinstance(arg, Request)), None
    )


def _context(request: Request | None) -> str:
    if request is None:
        return "no request"
    client_ip = request.client.host if request.client else "unknown"
    trace_id = request.headers.get("X-Request-ID", "none")
    return (
        f"TraceID={trace_id} | {request.method} {request.url.path} | Client: {client_ip}"
    )


def safe_handler(func):
    """Route wrapper: logs every failure once and hides unexpected ones behind a 500."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        request = _find_request(args, kwargs)

        try:
            return await func(*args, **kwargs)
        except HTTPException as e:
            kind = getattr(e, "kind", "http_error")
            level = logging.ERROR if e.status_code >= 500 else logging.WARNING
            logger.log(
                level,
                f"[{kind}] {e.status_code} in {func.__name__} | {_context(request)}: {e.detail}",
            )
            raise
        except Exception as e:
            logger.error(
                f"[Unhandled Error] in {func.__name__} | {_context(request)} | Error: {e}",
                exc_info=True,
            )
            raise HTTPException(status_code=500, detail=get_friendly_message(e))

    return wrapper
