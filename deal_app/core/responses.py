from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel


def to_json(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [to_json(item) for item in data]
    return data


def envelope(
    message: str,
    data: Any = None,
    *,
    count: int | None = None,
    status_code: int = 200,
) -> JSONResponse:
    content: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        content["data"] = to_json(data)
    if count is not None:
        content["count"] = count
    return JSONResponse(content, status_code=status_code)
