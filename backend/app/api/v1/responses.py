# app/api/v1/responses.py
"""Helpers building the `{success, message, data?, errors?}` response envelope."""
from typing import Any

from fastapi.responses import JSONResponse


def ok(message: str, data: Any = None) -> dict:
    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return body


def fail(status_code: int, message: str, errors: list | None = None, **extra: Any) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = errors
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)
