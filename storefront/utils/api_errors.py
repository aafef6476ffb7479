"""
Cart API error format.

Every error body is `{"error": ...}` with an optional `details` field. Request
validation errors put the list of pydantic errors under `error`.
"""
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.errors import ERROR_GENERIC


def api_error(message: str, status: int, details: Any = None) -> JSONResponse:
    """Build a JSON error response in the standard format."""
    body: dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(body, status_code=status)


def _field_path(path: Any) -> str:
    if isinstance(path, (list, tuple)):
        return ".".join(str(p) for p in path)
    return str(path) if path else ""


def extract_api_error(payload: Any) -> str:
    """
    Turn an error response body into one readable string.

    Handles a list of validation errors under `error` (pydantic `loc` or
    `path`), a list under `details`, or a plain string `error`.
    """
    if not isinstance(payload, dict):
        return ERROR_GENERIC

    error = payload.get("error")
    details = payload.get("details")
    if not error and not details:
        return ERROR_GENERIC

    if isinstance(error, list):
        parts = []
        for item in error:
            item = item if isinstance(item, dict) else {}
            path = _field_path(item.get("loc") or item.get("path")) or "field"
            parts.append(f"{path}: {item.get('msg') or item.get('message') or 'Invalid value'}")
        return ", ".join(parts)

    if isinstance(details, list):
        parts = []
        for item in details:
            item = item if isinstance(item, dict) else {}
            path = _field_path(item.get("path")) or "field"
            parts.append(f"{path}: {item.get('message') or 'Invalid value'}")
        return ", ".join(parts)

    if isinstance(error, str):
        return error
    return ERROR_GENERIC


def register_error_handlers(app: FastAPI) -> None:
    """Render HTTP and validation errors in the cart API error format."""
    @app.exception_handler(HTTPException)
    async def _http_error(request, exc: HTTPException):
        return api_error(str(exc.detail), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request, exc: RequestValidationError):
        return JSONResponse({"error": jsonable_encoder(exc.errors())}, status_code=400)
