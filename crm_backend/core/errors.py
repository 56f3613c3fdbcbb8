"""
Error types raised by the subscription services and the FastAPI handlers
that render them.

Every error response has the same body:
    {"error": {"code", "message", "request_id"}, "detail": message}
and echoes the request id in the x-request-id header.
"""

import logging
import builtins
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from crm_backend.core.logging import get_request_id

logger = logging.getLogger("crm")


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    """Bad operator input: empty email list, empty window, unknown extension method."""
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    """Missing user or subscription type."""
    code = "not_found"
    status_code = 404


class PermissionError(AppError, builtins.PermissionError):
    """Admin key missing or wrong."""
    code = "forbidden"
    status_code = 403


def _resolve_request_id(request: Request, explicit: Optional[str] = None) -> str:
    return (
        explicit
        or getattr(request.state, "request_id", None)
        or get_request_id()
        or str(uuid4())
    )


def error_response(status_code: int, code: str, message: str, request_id: str) -> JSONResponse:
    response = JSONResponse(
        status_code=status_code,
        content={
            "error": {"code": code, "message": message, "request_id": request_id},
            "detail": message,
        },
    )
    response.headers["x-request-id"] = request_id
    return response


async def app_error_handler(request: Request, exc: AppError):
    rid = _resolve_request_id(request, exc.request_id)
    logger.log(
        logging.ERROR if exc.status_code >= 500 else logging.WARNING,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    return error_response(exc.status_code, exc.code, exc.message, rid)


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _resolve_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    return error_response(exc.status_code, code, exc.detail or "HTTP error", rid)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _resolve_request_id(request)
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    return error_response(500, "internal_error", "Unexpected error", rid)
