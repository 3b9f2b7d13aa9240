"""Error handling utilities for security and privacy."""

import logging
import re
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..services.tiktok import TikTokConfigError

logger = logging.getLogger(__name__)

# Regex to detect internal paths (Unix/Linux focus for container env)
_PATH_PATTERN = re.compile(r"(\/(?:app|home|var|tmp|usr|etc|opt|root)\/[\w\-\.\/]+)")


class ProjectionError(Exception):
    """
    Failure of a read-only session endpoint.

    Rendered as ``{"error": message}`` (plus ``details`` when present) with
    ``status_code``; an expected outcome, not a crash.
    """

    def __init__(self, status_code: int, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details


def sanitize_message(msg: str) -> str:
    """
    Sanitize string messages to prevent leaking internal details.
    """
    if _PATH_PATTERN.search(msg):
        return _PATH_PATTERN.sub("[INTERNAL_PATH]", msg)
    return msg


def create_error_response(status_code: int, message: str, error_code: str | None = None) -> JSONResponse:
    content = {"detail": message}
    if error_code:
        content["code"] = error_code
    return JSONResponse(status_code=status_code, content=content)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handle explicit HTTP exceptions (e.g. 404, 403).
    """
    return create_error_response(exc.status_code, sanitize_message(str(exc.detail)))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle Pydantic validation errors.
    """
    sanitized_errors = []
    for err in exc.errors():
        loc = ".".join([str(x) for x in err.get("loc", [])])
        msg = err.get("msg", "Invalid input")
        sanitized_errors.append(f"{loc}: {msg}")

    error_msg = "; ".join(sanitized_errors)
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY, f"Validation Error: {sanitize_message(error_msg)}"
    )


async def config_exception_handler(request: Request, exc: TikTokConfigError):
    """
    Missing provider credentials. Names the missing settings, never their values.
    """
    logger.error("TikTok integration not configured", extra={"path": request.url.path, "data": {"missing": exc.missing}})
    return create_error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "TikTok integration not configured",
        "AUTH_CONFIG_ERROR",
    )


async def projection_exception_handler(request: Request, exc: ProjectionError):
    content: dict[str, Any] = {"error": exc.message}
    if exc.details is not None:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all for unhandled exceptions.
    """
    logger.exception("Unhandled exception", extra={"path": request.url.path})
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An internal server error occurred.",
        "INTERNAL_ERROR"
    )


def register_exception_handlers(app: FastAPI):
    """
    Registrar for all exception handlers.
    """
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(TikTokConfigError, config_exception_handler)
    app.add_exception_handler(ProjectionError, projection_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
