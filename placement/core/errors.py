"""
Error taxonomy and FastAPI exception handlers.

Every business-rule failure is raised as a PlacementError subclass and
rendered as {"error": ..., "message": ...} with the matching status code.
"""

import logging
import traceback
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from placement.core.config import get_settings

logger = logging.getLogger(__name__)


class PlacementError(Exception):
    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error:
            self.error = error

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class ValidationError(PlacementError):
    status_code = 400
    error = "Validation failed"


class AuthError(PlacementError):
    status_code = 401
    error = "Unauthorized"


class ForbiddenError(AuthError):
    status_code = 403
    error = "Forbidden"


class NotFoundError(PlacementError):
    status_code = 404
    error = "Not found"


class ConflictError(PlacementError):
    status_code = 409
    error = "Conflict"


class IneligibilityError(PlacementError):
    status_code = 400
    error = "Not eligible"

    def __init__(self, reasons: List[str]):
        super().__init__(f"Not eligible: {', '.join(reasons)}")
        self.reasons = list(reasons)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["reasons"] = self.reasons
        return body


class InvalidTransitionError(PlacementError):
    status_code = 400
    error = "Invalid status"


class RateLimitError(PlacementError):
    status_code = 429
    error = "Too Many Requests"

    def __init__(self, retry_after: int):
        super().__init__(f"Rate limit exceeded. Try again in {retry_after} seconds")
        self.retry_after = retry_after


class UpstreamError(PlacementError):
    status_code = 502
    error = "Upstream service failed"


class InternalError(PlacementError):
    status_code = 500
    error = "Internal server error"


# ============================================================
# HANDLERS
# ============================================================

async def placement_error_handler(request: Request, exc: PlacementError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}
    elif isinstance(exc, AuthError) and not isinstance(exc, ForbiddenError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "message": "; ".join(problems)},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        return JSONResponse(
            status_code=404,
            content={
                "error": "Not found",
                "message": f"Route {request.method} {request.url.path} not found",
                "hint": "Visit /api/docs for available endpoints",
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[Server Error] %s %s", request.method, request.url.path)
    body = {"error": "Internal server error", "message": str(exc)}
    if not get_settings().is_production:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PlacementError, placement_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
