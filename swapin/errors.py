import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """An expected failure with an HTTP status and a machine-readable code."""

    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Internal server error"

    def __init__(self, message: str = None, code: str = None):
        self.message = message or self.message
        self.code = code or self.code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class AuthRequired(ApiError):
    status_code = 401
    code = "AUTH_REQUIRED"
    message = "Unauthorized"


class InvalidToken(ApiError):
    status_code = 401
    code = "INVALID_TOKEN"
    message = "Invalid token"


class RateLimitExceeded(ApiError):
    status_code = 429
    code = "RATE_LIMIT"
    message = "Rate limit exceeded"


class ValidationFailed(ApiError):
    status_code = 400
    code = "INVALID_REQUEST"
    message = "Invalid request"


class NotFound(ApiError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Not found"


class Forbidden(ApiError):
    status_code = 403
    code = "FORBIDDEN"
    message = "Forbidden"


class InvalidState(ApiError):
    status_code = 400
    code = "INVALID_STATUS"
    message = "Invalid status"


class InternalError(ApiError):
    pass


def _reported_error(exc: RequestValidationError) -> Optional[Dict[str, Any]]:
    # Schema validators raise PydanticCustomError with the domain code as type.
    errors = exc.errors()
    for error in errors:
        if error.get("type", "").isupper():
            return error
    return errors[0] if errors else None


def _validation_code(error: Optional[Dict[str, Any]]) -> str:
    if error is not None and error.get("type", "").isupper():
        return error["type"]
    return ValidationFailed.code


def _validation_message(error: Optional[Dict[str, Any]]) -> str:
    if error is None:
        return ValidationFailed.message
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", ValidationFailed.message)
    if error.get("type", "").isupper() or not location:
        return message
    return f"{location}: {message}"


def install_error_handlers(app: FastAPI, expose_details: bool = False) -> None:
    """Map every failure onto the ``{error, code}`` response envelope."""

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        error = _reported_error(exc)
        return JSONResponse(
            status_code=400,
            content={"error": _validation_message(error), "code": _validation_code(error)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            content = {"error": "Method Not Allowed", "code": "METHOD_NOT_ALLOWED"}
        elif exc.status_code == 404:
            content = {"error": "Not Found", "code": "NOT_FOUND"}
        else:
            content = {"error": str(exc.detail), "code": "HTTP_ERROR"}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Error in {request.url.path}: {exc}")
        content = {
            "error": "Internal server error",
            "code": "INTERNAL_ERROR",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if expose_details:
            content["details"] = str(exc)
        return JSONResponse(status_code=500, content=content)
