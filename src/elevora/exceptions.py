"""
Domain exceptions and exception handlers with request ID support
Standardized error response format: { error, code, status_code, request_id?, ...details }
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from typing import Optional, Dict, Any

from .logging_config import get_request_id

logger = logging.getLogger(__name__)


class ElevoraError(Exception):
    """Base exception for errors surfaced at the HTTP boundary"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class AuthenticationMissing(ElevoraError):
    """No verified caller identity"""
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTH_ERROR"


class VerificationFailed(ElevoraError):
    """Webhook signature or headers are invalid"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VERIFICATION_FAILED"


class MalformedEvent(ElevoraError):
    """Webhook payload is missing required fields"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"


class NotFound(ElevoraError):
    """Referenced user, workspace or customer does not exist"""
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class AccessDenied(ElevoraError):
    """Caller may not act on the referenced workspace"""
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class ConfigurationMissing(ElevoraError):
    """A required secret or price identifier is absent from the environment"""
    code = "CONFIGURATION_MISSING"

    def __init__(self, key: str, message: Optional[str] = None):
        super().__init__(message or f"{key} is not set", details={"key": key})
        self.key = key


class UpstreamFailure(ElevoraError):
    """Unexpected failure from the store or the payment provider"""
    code = "UPSTREAM_FAILURE"


class ErrorResponse:
    """
    Standard error response format

    Schema: { error, code, status_code, request_id?, ...details }
    """

    @staticmethod
    def create(
        message: str,
        code: str,
        status_code: int,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> dict:
        """
        Create standardized error response

        Args:
            message: Human-readable error message
            code: Error code (e.g., "VALIDATION_ERROR", "AUTH_ERROR", "FORBIDDEN")
            status_code: HTTP status code
            request_id: Request ID from context (auto-fetched if None)
            details: Optional additional fields merged into the body

        Returns:
            Dictionary with error details
        """
        if request_id is None:
            request_id = get_request_id()

        response = {
            "error": message,
            "code": code,
            "status_code": status_code,
        }
        if request_id:
            response["request_id"] = request_id
        if details:
            for key, value in details.items():
                response.setdefault(key, value)

        return response


ERROR_CODE_MAP = {
    400: "BAD_REQUEST",
    401: "AUTH_ERROR",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


async def elevora_exception_handler(request: Request, exc: ElevoraError) -> JSONResponse:
    """Handle domain exceptions raised from routes and dependencies"""
    request_id = get_request_id()

    if exc.status_code >= 500:
        logger.error(
            f"{exc.code}: {exc.message}",
            extra={"request_id": request_id, "path": request.url.path},
        )
    else:
        logger.warning(
            f"{exc.code}: {exc.message}",
            extra={"request_id": request_id, "path": request.url.path},
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.create(
            message=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            request_id=request_id,
            details=exc.details,
        ),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with request ID"""
    request_id = get_request_id()

    error_code = ERROR_CODE_MAP.get(exc.status_code, "HTTP_ERROR")
    detail = exc.detail
    error_message = str(detail) if detail else f"HTTP {exc.status_code} error"
    error_details = None

    # Guards raise dicts such as {"error": ..., "currentUsage": ..., "limit": ...}
    if isinstance(detail, dict):
        error_message = detail.get("error") or detail.get("message") or error_message
        error_code = detail.get("code", error_code)
        error_details = {k: v for k, v in detail.items() if k not in ["error", "message", "code"]}

    logger.warning(
        f"HTTP {exc.status_code}: {error_message}",
        extra={"request_id": request_id, "path": request.url.path},
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.create(
            message=error_message,
            code=error_code,
            status_code=exc.status_code,
            request_id=request_id,
            details=error_details,
        ),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation exceptions with request ID"""
    request_id = get_request_id()

    errors = exc.errors()
    detail = "; ".join(f"{err['loc']}: {err['msg']}" for err in errors)

    logger.warning(
        f"Validation error: {detail}",
        extra={"request_id": request_id, "path": request.url.path},
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse.create(
            message=f"Validation error: {detail}",
            code="VALIDATION_ERROR",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            request_id=request_id,
        ),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle general exceptions with request ID"""
    request_id = get_request_id()

    # Don't expose internal error details outside dev
    from .config import config
    error_message = "Internal server error"
    error_details = None

    if config.is_dev:
        error_message = f"Internal server error: {str(exc)}"
        error_details = {"exception_type": type(exc).__name__}

    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={"request_id": request_id, "path": request.url.path},
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse.create(
            message=error_message,
            code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
            details=error_details,
        ),
    )
