"""
Standardized error response utilities.

Error bodies are flat so the embedded UI can read ``data.error`` directly:
{
    "error": "User-friendly error message",
    "code": "ERROR_CODE",
    ...optional diagnostic fields (details, logs, isOwner)
}

Usage:
    from tvaccess.utils.errors import error_response, ErrorCode

    return error_response("Indicator not found", ErrorCode.NOT_FOUND, 404)
"""
import logging
from enum import Enum
from flask import jsonify
from typing import Optional

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authentication & Authorization (401, 403)
    AUTH_REQUIRED = "AUTH_REQUIRED"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Validation Errors (400)
    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"

    # Not Found (404)
    NOT_FOUND = "NOT_FOUND"
    CONNECTION_NOT_FOUND = "CONNECTION_NOT_FOUND"
    INDICATOR_NOT_FOUND = "INDICATOR_NOT_FOUND"
    EXPERIENCE_NOT_FOUND = "EXPERIENCE_NOT_FOUND"

    # External Service Errors (500)
    TRADINGVIEW_ERROR = "TRADINGVIEW_ERROR"
    WHOP_ERROR = "WHOP_ERROR"

    # Server Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


def error_response(
    message: str,
    code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    status_code: int = 500,
    log_error: bool = True,
    **extra
) -> tuple:
    """
    Create a standardized error response.

    Args:
        message: User-friendly error message
        code: Error code from ErrorCode enum (or a plain string)
        status_code: HTTP status code
        log_error: Whether to log the error
        **extra: Additional fields merged into the body (details, logs, ...)

    Returns:
        Tuple of (response, status_code) for Flask
    """
    code_value = code.value if isinstance(code, ErrorCode) else code

    if log_error and status_code >= 500:
        logger.error(f"API Error [{code_value}]: {message}", extra={"details": extra.get('details')})
    elif log_error and status_code >= 400:
        logger.warning(f"API Error [{code_value}]: {message}")

    response = {
        "error": message,
        "code": code_value,
    }
    response.update({k: v for k, v in extra.items() if v is not None})

    return jsonify(response), status_code


def unauthorized(message: str = "Unauthorized", code: ErrorCode = ErrorCode.AUTH_REQUIRED, **extra) -> tuple:
    """401 Unauthorized error."""
    return error_response(message, code, 401, log_error=False, **extra)


def forbidden(message: str = "Permission denied", code: ErrorCode = ErrorCode.PERMISSION_DENIED, **extra) -> tuple:
    """403 Forbidden error."""
    return error_response(message, code, 403, log_error=False, **extra)


def not_found(message: str, code: ErrorCode = ErrorCode.NOT_FOUND, **extra) -> tuple:
    """404 Not Found error."""
    return error_response(message, code, 404, log_error=False, **extra)


def internal_error(message: str = "An unexpected error occurred", details: Optional[str] = None, **extra) -> tuple:
    """500 Internal Server Error."""
    return error_response(message, ErrorCode.INTERNAL_ERROR, 500, log_error=True, details=details, **extra)
