"""
Custom exceptions for indicator access business logic.

Each exception carries the HTTP status it maps to, so handlers can raise and
let the app-level error handler render the response.
"""


class AccessError(Exception):
    """Base exception for all indicator access errors."""

    status_code = 500

    def __init__(self, message: str, code: str = "ACCESS_ERROR", **extra):
        self.message = message
        self.code = code
        self.extra = extra
        super().__init__(message)


class ValidationError(AccessError):
    """Invalid or missing input."""

    status_code = 400

    def __init__(self, message: str, field: str = None, **extra):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code, **extra)


class NotFoundError(AccessError):
    """Resource not found."""

    status_code = 404

    def __init__(self, resource: str, identifier=None, message: str = None, **extra):
        if not message:
            message = f"{resource} not found"
            if identifier:
                message = f"{resource} with ID {identifier} not found"
        code = f"{resource.upper().replace(' ', '_')}_NOT_FOUND"
        super().__init__(message, code, **extra)


class UpstreamError(AccessError):
    """Call to Whop or TradingView failed."""

    status_code = 500

    def __init__(self, message: str, service: str = "upstream", original_error: Exception = None, **extra):
        self.service = service
        self.original_error = original_error
        super().__init__(message, f"{service.upper()}_ERROR", **extra)
