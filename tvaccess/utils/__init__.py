"""
Utility modules for the indicator access service.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    unauthorized,
    forbidden,
    not_found,
    internal_error
)
from .exceptions import (
    AccessError,
    NotFoundError,
    ValidationError,
    UpstreamError
)
