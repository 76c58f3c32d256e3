"""
Request field validation.
"""
from typing import Any, Optional

from .exceptions import ValidationError


def text_field(value: Any, field: str, required: bool = True, message: str = None) -> Optional[str]:
    """
    Return a stripped string field from a JSON body.

    Raises:
        ValidationError: If the value is not a string, or is blank when required
    """
    if value is None:
        value = ''
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be a string', field=field)

    value = value.strip()
    if required and not value:
        raise ValidationError(message or f'{field} is required', field=field)
    return value or None
