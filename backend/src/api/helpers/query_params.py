"""
Lenient parsing for optional query parameters.

Browser clients send empty strings for unset filters (`?category=`), which
must mean "not supplied" rather than a validation error.
"""
from fastapi.exceptions import RequestValidationError

from models.prompt import Visibility
from schemas.validators import MAX_DB_INT


def _invalid(field: str, message: str, value: str) -> RequestValidationError:
    return RequestValidationError(
        [{"type": "value_error", "loc": ("query", field), "msg": message, "input": value}],
    )


def optional_int_param(value: str | None, field: str) -> int | None:
    """Parse an optional positive integer, treating '' as absent."""
    if value is None or value.strip() == "":
        return None
    try:
        parsed = int(value)
    except ValueError:
        raise _invalid(field, "Must be an integer", value) from None
    if parsed < 1:
        raise _invalid(field, "Must be a positive integer", value)
    if parsed > MAX_DB_INT:
        raise _invalid(field, f"Must be at most {MAX_DB_INT}", value)
    return parsed


def optional_visibility_param(value: str | None) -> Visibility | None:
    """Parse an optional visibility filter, treating '' as absent."""
    if value is None or value.strip() == "":
        return None
    try:
        return Visibility(value.strip().lower())
    except ValueError:
        allowed = ", ".join(v.value for v in Visibility)
        raise _invalid("visibility", f"Must be one of: {allowed}", value) from None
