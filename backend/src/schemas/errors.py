"""
Error response schemas for API endpoints.

Provides structured error responses for OpenAPI documentation and consistent
error handling across the API.
"""
from pydantic import BaseModel


class FieldError(BaseModel):
    """A single invalid request field."""

    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    """Returned with 400 when the request body or query fails validation."""

    error: str = "Validation failed"
    details: list[FieldError]


class CategoryInUseResponse(BaseModel):
    """Returned with 409 when deleting a category that prompts still reference."""

    message: str
    prompt_count: int
