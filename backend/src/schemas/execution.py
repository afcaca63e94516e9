"""Pydantic schemas for execution logging."""
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.base import CamelInput
from schemas.validators import MAX_DB_INT


class ExecutionCreate(CamelInput):
    """Schema for logging a prompt execution."""

    ai_model_used: str | None = Field(default=None, max_length=100)
    input_variables: dict[str, Any] = Field(default_factory=dict)
    execution_context: str | None = None
    response_quality_rating: int | None = Field(default=None, ge=1, le=5)
    execution_time_ms: int | None = Field(default=None, ge=0, le=MAX_DB_INT)
    tokens_used: int | None = Field(default=None, ge=0, le=MAX_DB_INT)
    cost_estimate: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=6)
    was_successful: bool = True
    error_message: str | None = None

    @field_validator("input_variables", mode="before")
    @classmethod
    def null_to_empty(cls, v: Any) -> Any:
        if v is None:
            return {}
        return v


class ExecutionResponse(BaseModel):
    """Logged execution record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    prompt_id: int | None
    user_id: int
    ai_model_used: str | None
    input_variables: dict[str, Any]
    execution_context: str | None
    response_quality_rating: int | None
    execution_time_ms: int | None
    tokens_used: int | None
    cost_estimate: float | None
    was_successful: bool
    error_message: str | None
    executed_at: datetime


class ExecutionListResponse(BaseModel):
    """Schema for paginated execution history."""

    executions: list[ExecutionResponse]
    total: int
    limit: int
    offset: int
