"""Pydantic schemas for category endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.category import DEFAULT_CATEGORY_COLOR
from schemas.base import CamelInput
from schemas.validators import MAX_DB_INT, validate_hex_color


def _validate_name(v: str) -> str:
    trimmed = v.strip()
    if not trimmed:
        raise ValueError("Category name is required")
    if len(trimmed) > 100:
        raise ValueError("Category name exceeds maximum length of 100 characters")
    return trimmed


class CategoryCreate(CamelInput):
    """Schema for creating a category."""

    name: str
    description: str | None = None
    color: str = DEFAULT_CATEGORY_COLOR
    icon: str | None = Field(default=None, max_length=50)
    sort_order: int = Field(default=0, ge=-MAX_DB_INT, le=MAX_DB_INT)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        return _validate_name(v)

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str) -> str:
        return validate_hex_color(v)


class CategoryUpdate(CamelInput):
    """Schema for partially updating a category. Omitted fields are left unchanged."""

    name: str | None = None
    description: str | None = None
    color: str | None = None
    icon: str | None = Field(default=None, max_length=50)
    sort_order: int | None = Field(default=None, ge=-MAX_DB_INT, le=MAX_DB_INT)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str | None) -> str | None:
        if v is None:
            raise ValueError("Category name cannot be null")
        return _validate_name(v)

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str | None) -> str | None:
        if v is None:
            raise ValueError("Category color cannot be null")
        return validate_hex_color(v)

    @field_validator("sort_order")
    @classmethod
    def check_sort_order(cls, v: int | None) -> int | None:
        if v is None:
            raise ValueError("Sort order cannot be null")
        return v


class CategoryResponse(BaseModel):
    """Category with the number of prompts that reference it."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    color: str
    icon: str | None
    sort_order: int
    prompt_count: int = 0
    created_at: datetime
    updated_at: datetime


class CategoryListResponse(BaseModel):
    """Schema for the category listing."""

    categories: list[CategoryResponse]
