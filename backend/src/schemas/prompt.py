"""Pydantic schemas for prompt endpoints."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models.prompt import Visibility
from schemas.base import CamelInput
from schemas.validators import (
    MAX_DB_INT,
    validate_and_normalize_tags,
    validate_content,
    validate_title,
)

# Columns that may be omitted on update but never set to null
NON_NULLABLE_UPDATE_FIELDS = (
    "title",
    "content",
    "visibility",
    "is_template",
    "template_variables",
    "model_parameters",
    "tags",
)


class PromptCreate(CamelInput):
    """Schema for creating a new prompt."""

    title: str
    description: str | None = None
    content: str
    category_id: int | None = Field(default=None, le=MAX_DB_INT)
    visibility: Visibility = Visibility.PRIVATE
    is_template: bool = False
    template_variables: dict[str, Any] = Field(default_factory=dict)
    target_ai_model: str | None = Field(default=None, max_length=100)
    model_parameters: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        """Validate title presence and length."""
        return validate_title(v)

    @field_validator("content")
    @classmethod
    def check_content(cls, v: str) -> str:
        """Validate content presence and length."""
        return validate_content(v)

    @field_validator("template_variables", "model_parameters", mode="before")
    @classmethod
    def null_to_empty(cls, v: Any) -> Any:
        if v is None:
            return {}
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)


class PromptUpdate(CamelInput):
    """
    Schema for updating an existing prompt.

    Only fields present in the request body are applied. The owner is never
    part of the payload; a `user_id` key is ignored.
    """

    title: str | None = None
    description: str | None = None
    content: str | None = None
    category_id: int | None = Field(default=None, le=MAX_DB_INT)
    visibility: Visibility | None = None
    is_template: bool | None = None
    template_variables: dict[str, Any] | None = None
    target_ai_model: str | None = Field(default=None, max_length=100)
    model_parameters: dict[str, Any] | None = None
    tags: list[str] | None = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str | None:
        """Validate title if provided."""
        if v is None:
            return v
        return validate_title(v)

    @field_validator("content")
    @classmethod
    def check_content(cls, v: str | None) -> str | None:
        """Validate content if provided."""
        if v is None:
            return v
        return validate_content(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> list[str] | None:
        """Normalize and validate tags if provided."""
        if v is None:
            return None
        return validate_and_normalize_tags(v)

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "PromptUpdate":
        """Required columns may be omitted but not cleared."""
        for name in NON_NULLABLE_UPDATE_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class PromptResponse(BaseModel):
    """
    Schema for prompt responses, with category details and tag names flattened in.

    Note: Uses model_validator to read the category and tag_objects relationships
    only when they were eagerly loaded.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    description: str | None
    content: str
    category_id: int | None
    category_name: str | None = None
    category_color: str | None = None
    visibility: Visibility
    is_template: bool
    template_variables: dict[str, Any]
    target_ai_model: str | None
    model_parameters: dict[str, Any]
    tags: list[str]
    usage_count: int
    version: int
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="before")
    @classmethod
    def extract_from_sqlalchemy(cls, data: Any) -> Any:
        """
        Extract fields from SQLAlchemy model, plus category and tag names.

        Only accesses relationships already present in the instance __dict__ so that
        no lazy load is triggered outside the async context.
        """
        if hasattr(data, "__dict__") and not isinstance(data, dict):
            derived = {"tags", "category_name", "category_color"}
            field_names = set(cls.model_fields.keys()) - derived
            data_dict = {key: getattr(data, key) for key in field_names if hasattr(data, key)}

            loaded = data.__dict__
            tag_objects = loaded.get("tag_objects")
            data_dict["tags"] = [tag.name for tag in tag_objects] if tag_objects else []

            category = loaded.get("category")
            if category is not None:
                data_dict["category_name"] = category.name
                data_dict["category_color"] = category.color
            return data_dict
        return data


class PromptListResponse(BaseModel):
    """Schema for paginated prompt list responses."""

    model_config = ConfigDict(populate_by_name=True)

    prompts: list[PromptResponse]
    total: int
    page: int
    limit: int
    total_pages: int = Field(alias="totalPages")


class PromptRenderRequest(BaseModel):
    """Variables to substitute into a template prompt."""

    variables: dict[str, Any] = Field(default_factory=dict)


class PromptRenderResponse(BaseModel):
    """Rendered prompt content."""

    id: int
    rendered: str
    variables: dict[str, Any]
