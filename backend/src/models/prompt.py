"""Prompt model for storing reusable AI prompts."""
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin
from models.tag import prompt_tags

if TYPE_CHECKING:
    from models.category import Category
    from models.execution import Execution
    from models.tag import Tag
    from models.user import User


class Visibility(StrEnum):
    """Access scope of a prompt."""

    PRIVATE = "private"
    PUBLIC = "public"
    SHARED = "shared"


class Prompt(Base, TimestampMixin):
    """Prompt model - stores prompt text with metadata, category and tags."""

    __tablename__ = "prompts"
    __table_args__ = (
        # Owner listing ordered by recency
        Index("ix_prompts_user_id_updated_at", "user_id", "updated_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    visibility: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=Visibility.PRIVATE.value,
        server_default=Visibility.PRIVATE.value,
    )
    is_template: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )
    # Variable name -> default value, used when rendering templates
    template_variables: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    target_ai_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model_parameters: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    usage_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default="1",
    )

    user: Mapped["User"] = relationship(back_populates="prompts")
    category: Mapped["Category | None"] = relationship(back_populates="prompts")
    tag_objects: Mapped[list["Tag"]] = relationship(
        secondary=prompt_tags,
        back_populates="prompts",
        order_by="Tag.name",
    )
    # Default cascade: deleting a prompt nulls execution.prompt_id (history is kept)
    executions: Mapped[list["Execution"]] = relationship(back_populates="prompt")
