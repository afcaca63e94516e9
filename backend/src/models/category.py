"""Category model for grouping prompts."""
from typing import TYPE_CHECKING

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from models.prompt import Prompt


DEFAULT_CATEGORY_COLOR = "#6366f1"


class Category(Base, TimestampMixin):
    """Category model - shared across users, referenced by prompts."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        default=DEFAULT_CATEGORY_COLOR,
        server_default=DEFAULT_CATEGORY_COLOR,
    )
    icon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sort_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    # No cascade: a category with prompts must not be deleted (FK is RESTRICT)
    prompts: Mapped[list["Prompt"]] = relationship(
        back_populates="category",
        passive_deletes="all",
    )
