"""Execution model - append-only log of running a prompt against an AI model."""
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, utcnow

if TYPE_CHECKING:
    from models.prompt import Prompt
    from models.user import User


class Execution(Base):
    """
    Execution record.

    Rows are never updated or deleted by the application. Deleting the prompt
    keeps the row with prompt_id set to NULL so analytics stay intact.
    """

    __tablename__ = "executions"
    __table_args__ = (
        CheckConstraint(
            "response_quality_rating IS NULL "
            "OR (response_quality_rating >= 1 AND response_quality_rating <= 5)",
            name="ck_executions_rating_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    prompt_id: Mapped[int | None] = mapped_column(
        ForeignKey("prompts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    ai_model_used: Mapped[str | None] = mapped_column(String(100), nullable=True)
    input_variables: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    execution_context: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_quality_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    execution_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tokens_used: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cost_estimate: Mapped[Decimal | None] = mapped_column(Numeric(12, 6), nullable=True)
    was_successful: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="true",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    executed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    prompt: Mapped["Prompt | None"] = relationship(back_populates="executions")
    user: Mapped["User"] = relationship(back_populates="executions")
