"""
Predicate builder for the prompt listing query.

Each optional filter contributes one SQLAlchemy clause; the clauses are
combined conjunctively. User input only ever reaches the database as bound
parameters.
"""
from sqlalchemy import ColumnElement, and_, or_

from models.prompt import Prompt, Visibility
from services.utils import LIKE_ESCAPE_CHAR, escape_ilike


class PromptFilterBuilder:
    """
    Accumulates filter clauses for prompts owned by one user.

    Example:
        clause = (
            PromptFilterBuilder(user_id)
            .with_category(3)
            .with_search("summar")
            .build()
        )
    """

    def __init__(self, user_id: int) -> None:
        self._clauses: list[ColumnElement[bool]] = [Prompt.user_id == user_id]

    def with_category(self, category_id: int | None) -> "PromptFilterBuilder":
        """Restrict to an exact category id."""
        if category_id is not None:
            self._clauses.append(Prompt.category_id == category_id)
        return self

    def with_search(self, search: str | None) -> "PromptFilterBuilder":
        """Case-insensitive substring match across title, description and content."""
        if search:
            pattern = f"%{escape_ilike(search)}%"
            self._clauses.append(
                or_(
                    Prompt.title.ilike(pattern, escape=LIKE_ESCAPE_CHAR),
                    Prompt.description.ilike(pattern, escape=LIKE_ESCAPE_CHAR),
                    Prompt.content.ilike(pattern, escape=LIKE_ESCAPE_CHAR),
                ),
            )
        return self

    def with_visibility(self, visibility: Visibility | None) -> "PromptFilterBuilder":
        """Restrict to an exact visibility value."""
        if visibility is not None:
            self._clauses.append(Prompt.visibility == visibility.value)
        return self

    @property
    def clauses(self) -> list[ColumnElement[bool]]:
        """The accumulated clauses, owner restriction first."""
        return list(self._clauses)

    def build(self) -> ColumnElement[bool]:
        """Combine all clauses with AND."""
        return and_(*self._clauses)
