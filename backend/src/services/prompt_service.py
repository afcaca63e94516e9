"""Service layer for prompt CRUD operations."""
import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.base import utcnow
from models.category import Category
from models.prompt import Prompt, Visibility
from schemas.prompt import PromptCreate, PromptUpdate
from services.exceptions import (
    CategoryNotFoundError,
    PromptAccessDeniedError,
    PromptNotFoundError,
)
from services.query_builder import PromptFilterBuilder
from services.tag_service import get_or_create_tags, replace_prompt_tags
from services.template_renderer import render_template

logger = logging.getLogger(__name__)


class PromptService:
    """
    Prompt service with CRUD operations and template rendering.

    Multi-table writes (prompt row plus tag associations) run inside a SAVEPOINT
    so they are all-or-nothing even when the caller handles the error and keeps
    using the session. The request-level commit happens in get_async_session.
    """

    def _with_relations(self) -> Any:
        return select(Prompt).options(
            selectinload(Prompt.tag_objects),
            selectinload(Prompt.category),
        )

    async def _load(self, db: AsyncSession, prompt_id: int) -> Prompt | None:
        """Fetch a prompt with category and tags, refreshing any identity-map copy."""
        result = await db.execute(
            self._with_relations()
            .where(Prompt.id == prompt_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def _check_category(self, db: AsyncSession, category_id: int | None) -> None:
        if category_id is None:
            return
        exists = await db.scalar(select(Category.id).where(Category.id == category_id))
        if exists is None:
            raise CategoryNotFoundError(category_id)

    async def get_for_read(
        self,
        db: AsyncSession,
        user_id: int,
        prompt_id: int,
    ) -> Prompt:
        """
        Get a prompt the user may read: their own, or anyone's public prompt.

        Raises:
            PromptNotFoundError: If the prompt does not exist.
            PromptAccessDeniedError: If the prompt is private or shared and not owned.
        """
        prompt = await self._load(db, prompt_id)
        if prompt is None:
            raise PromptNotFoundError(prompt_id)
        if prompt.user_id != user_id and prompt.visibility != Visibility.PUBLIC:
            raise PromptAccessDeniedError(prompt_id)
        return prompt

    async def get_owned(
        self,
        db: AsyncSession,
        user_id: int,
        prompt_id: int,
    ) -> Prompt:
        """
        Get a prompt the user owns (required for every write).

        Raises:
            PromptNotFoundError: If the prompt does not exist.
            PromptAccessDeniedError: If the prompt belongs to another user.
        """
        prompt = await self._load(db, prompt_id)
        if prompt is None:
            raise PromptNotFoundError(prompt_id)
        if prompt.user_id != user_id:
            raise PromptAccessDeniedError(prompt_id)
        return prompt

    async def search(
        self,
        db: AsyncSession,
        user_id: int,
        page: int = 1,
        limit: int = 20,
        category_id: int | None = None,
        search: str | None = None,
        visibility: Visibility | None = None,
    ) -> tuple[list[Prompt], int]:
        """
        List the user's prompts, most recently updated first.

        Args:
            db: Database session.
            user_id: Owner of the prompts.
            page: 1-based page number.
            limit: Page size.
            category_id: Exact category filter.
            search: Case-insensitive substring across title, description and content.
            visibility: Exact visibility filter.

        Returns:
            Tuple of (prompts on the requested page, total matching count).
        """
        where = (
            PromptFilterBuilder(user_id)
            .with_category(category_id)
            .with_search(search)
            .with_visibility(visibility)
            .build()
        )

        total = await db.scalar(select(func.count()).select_from(Prompt).where(where)) or 0

        result = await db.execute(
            self._with_relations()
            .where(where)
            .order_by(Prompt.updated_at.desc(), Prompt.id.desc())
            .offset((page - 1) * limit)
            .limit(limit),
        )
        return list(result.scalars().all()), total

    async def create(
        self,
        db: AsyncSession,
        user_id: int,
        data: PromptCreate,
    ) -> Prompt:
        """
        Create a prompt together with its tag associations.

        Raises:
            CategoryNotFoundError: If category_id does not reference a category.
        """
        await self._check_category(db, data.category_id)

        async with db.begin_nested():
            prompt = Prompt(
                user_id=user_id,
                title=data.title,
                description=data.description,
                content=data.content,
                category_id=data.category_id,
                visibility=data.visibility.value,
                is_template=data.is_template,
                template_variables=data.template_variables,
                target_ai_model=data.target_ai_model,
                model_parameters=data.model_parameters,
            )
            db.add(prompt)
            await db.flush()

            tags = await get_or_create_tags(db, data.tags)
            await replace_prompt_tags(db, prompt.id, tags)

        logger.info(
            "prompt_created",
            extra={"user_id": user_id, "prompt_id": prompt.id, "tag_count": len(data.tags)},
        )
        created = await self._load(db, prompt.id)
        if created is None:
            raise PromptNotFoundError(prompt.id)
        return created

    async def update(
        self,
        db: AsyncSession,
        user_id: int,
        prompt_id: int,
        data: PromptUpdate,
    ) -> Prompt:
        """
        Apply a partial update. Only fields present in the request are changed.

        If tags are supplied they replace the existing set. The version counter is
        incremented on every successful update.

        Raises:
            PromptNotFoundError: If the prompt does not exist.
            PromptAccessDeniedError: If the prompt belongs to another user.
            CategoryNotFoundError: If a new category_id does not reference a category.
        """
        prompt = await self.get_owned(db, user_id, prompt_id)

        updates = data.model_dump(exclude_unset=True, mode="json")
        new_tags = updates.pop("tags", None)
        if "category_id" in updates:
            await self._check_category(db, updates["category_id"])

        async with db.begin_nested():
            for field, value in updates.items():
                setattr(prompt, field, value)
            prompt.version = prompt.version + 1
            prompt.updated_at = utcnow()
            await db.flush()

            if new_tags is not None:
                tags = await get_or_create_tags(db, new_tags)
                await replace_prompt_tags(db, prompt.id, tags)

        logger.info(
            "prompt_updated",
            extra={"user_id": user_id, "prompt_id": prompt_id, "fields": sorted(updates)},
        )
        updated = await self._load(db, prompt_id)
        if updated is None:
            raise PromptNotFoundError(prompt_id)
        return updated

    async def delete(
        self,
        db: AsyncSession,
        user_id: int,
        prompt_id: int,
    ) -> None:
        """
        Permanently delete a prompt.

        Tag associations are removed with it; executions keep their rows with
        prompt_id set to NULL.

        Raises:
            PromptNotFoundError: If the prompt does not exist.
            PromptAccessDeniedError: If the prompt belongs to another user.
        """
        prompt = await self.get_owned(db, user_id, prompt_id)
        await db.delete(prompt)
        await db.flush()
        logger.info("prompt_deleted", extra={"user_id": user_id, "prompt_id": prompt_id})

    async def render(
        self,
        db: AsyncSession,
        user_id: int,
        prompt_id: int,
        variables: dict[str, Any],
    ) -> str:
        """
        Render a readable prompt's content with its stored defaults and the given variables.

        Raises:
            PromptNotFoundError: If the prompt does not exist.
            PromptAccessDeniedError: If the prompt is not readable by the user.
            TemplateError: If rendering fails.
        """
        prompt = await self.get_for_read(db, user_id, prompt_id)
        return render_template(prompt.content, prompt.template_variables, variables)
