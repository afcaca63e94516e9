"""Service layer for category operations."""
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import utcnow
from models.category import Category
from models.prompt import Prompt
from schemas.category import CategoryCreate, CategoryUpdate
from services.exceptions import (
    CategoryInUseError,
    CategoryNameExistsError,
    CategoryNotFoundError,
)

logger = logging.getLogger(__name__)


async def count_prompts(db: AsyncSession, category_id: int) -> int:
    """Count prompts (of any user) that reference a category."""
    return await db.scalar(
        select(func.count()).select_from(Prompt).where(Prompt.category_id == category_id),
    ) or 0


async def get_categories_with_counts(db: AsyncSession) -> list[tuple[Category, int]]:
    """
    Get all categories with the number of prompts referencing each.

    Returns:
        List of (Category, prompt_count) ordered by sort_order, then name.
    """
    prompt_count = (
        select(func.count(Prompt.id))
        .where(Prompt.category_id == Category.id)
        .correlate(Category)
        .scalar_subquery()
    )
    result = await db.execute(
        select(Category, prompt_count.label("prompt_count"))
        .order_by(Category.sort_order.asc(), Category.name.asc()),
    )
    return [(category, count or 0) for category, count in result.all()]


async def get_category(db: AsyncSession, category_id: int) -> Category:
    """
    Get a category by id.

    Raises:
        CategoryNotFoundError: If the category does not exist.
    """
    category = await db.get(Category, category_id)
    if category is None:
        raise CategoryNotFoundError(category_id)
    return category


async def _ensure_name_available(
    db: AsyncSession,
    name: str,
    exclude_id: int | None = None,
) -> None:
    query = select(Category.id).where(Category.name == name)
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if await db.scalar(query) is not None:
        raise CategoryNameExistsError(name)


async def _flush_unique(db: AsyncSession, name: str) -> None:
    """Flush inside a savepoint, mapping a unique-name violation to CategoryNameExistsError."""
    try:
        async with db.begin_nested():
            await db.flush()
    except IntegrityError as e:
        raise CategoryNameExistsError(name) from e


async def create_category(db: AsyncSession, data: CategoryCreate) -> Category:
    """
    Create a category.

    Raises:
        CategoryNameExistsError: If the name is already taken.
    """
    await _ensure_name_available(db, data.name)
    category = Category(**data.model_dump())
    db.add(category)
    await _flush_unique(db, data.name)
    await db.refresh(category)
    logger.info("category_created", extra={"category_id": category.id})
    return category


async def update_category(
    db: AsyncSession,
    category_id: int,
    data: CategoryUpdate,
) -> Category:
    """
    Apply a partial update to a category.

    Raises:
        CategoryNotFoundError: If the category does not exist.
        CategoryNameExistsError: If renaming to a name that is already taken.
    """
    category = await get_category(db, category_id)
    updates = data.model_dump(exclude_unset=True)
    if "name" in updates:
        await _ensure_name_available(db, updates["name"], exclude_id=category_id)

    for field, value in updates.items():
        setattr(category, field, value)
    category.updated_at = utcnow()
    await _flush_unique(db, category.name)
    await db.refresh(category)
    return category


async def delete_category(db: AsyncSession, category_id: int) -> None:
    """
    Delete a category that no prompt references.

    The dependent count is re-checked here regardless of what the client saw.

    Raises:
        CategoryNotFoundError: If the category does not exist.
        CategoryInUseError: If prompts still reference the category.
    """
    category = await get_category(db, category_id)
    prompt_count = await count_prompts(db, category_id)
    if prompt_count > 0:
        logger.info(
            "category_delete_blocked",
            extra={"category_id": category_id, "prompt_count": prompt_count},
        )
        raise CategoryInUseError(category_id, prompt_count)

    # A prompt assigned after the count still trips the RESTRICT foreign key
    try:
        async with db.begin_nested():
            await db.delete(category)
            await db.flush()
    except IntegrityError as e:
        prompt_count = max(await count_prompts(db, category_id), 1)
        raise CategoryInUseError(category_id, prompt_count) from e
