"""Service layer for tag operations."""
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.tag import Tag, prompt_tags
from schemas.validators import validate_and_normalize_tags

logger = logging.getLogger(__name__)


async def get_or_create_tags(
    db: AsyncSession,
    tag_names: list[str],
) -> list[Tag]:
    """
    Get existing tags or create new ones.

    Tag names are global, so two concurrent requests may try to create the same
    name. Each insert runs in its own savepoint; on a unique violation the
    savepoint is rolled back and the row created by the other request is used.

    Args:
        db: Database session.
        tag_names: List of tag names to get or create.

    Returns:
        List of Tag objects in the order of the normalized input.
    """
    if not tag_names:
        return []

    normalized = validate_and_normalize_tags(tag_names)
    if not normalized:
        return []

    result = await db.execute(select(Tag).where(Tag.name.in_(normalized)))
    existing_tags = {tag.name: tag for tag in result.scalars()}

    tags = []
    for name in normalized:
        tag = existing_tags.get(name)
        if tag is None:
            tag = await _create_tag(db, name)
        tags.append(tag)
    return tags


async def _create_tag(db: AsyncSession, name: str) -> Tag:
    try:
        async with db.begin_nested():
            tag = Tag(name=name)
            db.add(tag)
            await db.flush()
        return tag
    except IntegrityError:
        logger.info("tag_create_race", extra={"tag": name})
        result = await db.execute(select(Tag).where(Tag.name == name))
        return result.scalar_one()


async def replace_prompt_tags(
    db: AsyncSession,
    prompt_id: int,
    tags: list[Tag],
) -> None:
    """
    Replace all tag associations of a prompt.

    Existing rows are deleted and the new set inserted. Callers run this inside
    the same transaction as the prompt write so the swap is all-or-nothing.
    """
    await db.execute(delete(prompt_tags).where(prompt_tags.c.prompt_id == prompt_id))
    if tags:
        # Input is already deduplicated, so every (prompt_id, tag_id) pair is unique
        await db.execute(
            prompt_tags.insert(),
            [{"prompt_id": prompt_id, "tag_id": tag.id} for tag in tags],
        )
