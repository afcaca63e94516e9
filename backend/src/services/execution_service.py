"""Service layer for logging and listing prompt executions."""
import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.execution import Execution
from models.prompt import Prompt
from schemas.execution import ExecutionCreate
from services.prompt_service import PromptService

logger = logging.getLogger(__name__)

_prompt_service = PromptService()


async def log_execution(
    db: AsyncSession,
    user_id: int,
    prompt_id: int,
    data: ExecutionCreate,
) -> Execution:
    """
    Record an execution of a readable prompt and bump its usage counter.

    The insert and the counter update commit together or not at all.

    Raises:
        PromptNotFoundError: If the prompt does not exist.
        PromptAccessDeniedError: If the prompt is not readable by the user.
    """
    await _prompt_service.get_for_read(db, user_id, prompt_id)

    async with db.begin_nested():
        execution = Execution(
            prompt_id=prompt_id,
            user_id=user_id,
            **data.model_dump(),
        )
        db.add(execution)
        await db.execute(
            update(Prompt)
            .where(Prompt.id == prompt_id)
            .values(usage_count=Prompt.usage_count + 1)
            .execution_options(synchronize_session=False),
        )
        await db.flush()

    await db.refresh(execution)
    logger.info(
        "execution_logged",
        extra={
            "user_id": user_id,
            "prompt_id": prompt_id,
            "execution_id": execution.id,
            "was_successful": execution.was_successful,
        },
    )
    return execution


async def list_executions(
    db: AsyncSession,
    user_id: int,
    prompt_id: int,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Execution], int]:
    """
    List executions of a prompt, newest first.

    The owner sees every execution; a non-owner of a public prompt sees only
    the executions they logged themselves.

    Returns:
        Tuple of (executions in the requested window, total count).

    Raises:
        PromptNotFoundError: If the prompt does not exist.
        PromptAccessDeniedError: If the prompt is not readable by the user.
    """
    prompt = await _prompt_service.get_for_read(db, user_id, prompt_id)

    filters = [Execution.prompt_id == prompt_id]
    if prompt.user_id != user_id:
        filters.append(Execution.user_id == user_id)

    total = await db.scalar(select(func.count()).select_from(Execution).where(*filters)) or 0
    result = await db.execute(
        select(Execution)
        .where(*filters)
        .order_by(Execution.executed_at.desc(), Execution.id.desc())
        .offset(offset)
        .limit(limit),
    )
    return list(result.scalars().all()), total
