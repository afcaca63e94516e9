"""Aggregated usage statistics computed on read."""
from datetime import timedelta

from sqlalchemy import ColumnElement, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import utcnow
from models.execution import Execution
from models.prompt import Prompt, Visibility
from schemas.analytics import TopPrompt, UserAnalytics

TOP_PROMPTS_LIMIT = 5
RECENT_WINDOW = timedelta(days=7)


def _count_where(condition: ColumnElement[bool]) -> ColumnElement[int]:
    """SUM(CASE WHEN condition THEN 1 ELSE 0 END), portable across backends."""
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


async def get_user_analytics(db: AsyncSession, user_id: int) -> UserAnalytics:
    """
    Compute analytics for a user.

    Prompt counts cover prompts the user owns. Execution figures cover executions
    the user logged, including those whose prompt has since been deleted.
    """
    prompt_row = (
        await db.execute(
            select(
                func.count(Prompt.id),
                _count_where(Prompt.visibility == Visibility.PUBLIC.value),
                _count_where(Prompt.is_template.is_(True)),
            ).where(Prompt.user_id == user_id),
        )
    ).one()

    week_ago = utcnow() - RECENT_WINDOW
    execution_row = (
        await db.execute(
            select(
                func.count(Execution.id),
                _count_where(Execution.was_successful.is_(True)),
                func.avg(Execution.response_quality_rating),
                func.coalesce(func.sum(Execution.tokens_used), 0),
                func.coalesce(func.sum(Execution.cost_estimate), 0),
                _count_where(Execution.executed_at >= week_ago),
            ).where(Execution.user_id == user_id),
        )
    ).one()

    top_result = await db.execute(
        select(Prompt.id, Prompt.title, Prompt.usage_count)
        .where(Prompt.user_id == user_id)
        .order_by(Prompt.usage_count.desc(), Prompt.updated_at.desc(), Prompt.id.desc())
        .limit(TOP_PROMPTS_LIMIT),
    )

    total_prompts, public_prompts, template_prompts = prompt_row
    (
        total_executions,
        successful_executions,
        avg_rating,
        total_tokens,
        total_cost,
        executions_this_week,
    ) = execution_row

    return UserAnalytics(
        total_prompts=total_prompts,
        public_prompts=public_prompts,
        template_prompts=template_prompts,
        total_executions=total_executions,
        successful_executions=successful_executions,
        avg_quality_rating=round(float(avg_rating), 2) if avg_rating is not None else 0.0,
        total_tokens_used=int(total_tokens),
        total_cost_estimate=float(total_cost),
        executions_this_week=executions_this_week,
        top_prompts=[
            TopPrompt(id=row.id, title=row.title, usage_count=row.usage_count)
            for row in top_result
        ],
    )
