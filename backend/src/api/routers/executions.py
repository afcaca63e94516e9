"""Execution logging endpoints (nested under prompts)."""
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from api.helpers import prompt_http_error
from models.user import User
from schemas.execution import ExecutionCreate, ExecutionListResponse, ExecutionResponse
from schemas.validators import MAX_DB_INT
from services.exceptions import PromptAccessDeniedError, PromptNotFoundError
from services.execution_service import list_executions, log_execution

router = APIRouter(prefix="/api/prompts", tags=["executions"])


@router.post(
    "/{prompt_id}/execute",
    response_model=ExecutionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def execute_prompt(
    data: ExecutionCreate,
    prompt_id: int = Path(le=MAX_DB_INT),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ExecutionResponse:
    """
    Log an execution of a prompt.

    Increments the prompt's usage_count. Executions are immutable once logged.
    """
    try:
        execution = await log_execution(db, current_user.id, prompt_id, data)
    except (PromptNotFoundError, PromptAccessDeniedError) as e:
        raise prompt_http_error(e) from e
    return ExecutionResponse.model_validate(execution)


@router.get("/{prompt_id}/executions", response_model=ExecutionListResponse)
async def get_executions(
    prompt_id: int = Path(le=MAX_DB_INT),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0, le=MAX_DB_INT),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ExecutionListResponse:
    """List executions of a prompt, newest first."""
    try:
        executions, total = await list_executions(
            db, current_user.id, prompt_id, limit=limit, offset=offset,
        )
    except (PromptNotFoundError, PromptAccessDeniedError) as e:
        raise prompt_http_error(e) from e
    return ExecutionListResponse(
        executions=[ExecutionResponse.model_validate(e) for e in executions],
        total=total,
        limit=limit,
        offset=offset,
    )
