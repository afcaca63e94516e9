"""Prompts CRUD endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from api.helpers import optional_int_param, optional_visibility_param, prompt_http_error
from models.user import User
from schemas.errors import ValidationErrorResponse
from schemas.prompt import (
    PromptCreate,
    PromptListResponse,
    PromptRenderRequest,
    PromptRenderResponse,
    PromptResponse,
    PromptUpdate,
)
from schemas.validators import MAX_DB_INT
from services.exceptions import (
    CategoryNotFoundError,
    PromptAccessDeniedError,
    PromptNotFoundError,
)
from services.prompt_service import PromptService
from services.template_renderer import TemplateError
from services.utils import total_pages

router = APIRouter(prefix="/api/prompts", tags=["prompts"])

prompt_service = PromptService()

VALIDATION_RESPONSES = {status.HTTP_400_BAD_REQUEST: {"model": ValidationErrorResponse}}


def _unknown_category(e: CategoryNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Category {e.category_id} does not exist",
    )


@router.get("", response_model=PromptListResponse)
async def list_prompts(
    page: int = Query(default=1, ge=1, le=MAX_DB_INT, description="1-based page number"),
    limit: int = Query(default=20, ge=1, le=100, description="Page size"),
    category: str | None = Query(default=None, description="Filter by category id"),
    search: str | None = Query(
        default=None,
        description="Case-insensitive match on title, description, and content",
    ),
    visibility: str | None = Query(
        default=None,
        description="Filter by visibility: private, public, or shared",
    ),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> PromptListResponse:
    """
    List the current user's prompts, most recently updated first.

    Empty-string filters are ignored.
    """
    category_id = optional_int_param(category, "category")
    visibility_filter = optional_visibility_param(visibility)

    prompts, total = await prompt_service.search(
        db,
        current_user.id,
        page=page,
        limit=limit,
        category_id=category_id,
        search=search or None,
        visibility=visibility_filter,
    )
    return PromptListResponse(
        prompts=[PromptResponse.model_validate(p) for p in prompts],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.post(
    "",
    response_model=PromptResponse,
    status_code=status.HTTP_201_CREATED,
    responses=VALIDATION_RESPONSES,
)
async def create_prompt(
    data: PromptCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> PromptResponse:
    """Create a new prompt with its tags."""
    try:
        prompt = await prompt_service.create(db, current_user.id, data)
    except CategoryNotFoundError as e:
        raise _unknown_category(e) from e
    return PromptResponse.model_validate(prompt)


@router.get("/{prompt_id}", response_model=PromptResponse)
async def get_prompt(
    prompt_id: int = Path(le=MAX_DB_INT),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> PromptResponse:
    """Get a prompt you own, or any public prompt."""
    try:
        prompt = await prompt_service.get_for_read(db, current_user.id, prompt_id)
    except (PromptNotFoundError, PromptAccessDeniedError) as e:
        raise prompt_http_error(e) from e
    return PromptResponse.model_validate(prompt)


@router.put("/{prompt_id}", response_model=PromptResponse, responses=VALIDATION_RESPONSES)
async def update_prompt(
    data: PromptUpdate,
    prompt_id: int = Path(le=MAX_DB_INT),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> PromptResponse:
    """
    Update a prompt you own.

    Only fields included in the body change. Supplying `tags` replaces the whole
    tag set. The version number increases on every update.
    """
    try:
        prompt = await prompt_service.update(db, current_user.id, prompt_id, data)
    except (PromptNotFoundError, PromptAccessDeniedError) as e:
        raise prompt_http_error(e) from e
    except CategoryNotFoundError as e:
        raise _unknown_category(e) from e
    return PromptResponse.model_validate(prompt)


@router.delete("/{prompt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_prompt(
    prompt_id: int = Path(le=MAX_DB_INT),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Permanently delete a prompt you own. Its execution history is kept."""
    try:
        await prompt_service.delete(db, current_user.id, prompt_id)
    except (PromptNotFoundError, PromptAccessDeniedError) as e:
        raise prompt_http_error(e) from e


@router.post("/{prompt_id}/render", response_model=PromptRenderResponse)
async def render_prompt(
    data: PromptRenderRequest,
    prompt_id: int = Path(le=MAX_DB_INT),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> PromptRenderResponse:
    """
    Render a prompt's content as a Jinja2 template.

    Stored template_variables act as defaults; `variables` in the body override
    them. Referencing a variable that has no value is an error.
    """
    try:
        rendered = await prompt_service.render(db, current_user.id, prompt_id, data.variables)
    except (PromptNotFoundError, PromptAccessDeniedError) as e:
        raise prompt_http_error(e) from e
    except TemplateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return PromptRenderResponse(id=prompt_id, rendered=rendered, variables=data.variables)
