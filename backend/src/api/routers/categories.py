"""Category endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.category import Category
from models.user import User
from schemas.category import (
    CategoryCreate,
    CategoryListResponse,
    CategoryResponse,
    CategoryUpdate,
)
from schemas.errors import CategoryInUseResponse
from schemas.validators import MAX_DB_INT
from services import category_service
from services.exceptions import (
    CategoryInUseError,
    CategoryNameExistsError,
    CategoryNotFoundError,
)

router = APIRouter(prefix="/api/categories", tags=["categories"])


def _to_response(category: Category, prompt_count: int) -> CategoryResponse:
    response = CategoryResponse.model_validate(category)
    response.prompt_count = prompt_count
    return response


@router.get("", response_model=CategoryListResponse)
async def list_categories(
    current_user: User = Depends(get_current_user),  # noqa: ARG001
    db: AsyncSession = Depends(get_async_session),
) -> CategoryListResponse:
    """List all categories with the number of prompts in each."""
    rows = await category_service.get_categories_with_counts(db)
    return CategoryListResponse(
        categories=[_to_response(category, count) for category, count in rows],
    )


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    current_user: User = Depends(get_current_user),  # noqa: ARG001
    db: AsyncSession = Depends(get_async_session),
) -> CategoryResponse:
    """Create a category. Names are unique."""
    try:
        category = await category_service.create_category(db, data)
    except CategoryNameExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return _to_response(category, 0)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    data: CategoryUpdate,
    category_id: int = Path(le=MAX_DB_INT),
    current_user: User = Depends(get_current_user),  # noqa: ARG001
    db: AsyncSession = Depends(get_async_session),
) -> CategoryResponse:
    """Update a category. Only fields included in the body change."""
    try:
        category = await category_service.update_category(db, category_id, data)
    except CategoryNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except CategoryNameExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    prompt_count = await category_service.count_prompts(db, category_id)
    return _to_response(category, prompt_count)


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={status.HTTP_409_CONFLICT: {"model": CategoryInUseResponse}},
)
async def delete_category(
    category_id: int = Path(le=MAX_DB_INT),
    current_user: User = Depends(get_current_user),  # noqa: ARG001
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """
    Delete a category.

    Returns 204 if successful, 404 if the category doesn't exist,
    409 if any prompt still references it.
    """
    try:
        await category_service.delete_category(db, category_id)
    except CategoryNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except CategoryInUseError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(e), "prompt_count": e.prompt_count},
        ) from e
