"""Analytics endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.analytics import UserAnalytics
from services.analytics_service import get_user_analytics

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/user", response_model=UserAnalytics)
async def user_analytics(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> UserAnalytics:
    """Aggregate prompt and execution statistics for the current user."""
    return await get_user_analytics(db, current_user.id)
