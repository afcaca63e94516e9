"""User profile and session validation endpoints."""
from fastapi import APIRouter, Depends

from api.dependencies import get_current_user
from models.user import User
from schemas.user import SessionValidateResponse, UserProfileResponse, UserResponse

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/auth/validate", response_model=SessionValidateResponse)
async def validate_session(
    current_user: User = Depends(get_current_user),
) -> SessionValidateResponse:
    """Confirm the caller's credentials are valid and return who they belong to."""
    return SessionValidateResponse(valid=True, user=UserResponse.model_validate(current_user))


@router.get("/user/profile", response_model=UserProfileResponse)
async def get_profile(
    current_user: User = Depends(get_current_user),
) -> UserProfileResponse:
    """Get the current user's profile."""
    return UserProfileResponse(user=UserResponse.model_validate(current_user))
