"""Pydantic schemas for users and session validation."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """Schema for user information."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    oauth_subject: str
    email: str | None
    display_name: str | None
    created_at: datetime


class SessionValidateResponse(BaseModel):
    """Result of validating the caller's credentials."""

    valid: bool
    user: UserResponse


class UserProfileResponse(BaseModel):
    """Wrapper for the current user's profile."""

    user: UserResponse


class LogoutResponse(BaseModel):
    """Result of revoking a session."""

    success: bool
