"""Translate service-layer exceptions into HTTP errors."""
from fastapi import HTTPException, status

from services.exceptions import PromptAccessDeniedError, PromptNotFoundError


def prompt_http_error(error: PromptNotFoundError | PromptAccessDeniedError) -> HTTPException:
    """Map a prompt lookup failure to 404 (absent) or 403 (not permitted)."""
    if isinstance(error, PromptNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prompt not found")
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You do not have access to this prompt",
    )
