"""Error type raised by the API client and user-facing message mapping."""
from typing import Any

DEFAULT_MESSAGE = "An unexpected error occurred."


class ApiError(Exception):
    """
    Any failed API call.

    `status` is the HTTP status code, or 0 when the request never reached the
    server. `data` carries the decoded error body (or extra info such as
    `retry_after` for rate limits).
    """

    def __init__(self, message: str, status: int, data: Any = None) -> None:
        self.message = message
        self.status = status
        self.data = data
        super().__init__(message)


def handle_api_error(error: Exception) -> str:  # noqa: PLR0911
    """Map an error to a message suitable for showing to a user."""
    if not isinstance(error, ApiError):
        return DEFAULT_MESSAGE

    if error.status == 401:
        return "Please sign in to continue."
    if error.status == 403:
        return "You do not have permission to perform this action."
    if error.status == 404:
        return "The requested resource was not found."
    if error.status == 429:
        retry_after = error.data.get("retry_after") if isinstance(error.data, dict) else None
        if retry_after:
            return f"Rate limit exceeded. Please try again in {retry_after} seconds."
        return "Rate limit exceeded. Please try again later."
    if error.status == 500:
        return "Server error. Please try again later."
    return error.message or DEFAULT_MESSAGE
