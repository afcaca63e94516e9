"""Async data-access client for the Prompt Library API."""
from client.api_client import PromptLibraryClient
from client.auth_store import AuthState, AuthStore
from client.errors import ApiError, handle_api_error

__all__ = [
    "ApiError",
    "AuthState",
    "AuthStore",
    "PromptLibraryClient",
    "handle_api_error",
]
