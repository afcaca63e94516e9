"""Request context types for tracking auth information."""
from dataclasses import dataclass
from enum import StrEnum


class AuthType(StrEnum):
    """Authentication method used for the request."""

    OAUTH = "oauth"  # Identity-provider issued JWT
    SESSION = "session"  # Server-side session token
    DEV = "dev"


@dataclass
class RequestContext:
    """
    Auth information resolved for the current request.

    Stored on `request.state.auth_context` by the auth dependency.
    """

    user_id: int
    auth_type: AuthType
    token_prefix: str | None = None  # Only set for session auth, e.g. "ps_a3f8..."
