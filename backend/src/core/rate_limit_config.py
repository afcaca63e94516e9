"""
Rate limiting configuration and types.

This module contains the policy configuration for rate limiting - the "what" limits
to apply, separate from the "how" (enforcement logic in rate_limiter.py).

To adjust rate limits, modify RATE_LIMITS below.
"""
from dataclasses import dataclass
from enum import Enum

from core.request_context import AuthType


class OperationType(Enum):
    """Operation type for rate limiting."""

    READ = "read"
    WRITE = "write"


@dataclass
class RateLimitConfig:
    """Rate limit configuration for a specific auth/operation combination."""

    requests_per_minute: int
    requests_per_day: int


@dataclass
class RateLimitResult:
    """Result of a rate limit check with all info needed for headers."""

    allowed: bool
    limit: int  # Max requests in current window
    remaining: int  # Requests remaining in current window
    reset: int  # Unix timestamp when window resets
    retry_after: int  # Seconds until retry allowed (0 if allowed)


class RateLimitExceededError(Exception):
    """Raised when rate limit is exceeded."""

    def __init__(self, result: RateLimitResult) -> None:
        self.result = result
        super().__init__("Rate limit exceeded")


# ---------------------------------------------------------------------------
# Rate Limit Policy Configuration
# ---------------------------------------------------------------------------
# Daily caps are shared across read and write operations.

RATE_LIMITS: dict[tuple[AuthType, OperationType], RateLimitConfig] = {
    # Browser users signed in through the OAuth flow
    (AuthType.SESSION, OperationType.READ): RateLimitConfig(300, 4000),
    (AuthType.SESSION, OperationType.WRITE): RateLimitConfig(90, 4000),
    # Direct identity-provider JWTs (scripts, other services)
    (AuthType.OAUTH, OperationType.READ): RateLimitConfig(120, 2000),
    (AuthType.OAUTH, OperationType.WRITE): RateLimitConfig(60, 2000),
    # DEV has no entry - local development is not rate limited
}


def get_operation_type(method: str) -> OperationType:
    """Determine operation type from HTTP method."""
    if method in ("GET", "HEAD", "OPTIONS"):
        return OperationType.READ
    return OperationType.WRITE
