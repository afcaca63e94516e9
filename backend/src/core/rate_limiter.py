"""
Redis-based rate limiting enforcement.

This module contains the enforcement logic - the "how" of rate limiting.
For configuration (limits per auth type and operation), see rate_limit_config.py.
"""
import logging
import time
import uuid

from core.rate_limit_config import OperationType, RateLimitResult
from core.redis import get_redis_client
from core.request_context import AuthType

logger = logging.getLogger(__name__)

MINUTE_WINDOW_SECONDS = 60
DAY_WINDOW_SECONDS = 86400


def _permissive(limit: int) -> RateLimitResult:
    return RateLimitResult(allowed=True, limit=limit, remaining=limit, reset=0, retry_after=0)


async def check_rate_limit(
    user_id: int,
    auth_type: AuthType,
    operation_type: OperationType,
) -> RateLimitResult:
    """
    Check if request is allowed and return full rate limit info.

    Returns RateLimitResult with allowed status and header values.
    Falls back to allowing requests if Redis is unavailable.
    """
    # Import at call time so tests can monkeypatch rate_limit_config.RATE_LIMITS
    from core.rate_limit_config import RATE_LIMITS  # noqa: PLC0415

    config = RATE_LIMITS.get((auth_type, operation_type))
    if not config:
        return _permissive(0)

    redis_client = get_redis_client()
    if redis_client is None or not redis_client.is_connected:
        logger.warning("redis_unavailable", extra={"operation": "rate_limit"})
        return _permissive(config.requests_per_minute)

    now = int(time.time())

    minute_key = f"rate:{user_id}:{auth_type.value}:{operation_type.value}:min"
    minute_raw = await redis_client.eval_sliding_window(
        key=minute_key,
        now=now,
        window_seconds=MINUTE_WINDOW_SECONDS,
        max_requests=config.requests_per_minute,
        request_id=str(uuid.uuid4()),
    )
    if minute_raw is None:
        return _permissive(config.requests_per_minute)

    allowed, remaining, retry_after = minute_raw
    minute_result = RateLimitResult(
        allowed=bool(allowed),
        limit=config.requests_per_minute,
        remaining=max(0, remaining),
        reset=now + MINUTE_WINDOW_SECONDS,
        retry_after=max(0, retry_after) if not allowed else 0,
    )
    if not minute_result.allowed:
        _log_exceeded(user_id, auth_type, operation_type, "per_minute")
        return minute_result

    day_key = f"rate:{user_id}:daily"
    day_raw = await redis_client.eval_fixed_window(
        key=day_key,
        max_requests=config.requests_per_day,
        window_seconds=DAY_WINDOW_SECONDS,
    )
    if day_raw is None:
        return minute_result

    allowed, remaining, ttl, retry_after = day_raw
    if not allowed:
        _log_exceeded(user_id, auth_type, operation_type, "daily")
        return RateLimitResult(
            allowed=False,
            limit=config.requests_per_day,
            remaining=0,
            reset=now + ttl if ttl > 0 else now + DAY_WINDOW_SECONDS,
            retry_after=max(0, retry_after),
        )

    # Both passed - the per-minute window is the more useful one for headers
    return minute_result


def _log_exceeded(
    user_id: int,
    auth_type: AuthType,
    operation_type: OperationType,
    limit_type: str,
) -> None:
    logger.warning(
        "rate_limit_exceeded",
        extra={
            "user_id": user_id,
            "operation": operation_type.value,
            "auth_type": auth_type.value,
            "limit_type": limit_type,
        },
    )
