"""Service layer for server-side login sessions."""
import hashlib
import secrets
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user_session import UserSession

SESSION_TOKEN_PREFIX = "ps_"


def generate_token() -> tuple[str, str, str]:
    """
    Generate a secure session token.

    Returns:
        Tuple of (plaintext_token, token_hash, token_prefix).
        The plaintext should only be shown once at creation.
    """
    raw = secrets.token_urlsafe(32)
    plaintext = f"{SESSION_TOKEN_PREFIX}{raw}"
    token_hash = hash_token(plaintext)
    token_prefix = plaintext[:12]  # "ps_" + first 9 chars of raw
    return plaintext, token_hash, token_prefix


def hash_token(token: str) -> str:
    """Hash a token for comparison against stored hashes."""
    return hashlib.sha256(token.encode()).hexdigest()


async def create_session(
    db: AsyncSession,
    user_id: int,
    ttl_hours: int,
) -> tuple[UserSession, str]:
    """
    Create a new session for a user.

    Returns:
        Tuple of (UserSession model, plaintext_token).

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    plaintext, token_hash, token_prefix = generate_token()
    user_session = UserSession(
        user_id=user_id,
        token_hash=token_hash,
        token_prefix=token_prefix,
        expires_at=datetime.now(UTC) + timedelta(hours=ttl_hours),
    )
    db.add(user_session)
    await db.flush()
    await db.refresh(user_session)
    return user_session, plaintext


async def validate_session(
    db: AsyncSession,
    plaintext_token: str,
) -> UserSession | None:
    """
    Validate a plaintext session token and return the session if it is live.

    The expiry comparison runs in SQL so that it behaves the same whether the
    driver returns aware or naive datetimes.

    Note:
        Updates last_used_at on successful validation (uses flush, not commit).
    """
    # Hash before lookup; plaintext tokens are never compared directly
    token_hash = hash_token(plaintext_token)
    now = datetime.now(UTC)

    result = await db.execute(
        select(UserSession).where(
            UserSession.token_hash == token_hash,
            UserSession.expires_at > now,
        ),
    )
    user_session = result.scalar_one_or_none()
    if user_session is None:
        return None

    user_session.last_used_at = now
    await db.flush()
    return user_session


async def revoke_session(db: AsyncSession, plaintext_token: str) -> bool:
    """
    Delete the session matching a token.

    Returns:
        True if a session was removed, False if none matched (already revoked or unknown).
    """
    result = await db.execute(
        delete(UserSession).where(UserSession.token_hash == hash_token(plaintext_token)),
    )
    return (result.rowcount or 0) > 0
