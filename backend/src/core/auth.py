"""Authentication: identity-provider JWT validation and server-side session tokens."""
import logging
import re
from dataclasses import asdict

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from core.rate_limit_config import RateLimitExceededError, get_operation_type
from core.rate_limiter import check_rate_limit
from core.request_context import AuthType, RequestContext
from db.session import get_async_session
from models.user import User
from services import session_service

logger = logging.getLogger(__name__)


# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

# Browser sessions carry the token in this HttpOnly cookie
SESSION_COOKIE_NAME = "session"

DEV_USER_SUBJECT = "dev|local-development-user"

# header.payload.signature, each part base64url without padding
_JWT_SHAPE = re.compile(r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*$")

# Cache for JWKS client (reuse across requests)
_jwks_clients: dict[str, PyJWKClient] = {}


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def looks_like_jwt(token: str) -> bool:
    """Return True if the token has the three-segment shape of a JWT."""
    return bool(_JWT_SHAPE.match(token))


def get_jwks_client(settings: Settings) -> PyJWKClient:
    """Get or create a cached JWKS client for the given settings."""
    if settings.oauth_jwks_url not in _jwks_clients:
        _jwks_clients[settings.oauth_jwks_url] = PyJWKClient(
            settings.oauth_jwks_url,
            cache_jwk_set=True,
            lifespan=3600,  # Cache keys for 1 hour
        )
    return _jwks_clients[settings.oauth_jwks_url]


def decode_jwt(token: str, settings: Settings) -> dict:
    """
    Decode and validate a JWT issued by the identity provider.

    The signature is always verified against the provider's published keys,
    along with issuer, audience and expiry. There is no unverified fallback.

    Raises:
        HTTPException: 401 if the token is invalid, expired, or has the wrong
            audience/issuer; 503 if the signing keys cannot be fetched.
    """
    try:
        jwks_client = get_jwks_client(settings)
        signing_key = jwks_client.get_signing_key_from_jwt(token)

        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.oauth_expected_audience,
            issuer=settings.oauth_issuer,
            options={"require": ["exp", "iss", "aud", "sub"]},
        )

    except jwt.PyJWKClientConnectionError as e:
        # Log full details for debugging (server-side only)
        logger.error("Failed to fetch JWKS from identity provider: %s", e, exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not validate credentials",
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidAudienceError:
        raise _unauthorized("Invalid audience")
    except jwt.InvalidIssuerError:
        raise _unauthorized("Invalid issuer")
    except jwt.PyJWTError as e:
        # Log full details for debugging (server-side only)
        logger.warning("JWT validation failed: %s", e, exc_info=True)
        raise _unauthorized("Invalid token")


async def _find_user(db: AsyncSession, oauth_subject: str) -> User | None:
    result = await db.execute(select(User).where(User.oauth_subject == oauth_subject))
    return result.scalar_one_or_none()


async def get_or_create_user(
    db: AsyncSession,
    oauth_subject: str,
    email: str | None = None,
    display_name: str | None = None,
) -> User:
    """
    Get existing user or create new one from identity token claims.

    Handles race conditions where multiple concurrent requests may try to create
    the same user simultaneously. The insert runs in a savepoint; if it hits the
    unique constraint on oauth_subject, only the savepoint is rolled back and the
    existing user is fetched.

    Note: Uses flush(), not commit. Session generator handles commit at request end.
    """
    user = await _find_user(db, oauth_subject)

    if user is None:
        try:
            async with db.begin_nested():
                user = User(oauth_subject=oauth_subject, email=email, display_name=display_name)
                db.add(user)
                await db.flush()
        except IntegrityError:
            # Another request created the user between our SELECT and INSERT
            user = await _find_user(db, oauth_subject)
            if user is None:
                raise

    # Keep profile fields in sync with the provider
    changed = False
    if email and user.email != email:
        user.email = email
        changed = True
    if display_name and user.display_name != display_name:
        user.display_name = display_name
        changed = True
    if changed:
        await db.flush()

    return user


async def get_or_create_dev_user(db: AsyncSession) -> User:
    """Get or create a development user for DEV_MODE."""
    return await get_or_create_user(
        db,
        oauth_subject=DEV_USER_SUBJECT,
        email="dev@localhost",
        display_name="Local Developer",
    )


async def user_from_id_token(db: AsyncSession, token: str, settings: Settings) -> User:
    """Verify a provider-issued JWT and return the matching (possibly new) user."""
    payload = decode_jwt(token, settings)

    oauth_subject = payload.get("sub")
    if not oauth_subject:
        raise _unauthorized("Invalid token: missing sub claim")

    email = payload.get("email") or payload.get("preferred_username")
    return await get_or_create_user(
        db,
        oauth_subject=oauth_subject,
        email=email,
        display_name=payload.get("name"),
    )


async def validate_session_token(db: AsyncSession, token: str) -> User:
    """
    Validate a server-side session token and return the associated user.

    Raises:
        HTTPException: If the token is unknown, revoked, or expired.
    """
    user_session = await session_service.validate_session(db, token)
    if user_session is None:
        raise _unauthorized("Invalid or expired session")

    user = await db.get(User, user_session.user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user


def extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    """Return the bearer token if present, otherwise the session cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE_NAME) or None


async def _authenticate_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
    db: AsyncSession,
    settings: Settings,
) -> User:
    """
    Internal: resolve the caller without rate limiting.

    Supports both:
    - Provider-issued JWTs (verified against JWKS)
    - Server-side session tokens issued by /auth/callback

    In DEV_MODE, bypasses auth and returns a local user.
    """
    if settings.dev_mode:
        user = await get_or_create_dev_user(db)
        request.state.auth_context = RequestContext(user_id=user.id, auth_type=AuthType.DEV)
        return user

    token = extract_token(request, credentials)
    if token is None:
        raise _unauthorized("Not authenticated")

    if looks_like_jwt(token):
        user = await user_from_id_token(db, token, settings)
        request.state.auth_context = RequestContext(user_id=user.id, auth_type=AuthType.OAUTH)
        return user

    user = await validate_session_token(db, token)
    request.state.auth_context = RequestContext(
        user_id=user.id,
        auth_type=AuthType.SESSION,
        token_prefix=token[:12],
    )
    return user


async def _apply_rate_limit(request: Request, context: RequestContext) -> None:
    """
    Enforce rate limits for the authenticated caller.

    Stores the result on request.state for the headers middleware.

    Raises:
        RateLimitExceededError: If the caller is over a limit.
    """
    result = await check_rate_limit(
        context.user_id,
        context.auth_type,
        get_operation_type(request.method),
    )
    request.state.rate_limit_info = asdict(result)
    if not result.allowed:
        raise RateLimitExceededError(result)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """Dependency that authenticates the caller, applies rate limits and returns the user."""
    user = await _authenticate_user(request, credentials, db, settings)
    await _apply_rate_limit(request, request.state.auth_context)
    return user


def get_request_context(request: Request) -> RequestContext | None:
    """Return the auth context stored by get_current_user, if any."""
    return getattr(request.state, "auth_context", None)
