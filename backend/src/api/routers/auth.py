"""
OAuth login, callback and logout endpoints.

The browser is sent to the identity provider, comes back to /auth/callback
with an authorization code, and leaves with a server-side session token (as an
HttpOnly cookie and as a query parameter on the front-end redirect).
"""
import logging
import secrets
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import SESSION_COOKIE_NAME, extract_token, security, user_from_id_token
from core.config import Settings, get_settings
from db.session import get_async_session
from services import oauth_service, session_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

STATE_COOKIE_NAME = "oauth_state"
STATE_COOKIE_MAX_AGE = 600


def _frontend_redirect(settings: Settings, **params: str) -> RedirectResponse:
    url = f"{settings.frontend_url}/auth/callback?{urlencode(params)}"
    response = RedirectResponse(url=url, status_code=307)
    response.delete_cookie(STATE_COOKIE_NAME)
    return response


def _is_secure(settings: Settings) -> bool:
    return settings.api_url.startswith("https://")


@router.get("/login")
async def login(settings: Settings = Depends(get_settings)) -> RedirectResponse:
    """Redirect to the identity provider's authorize endpoint."""
    state = oauth_service.generate_state()
    response = RedirectResponse(
        url=oauth_service.build_authorize_url(settings, state),
        status_code=307,
    )
    response.set_cookie(
        STATE_COOKIE_NAME,
        state,
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        secure=_is_secure(settings),
        samesite="lax",
    )
    return response


@router.get("/callback")
async def callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """
    Complete the login.

    Validates state against the cookie set by /auth/login, exchanges the code,
    verifies the returned id_token, and issues a session. Every failure ends in
    a redirect to the front end with an `error` parameter.
    """
    if error:
        logger.info("oauth_provider_error", extra={"error": error})
        return _frontend_redirect(settings, error=error)

    expected_state = request.cookies.get(STATE_COOKIE_NAME)
    if not code or not state or not expected_state or not secrets.compare_digest(
        state, expected_state,
    ):
        logger.warning("oauth_state_mismatch")
        return _frontend_redirect(settings, error="invalid_state")

    try:
        tokens = await oauth_service.exchange_code(settings, code)
    except oauth_service.OAuthExchangeError as e:
        return _frontend_redirect(settings, error=e.reason)

    try:
        user = await user_from_id_token(db, tokens["id_token"], settings)
    except HTTPException as e:
        logger.warning("oauth_id_token_rejected", extra={"detail": e.detail})
        return _frontend_redirect(settings, error="invalid_id_token")

    _, plaintext = await session_service.create_session(
        db, user.id, settings.session_ttl_hours,
    )
    logger.info("session_created", extra={"user_id": user.id})

    response = _frontend_redirect(settings, session=plaintext)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        plaintext,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        secure=_is_secure(settings),
        samesite="lax",
    )
    return response


@router.get("/logout")
async def logout(
    request: Request,
    session: str | None = None,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
) -> JSONResponse:
    """Revoke the caller's session. Succeeds even if the session is already gone."""
    token = session or extract_token(request, credentials)
    if token:
        revoked = await session_service.revoke_session(db, token)
        logger.info("session_revoked", extra={"revoked": revoked})

    response = JSONResponse({"success": True})
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response
