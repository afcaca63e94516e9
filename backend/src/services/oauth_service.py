"""
OAuth 2.0 authorization-code flow against the configured identity provider.

Only the thin parts live here: building the authorize URL and exchanging the
code for tokens. The returned id_token is verified by core.auth like any other
provider-issued JWT.
"""
import logging
import secrets
from urllib.parse import urlencode

import httpx

from core.config import Settings

logger = logging.getLogger(__name__)

OAUTH_SCOPES = "openid profile email"
TOKEN_EXCHANGE_TIMEOUT = 10.0


class OAuthExchangeError(Exception):
    """Raised when the provider rejects the authorization code or is unreachable."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"OAuth code exchange failed: {reason}")


def generate_state() -> str:
    """Random value tying the callback to the browser that started the login."""
    return secrets.token_urlsafe(24)


def build_authorize_url(settings: Settings, state: str) -> str:
    """Build the provider authorize URL for the authorization-code flow."""
    params = {
        "client_id": settings.oauth_client_id,
        "response_type": "code",
        "redirect_uri": settings.oauth_redirect_uri,
        "scope": OAUTH_SCOPES,
        "response_mode": "query",
        "state": state,
    }
    return f"{settings.oauth_authorize_url}?{urlencode(params)}"


async def exchange_code(settings: Settings, code: str) -> dict:
    """
    Exchange an authorization code for tokens.

    Returns:
        The token endpoint JSON payload (contains `id_token`).

    Raises:
        OAuthExchangeError: On transport errors, non-2xx responses, or a payload
            without an id_token.
    """
    data = {
        "client_id": settings.oauth_client_id,
        "client_secret": settings.oauth_client_secret,
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": settings.oauth_redirect_uri,
        "scope": OAUTH_SCOPES,
    }
    try:
        async with httpx.AsyncClient(timeout=TOKEN_EXCHANGE_TIMEOUT) as client:
            response = await client.post(settings.oauth_token_url, data=data)
    except httpx.HTTPError as e:
        logger.error("Token endpoint unreachable: %s", e, exc_info=True)
        raise OAuthExchangeError("provider_unreachable") from e

    if response.status_code != 200:
        # Provider error body can include the reason; keep it server-side
        logger.warning(
            "oauth_code_exchange_rejected",
            extra={"status_code": response.status_code, "body": response.text[:500]},
        )
        raise OAuthExchangeError("token_exchange_failed")

    try:
        payload = response.json()
    except ValueError as e:
        logger.warning(
            "oauth_token_response_not_json",
            extra={"content_type": response.headers.get("content-type")},
        )
        raise OAuthExchangeError("invalid_token_response") from e
    if not isinstance(payload, dict) or not payload.get("id_token"):
        raise OAuthExchangeError("missing_id_token")
    return payload
