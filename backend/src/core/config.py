"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # OAuth / OpenID Connect (Microsoft identity platform)
    oauth_tenant_id: str = "common"
    oauth_client_id: str = ""
    oauth_client_secret: str = ""
    oauth_redirect_uri: str = "http://localhost:8000/auth/callback"
    # Defaults to the client id when empty (ID tokens are issued for the client)
    oauth_audience: str = ""

    # Server-side sessions issued after a successful OAuth callback
    session_ttl_hours: int = Field(default=24 * 7, ge=1)

    # Development mode - bypasses auth for local development
    dev_mode: bool = False

    # URLs - callback redirects land on the frontend
    api_url: str = "http://localhost:8000"
    frontend_url: str = "http://localhost:5173"

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:5173",
        validation_alias="CORS_ORIGINS",
    )

    # Redis - for rate limiting
    redis_url: str = "redis://localhost:6379"
    redis_enabled: bool = True
    redis_pool_size: int = 20

    log_level: str = "INFO"

    # Field length limits
    max_title_length: int = 255
    max_content_length: int = 10_000
    max_tags: int = 10
    max_tag_length: int = 50

    @model_validator(mode="after")
    def validate_dev_mode_security(self) -> "Settings":
        """
        Prevent DEV_MODE from being enabled with a production database.

        DEV_MODE completely bypasses authentication, so we must ensure it's only
        used with local development databases to prevent accidental production exposure.
        """
        if not self.dev_mode:
            return self

        # SQLite URLs have no host and are always local
        if self.database_url.startswith("sqlite"):
            return self

        try:
            parsed = urlparse(self.database_url)
            hostname = parsed.hostname or ""
        except ValueError:
            hostname = ""

        local_hosts = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
        if hostname.lower() not in local_hosts:
            raise ValueError(
                f"DEV_MODE cannot be enabled with a non-local database. "
                f"Database host '{hostname}' appears to be a production database. "
                f"DEV_MODE bypasses all authentication and must only be used locally.",
            )

        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def oauth_authority(self) -> str:
        """Get the identity provider authority URL for the configured tenant."""
        return f"https://login.microsoftonline.com/{self.oauth_tenant_id}"

    @property
    def oauth_authorize_url(self) -> str:
        """Get the OAuth authorization endpoint."""
        return f"{self.oauth_authority}/oauth2/v2.0/authorize"

    @property
    def oauth_token_url(self) -> str:
        """Get the OAuth token endpoint."""
        return f"{self.oauth_authority}/oauth2/v2.0/token"

    @property
    def oauth_jwks_url(self) -> str:
        """Get the JWKS URL for fetching the provider's public signing keys."""
        return f"{self.oauth_authority}/discovery/v2.0/keys"

    @property
    def oauth_issuer(self) -> str:
        """Get the expected `iss` claim of provider-issued tokens."""
        return f"{self.oauth_authority}/v2.0"

    @property
    def oauth_expected_audience(self) -> str:
        """Get the expected `aud` claim (explicit audience, else the client id)."""
        return self.oauth_audience or self.oauth_client_id


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
