"""
Pytest fixtures for testing.

Tests run against in-memory SQLite by default. Set TEST_POSTGRES=1 to run the
same suite against a disposable PostgreSQL container instead.
"""
import os
from collections.abc import AsyncGenerator, Callable, Generator
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from testcontainers.postgres import PostgresContainer

SQLITE_URL = "sqlite+aiosqlite:///:memory:"
USE_POSTGRES = os.environ.get("TEST_POSTGRES") == "1"

# Settings are read at import time by db.session and api.main, so the environment
# must be in place before any test module imports them.
os.environ["DATABASE_URL"] = SQLITE_URL
# Ensure tests run in dev mode (bypasses auth) regardless of local .env
os.environ["DEV_MODE"] = "true"
os.environ["REDIS_ENABLED"] = "false"

from models.base import Base  # noqa: E402

if TYPE_CHECKING:
    from core.config import Settings


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Let SQLite honour SAVEPOINT and foreign keys.

    pysqlite begins transactions lazily on its own; take over BEGIN so nested
    transactions work, and turn on FK enforcement (off by default in SQLite).
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record) -> None:  # noqa: ANN001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:  # noqa: ANN001
        conn.exec_driver_sql("BEGIN")


@pytest.fixture(scope="session")
def database_url() -> Generator[str]:
    """
    Get the database URL for the test session.

    Starts a PostgreSQL container when TEST_POSTGRES=1, otherwise uses SQLite.
    """
    if not USE_POSTGRES:
        yield SQLITE_URL
        return

    with PostgresContainer("postgres:16", driver="asyncpg") as postgres:
        url = postgres.get_connection_url()
        os.environ["DATABASE_URL"] = url
        yield url


@pytest.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine for testing."""
    if database_url.startswith("sqlite"):
        # One shared connection, so every session sees the same in-memory database
        engine = create_async_engine(
            database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        _enable_sqlite_savepoints(engine)
    else:
        engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_connection(async_engine: AsyncEngine) -> AsyncGenerator[AsyncConnection]:
    """
    Create a connection with a transaction that will be rolled back after the test.

    This provides test isolation - each test runs in its own transaction
    that is rolled back, so tests don't affect each other.
    """
    async with async_engine.connect() as connection:
        transaction = await connection.begin()
        try:
            yield connection
        finally:
            await transaction.rollback()


@pytest.fixture
async def db_session(db_connection: AsyncConnection) -> AsyncGenerator[AsyncSession]:
    """
    Create an async session bound to the test transaction.

    Uses savepoints, allowing the session's flush/commit to work within our
    outer test transaction.
    """
    session_factory = async_sessionmaker(
        bind=db_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client (authenticated as the dev user) with database session override."""
    # Clear the settings cache so it picks up the test environment
    from core.config import get_settings  # noqa: PLC0415

    get_settings.cache_clear()

    from api.main import app  # noqa: PLC0415
    from db.session import get_async_session  # noqa: PLC0415

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def mock_redis() -> Generator[MagicMock]:
    """
    Install a connected fake Redis client for the rate limiter.

    Script calls default to "allowed"; tests override the return values.
    """
    from core.redis import RedisClient, set_redis_client  # noqa: PLC0415

    fake = MagicMock(spec=RedisClient)
    fake.is_connected = True
    fake.eval_sliding_window = AsyncMock(return_value=[1, 99, 0])
    fake.eval_fixed_window = AsyncMock(return_value=[1, 999, 3600, 0])
    set_redis_client(fake)
    yield fake
    set_redis_client(None)


OAUTH_TEST_TENANT = "tenant-test"
OAUTH_TEST_CLIENT_ID = "client-test"


@pytest.fixture
def oauth_settings() -> "Settings":
    """Non-dev settings with a fixed tenant and client id."""
    from core.config import Settings  # noqa: PLC0415

    return Settings(
        database_url="postgresql://test",
        dev_mode=False,
        oauth_tenant_id=OAUTH_TEST_TENANT,
        oauth_client_id=OAUTH_TEST_CLIENT_ID,
        oauth_client_secret="secret-test",
        frontend_url="http://frontend.test",
    )


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """Signing key standing in for the identity provider's."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def fake_jwks(
    rsa_private_key: rsa.RSAPrivateKey,
    monkeypatch: pytest.MonkeyPatch,
) -> MagicMock:
    """Serve the test public key instead of fetching the provider's JWKS."""
    import core.auth  # noqa: PLC0415

    jwks_client = MagicMock()
    jwks_client.get_signing_key_from_jwt.return_value = SimpleNamespace(
        key=rsa_private_key.public_key(),
    )
    monkeypatch.setattr(core.auth, "get_jwks_client", lambda _settings: jwks_client)
    return jwks_client


@pytest.fixture
def make_id_token(
    rsa_private_key: rsa.RSAPrivateKey,
    oauth_settings: "Settings",
) -> Callable[..., str]:
    """Return a factory for provider-style ID tokens; keyword args override claims."""

    def _make(key: rsa.RSAPrivateKey | None = None, **claims: Any) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": "oauth|alice",
            "iss": oauth_settings.oauth_issuer,
            "aud": oauth_settings.oauth_expected_audience,
            "iat": now,
            "exp": now + timedelta(hours=1),
            "email": "alice@example.com",
            "name": "Alice",
        }
        payload.update(claims)
        payload = {k: v for k, v in payload.items() if v is not None}
        return jwt.encode(payload, key or rsa_private_key, algorithm="RS256")

    return _make
