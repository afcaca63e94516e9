"""Shared fixtures for API tests."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.main import app
from core.auth import DEV_USER_SUBJECT
from core.config import Settings, get_settings
from db.session import get_async_session
from models.category import Category
from models.user import User
from services.session_service import create_session

# Id that no row will have in a fresh test database
MISSING_ID = 999_999


async def get_dev_user(db_session: AsyncSession) -> User:
    """Return the DEV_MODE user (created by the first request of the `client` fixture)."""
    result = await db_session.execute(select(User).where(User.oauth_subject == DEV_USER_SUBJECT))
    return result.scalar_one()


async def create_category(db_session: AsyncSession, name: str = "Writing") -> Category:
    """Insert a category directly."""
    category = Category(name=name, color="#10b981")
    db_session.add(category)
    await db_session.flush()
    return category


@asynccontextmanager
async def create_user2_client(
    db_session: AsyncSession,
    oauth_subject: str = "oauth|user-two",
    email: str = "user2@example.com",
) -> AsyncGenerator[AsyncClient]:
    """
    Create an authenticated AsyncClient for a second user via a session token.

    Sets up a new user with a session, overrides FastAPI dependencies to disable
    dev_mode, and yields an AsyncClient authenticated as that user. While the
    context is open the dev-mode `client` fixture is not authenticated; the
    previous overrides are restored on exit.
    """
    user2 = User(oauth_subject=oauth_subject, email=email)
    db_session.add(user2)
    await db_session.flush()

    _, user2_token = await create_session(db_session, user2.id, ttl_hours=1)
    await db_session.flush()

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    def override_get_settings() -> Settings:
        return Settings(database_url="postgresql://test", dev_mode=False)

    previous = dict(app.dependency_overrides)
    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_settings] = override_get_settings

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers={"Authorization": f"Bearer {user2_token}"},
        ) as user2_client:
            yield user2_client
    finally:
        app.dependency_overrides.clear()
        app.dependency_overrides.update(previous)
