"""Test fixtures for the API client tests."""
from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import respx

from client import AuthStore, PromptLibraryClient

API_BASE_URL = "http://api.test"


@pytest.fixture
def mock_api() -> Generator[respx.MockRouter]:
    """Context manager for mocking API responses."""
    with respx.mock(base_url=API_BASE_URL, assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def auth_store() -> AuthStore:
    """Store holding a signed-in session."""
    return AuthStore(token="ps_test_token")


@pytest.fixture
async def api(
    mock_api: respx.MockRouter,  # noqa: ARG001
    auth_store: AuthStore,
) -> AsyncGenerator[PromptLibraryClient]:
    """Client pointed at the mocked API."""
    async with PromptLibraryClient(API_BASE_URL, auth_store) as client:
        yield client


@pytest.fixture
def sample_prompt() -> dict[str, Any]:
    """Sample prompt response data."""
    return {
        "id": 1,
        "user_id": 1,
        "title": "Summarize",
        "description": "Short summary",
        "content": "Summarize: {{ text }}",
        "category_id": 2,
        "category_name": "Writing",
        "category_color": "#6366f1",
        "visibility": "private",
        "is_template": True,
        "template_variables": {"text": ""},
        "target_ai_model": None,
        "model_parameters": {},
        "tags": ["summary"],
        "usage_count": 0,
        "version": 1,
        "created_at": "2024-03-01T10:15:00Z",
        "updated_at": "2024-03-02T08:00:00+00:00",
    }
