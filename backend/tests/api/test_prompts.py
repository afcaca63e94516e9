"""Tests for prompt CRUD endpoints."""
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.execution import Execution
from models.prompt import Prompt
from models.tag import prompt_tags
from tests.api.conftest import MISSING_ID, create_category, create_user2_client, get_dev_user


async def _create(client: AsyncClient, **overrides: object) -> dict:
    payload = {"title": "Summarize", "content": "Summarize the following text."}
    payload.update(overrides)
    response = await client.post("/api/prompts", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


# =============================================================================
# Create Prompt Tests
# =============================================================================


async def test__create_prompt__success(client: AsyncClient, db_session: AsyncSession) -> None:
    """Test creating a new prompt with all fields."""
    category = await create_category(db_session)

    response = await client.post(
        "/api/prompts",
        json={
            "title": "Code Review",
            "description": "Review a diff",
            "content": "Review this {{ language }} code",
            "category_id": category.id,
            "visibility": "public",
            "is_template": True,
            "template_variables": {"language": "Python"},
            "target_ai_model": "gpt-4o",
            "model_parameters": {"temperature": 0.2},
            "tags": ["review", "code"],
        },
    )
    assert response.status_code == 201

    data = response.json()
    assert data["title"] == "Code Review"
    assert data["description"] == "Review a diff"
    assert data["content"] == "Review this {{ language }} code"
    assert data["category_id"] == category.id
    assert data["category_name"] == "Writing"
    assert data["category_color"] == "#10b981"
    assert data["visibility"] == "public"
    assert data["is_template"] is True
    assert data["template_variables"] == {"language": "Python"}
    assert data["target_ai_model"] == "gpt-4o"
    assert data["model_parameters"] == {"temperature": 0.2}
    assert sorted(data["tags"]) == ["code", "review"]
    assert data["usage_count"] == 0
    assert data["version"] == 1
    assert isinstance(data["id"], int)

    # Verify in database
    result = await db_session.execute(select(Prompt).where(Prompt.id == data["id"]))
    prompt = result.scalar_one()
    assert prompt.title == "Code Review"
    assert prompt.user_id == data["user_id"]


async def test__create_prompt__minimal_uses_defaults(client: AsyncClient) -> None:
    """Only title and content are required."""
    data = await _create(client)

    assert data["description"] is None
    assert data["category_id"] is None
    assert data["category_name"] is None
    assert data["visibility"] == "private"
    assert data["is_template"] is False
    assert data["template_variables"] == {}
    assert data["model_parameters"] == {}
    assert data["tags"] == []


async def test__create_prompt__accepts_camel_case_keys(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """Browser clients post camelCase bodies."""
    category = await create_category(db_session)

    data = await _create(
        client,
        categoryId=category.id,
        isTemplate=True,
        templateVariables={"topic": "cats"},
        targetAiModel="claude",
        modelParameters={"max_tokens": 100},
    )

    assert data["category_id"] == category.id
    assert data["is_template"] is True
    assert data["template_variables"] == {"topic": "cats"}
    assert data["target_ai_model"] == "claude"
    assert data["model_parameters"] == {"max_tokens": 100}


async def test__create_prompt__tags_are_normalized_and_deduplicated(
    client: AsyncClient,
) -> None:
    """Tags are trimmed, lower-cased and deduplicated."""
    data = await _create(client, tags=["  Python ", "python", "PYTHON", "Web Dev", ""])

    assert sorted(data["tags"]) == ["python", "web dev"]


async def test__create_prompt__tags_shared_across_prompts(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """Reusing a tag name links to the existing tag instead of creating another."""
    first = await _create(client, tags=["shared"])
    second = await _create(client, title="Other", tags=["Shared"])

    result = await db_session.execute(
        select(func.count(func.distinct(prompt_tags.c.tag_id))).where(
            prompt_tags.c.prompt_id.in_([first["id"], second["id"]]),
        ),
    )
    assert result.scalar() == 1


async def test__create_prompt__content_too_long_rejected(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """Content of 10001 characters is rejected with 400 and nothing is stored."""
    response = await client.post(
        "/api/prompts",
        json={"title": "Too long", "content": "x" * 10_001},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert any(d["field"] == "content" for d in body["details"])

    count = await db_session.scalar(select(func.count()).select_from(Prompt))
    assert count == 0


async def test__create_prompt__content_at_limit_accepted(client: AsyncClient) -> None:
    """Exactly 10000 characters is allowed."""
    data = await _create(client, content="x" * 10_000)
    assert len(data["content"]) == 10_000


async def test__create_prompt__missing_title_rejected(client: AsyncClient) -> None:
    """Title is required."""
    response = await client.post("/api/prompts", json={"content": "text"})

    assert response.status_code == 400
    assert any(d["field"] == "title" for d in response.json()["details"])


async def test__create_prompt__blank_title_rejected(client: AsyncClient) -> None:
    """A whitespace-only title counts as missing."""
    response = await client.post("/api/prompts", json={"title": "   ", "content": "text"})
    assert response.status_code == 400


async def test__create_prompt__title_too_long_rejected(client: AsyncClient) -> None:
    """Titles are limited to 255 characters."""
    response = await client.post("/api/prompts", json={"title": "t" * 256, "content": "text"})
    assert response.status_code == 400


async def test__create_prompt__too_many_tags_rejected(client: AsyncClient) -> None:
    """At most 10 distinct tags are allowed."""
    response = await client.post(
        "/api/prompts",
        json={"title": "T", "content": "C", "tags": [f"tag{i}" for i in range(11)]},
    )
    assert response.status_code == 400


async def test__create_prompt__tag_too_long_rejected(client: AsyncClient) -> None:
    """Each tag is limited to 50 characters."""
    response = await client.post(
        "/api/prompts",
        json={"title": "T", "content": "C", "tags": ["a" * 51]},
    )
    assert response.status_code == 400


async def test__create_prompt__tags_must_be_a_list(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """A string or object in place of the tag list is rejected, not split into tags."""
    for tags in ("python", {"alpha": 1, "beta": 2}):
        response = await client.post(
            "/api/prompts",
            json={"title": "T", "content": "C", "tags": tags},
        )
        assert response.status_code == 400, tags
        assert response.json()["details"][0]["field"] == "tags"

    count = await db_session.scalar(select(func.count()).select_from(Prompt))
    assert count == 0


async def test__create_prompt__category_id_out_of_range_rejected(client: AsyncClient) -> None:
    """A category id too large for the database is a validation error."""
    response = await client.post(
        "/api/prompts",
        json={"title": "T", "content": "C", "category_id": 10**30},
    )
    assert response.status_code == 400


async def test__create_prompt__invalid_visibility_rejected(client: AsyncClient) -> None:
    """Visibility must be private, public or shared."""
    response = await client.post(
        "/api/prompts",
        json={"title": "T", "content": "C", "visibility": "everyone"},
    )
    assert response.status_code == 400


async def test__create_prompt__unknown_category_rejected(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """category_id must reference an existing category."""
    response = await client.post(
        "/api/prompts",
        json={"title": "T", "content": "C", "category_id": MISSING_ID},
    )

    assert response.status_code == 400
    count = await db_session.scalar(select(func.count()).select_from(Prompt))
    assert count == 0


# =============================================================================
# List Prompt Tests
# =============================================================================


async def test__list_prompts__pagination(client: AsyncClient) -> None:
    """page=2, limit=10 over 15 prompts returns the last 5 and totalPages=2."""
    for i in range(15):
        await _create(client, title=f"Prompt {i}")

    response = await client.get("/api/prompts", params={"page": 2, "limit": 10})

    assert response.status_code == 200
    data = response.json()
    assert len(data["prompts"]) == 5
    assert data["total"] == 15
    assert data["page"] == 2
    assert data["limit"] == 10
    assert data["totalPages"] == 2


async def test__list_prompts__defaults(client: AsyncClient) -> None:
    """Defaults are page 1 and limit 20."""
    response = await client.get("/api/prompts")

    data = response.json()
    assert data["page"] == 1
    assert data["limit"] == 20
    assert data["total"] == 0
    assert data["totalPages"] == 0
    assert data["prompts"] == []


async def test__list_prompts__most_recently_updated_first(client: AsyncClient) -> None:
    """Updating a prompt moves it to the front."""
    first = await _create(client, title="First")
    second = await _create(client, title="Second")

    response = await client.get("/api/prompts")
    assert [p["id"] for p in response.json()["prompts"]] == [second["id"], first["id"]]

    await client.put(f"/api/prompts/{first['id']}", json={"title": "First (edited)"})

    response = await client.get("/api/prompts")
    assert [p["id"] for p in response.json()["prompts"]] == [first["id"], second["id"]]


async def test__list_prompts__filter_by_category(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """category restricts to an exact category id."""
    category = await create_category(db_session)
    in_category = await _create(client, category_id=category.id)
    await _create(client, title="Uncategorized")

    response = await client.get("/api/prompts", params={"category": category.id})

    data = response.json()
    assert data["total"] == 1
    assert data["prompts"][0]["id"] == in_category["id"]


async def test__list_prompts__search_matches_title_description_and_content(
    client: AsyncClient,
) -> None:
    """search is a case-insensitive substring match across text fields."""
    by_title = await _create(client, title="Weekly REPORT", content="a")
    by_description = await _create(client, title="B", description="report helper", content="b")
    by_content = await _create(client, title="C", content="Write a Report about x")
    await _create(client, title="Unrelated", content="nothing here")

    response = await client.get("/api/prompts", params={"search": "report"})

    ids = {p["id"] for p in response.json()["prompts"]}
    assert ids == {by_title["id"], by_description["id"], by_content["id"]}


async def test__list_prompts__search_wildcards_match_literally(client: AsyncClient) -> None:
    """'%' and '_' in search text are not treated as wildcards."""
    literal = await _create(client, title="100% accurate")
    await _create(client, title="100 accurate")

    response = await client.get("/api/prompts", params={"search": "100%"})
    assert [p["id"] for p in response.json()["prompts"]] == [literal["id"]]

    response = await client.get("/api/prompts", params={"search": "_"})
    assert response.json()["total"] == 0


async def test__list_prompts__filter_by_visibility(client: AsyncClient) -> None:
    """visibility restricts to an exact visibility value."""
    public = await _create(client, visibility="public")
    await _create(client, visibility="private")
    await _create(client, visibility="shared")

    response = await client.get("/api/prompts", params={"visibility": "public"})

    data = response.json()
    assert data["total"] == 1
    assert data["prompts"][0]["id"] == public["id"]


async def test__list_prompts__empty_string_filters_ignored(client: AsyncClient) -> None:
    """Empty filter values mean "not supplied"."""
    await _create(client)
    await _create(client, visibility="public")

    response = await client.get(
        "/api/prompts",
        params={"category": "", "search": "", "visibility": ""},
    )

    assert response.status_code == 200
    assert response.json()["total"] == 2


async def test__list_prompts__invalid_parameters_rejected(client: AsyncClient) -> None:
    """Malformed pagination or filters return 400."""
    for params in (
        {"page": 0},
        {"limit": 0},
        {"limit": 101},
        {"page": "abc"},
        {"category": "abc"},
        {"category": str(10**30)},
        {"category": str(2**31)},
        {"page": str(10**30)},
        {"visibility": "everyone"},
    ):
        response = await client.get("/api/prompts", params=params)
        assert response.status_code == 400, params
        assert response.json()["error"] == "Validation failed"


async def test__list_prompts__only_returns_own_prompts(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """Other users' prompts never appear, not even public ones."""
    own = await _create(client)

    async with create_user2_client(db_session) as user2_client:
        response = await user2_client.post(
            "/api/prompts",
            json={"title": "Theirs", "content": "x", "visibility": "public"},
        )
        assert response.status_code == 201
        response = await user2_client.post(
            "/api/prompts",
            json={"title": "Theirs private", "content": "x"},
        )
        assert response.status_code == 201

    response = await client.get("/api/prompts", params={"visibility": "public"})
    assert response.json()["total"] == 0

    response = await client.get("/api/prompts")
    assert [p["id"] for p in response.json()["prompts"]] == [own["id"]]


# =============================================================================
# Get Prompt Tests
# =============================================================================


async def test__get_prompt__owner(client: AsyncClient) -> None:
    """Owners can read their prompts regardless of visibility."""
    created = await _create(client, tags=["a"])

    response = await client.get(f"/api/prompts/{created['id']}")

    assert response.status_code == 200
    assert response.json() == created


async def test__get_prompt__not_found(client: AsyncClient) -> None:
    """Missing prompt returns 404."""
    response = await client.get(f"/api/prompts/{MISSING_ID}")

    assert response.status_code == 404
    assert response.json()["error"] == "Prompt not found"


async def test__get_prompt__public_prompt_readable_by_other_user(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """Public prompts are readable by anyone authenticated."""
    public = await _create(client, visibility="public")

    async with create_user2_client(db_session) as user2_client:
        response = await user2_client.get(f"/api/prompts/{public['id']}")

    assert response.status_code == 200
    assert response.json()["title"] == public["title"]


async def test__get_prompt__private_and_shared_forbidden_for_other_user(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """Non-owners get 403 for private and shared prompts."""
    private = await _create(client, visibility="private")
    shared = await _create(client, visibility="shared")

    async with create_user2_client(db_session) as user2_client:
        private_response = await user2_client.get(f"/api/prompts/{private['id']}")
        shared_response = await user2_client.get(f"/api/prompts/{shared['id']}")

    assert private_response.status_code == 403
    assert shared_response.status_code == 403


# =============================================================================
# Update Prompt Tests
# =============================================================================


async def test__update_prompt__partial_update_keeps_other_fields(client: AsyncClient) -> None:
    """Fields not included in the body keep their values."""
    created = await _create(
        client,
        description="desc",
        visibility="public",
        template_variables={"x": "1"},
        tags=["keep"],
    )

    response = await client.put(f"/api/prompts/{created['id']}", json={"title": "Renamed"})

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Renamed"
    for field in (
        "description",
        "content",
        "visibility",
        "template_variables",
        "tags",
        "category_id",
        "user_id",
    ):
        assert data[field] == created[field], field
    assert data["version"] == 2


async def test__update_prompt__version_increments_each_update(client: AsyncClient) -> None:
    """Every successful update bumps the version."""
    created = await _create(client)

    await client.put(f"/api/prompts/{created['id']}", json={"title": "v2"})
    response = await client.put(f"/api/prompts/{created['id']}", json={"title": "v3"})

    assert response.json()["version"] == 3


async def test__update_prompt__tags_replaced(client: AsyncClient) -> None:
    """Supplying tags replaces the whole set."""
    created = await _create(client, tags=["old", "kept"])

    response = await client.put(
        f"/api/prompts/{created['id']}",
        json={"tags": ["kept", "New"]},
    )

    assert sorted(response.json()["tags"]) == ["kept", "new"]


async def test__update_prompt__empty_tags_clears(client: AsyncClient) -> None:
    """An empty list removes every tag."""
    created = await _create(client, tags=["a", "b"])

    response = await client.put(f"/api/prompts/{created['id']}", json={"tags": []})

    assert response.json()["tags"] == []


async def test__update_prompt__tags_must_be_a_list(client: AsyncClient) -> None:
    """A bare string for tags is rejected and the existing tags are kept."""
    created = await _create(client, tags=["keep"])

    response = await client.put(f"/api/prompts/{created['id']}", json={"tags": "python"})

    assert response.status_code == 400
    stored = await client.get(f"/api/prompts/{created['id']}")
    assert stored.json()["tags"] == ["keep"]


async def test__prompt_id_out_of_range_rejected(client: AsyncClient) -> None:
    """Path ids too large for the database are validation errors, not server errors."""
    huge = 10**30

    assert (await client.get(f"/api/prompts/{huge}")).status_code == 400
    assert (await client.put(f"/api/prompts/{huge}", json={"title": "T"})).status_code == 400
    assert (await client.delete(f"/api/prompts/{huge}")).status_code == 400


async def test__update_prompt__camel_case_and_clearing_category(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """camelCase keys work for updates and category can be cleared with null."""
    category = await create_category(db_session)
    created = await _create(client)

    response = await client.put(
        f"/api/prompts/{created['id']}",
        json={"categoryId": category.id, "isTemplate": True},
    )
    assert response.json()["category_id"] == category.id
    assert response.json()["is_template"] is True

    response = await client.put(f"/api/prompts/{created['id']}", json={"category_id": None})
    assert response.json()["category_id"] is None
    assert response.json()["is_template"] is True


async def test__update_prompt__owner_cannot_be_changed(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """user_id in the body is ignored."""
    created = await _create(client)

    response = await client.put(
        f"/api/prompts/{created['id']}",
        json={"user_id": created["user_id"] + 1, "title": "Still mine"},
    )

    assert response.status_code == 200
    assert response.json()["user_id"] == created["user_id"]
    prompt = await db_session.get(Prompt, created["id"])
    assert prompt.user_id == created["user_id"]


async def test__update_prompt__null_title_rejected(client: AsyncClient) -> None:
    """Required fields can be omitted but not cleared."""
    created = await _create(client)

    response = await client.put(f"/api/prompts/{created['id']}", json={"title": None})

    assert response.status_code == 400


async def test__update_prompt__invalid_content_rejected_without_changes(
    client: AsyncClient,
) -> None:
    """A rejected update leaves the prompt untouched."""
    created = await _create(client)

    response = await client.put(
        f"/api/prompts/{created['id']}",
        json={"title": "Should not apply", "content": "x" * 10_001},
    )
    assert response.status_code == 400

    current = (await client.get(f"/api/prompts/{created['id']}")).json()
    assert current["title"] == created["title"]
    assert current["version"] == 1


async def test__update_prompt__not_found(client: AsyncClient) -> None:
    """Missing prompt returns 404."""
    response = await client.put(f"/api/prompts/{MISSING_ID}", json={"title": "x"})
    assert response.status_code == 404


async def test__update_prompt__other_users_prompt_forbidden(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """Non-owners get 403 even for public prompts, and nothing changes."""
    created = await _create(client, visibility="public")

    async with create_user2_client(db_session) as user2_client:
        response = await user2_client.put(
            f"/api/prompts/{created['id']}",
            json={"title": "Hijacked"},
        )

    assert response.status_code == 403
    prompt = await db_session.get(Prompt, created["id"])
    await db_session.refresh(prompt)
    assert prompt.title == created["title"]
    assert prompt.version == 1


# =============================================================================
# Delete Prompt Tests
# =============================================================================


async def test__delete_prompt__success(client: AsyncClient, db_session: AsyncSession) -> None:
    """Deleting removes the row and its tag associations."""
    created = await _create(client, tags=["gone"])

    response = await client.delete(f"/api/prompts/{created['id']}")
    assert response.status_code == 204

    response = await client.get(f"/api/prompts/{created['id']}")
    assert response.status_code == 404

    links = await db_session.scalar(
        select(func.count()).select_from(prompt_tags).where(
            prompt_tags.c.prompt_id == created["id"],
        ),
    )
    assert links == 0


async def test__delete_prompt__keeps_execution_history(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """Executions survive with prompt_id set to NULL."""
    created = await _create(client)
    response = await client.post(
        f"/api/prompts/{created['id']}/execute",
        json={"ai_model_used": "gpt-4o"},
    )
    execution_id = response.json()["id"]

    response = await client.delete(f"/api/prompts/{created['id']}")
    assert response.status_code == 204

    execution = await db_session.get(Execution, execution_id)
    await db_session.refresh(execution)
    assert execution.prompt_id is None
    user = await get_dev_user(db_session)
    assert execution.user_id == user.id


async def test__delete_prompt__not_found(client: AsyncClient) -> None:
    """Missing prompt returns 404."""
    response = await client.delete(f"/api/prompts/{MISSING_ID}")
    assert response.status_code == 404


async def test__delete_prompt__other_users_prompt_forbidden(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """Non-owners get 403 and the row stays."""
    created = await _create(client, visibility="public")

    async with create_user2_client(db_session) as user2_client:
        response = await user2_client.delete(f"/api/prompts/{created['id']}")

    assert response.status_code == 403
    assert await db_session.get(Prompt, created["id"]) is not None


# =============================================================================
# Render Prompt Tests
# =============================================================================


async def test__render_prompt__defaults_overridden_by_variables(client: AsyncClient) -> None:
    """Stored template_variables are defaults; request variables win."""
    created = await _create(
        client,
        content="Hello {{ name }} from {{ place }}",
        is_template=True,
        template_variables={"name": "World", "place": "Earth"},
    )

    response = await client.post(
        f"/api/prompts/{created['id']}/render",
        json={"variables": {"place": "Mars"}},
    )

    assert response.status_code == 200
    assert response.json()["rendered"] == "Hello World from Mars"


async def test__render_prompt__missing_variable_rejected(client: AsyncClient) -> None:
    """A variable with no default and no value is a 400."""
    created = await _create(client, content="Hello {{ name }}")

    response = await client.post(f"/api/prompts/{created['id']}/render", json={})

    assert response.status_code == 400
    assert "name" in response.json()["error"]


async def test__render_prompt__syntax_error_rejected(client: AsyncClient) -> None:
    """Broken template syntax is a 400."""
    created = await _create(client, content="Hello {{ name ")

    response = await client.post(
        f"/api/prompts/{created['id']}/render",
        json={"variables": {"name": "x"}},
    )

    assert response.status_code == 400


async def test__render_prompt__private_prompt_forbidden_for_other_user(
    client: AsyncClient,
    db_session: AsyncSession,
) -> None:
    """Rendering follows the same read rules as GET."""
    created = await _create(client, content="Hi")

    async with create_user2_client(db_session) as user2_client:
        response = await user2_client.post(f"/api/prompts/{created['id']}/render", json={})

    assert response.status_code == 403
