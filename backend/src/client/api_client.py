"""HTTP client for the Prompt Library API."""
import asyncio
import csv
import io
import json
import logging
from datetime import datetime
from typing import Any

import httpx

from client.auth_store import AuthStore
from client.errors import ApiError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_AFTER = 60
EXPORT_PAGE_SIZE = 100
CSV_HEADERS = ["Title", "Description", "Content", "Category", "Visibility", "Created", "Updated"]


def _error_message(body: Any, status: int) -> str:
    """Pick the most useful message out of an error response body."""
    if isinstance(body, dict):
        if isinstance(body.get("error"), str):
            return body["error"]
        detail = body.get("detail")
        if isinstance(detail, str):
            return detail
        if isinstance(detail, dict) and isinstance(detail.get("message"), str):
            return detail["message"]
    return f"HTTP {status}"


def _date_only(value: str | None) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value).date().isoformat()
    except ValueError:
        return value


class PromptLibraryClient:
    """
    Async client wrapping the Prompt Library REST API.

    Every failure surfaces as ApiError. The bearer token is read from the
    AuthStore on each request, and a 401 response clears it.

    Example:
        store = AuthStore(token="ps_...")
        async with PromptLibraryClient("http://localhost:8000", store) as api:
            page = await api.get_prompts(search="summary")
    """

    def __init__(
        self,
        base_url: str,
        auth_store: AuthStore | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth_store = auth_store or AuthStore()
        self._http = http_client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def __aenter__(self) -> "PromptLibraryClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.auth_store.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body (None for 204).

        Query parameters whose value is None are dropped.

        Raises:
            ApiError: For any non-2xx response or transport failure.
        """
        clean_params = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            response = await self._http.request(
                method,
                path,
                params=clean_params or None,
                json=json,
                headers=self._headers(),
            )
        except httpx.TransportError as e:
            logger.warning("API request failed: %s %s: %s", method, path, e)
            raise ApiError("Network error. Please check your connection.", 0) from e

        if response.status_code == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            raise ApiError(
                f"Rate limit exceeded. Please try again in {retry_after} seconds.",
                429,
                {"retry_after": retry_after},
            )

        if response.status_code == 401:
            self.auth_store.set_token(None)
            raise ApiError("Authentication required. Please sign in again.", 401)

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {"error": "Unknown error occurred"}
            raise ApiError(_error_message(body, response.status_code), response.status_code, body)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # --- Categories ---

    async def get_categories(self) -> dict[str, Any]:
        return await self.request("GET", "/api/categories")

    async def create_category(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/api/categories", json=data)

    async def update_category(self, category_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("PUT", f"/api/categories/{category_id}", json=data)

    async def delete_category(self, category_id: int) -> None:
        await self.request("DELETE", f"/api/categories/{category_id}")

    # --- Prompts ---

    async def get_prompts(
        self,
        page: int = 1,
        limit: int = 20,
        category: int | None = None,
        search: str | None = None,
        visibility: str | None = None,
    ) -> dict[str, Any]:
        """Fetch one page of the caller's prompts."""
        return await self.request(
            "GET",
            "/api/prompts",
            params={
                "page": page,
                "limit": limit,
                "category": category,
                "search": search,
                "visibility": visibility,
            },
        )

    async def search_prompts(self, query: str, **filters: Any) -> dict[str, Any]:
        return await self.get_prompts(search=query, **filters)

    async def get_prompts_by_category(self, category_id: int, **params: Any) -> dict[str, Any]:
        return await self.get_prompts(category=category_id, **params)

    async def get_public_prompts(self, **params: Any) -> dict[str, Any]:
        return await self.get_prompts(visibility="public", **params)

    async def get_prompt(self, prompt_id: int) -> dict[str, Any]:
        return await self.request("GET", f"/api/prompts/{prompt_id}")

    async def create_prompt(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/api/prompts", json=data)

    async def update_prompt(self, prompt_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("PUT", f"/api/prompts/{prompt_id}", json=data)

    async def delete_prompt(self, prompt_id: int) -> None:
        await self.request("DELETE", f"/api/prompts/{prompt_id}")

    async def render_prompt(
        self,
        prompt_id: int,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self.request(
            "POST",
            f"/api/prompts/{prompt_id}/render",
            json={"variables": variables or {}},
        )

    # --- Executions & analytics ---

    async def execute_prompt(self, prompt_id: int, data: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", f"/api/prompts/{prompt_id}/execute", json=data)

    async def get_executions(
        self,
        prompt_id: int,
        limit: int = 20,
        offset: int = 0,
    ) -> dict[str, Any]:
        return await self.request(
            "GET",
            f"/api/prompts/{prompt_id}/executions",
            params={"limit": limit, "offset": offset},
        )

    async def get_user_analytics(self) -> dict[str, Any]:
        return await self.request("GET", "/api/analytics/user")

    # --- Auth & system ---

    def get_auth_url(self) -> str:
        """URL that starts the browser login flow."""
        return f"{self.base_url}/auth/login"

    async def validate_session(self) -> dict[str, Any]:
        return await self.request("GET", "/api/auth/validate")

    async def get_current_user(self) -> dict[str, Any]:
        """Fetch the profile and cache it in the auth store."""
        profile = await self.request("GET", "/api/user/profile")
        self.auth_store.set_user(profile.get("user"))
        return profile

    async def sign_out(self) -> None:
        """
        Revoke the session on the server, then clear local state.

        A failed revocation is logged; local state is cleared regardless.
        """
        token = self.auth_store.token
        if token:
            try:
                await self.request("GET", "/auth/logout", params={"session": token})
            except ApiError as e:
                logger.warning("Logout request failed: %s", e.message)
        self.auth_store.clear()

    async def get_system_health(self) -> dict[str, Any]:
        return await self.request("GET", "/health")

    # --- Bulk helpers ---

    async def batch_delete_prompts(self, prompt_ids: list[int]) -> dict[str, Any]:
        """
        Delete several prompts concurrently.

        Returns:
            Dict with `successful` and `failed` counts, `total`, and the error
            messages of failed deletions in `errors`.
        """
        results = await asyncio.gather(
            *(self.delete_prompt(prompt_id) for prompt_id in prompt_ids),
            return_exceptions=True,
        )
        errors = []
        for result in results:
            if isinstance(result, ApiError):
                errors.append(result.message)
            elif isinstance(result, BaseException):
                raise result
        return {
            "successful": len(results) - len(errors),
            "failed": len(errors),
            "total": len(prompt_ids),
            "errors": errors,
        }

    async def export_prompts(self, format: str = "json") -> str:  # noqa: A002
        """
        Export every prompt the caller owns.

        Args:
            format: "json" (pretty-printed list) or "csv".

        Raises:
            ValueError: For any other format.
        """
        if format not in ("json", "csv"):
            raise ValueError(f"Unsupported export format: {format}")

        prompts: list[dict[str, Any]] = []
        page = 1
        while True:
            response = await self.get_prompts(page=page, limit=EXPORT_PAGE_SIZE)
            prompts.extend(response["prompts"])
            if page >= response["totalPages"]:
                break
            page += 1

        if format == "json":
            return json.dumps(prompts, indent=2)

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for prompt in prompts:
            writer.writerow([
                prompt["title"],
                prompt.get("description") or "",
                prompt["content"],
                prompt.get("category_name") or "",
                prompt["visibility"],
                _date_only(prompt.get("created_at")),
                _date_only(prompt.get("updated_at")),
            ])
        return buffer.getvalue()


def _parse_retry_after(value: str | None) -> int:
    try:
        return int(value) if value is not None else DEFAULT_RETRY_AFTER
    except ValueError:
        return DEFAULT_RETRY_AFTER
