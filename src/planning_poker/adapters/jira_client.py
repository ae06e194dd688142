"""Jira Cloud REST client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class JiraClient(Protocol):
    """Interface for the Jira calls used during estimation."""

    async def list_boards(self) -> dict[str, object]:
        """Return the raw agile board listing."""

    async def list_sprints(self, board_id: int) -> dict[str, object]:
        """Return the raw sprint listing for a board."""

    async def list_issues(self, board_id: int, sprint_id: int) -> dict[str, object]:
        """Return the raw issue listing for a sprint on a board."""

    async def set_story_points(self, issue_id: str, points: int | float) -> None:
        """Write the story point estimate of an issue."""


@dataclass
class HttpxJiraClient(JiraClient):
    """HTTPX-backed Jira client using basic auth with an API token."""

    base_url: str
    story_points_field: str
    http_client: httpx.AsyncClient
    timeout: float = 15

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        base_url: str,
        email: str,
        api_token: str,
        story_points_field: str,
        timeout: float = 15,
    ) -> "HttpxJiraClient":
        """Create a Jira client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            story_points_field=story_points_field,
            http_client=httpx.AsyncClient(
                auth=httpx.BasicAuth(email, api_token),
                headers={"Accept": "application/json"},
            ),
            timeout=timeout,
        )

    async def list_boards(self) -> dict[str, object]:
        """List agile boards visible to the account."""
        return await self._get("/rest/agile/1.0/board")

    async def list_sprints(self, board_id: int) -> dict[str, object]:
        """List sprints of a board."""
        return await self._get(f"/rest/agile/1.0/board/{board_id}/sprint")

    async def list_issues(self, board_id: int, sprint_id: int) -> dict[str, object]:
        """List issues of a sprint as seen from a board."""
        return await self._get(
            f"/rest/agile/1.0/board/{board_id}/sprint/{sprint_id}/issue"
        )

    async def set_story_points(self, issue_id: str, points: int | float) -> None:
        """Update the story points field; Jira answers 204 on success."""
        url = f"{self.base_url}/rest/api/3/issue/{issue_id}"
        response = await self.http_client.put(
            url,
            json={"fields": {self.story_points_field: points}},
            timeout=self.timeout,
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _get(self, path: str) -> dict[str, object]:
        response = await self.http_client.get(
            f"{self.base_url}{path}", timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()
