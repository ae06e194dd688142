"""Work-item lookups and estimate updates against Jira."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from planning_poker.adapters.jira_client import JiraClient
from planning_poker.domain.errors import UpstreamFailureError
from planning_poker.domain.work_items import JiraBoard, JiraSprint, WorkItem
from planning_poker.services.cache import Cache

_logger = logging.getLogger(__name__)


@dataclass
class JiraService:
    """Service for Jira listings with caching and error mapping.

    Every client failure surfaces as UpstreamFailureError.
    """

    client: JiraClient
    cache: Cache
    listing_ttl_seconds: int = 300
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def list_boards(self) -> list[JiraBoard]:
        """Return agile boards, cached."""
        cache_key = "jira:boards"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        payload = await self._call_with_retry(
            self.client.list_boards, action="list_boards"
        )
        boards = [
            JiraBoard(
                id=int(board["id"]),
                name=str(board.get("name", "")),
                key=_optional_str(_location_key(board)),
                type=_optional_str(board.get("type")),
            )
            for board in _values(payload, "values")
        ]
        self.cache.set(cache_key, boards, ttl_seconds=self.listing_ttl_seconds)
        return boards

    async def list_sprints(self, board_id: int) -> list[JiraSprint]:
        """Return sprints of a board, cached."""
        cache_key = f"jira:sprints:{board_id}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        payload = await self._call_with_retry(
            lambda: self.client.list_sprints(board_id),
            action=f"list_sprints:{board_id}",
        )
        sprints = [
            JiraSprint(
                id=int(sprint["id"]),
                name=str(sprint.get("name", "")),
                state=_optional_str(sprint.get("state")),
                start_date=_optional_str(sprint.get("startDate")),
                end_date=_optional_str(sprint.get("endDate")),
            )
            for sprint in _values(payload, "values")
        ]
        self.cache.set(cache_key, sprints, ttl_seconds=self.listing_ttl_seconds)
        return sprints

    async def list_issues(self, board_id: int, sprint_id: int) -> list[WorkItem]:
        """Return the issues of a sprint; never cached."""
        payload = await self._call_with_retry(
            lambda: self.client.list_issues(board_id, sprint_id),
            action=f"list_issues:{board_id}:{sprint_id}",
        )
        return [
            WorkItem.from_payload(issue)
            for issue in _values(payload, "issues")
            if issue.get("id") is not None
        ]

    async def set_story_points(self, issue_id: str, points: int | float) -> None:
        """Write story points once; failures are not retried."""
        try:
            await self.client.set_story_points(issue_id, points)
        except Exception as exc:
            raise _upstream_failure(exc, action=f"set_story_points:{issue_id}") from exc
        _logger.info("Story points updated: issue=%s points=%s", issue_id, points)

    async def _call_with_retry(
        self, func: Callable[[], Awaitable[dict[str, object]]], *, action: str
    ) -> dict[str, object]:
        """Call an async function with a short retry."""
        attempt = 0
        while True:
            try:
                return await func()
            except Exception as exc:
                attempt += 1
                if attempt > self.retry_attempts:
                    raise _upstream_failure(exc, action=action) from exc
                _logger.warning(
                    "Jira %s failed (attempt %s/%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    exc,
                )
                await asyncio.sleep(self.retry_delay_seconds)


def _upstream_failure(exc: Exception, *, action: str) -> UpstreamFailureError:
    status_code = _status_code_from_exception(exc)
    _logger.warning("Jira %s failed (status=%s): %s", action, status_code, exc)
    if status_code is not None:
        message = f"Jira API error: {status_code} {_reason_phrase(exc)}".strip()
    else:
        message = f"Jira API error: {exc}"
    return UpstreamFailureError(message, status_code=status_code)


def _status_code_from_exception(exc: Exception) -> int | None:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None


def _reason_phrase(exc: Exception) -> str:
    response = getattr(exc, "response", None)
    reason = getattr(response, "reason_phrase", "")
    return reason if isinstance(reason, str) else ""


def _values(payload: Mapping[str, object], key: str) -> list[Mapping[str, object]]:
    items = payload.get(key) if isinstance(payload, Mapping) else None
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, Mapping)]


def _location_key(board: Mapping[str, object]) -> object:
    location = board.get("location")
    if isinstance(location, Mapping) and location.get("projectKey"):
        return location.get("projectKey")
    return board.get("key")


def _optional_str(value: object) -> str | None:
    return str(value) if value is not None else None
