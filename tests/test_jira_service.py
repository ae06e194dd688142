"""Tests for the Jira service."""

import asyncio

import httpx
import pytest

from planning_poker.domain.errors import UpstreamFailureError
from planning_poker.services.cache import InMemoryCache
from planning_poker.services.jira import JiraService
from tests.conftest import FakeJiraClient


def test_list_boards_maps_and_caches(
    jira_service: JiraService, jira_client: FakeJiraClient
) -> None:
    first = asyncio.run(jira_service.list_boards())
    second = asyncio.run(jira_service.list_boards())

    assert first == second
    assert first[0].to_dict() == {
        "id": 1,
        "key": "TEST",
        "name": "TEST board",
        "type": "scrum",
    }
    assert jira_client.calls == ["list_boards"]


def test_list_sprints_cached_per_board(
    jira_service: JiraService, jira_client: FakeJiraClient
) -> None:
    sprints = asyncio.run(jira_service.list_sprints(1))
    asyncio.run(jira_service.list_sprints(1))
    asyncio.run(jira_service.list_sprints(2))

    assert sprints[0].to_dict() == {
        "id": 7,
        "name": "Sprint 7",
        "state": "active",
        "startDate": "2026-10-12T09:00:00.000Z",
        "endDate": "2026-10-26T09:00:00.000Z",
    }
    assert jira_client.calls == ["list_sprints:1", "list_sprints:2"]


def test_list_issues_not_cached_and_skips_bad_rows(
    jira_service: JiraService, jira_client: FakeJiraClient
) -> None:
    jira_client.issues_payload = {
        "issues": [
            {"id": "10001", "key": "TEST-1", "fields": {"summary": "Login"}},
            {"key": "TEST-2", "fields": {"summary": "No id"}},
            "garbage",
        ]
    }

    issues = asyncio.run(jira_service.list_issues(1, 7))
    asyncio.run(jira_service.list_issues(1, 7))

    assert [issue.key for issue in issues] == ["TEST-1"]
    assert issues[0].summary == "Login"
    assert jira_client.calls == ["list_issues:1:7", "list_issues:1:7"]


def test_listing_retries_once(
    jira_service: JiraService, jira_client: FakeJiraClient
) -> None:
    jira_client.failures.append(httpx.ConnectError("boom"))

    boards = asyncio.run(jira_service.list_boards())

    assert len(boards) == 1
    assert jira_client.calls == ["list_boards", "list_boards"]


def test_listing_failure_after_retries(
    jira_service: JiraService, jira_client: FakeJiraClient
) -> None:
    jira_client.failures.extend(
        [httpx.ConnectError("boom"), httpx.ConnectError("boom again")]
    )

    with pytest.raises(UpstreamFailureError) as excinfo:
        asyncio.run(jira_service.list_sprints(1))

    assert excinfo.value.status_code is None
    assert excinfo.value.message == "Jira API error: boom again"


def test_set_story_points_is_not_retried(
    jira_service: JiraService, jira_client: FakeJiraClient
) -> None:
    jira_client.failures.append(httpx.ConnectError("boom"))

    with pytest.raises(UpstreamFailureError):
        asyncio.run(jira_service.set_story_points("10001", 3))

    assert jira_client.calls == ["set_story_points:10001"]
    assert jira_client.updates == []


def test_zero_ttl_disables_listing_cache(jira_client: FakeJiraClient) -> None:
    service = JiraService(
        client=jira_client,
        cache=InMemoryCache(),
        listing_ttl_seconds=0,
        retry_delay_seconds=0,
    )

    asyncio.run(service.list_boards())
    asyncio.run(service.list_boards())

    assert jira_client.calls == ["list_boards", "list_boards"]


def test_cache_invalidate_by_prefix() -> None:
    cache = InMemoryCache()
    cache.set("jira:sprints:1", ["a"], ttl_seconds=60)
    cache.set("jira:sprints:2", ["b"], ttl_seconds=60)
    cache.set("jira:boards", ["c"], ttl_seconds=60)

    cache.invalidate("jira:sprints:")

    assert cache.get("jira:sprints:1") is None
    assert cache.get("jira:sprints:2") is None
    assert cache.get("jira:boards") == ["c"]
