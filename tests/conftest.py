"""Shared test fixtures."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import pytest

from planning_poker.adapters.jira_client import JiraClient
from planning_poker.config import Settings
from planning_poker.containers import AppContainer
from planning_poker.services.broadcast import BroadcastCoordinator
from planning_poker.services.cache import InMemoryCache
from planning_poker.services.disconnects import DisconnectReconciler
from planning_poker.services.jira import JiraService
from planning_poker.services.registry import SessionRegistry
from planning_poker.services.sessions import SessionService
from planning_poker.services.voting import VotingService

JIRA_ISSUE = {
    "id": "10001",
    "key": "TEST-1",
    "fields": {
        "summary": "Implement user authentication",
        "status": {"name": "To Do"},
        "assignee": {"displayName": "John Doe"},
        "issuetype": {"name": "Story", "iconUrl": "https://example.test/story.svg"},
    },
}


@dataclass
class RecordingSubscriber:
    """Subscriber that records every delivered event."""

    events: list[tuple[str, dict[str, object] | None]] = field(default_factory=list)

    def deliver(self, event: str, payload: dict[str, object] | None) -> None:
        self.events.append((event, payload))

    def payloads(self, event: str) -> list[dict[str, object] | None]:
        return [payload for name, payload in self.events if name == event]

    def last(self, event: str) -> dict[str, object] | None:
        matching = self.payloads(event)
        assert matching, f"no {event} delivered"
        return matching[-1]

    def clear(self) -> None:
        self.events.clear()


@dataclass
class BrokenSubscriber:
    """Subscriber whose transport is gone."""

    def deliver(self, event: str, payload: dict[str, object] | None) -> None:
        raise ConnectionResetError("socket closed")


@dataclass
class FakeJiraClient(JiraClient):
    """Fake Jira client with canned payloads and a hook on updates."""

    boards_payload: dict[str, object] = field(
        default_factory=lambda: {
            "values": [
                {
                    "id": 1,
                    "name": "TEST board",
                    "type": "scrum",
                    "location": {"projectKey": "TEST"},
                }
            ]
        }
    )
    sprints_payload: dict[str, object] = field(
        default_factory=lambda: {
            "values": [
                {
                    "id": 7,
                    "name": "Sprint 7",
                    "state": "active",
                    "startDate": "2026-10-12T09:00:00.000Z",
                    "endDate": "2026-10-26T09:00:00.000Z",
                }
            ]
        }
    )
    issues_payload: dict[str, object] = field(
        default_factory=lambda: {"issues": [JIRA_ISSUE]}
    )
    updates: list[tuple[str, int | float]] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)
    failures: list[Exception] = field(default_factory=list)
    on_update: Callable[[], Awaitable[None]] | None = None

    async def list_boards(self) -> dict[str, object]:
        self._record("list_boards")
        return self.boards_payload

    async def list_sprints(self, board_id: int) -> dict[str, object]:
        self._record(f"list_sprints:{board_id}")
        return self.sprints_payload

    async def list_issues(self, board_id: int, sprint_id: int) -> dict[str, object]:
        self._record(f"list_issues:{board_id}:{sprint_id}")
        return self.issues_payload

    async def set_story_points(self, issue_id: str, points: int | float) -> None:
        self._record(f"set_story_points:{issue_id}")
        if self.on_update is not None:
            await self.on_update()
        self.updates.append((issue_id, points))

    def _record(self, call: str) -> None:
        self.calls.append(call)
        if self.failures:
            raise self.failures.pop(0)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        jira_base_url="https://jira.example.test",
        jira_email="bot@example.test",
        jira_api_token="jira-token",
        admin_token="admin-token",
    )


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def broadcaster(registry: SessionRegistry) -> BroadcastCoordinator:
    return BroadcastCoordinator(registry)


@pytest.fixture
def jira_client() -> FakeJiraClient:
    return FakeJiraClient()


@pytest.fixture
def jira_service(jira_client: FakeJiraClient) -> JiraService:
    return JiraService(
        client=jira_client, cache=InMemoryCache(), retry_delay_seconds=0
    )


@pytest.fixture
def session_service(
    registry: SessionRegistry, broadcaster: BroadcastCoordinator
) -> SessionService:
    return SessionService(registry=registry, broadcaster=broadcaster)


@pytest.fixture
def voting_service(
    registry: SessionRegistry,
    broadcaster: BroadcastCoordinator,
    jira_service: JiraService,
) -> VotingService:
    return VotingService(
        registry=registry, broadcaster=broadcaster, jira_service=jira_service
    )


@pytest.fixture
def reconciler(
    registry: SessionRegistry, broadcaster: BroadcastCoordinator
) -> DisconnectReconciler:
    return DisconnectReconciler(registry=registry, broadcaster=broadcaster)


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    registry: SessionRegistry,
    broadcaster: BroadcastCoordinator,
    session_service: SessionService,
    voting_service: VotingService,
    reconciler: DisconnectReconciler,
    jira_service: JiraService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        registry=registry,
        broadcaster=broadcaster,
        session_service=session_service,
        voting_service=voting_service,
        disconnect_reconciler=reconciler,
        jira_service=jira_service,
        close_resources=close_resources,
    )
