"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from planning_poker.adapters.jira_client import HttpxJiraClient
from planning_poker.config import Settings
from planning_poker.services.broadcast import BroadcastCoordinator
from planning_poker.services.cache import InMemoryCache
from planning_poker.services.disconnects import DisconnectReconciler
from planning_poker.services.jira import JiraService
from planning_poker.services.registry import SessionRegistry
from planning_poker.services.sessions import SessionService
from planning_poker.services.voting import VotingService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    registry: SessionRegistry
    broadcaster: BroadcastCoordinator
    session_service: SessionService
    voting_service: VotingService
    disconnect_reconciler: DisconnectReconciler
    jira_service: JiraService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    registry = SessionRegistry()
    broadcaster = BroadcastCoordinator(registry)
    jira_client = HttpxJiraClient.create(
        base_url=resolved_settings.jira_base_url,
        email=resolved_settings.jira_email,
        api_token=resolved_settings.jira_api_token,
        story_points_field=resolved_settings.jira_story_points_field,
        timeout=resolved_settings.jira_timeout_seconds,
    )
    jira_service = JiraService(
        client=jira_client,
        cache=InMemoryCache(),
        listing_ttl_seconds=resolved_settings.jira_cache_ttl_seconds,
        retry_attempts=resolved_settings.jira_retry_attempts,
    )
    session_service = SessionService(registry=registry, broadcaster=broadcaster)
    voting_service = VotingService(
        registry=registry,
        broadcaster=broadcaster,
        jira_service=jira_service,
        freeze_votes_after_reveal=resolved_settings.freeze_votes_after_reveal,
    )
    disconnect_reconciler = DisconnectReconciler(
        registry=registry, broadcaster=broadcaster
    )

    async def close_resources() -> None:
        await jira_client.close()

    return AppContainer(
        settings=resolved_settings,
        registry=registry,
        broadcaster=broadcaster,
        session_service=session_service,
        voting_service=voting_service,
        disconnect_reconciler=disconnect_reconciler,
        jira_service=jira_service,
        close_resources=close_resources,
    )
