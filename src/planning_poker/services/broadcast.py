"""Fan-out of session events to every connection in a session room."""

import logging
from dataclasses import dataclass

from planning_poker.services.registry import SessionRegistry, Subscriber

SESSION_UPDATED = "session-updated"
HOST_DISCONNECTED = "host-disconnected"
ISSUE_ESTIMATION_UPDATED = "issue-estimation-updated"
MEET_LINK = "meet-link"

_logger = logging.getLogger(__name__)


@dataclass
class BroadcastCoordinator:
    """Deliver events to the current members of a session room."""

    registry: SessionRegistry

    def publish_session(self, session_id: str) -> int:
        """Send the current projection to each room member.

        The projection is computed here, after the caller's mutation, and is
        tailored per recipient only in its host flag. Returns the number of
        connections reached.
        """
        session = self.registry.get_session(session_id)
        if session is None:
            return 0
        projection = self.registry.get_session_projection(session_id)
        if projection is None:
            return 0
        delivered = 0
        for connection_id, subscriber in self.registry.room(session_id):
            payload = projection.for_viewer(connection_id == session.host_id)
            if self._deliver(subscriber, SESSION_UPDATED, payload.to_dict()):
                delivered += 1
        return delivered

    def publish(
        self, session_id: str, event: str, payload: dict[str, object] | None
    ) -> int:
        """Send the same event to each room member."""
        members = self.registry.room(session_id)
        return self.notify(members, event, payload)

    def notify(
        self,
        members: list[tuple[str, Subscriber]],
        event: str,
        payload: dict[str, object] | None,
    ) -> int:
        """Send an event to an explicit set of connections."""
        delivered = 0
        for _, subscriber in members:
            if self._deliver(subscriber, event, payload):
                delivered += 1
        return delivered

    def _deliver(
        self, subscriber: Subscriber, event: str, payload: dict[str, object] | None
    ) -> bool:
        try:
            subscriber.deliver(event, payload)
        except Exception as exc:
            _logger.warning("Dropped %s for a subscriber: %s", event, exc)
            return False
        return True
